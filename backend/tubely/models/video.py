"""
Video Pydantic models for Tubely.

A video record is owned by one user and carries the URLs of its uploaded
assets. Records are created and deleted outside this service; the upload
pipeline reads a record, sets ``video_url`` or ``thumbnail_url`` and writes the
whole record back under an optimistic ``version`` check.
"""

from datetime import UTC, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class Video(BaseModel):
    """
    Pydantic model for a video record.

    Attributes:
        id: Opaque record identifier (MongoDB ``_id``)
        user_id: Identifier of the owning user
        title: Display title
        description: Free-form description
        thumbnail_url: Public URL of the thumbnail, if any
        video_url: Public URL of the video asset, if any
        version: Write counter used for optimistic concurrency
        created_at: Record creation timestamp (UTC)
        updated_at: Last modification timestamp (UTC)
    """

    id: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("_id", "id"),
        description="Record identifier",
    )

    user_id: str = Field(..., min_length=1, description="Owning user's ID")

    title: str = Field(default="", max_length=500)

    description: str = Field(default="", max_length=5000)

    thumbnail_url: str | None = Field(default=None, max_length=2048)

    video_url: str | None = Field(default=None, max_length=2048)

    version: int = Field(default=0, ge=0, description="Optimistic concurrency counter")

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    model_config = ConfigDict(
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "id": "6f1c2a9e-6f0e-4df1-a7f4-0a4f3c2e9b11",
                "user_id": "0b1f4f9e-1c39-4a65-9d0e-2a5f7c3b8d21",
                "title": "Boot.dev beach trip",
                "description": "",
                "thumbnail_url": "http://localhost:8091/assets/Zm9v.png",
                "video_url": "https://tubely-videos.s3.us-east-1.amazonaws.com/landscape/ab12.mp4",
                "version": 3,
            }
        },
    )

    def to_document(self) -> dict[str, Any]:
        """Return the MongoDB document form (``id`` stored as ``_id``)."""
        document = self.model_dump(exclude={"id"})
        document["_id"] = self.id
        return document
