"""
Video record store access for Tubely.

Thin async layer over the MongoDB ``videos`` collection: fetch a record by id
and write back a full record. Write-back replaces the whole document and is
guarded by the record's ``version`` counter, so a writer holding a stale copy
gets a ``ConflictError`` instead of silently overwriting a newer write.
"""

import logging

from datetime import UTC, datetime
from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection
from pydantic import ValidationError

from tubely.core.errors import ConflictError, InternalError
from tubely.models.video import Video


logger = logging.getLogger(__name__)


class VideoService:
    """
    Key-value access to video records.

    Args:
        collection: Motor collection holding video documents.
    """

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self.collection = collection

    async def get_video(self, video_id: str) -> Video | None:
        """Return the record for ``video_id`` or None if it does not exist."""
        document = await self.collection.find_one({"_id": video_id})
        if document is None:
            return None

        try:
            return Video.model_validate(document)
        except ValidationError as e:
            logger.exception("Stored video record %s is malformed", video_id)
            raise InternalError(f"Stored video record {video_id} is malformed") from e

    async def update_video(self, video: Video) -> Video:
        """
        Overwrite the stored record with ``video``.

        The write only applies if the stored version still equals
        ``video.version``; the stored copy gets ``version + 1``.

        Returns:
            Video: The record as written.

        Raises:
            ConflictError: If another writer updated the record first.
        """
        expected_version = video.version
        updated = video.model_copy(
            update={"version": expected_version + 1, "updated_at": datetime.now(UTC)}
        )

        query: dict[str, Any] = {"_id": video.id, "version": expected_version}
        if expected_version == 0:
            # Records created before versioning carry no counter at all
            query = {
                "_id": video.id,
                "$or": [{"version": 0}, {"version": {"$exists": False}}],
            }

        result = await self.collection.replace_one(query, updated.to_document())
        if result.matched_count == 0:
            logger.warning(
                "Stale write rejected for video %s at version %d", video.id, expected_version
            )
            raise ConflictError(f"Video {video.id} was modified by another request")

        logger.info("Updated video %s to version %d", video.id, updated.version)
        return updated
