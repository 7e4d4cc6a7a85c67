"""
In-memory thumbnail registry.

Maps a video id to the raw bytes and media type of its thumbnail. Used when
``thumbnail_backend`` is ``memory``: nothing is written to disk or S3, and the
bytes are served back by ``GET /api/v1/thumbnails/{video_id}``.

The registry is process-local and non-durable. Entries are never evicted and
the last write for an id wins.
"""

import threading

from dataclasses import dataclass

from tubely.core.errors import NotFoundError


@dataclass(frozen=True)
class Thumbnail:
    data: bytes
    media_type: str


class ThumbnailRegistry:
    """Thread-safe ``video_id -> Thumbnail`` map."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, Thumbnail] = {}

    def put(self, video_id: str, data: bytes, media_type: str) -> Thumbnail:
        thumbnail = Thumbnail(data=data, media_type=media_type)
        with self._lock:
            self._entries[video_id] = thumbnail
        return thumbnail

    def get(self, video_id: str) -> Thumbnail:
        """
        Raises:
            NotFoundError: If no thumbnail was registered for ``video_id``.
        """
        with self._lock:
            thumbnail = self._entries.get(video_id)
        if thumbnail is None:
            raise NotFoundError(f"Thumbnail not found for video {video_id}")
        return thumbnail

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, video_id: object) -> bool:
        with self._lock:
            return video_id in self._entries


_registry = ThumbnailRegistry()


def get_thumbnail_registry() -> ThumbnailRegistry:
    """Process-wide registry instance (FastAPI dependency)."""
    return _registry
