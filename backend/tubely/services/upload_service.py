"""
Tubely Upload Service Module

Orchestrates the two upload operations, video and thumbnail, for an existing
video record. Both run the same linear pipeline and stop at the first failure:

1. Validate the target video id
2. Load the record (404 if absent)
3. Check the caller owns it (403 otherwise)
4. Check the multipart field is a file
5. Check content type, then size (declared, and again while streaming)
6. Persist the asset
7. Write back the record with the new URL

Authentication happens before the service runs, in the router dependency.
Steps 1-3 are ``authorize``; routers call it before parsing the multipart
body and then hand the loaded record to ``store_video``/``store_thumbnail``.

Video persistence streams the upload into a scratch file, probes it with
ffprobe, and sends it to the object store under ``<orientation>/<hex>.mp4``.
The scratch file is removed on every exit path.

Thumbnail persistence either writes to the configured thumbnail store or,
when no store is configured, keeps the bytes in the in-memory registry once
the record write-back has succeeded.

If the record write-back fails after an object was stored, that object is
deleted again so no orphan is left behind.
"""

import logging
import os
import tempfile

from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import aiofiles

from starlette.datastructures import UploadFile

from tubely.config import Settings
from tubely.core.auth import ensure_owner
from tubely.core.errors import BadRequestError, NotFoundError, StorageFailureError
from tubely.models.video import Video
from tubely.services.media_probe import MetadataProber, get_video_orientation
from tubely.services.storage_service import AssetStore
from tubely.services.thumbnail_registry import Thumbnail, ThumbnailRegistry
from tubely.services.video_service import VideoService
from tubely.utils.file_validator import (
    CHUNK_SIZE,
    REGISTRY_THUMBNAIL_CONTENT_TYPES,
    THUMBNAIL_CONTENT_TYPES,
    VIDEO_CONTENT_TYPES,
    generate_thumbnail_key,
    generate_video_key,
    validate_content_type,
    validate_upload_size,
    validate_video_id,
)
from tubely.utils.logger import add_log_context


# Configure module logger
logger = logging.getLogger(__name__)

VIDEO_FIELD = "video"
THUMBNAIL_FIELD = "thumbnail"


class UploadService:
    """
    Upload orchestrator for video and thumbnail assets.

    Attributes:
        settings: Application settings (limits, scratch dir, base URL)
        videos: Video record store
        prober: Metadata prober used to classify video orientation
        video_store: Object store receiving videos
        thumbnail_store: Store receiving thumbnails, or None to use the registry
        registry: In-memory thumbnail registry

    Example:
        ```python
        service = UploadService(
            settings=get_settings(),
            videos=VideoService(db_client.get_videos_collection()),
            prober=FFprobeProber(),
            video_store=build_video_store(settings),
            thumbnail_store=build_thumbnail_store(settings),
            registry=get_thumbnail_registry(),
        )
        # Record and ownership are checked before the request body is read
        video = await service.authorize(video_id, user_id)
        async with request.form() as form:
            video = await service.store_video(video, form.get("video"))
        ```
    """

    def __init__(
        self,
        settings: Settings,
        videos: VideoService,
        prober: MetadataProber,
        video_store: AssetStore,
        thumbnail_store: AssetStore | None,
        registry: ThumbnailRegistry,
    ) -> None:
        self.settings = settings
        self.videos = videos
        self.prober = prober
        self.video_store = video_store
        self.thumbnail_store = thumbnail_store
        self.registry = registry

    # =========================================================================
    # Operations
    # =========================================================================

    async def authorize(self, video_id: str, user_id: str) -> Video:
        """
        Load ``video_id`` and check that ``user_id`` owns it.

        Runs before the request body is parsed, so an unknown record or a
        foreign caller is rejected without reading the upload.

        Raises:
            BadRequestError: Bad id.
            NotFoundError: No such record.
            ForbiddenError: Caller does not own the record.
        """
        validate_video_id(video_id)

        video = await self.videos.get_video(video_id)
        if video is None:
            raise NotFoundError(f"Video {video_id} not found")

        ensure_owner(video, user_id)
        return video

    async def upload_video(self, video_id: str, user_id: str, upload: Any) -> Video:
        """
        Store an MP4 upload as the video of ``video_id``.

        Args:
            video_id: Target record id from the route.
            user_id: Authenticated caller.
            upload: Value of the ``video`` multipart field (None if absent).

        Returns:
            Video: The record with ``video_url`` pointing at the stored object.

        Raises:
            BadRequestError: Bad id, missing file, wrong type or too large.
            NotFoundError: No such record.
            ForbiddenError: Caller does not own the record.
            InternalError: Probe or storage failure.
            ConflictError: The record changed concurrently.
        """
        video = await self.authorize(video_id, user_id)
        return await self.store_video(video, upload)

    async def upload_thumbnail(self, video_id: str, user_id: str, upload: Any) -> Video:
        """
        Store an image upload as the thumbnail of ``video_id``.

        Raises the same errors as ``upload_video`` (without probe failures).
        """
        video = await self.authorize(video_id, user_id)
        return await self.store_thumbnail(video, upload)

    async def store_video(self, video: Video, upload: Any) -> Video:
        """Validate, probe and persist ``upload`` for an authorized ``video``."""
        log = add_log_context(logger, video_id=video.id, user_id=video.user_id)

        file = self._require_file(upload, VIDEO_FIELD)

        # Type is checked before anything is written or probed
        content_type = validate_content_type(file.content_type, VIDEO_CONTENT_TYPES)
        max_size = self.settings.max_video_upload_bytes
        validate_upload_size(file.size, max_size)

        log.info("Uploading video '%s' (%s)", file.filename, content_type)

        async with self._scratch_file(suffix=".mp4") as scratch_path:
            written = await self._spool_to_file(file, scratch_path, max_size)
            log.debug("Spooled %d bytes to %s", written, scratch_path)

            orientation = await get_video_orientation(self.prober, scratch_path)
            key = generate_video_key(orientation.value)
            url = await self.video_store.put(key, scratch_path, content_type)

        log.info("Stored video as %s", key)
        return await self._write_back(
            video.model_copy(update={"video_url": url}), self.video_store, key
        )

    async def store_thumbnail(self, video: Video, upload: Any) -> Video:
        """Validate and persist ``upload`` as the thumbnail of an authorized ``video``."""
        log = add_log_context(logger, video_id=video.id, user_id=video.user_id)

        file = self._require_file(upload, THUMBNAIL_FIELD)

        allowed = (
            REGISTRY_THUMBNAIL_CONTENT_TYPES
            if self.thumbnail_store is None
            else THUMBNAIL_CONTENT_TYPES
        )
        content_type = validate_content_type(file.content_type, allowed)
        max_size = self.settings.max_thumbnail_upload_bytes
        validate_upload_size(file.size, max_size)

        data = await self._read_limited(file, max_size)

        if self.thumbnail_store is None:
            url = f"{self.settings.base_url}/api/v1/thumbnails/{video.id}"
            updated = await self._write_back(video.model_copy(update={"thumbnail_url": url}))
            # Only a writer whose record update won may replace the served bytes
            self.registry.put(video.id, data, content_type)
            log.info("Registered %d byte thumbnail in memory", len(data))
            return updated

        key = generate_thumbnail_key(content_type)
        url = await self.thumbnail_store.put(key, data, content_type)
        log.info("Stored thumbnail as %s", key)
        return await self._write_back(
            video.model_copy(update={"thumbnail_url": url}), self.thumbnail_store, key
        )

    async def get_thumbnail(self, video_id: str) -> Thumbnail:
        """
        Return the registered thumbnail of ``video_id``.

        Raises:
            BadRequestError: Bad id.
            NotFoundError: No such record, or no thumbnail in the registry.
        """
        validate_video_id(video_id)
        if await self.videos.get_video(video_id) is None:
            raise NotFoundError(f"Video {video_id} not found")
        return self.registry.get(video_id)

    # =========================================================================
    # Pipeline steps
    # =========================================================================

    @staticmethod
    def _require_file(upload: Any, field: str) -> UploadFile:
        if upload is None:
            raise BadRequestError(f"Missing '{field}' file in multipart form")
        if not isinstance(upload, UploadFile):
            raise BadRequestError(f"Form field '{field}' must be a file")
        return upload

    async def _write_back(
        self, video: Video, store: AssetStore | None = None, key: str | None = None
    ) -> Video:
        """Persist ``video``; on failure delete the object just stored under ``key``."""
        try:
            return await self.videos.update_video(video)
        except Exception:
            if store is not None and key is not None:
                await self._discard(store, key)
            raise

    @staticmethod
    async def _discard(store: AssetStore, key: str) -> None:
        try:
            await store.delete(key)
            logger.info("Deleted orphaned asset %s after failed record update", key)
        except StorageFailureError:
            logger.exception("Failed to delete orphaned asset %s", key)

    # =========================================================================
    # Streaming helpers
    # =========================================================================

    @asynccontextmanager
    async def _scratch_file(self, suffix: str = "") -> AsyncIterator[Path]:
        """
        Yield the path of a fresh, uniquely named scratch file.

        The file is removed on exit; a failed removal is logged and ignored.
        """
        fd, name = tempfile.mkstemp(prefix="tubely-upload-", suffix=suffix, dir=self.settings.scratch_dir)
        os.close(fd)
        path = Path(name)
        try:
            yield path
        finally:
            try:
                path.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning("Failed to clean up scratch file '%s': %s", path, cleanup_error)

    @staticmethod
    async def _spool_to_file(file: UploadFile, path: Path, max_size: int) -> int:
        written = 0
        async with aiofiles.open(path, "wb") as out:
            while chunk := await file.read(CHUNK_SIZE):
                written += len(chunk)
                validate_upload_size(written, max_size)
                await out.write(chunk)
        return written

    @staticmethod
    async def _read_limited(file: UploadFile, max_size: int) -> bytes:
        chunks: list[bytes] = []
        total = 0
        while chunk := await file.read(CHUNK_SIZE):
            total += len(chunk)
            validate_upload_size(total, max_size)
            chunks.append(chunk)
        return b"".join(chunks)
