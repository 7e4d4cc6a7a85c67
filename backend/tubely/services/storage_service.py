"""
Asset persistence backends for Tubely.

This module provides the ``AssetStore`` capability with two interchangeable
implementations, selected by deployment configuration rather than by request:

- ``S3AssetStore``: writes objects to an S3-compatible bucket via boto3 and
  returns the bucket's public HTTPS URL for the key.
- ``LocalDiskAssetStore``: writes files below a local directory that the app
  serves statically under ``/assets`` and returns the self-referential URL.

Both implement ``put(key, source, content_type) -> url`` and ``delete(key)``.
``source`` is either a filesystem path (the scratch file of a video upload) or
raw bytes (a thumbnail). Blocking boto3 calls run on worker threads so a slow
transfer never stalls the event loop. Every backend failure surfaces as
``StorageFailureError``.
"""

import asyncio
import logging

from abc import ABC, abstractmethod
from functools import partial, wraps
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Set, TypeVar, Union

import aiofiles
import boto3

from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from tubely.config import Settings
from tubely.core.errors import StorageFailureError


# Set up module-level logger for tracking storage operations
logger = logging.getLogger(__name__)

# Type variable for generic async wrapper
T = TypeVar("T")

# Chunk size used when copying a source file into the local asset directory
COPY_CHUNK_SIZE = 1024 * 1024  # 1 MB

AssetSource = Union[str, Path, bytes]


def async_wrap(func: Callable[..., T]) -> Callable[..., "asyncio.Future[T]"]:
    """
    Decorator to wrap synchronous boto3 operations for async execution.

    Uses asyncio.to_thread to run blocking boto3 operations in a separate
    thread pool, preventing event loop blocking during S3 operations.
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

    return wrapper


def build_s3_url(bucket: str, region: str, key: str) -> str:
    """Public HTTPS URL of ``key`` in ``bucket`` (virtual-hosted style)."""
    return f"https://{bucket}.s3.{region}.amazonaws.com/{key}"


class AssetStore(ABC):
    """A place assets can be written to, each write yielding a public URL."""

    @abstractmethod
    async def put(self, key: str, source: AssetSource, content_type: str) -> str:
        """
        Persist ``source`` under ``key``.

        Returns:
            str: URL at which the stored asset can be retrieved.

        Raises:
            StorageFailureError: If the backend rejects or fails the write.
        """

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove the asset stored under ``key`` (no error if absent)."""


class S3AssetStore(AssetStore):
    """
    S3-compatible object store backend.

    Attributes:
        bucket_name: Target bucket for all operations
        region_name: Bucket region, also used to build public URLs
        timeout: Upper bound in seconds for a single transfer

    Example:
        >>> store = S3AssetStore(bucket_name="tubely-videos", region_name="us-east-1")
        >>> url = await store.put("landscape/ab12.mp4", "/tmp/ab12.mp4", "video/mp4")
    """

    def __init__(
        self,
        bucket_name: str,
        region_name: str = "us-east-1",
        endpoint_url: Optional[str] = None,
        access_key: Optional[str] = None,
        secret_key: Optional[str] = None,
        timeout: float = 300.0,
        client: Any = None,
    ) -> None:
        self.bucket_name = bucket_name
        self.region_name = region_name
        self.timeout = timeout
        # Deletes of objects whose upload finished after the caller gave up
        self._cleanup_tasks: Set["asyncio.Task[None]"] = set()

        if client is not None:
            self._client = client
            return

        client_config: Dict[str, Any] = {
            "service_name": "s3",
            "region_name": region_name,
            # Uploads are not retried; a failed transfer fails the request
            "config": Config(
                signature_version="s3v4",
                retries={"total_max_attempts": 1, "mode": "standard"},
            ),
        }
        if endpoint_url:
            client_config["endpoint_url"] = endpoint_url
        # Otherwise fall back to environment/IAM role credentials
        if access_key and secret_key:
            client_config["aws_access_key_id"] = access_key
            client_config["aws_secret_access_key"] = secret_key

        try:
            self._client = boto3.client(**client_config)
        except BotoCoreError as e:
            error_msg = f"Failed to initialize S3 client: {e!s}"
            logger.error(error_msg)
            raise StorageFailureError(error_msg) from e

        logger.info(
            "S3 asset store initialized with bucket=%s, endpoint=%s",
            bucket_name,
            endpoint_url or "AWS S3 default",
        )

    def url_for(self, key: str) -> str:
        return build_s3_url(self.bucket_name, self.region_name, key)

    async def put(self, key: str, source: AssetSource, content_type: str) -> str:
        logger.info("Uploading object_key=%s to bucket=%s", key, self.bucket_name)

        extra_args = {"ContentType": content_type}

        if isinstance(source, bytes):
            @async_wrap
            def _transfer() -> None:
                self._client.put_object(
                    Bucket=self.bucket_name, Key=key, Body=source, **extra_args
                )
        else:
            @async_wrap
            def _transfer() -> None:
                self._client.upload_file(
                    str(source), self.bucket_name, key, ExtraArgs=extra_args
                )

        transfer = asyncio.ensure_future(_transfer())
        try:
            done, _ = await asyncio.wait({transfer}, timeout=self.timeout)
            if not done:
                # The worker thread cannot be interrupted; the object may still land
                transfer.add_done_callback(partial(self._discard_late_upload, key))
                error_msg = f"Upload of {key} timed out after {self.timeout}s"
                logger.error(error_msg)
                raise StorageFailureError(error_msg)
            transfer.result()
        except ClientError as e:
            error_msg = f"Failed to upload {key}: {e.response.get('Error', {}).get('Message', e)}"
            logger.error(error_msg)
            raise StorageFailureError(error_msg) from e
        except (BotoCoreError, OSError) as e:
            error_msg = f"Storage error during upload of {key}: {e!s}"
            logger.error(error_msg)
            raise StorageFailureError(error_msg) from e

        logger.info("Successfully uploaded %s", key)
        return self.url_for(key)

    def _discard_late_upload(self, key: str, transfer: "asyncio.Future[None]") -> None:
        """Done callback for a timed-out transfer: delete the object if it was written."""
        if transfer.cancelled():
            return
        late_error = transfer.exception()
        if late_error is not None:
            logger.warning("Timed-out upload of %s later failed: %s", key, late_error)
            return

        logger.warning("Timed-out upload of %s completed late, deleting the object", key)
        cleanup = asyncio.ensure_future(self._delete_orphan(key))
        self._cleanup_tasks.add(cleanup)
        cleanup.add_done_callback(self._cleanup_tasks.discard)

    async def _delete_orphan(self, key: str) -> None:
        try:
            await self.delete(key)
        except StorageFailureError:
            logger.exception("Failed to delete late-completed upload %s", key)

    async def delete(self, key: str) -> None:
        logger.info("Deleting object_key=%s from bucket=%s", key, self.bucket_name)

        @async_wrap
        def _delete() -> None:
            self._client.delete_object(Bucket=self.bucket_name, Key=key)

        try:
            await asyncio.wait_for(_delete(), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise StorageFailureError(f"Delete of {key} timed out after {self.timeout}s") from e
        except (ClientError, BotoCoreError) as e:
            error_msg = f"Failed to delete {key}: {e!s}"
            logger.error(error_msg)
            raise StorageFailureError(error_msg) from e


class LocalDiskAssetStore(AssetStore):
    """
    Local directory backend, served statically under ``{base_url}/assets``.

    Keys are generated server-side, but every key is still resolved and
    checked to stay inside ``root``.
    """

    def __init__(self, root: Union[str, Path], base_url: str) -> None:
        self.root = Path(root)
        self.base_url = base_url.rstrip("/")

    def path_for(self, key: str) -> Path:
        base = self.root.resolve()
        path = (base / key).resolve()
        try:
            path.relative_to(base)
        except ValueError as e:
            raise StorageFailureError(f"Refusing to write outside the assets root: {key}") from e
        return path

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/assets/{key}"

    async def put(self, key: str, source: AssetSource, content_type: str) -> str:
        path = self.path_for(key)
        logger.info("Writing %s asset to %s", content_type, path)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "wb") as out:
                if isinstance(source, bytes):
                    await out.write(source)
                else:
                    async with aiofiles.open(source, "rb") as src:
                        while chunk := await src.read(COPY_CHUNK_SIZE):
                            await out.write(chunk)
        except OSError as e:
            error_msg = f"File system error while writing {key}: {e!s}"
            logger.error(error_msg)
            raise StorageFailureError(error_msg) from e

        return self.url_for(key)

    async def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageFailureError(f"Failed to delete {key}: {e!s}") from e


# =============================================================================
# Factories
# =============================================================================


def build_video_store(settings: Settings) -> AssetStore:
    """Object store used for video assets."""
    return S3AssetStore(
        bucket_name=settings.s3_bucket_name,
        region_name=settings.s3_region,
        endpoint_url=settings.s3_endpoint_url,
        access_key=settings.s3_access_key_id,
        secret_key=settings.s3_secret_access_key,
        timeout=settings.storage_timeout_seconds,
    )


def build_thumbnail_store(settings: Settings) -> AssetStore | None:
    """
    Persistent store used for thumbnails, or None for the in-memory registry.
    """
    if settings.thumbnail_backend == "memory":
        return None
    if settings.thumbnail_backend == "s3":
        return build_video_store(settings)
    return LocalDiskAssetStore(root=settings.assets_root, base_url=settings.base_url)
