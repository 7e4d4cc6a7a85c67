"""
Dependency injection functions shared by the v1 routers.

Each collaborator of the upload pipeline is provided by its own dependency so
tests can swap any of them through ``app.dependency_overrides``.
"""

import logging

from functools import lru_cache

from fastapi import Depends, HTTPException, status
from starlette.exceptions import HTTPException as StarletteHTTPException

from tubely.config import Settings, get_settings
from tubely.core.database import get_db_client
from tubely.core.errors import BadRequestError, TubelyError
from tubely.services.media_probe import FFprobeProber, MetadataProber
from tubely.services.storage_service import (
    AssetStore,
    build_thumbnail_store,
    build_video_store,
)
from tubely.services.thumbnail_registry import ThumbnailRegistry, get_thumbnail_registry
from tubely.services.upload_service import UploadService
from tubely.services.video_service import VideoService
from tubely.utils.file_validator import validate_video_id


logger = logging.getLogger(__name__)


# ============================================================================
# Dependency Injection Functions
# ============================================================================


def get_video_service() -> VideoService:
    """VideoService bound to the ``videos`` collection of the global client."""
    return VideoService(get_db_client().get_videos_collection())


def get_prober(settings: Settings = Depends(get_settings)) -> MetadataProber:
    return FFprobeProber(binary=settings.ffprobe_binary, timeout=settings.probe_timeout_seconds)


# Stores hold a boto3 client; build them once per process
@lru_cache
def get_video_store() -> AssetStore:
    return build_video_store(get_settings())


@lru_cache
def get_thumbnail_store() -> AssetStore | None:
    return build_thumbnail_store(get_settings())


def get_upload_service(
    settings: Settings = Depends(get_settings),
    videos: VideoService = Depends(get_video_service),
    prober: MetadataProber = Depends(get_prober),
    video_store: AssetStore = Depends(get_video_store),
    thumbnail_store: AssetStore | None = Depends(get_thumbnail_store),
    registry: ThumbnailRegistry = Depends(get_thumbnail_registry),
) -> UploadService:
    """
    Dependency injection for UploadService.

    Returns:
        UploadService: Service wired to the configured record store,
        prober and asset stores.
    """
    return UploadService(
        settings=settings,
        videos=videos,
        prober=prober,
        video_store=video_store,
        thumbnail_store=thumbnail_store,
        registry=registry,
    )


def parse_video_id(video_id: str) -> str:
    """
    Path parameter check, declared ahead of authentication so a malformed id
    is rejected with 400 before credentials are looked at.
    """
    try:
        return validate_video_id(video_id)
    except TubelyError as e:
        raise to_http_exception(e) from e


# ============================================================================
# Error Translation
# ============================================================================


def to_http_exception(error: TubelyError) -> HTTPException:
    """Render a pipeline error as ``{"detail": {"error", "message"}}``."""
    return HTTPException(status_code=error.status_code, detail=error.to_detail())


def internal_server_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": "internal_error", "message": "Internal server error"},
    )


def multipart_error(error: StarletteHTTPException) -> HTTPException:
    """Re-shape a multipart parser rejection (plain string detail) as a bad request."""
    return to_http_exception(BadRequestError(f"Malformed multipart body: {error.detail}"))
