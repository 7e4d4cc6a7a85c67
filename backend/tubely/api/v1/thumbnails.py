"""
FastAPI Thumbnail Router for Tubely

Endpoints:
- POST /thumbnails/{video_id}/upload - Upload the thumbnail for an owned video
- GET /thumbnails/{video_id} - Serve a thumbnail held in the in-memory registry

The GET endpoint is unauthenticated and only serves thumbnails stored with the
``memory`` backend; disk-persisted thumbnails are served from ``/assets``.
"""

import logging

from fastapi import APIRouter, Depends, Request, Response, status
from starlette.exceptions import HTTPException as StarletteHTTPException

from tubely.api.v1.dependencies import (
    get_upload_service,
    internal_server_error,
    multipart_error,
    parse_video_id,
    to_http_exception,
)
from tubely.core.auth import get_current_user_id
from tubely.core.errors import TubelyError
from tubely.models.video import Video
from tubely.services.upload_service import THUMBNAIL_FIELD, UploadService


# Configure module logger
logger = logging.getLogger(__name__)


router = APIRouter(tags=["thumbnails"])


@router.post(
    "/thumbnails/{video_id}/upload",
    response_model=Video,
    status_code=status.HTTP_200_OK,
    summary="Upload thumbnail image",
    description="Multipart upload (field ``thumbnail``, ``image/jpeg`` or ``image/png``).",
    responses={
        400: {"description": "Malformed id, missing file, unsupported type or oversized upload"},
        401: {"description": "Unauthorized - Invalid or missing token"},
        403: {"description": "Caller does not own the video"},
        404: {"description": "Video not found"},
        409: {"description": "Video was modified concurrently"},
        500: {"description": "Storage failure"},
    },
)
async def upload_thumbnail(
    request: Request,
    video_id: str = Depends(parse_video_id),
    user_id: str = Depends(get_current_user_id),
    upload_service: UploadService = Depends(get_upload_service),
) -> Video:
    try:
        video = await upload_service.authorize(video_id, user_id)
        async with request.form() as form:
            return await upload_service.store_thumbnail(video, form.get(THUMBNAIL_FIELD))
    except TubelyError as e:
        if e.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Thumbnail upload for %s failed: %s", video_id, e.message)
        raise to_http_exception(e) from e
    except StarletteHTTPException as e:
        raise multipart_error(e) from e
    except Exception as e:
        logger.exception("Unexpected error uploading thumbnail for %s", video_id)
        raise internal_server_error() from e


@router.get(
    "/thumbnails/{video_id}",
    response_class=Response,
    summary="Get thumbnail image",
    responses={
        200: {"content": {"image/png": {}, "image/jpeg": {}}},
        404: {"description": "Video or thumbnail not found"},
    },
)
async def get_thumbnail(
    video_id: str = Depends(parse_video_id),
    upload_service: UploadService = Depends(get_upload_service),
) -> Response:
    try:
        thumbnail = await upload_service.get_thumbnail(video_id)
    except TubelyError as e:
        raise to_http_exception(e) from e

    return Response(
        content=thumbnail.data,
        media_type=thumbnail.media_type,
        headers={"Cache-Control": "no-store"},
    )
