"""
FastAPI Video Router for Tubely

Endpoints:
- POST /videos/{video_id}/upload - Upload the MP4 for an owned video record
- GET /videos/{video_id} - Fetch an owned video record
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from starlette.exceptions import HTTPException as StarletteHTTPException

from tubely.api.v1.dependencies import (
    get_upload_service,
    get_video_service,
    internal_server_error,
    multipart_error,
    parse_video_id,
    to_http_exception,
)
from tubely.core.auth import ensure_owner, get_current_user_id
from tubely.core.errors import NotFoundError, TubelyError
from tubely.models.video import Video
from tubely.services.upload_service import VIDEO_FIELD, UploadService
from tubely.services.video_service import VideoService


# Configure module logger
logger = logging.getLogger(__name__)


ERROR_RESPONSES = {
    400: {"description": "Malformed id, missing file, unsupported type or oversized upload"},
    401: {"description": "Unauthorized - Invalid or missing token"},
    403: {"description": "Caller does not own the video"},
    404: {"description": "Video not found"},
    409: {"description": "Video was modified concurrently"},
    500: {"description": "Probe or storage failure"},
}

router = APIRouter(tags=["videos"], responses=ERROR_RESPONSES)


@router.post(
    "/videos/{video_id}/upload",
    response_model=Video,
    status_code=status.HTTP_200_OK,
    summary="Upload video file",
    description="Multipart upload (field ``video``, ``video/mp4``). The file is "
    "probed for orientation and stored under ``<orientation>/<random>.mp4``.",
)
async def upload_video(
    request: Request,
    video_id: str = Depends(parse_video_id),
    user_id: str = Depends(get_current_user_id),
    upload_service: UploadService = Depends(get_upload_service),
) -> Video:
    try:
        video = await upload_service.authorize(video_id, user_id)
        async with request.form() as form:
            return await upload_service.store_video(video, form.get(VIDEO_FIELD))
    except TubelyError as e:
        if e.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
            logger.error("Video upload for %s failed: %s", video_id, e.message)
        raise to_http_exception(e) from e
    except StarletteHTTPException as e:
        raise multipart_error(e) from e
    except Exception as e:
        logger.exception("Unexpected error uploading video for %s", video_id)
        raise internal_server_error() from e


@router.get(
    "/videos/{video_id}",
    response_model=Video,
    summary="Get video record",
)
async def get_video(
    video_id: str = Depends(parse_video_id),
    user_id: str = Depends(get_current_user_id),
    videos: VideoService = Depends(get_video_service),
) -> Video:
    try:
        video = await videos.get_video(video_id)
        if video is None:
            raise NotFoundError(f"Video {video_id} not found")
        ensure_owner(video, user_id)
        return video
    except TubelyError as e:
        raise to_http_exception(e) from e
