"""
Tubely API v1 Router Aggregator.

Combines the v1 endpoint routers into a single APIRouter that the application
mounts under ``/api/v1``.

Router Structure:
    - /videos/{video_id}/upload, /videos/{video_id}: video upload and lookup
    - /thumbnails/{video_id}/upload, /thumbnails/{video_id}: thumbnail upload and serving
"""

import logging

from fastapi import APIRouter

from tubely.api.v1.thumbnails import router as thumbnails_router
from tubely.api.v1.videos import router as videos_router


# Configure logger
logger = logging.getLogger(__name__)

# Create the main API v1 router
api_router = APIRouter()

api_router.include_router(videos_router)
api_router.include_router(thumbnails_router)


__all__ = ["api_router"]
