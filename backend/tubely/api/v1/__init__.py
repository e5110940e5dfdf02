"""
Tubely API v1 Router Aggregator.

Combines the v1 endpoint routers into a single APIRouter that ``tubely.main``
mounts under ``/api``.

Router Structure:
    - /videos: Video records and signed playback views
    - /thumbnail_upload, /video_upload: Multipart upload endpoints
"""

from fastapi import APIRouter

from tubely.api.v1.videos import router as videos_router


api_router = APIRouter()

api_router.include_router(videos_router, tags=["videos"])


__all__ = ["api_router"]
