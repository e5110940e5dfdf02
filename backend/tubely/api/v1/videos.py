"""
FastAPI Video Router for Tubely

Endpoints:
- POST /videos - Create a draft video owned by the caller
- GET /videos - List the caller's videos with signed playback URLs
- GET /videos/{video_id} - Get one video with a signed playback URL
- PUT /thumbnail_upload/{video_id} - Upload a JPEG or PNG thumbnail
- PUT /video_upload/{video_id} - Upload an MP4 video

Errors are raised as TubelyError subclasses and rendered as
``{"error": "<message>"}`` by the handler registered in ``tubely.main``.
Upload endpoints check ownership before the multipart body is read.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Request, Response, status

from tubely.config import Settings, get_settings
from tubely.core.auth import ensure_video_owner, get_current_user_id
from tubely.core.errors import ClientInputError
from tubely.models.video import Video, VideoCreate
from tubely.services.intake import (
    THUMBNAIL_FIELD,
    THUMBNAIL_MEDIA_TYPES,
    VIDEO_FIELD,
    VIDEO_MEDIA_TYPES,
    read_upload,
)
from tubely.services.media_probe import AspectRatioClassifier, FFprobeProber
from tubely.services.playback_service import PlaybackService
from tubely.services.storage_service import StorageService, get_storage_service
from tubely.services.upload_service import ThumbnailService, VideoUploadService
from tubely.services.video_store import VideoStore, get_video_store


logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Dependency Injection Functions
# ============================================================================


def get_playback_service(
    settings: Settings = Depends(get_settings),
    storage: StorageService = Depends(get_storage_service),
) -> PlaybackService:
    return PlaybackService(settings, storage)


def get_video_upload_service(
    settings: Settings = Depends(get_settings),
    storage: StorageService = Depends(get_storage_service),
    store: VideoStore = Depends(get_video_store),
) -> VideoUploadService:
    """Dependency injection for VideoUploadService, probing with ffprobe."""
    return VideoUploadService(
        settings=settings,
        storage=storage,
        store=store,
        classifier=AspectRatioClassifier(FFprobeProber(settings)),
    )


def get_thumbnail_service(
    settings: Settings = Depends(get_settings),
    store: VideoStore = Depends(get_video_store),
) -> ThumbnailService:
    return ThumbnailService(settings, store)


def parse_video_id(video_id: str) -> UUID:
    """
    Path parameter dependency for video ids.

    Declared ahead of the auth dependency so a malformed id is a 400 even
    without a token.
    """
    try:
        return UUID(video_id)
    except ValueError as e:
        raise ClientInputError("Invalid ID") from e


# ============================================================================
# Video Records
# ============================================================================


@router.post("/videos", response_model=Video, status_code=status.HTTP_201_CREATED)
async def create_video(
    body: VideoCreate,
    user_id: UUID = Depends(get_current_user_id),
    store: VideoStore = Depends(get_video_store),
) -> Video:
    """Create a draft video with no thumbnail and no uploaded video yet."""
    video = Video(user_id=user_id, title=body.title, description=body.description)
    return await store.create_video(video)


@router.get("/videos", response_model=list[Video])
async def list_videos(
    user_id: UUID = Depends(get_current_user_id),
    store: VideoStore = Depends(get_video_store),
    playback: PlaybackService = Depends(get_playback_service),
) -> list[Video]:
    videos = await store.list_videos(user_id)
    return await playback.sign_videos(videos)


@router.get("/videos/{video_id}", response_model=Video)
async def get_video(
    video_id: UUID = Depends(parse_video_id),
    user_id: UUID = Depends(get_current_user_id),
    store: VideoStore = Depends(get_video_store),
    playback: PlaybackService = Depends(get_playback_service),
) -> Video:
    video = await store.get_video(video_id)
    return await playback.sign_video(video)


# ============================================================================
# Uploads
# ============================================================================


@router.put("/thumbnail_upload/{video_id}", response_model=Video)
async def upload_thumbnail(
    request: Request,
    video_id: UUID = Depends(parse_video_id),
    user_id: UUID = Depends(get_current_user_id),
    store: VideoStore = Depends(get_video_store),
    thumbnails: ThumbnailService = Depends(get_thumbnail_service),
) -> Video:
    """
    Upload a thumbnail for a video owned by the caller.

    Accepts a multipart body with a ``thumbnail`` file part of type
    ``image/jpeg`` or ``image/png`` and returns the updated video.
    """
    video = await store.get_video(video_id)
    ensure_video_owner(video, user_id)

    logger.info("Uploading thumbnail for video %s by user %s", video_id, user_id)
    upload = await read_upload(request, THUMBNAIL_FIELD, THUMBNAIL_MEDIA_TYPES)
    return await thumbnails.upload_thumbnail(video, upload)


@router.put("/video_upload/{video_id}")
async def upload_video(
    request: Request,
    video_id: UUID = Depends(parse_video_id),
    user_id: UUID = Depends(get_current_user_id),
    store: VideoStore = Depends(get_video_store),
    uploads: VideoUploadService = Depends(get_video_upload_service),
) -> Response:
    """
    Upload the video file for a video owned by the caller.

    Accepts a multipart body with a ``video`` file part of type ``video/mp4``.
    Responds 200 with an empty body once the locator is recorded.
    """
    video = await store.get_video(video_id)
    ensure_video_owner(video, user_id)

    upload = await read_upload(request, VIDEO_FIELD, VIDEO_MEDIA_TYPES)
    await uploads.upload_video(video, upload)
    return Response(status_code=status.HTTP_200_OK)


__all__ = ["router"]
