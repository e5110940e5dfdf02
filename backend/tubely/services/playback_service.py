"""
Signed playback views of Video records.

Stored records keep a locator, not a URL anyone can fetch. On the read path
the locator is resolved and replaced by a presigned ``get_object`` URL that
expires after ``presigned_url_expiration_seconds``. The stored record is never
modified.
"""

import logging

from tubely.config import Settings
from tubely.core.errors import SigningError
from tubely.models.video import Video, VideoLocator
from tubely.services.storage_service import StorageService


logger = logging.getLogger(__name__)


def resolve_locator(video: Video) -> VideoLocator | None:
    """
    Return the video's locator, preferring the structured form.

    Returns None for drafts that have no uploaded video yet.

    Raises:
        SigningError: If the legacy ``"bucket,key"`` string is malformed.
    """
    if not video.has_locator:
        return None
    if video.video_locator is not None:
        return video.video_locator

    try:
        return VideoLocator.from_legacy_string(video.video_url)
    except ValueError as e:
        logger.warning("Malformed video locator on video %s: %r", video.id, video.video_url)
        raise SigningError("Couldn't generate presigned URL") from e


class PlaybackService:
    """Turns stored Video records into signed playback views."""

    def __init__(self, settings: Settings, storage: StorageService) -> None:
        self._storage = storage
        self._expires_in = settings.presigned_url_expiration_seconds

    async def sign_video(self, video: Video) -> Video:
        """
        Return a copy of ``video`` whose ``video_url`` is a presigned URL.

        Raises:
            SigningError: If the locator is malformed or signing fails.
        """
        locator = resolve_locator(video)
        if locator is None:
            return video

        url = await self._storage.generate_presigned_download_url(
            locator.bucket, locator.key, self._expires_in
        )
        return video.model_copy(update={"video_url": url, "video_locator": None})

    async def sign_videos(self, videos: list[Video]) -> list[Video]:
        return [await self.sign_video(video) for video in videos]


__all__ = ["PlaybackService", "resolve_locator"]
