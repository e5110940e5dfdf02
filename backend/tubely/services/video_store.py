"""
MongoDB-backed record store for Video documents.

Documents are keyed by the string form of the video UUID. Every driver error
is translated into ``PersistenceError``; a missing record is
``VideoNotFoundError``.
"""

import logging
from uuid import UUID

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import DESCENDING
from pymongo.errors import PyMongoError

from tubely.core.database import get_db_client
from tubely.core.errors import PersistenceError, VideoNotFoundError
from tubely.models.video import Video


logger = logging.getLogger(__name__)


class VideoStore:
    """Create, read and update Video records in the ``videos`` collection."""

    def __init__(self, collection: AsyncIOMotorCollection) -> None:
        self._collection = collection

    async def get_video(self, video_id: UUID) -> Video:
        """
        Raises:
            VideoNotFoundError: If no record has this id.
            PersistenceError: If the lookup fails.
        """
        try:
            document = await self._collection.find_one({"_id": str(video_id)})
        except PyMongoError as e:
            logger.exception("Failed to fetch video %s", video_id)
            raise PersistenceError("Couldn't find video") from e

        if document is None:
            raise VideoNotFoundError("Couldn't find video")
        return Video.from_document(document)

    async def create_video(self, video: Video) -> Video:
        try:
            await self._collection.insert_one(video.to_document())
        except PyMongoError as e:
            logger.exception("Failed to create video %s", video.id)
            raise PersistenceError("Couldn't create video") from e

        logger.info("Created video %s for user %s", video.id, video.user_id)
        return video

    async def list_videos(self, user_id: UUID) -> list[Video]:
        """Return the user's videos, newest first."""
        try:
            cursor = self._collection.find({"user_id": str(user_id)}).sort("created_at", DESCENDING)
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            logger.exception("Failed to list videos for user %s", user_id)
            raise PersistenceError("Couldn't retrieve videos") from e

        return [Video.from_document(document) for document in documents]

    async def update_video(self, video: Video) -> Video:
        """
        Replace the stored record with ``video``.

        Raises:
            VideoNotFoundError: If the record was deleted in the meantime.
            PersistenceError: If the write fails.
        """
        document = video.to_document()
        try:
            result = await self._collection.replace_one({"_id": document["_id"]}, document)
        except PyMongoError as e:
            logger.exception("Failed to update video %s", video.id)
            raise PersistenceError("Couldn't update video") from e

        if result.matched_count == 0:
            raise VideoNotFoundError("Couldn't find video")
        return video


def get_video_store() -> VideoStore:
    """FastAPI dependency returning a VideoStore over the live connection."""
    return VideoStore(get_db_client().get_videos_collection())


__all__ = ["VideoStore", "get_video_store"]
