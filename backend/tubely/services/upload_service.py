"""
Tubely Upload Service Module

Runs the write path for the two upload endpoints.

Video uploads go through the full pipeline:

    Received -> Validated -> Staged -> Classified -> KeyDerived -> Uploaded -> Persisted

The staged copy is removed on every exit path. There is no transaction across
object storage and the record store, so when recording the locator fails after
the object was uploaded, the object is deleted again (unless
``compensate_orphaned_uploads`` is off). A failed compensation is logged and
the original error still propagates.

Thumbnail uploads are written to the local assets directory and linked from
the record through a public URL.

Ownership is the caller's responsibility and is checked before either service
runs.
"""

import logging
from datetime import UTC, datetime

import aiofiles

from tubely.config import Settings
from tubely.core.errors import PersistenceError, StorageError
from tubely.models.video import Video, VideoLocator
from tubely.services.intake import IntakeFile
from tubely.services.media_probe import AspectRatioClassifier
from tubely.services.staging import NameGenerator, TokenNameGenerator, UploadStager
from tubely.services.storage_service import StorageService
from tubely.services.video_store import VideoStore
from tubely.utils.logger import add_log_context
from tubely.utils.object_keys import derive_object_key


logger = logging.getLogger(__name__)

STAGED_VIDEO_SUFFIX = ".mp4"


class VideoUploadService:
    """
    Stages, classifies, stores and records an uploaded video.

    Attributes:
        settings: Immutable application settings
        storage: Object storage for the video bytes
        store: Record store for Video documents
        classifier: Aspect ratio classifier for staged files
        stager: Creates and removes staged copies of uploads

    Example:
        ```python
        service = VideoUploadService(
            settings=settings,
            storage=StorageService(settings),
            store=VideoStore(collection),
            classifier=AspectRatioClassifier(FFprobeProber(settings)),
        )
        video = await service.upload_video(video, intake_file)
        ```
    """

    def __init__(
        self,
        settings: Settings,
        storage: StorageService,
        store: VideoStore,
        classifier: AspectRatioClassifier,
        stager: UploadStager | None = None,
    ) -> None:
        self.settings = settings
        self.storage = storage
        self.store = store
        self.classifier = classifier
        self.stager = stager or UploadStager(settings)

    async def upload_video(self, video: Video, upload: IntakeFile) -> Video:
        """
        Run the upload pipeline for an already authorized video.

        Returns:
            Video: The updated record carrying the new locator.

        Raises:
            StorageError: Staging or the object upload failed.
            ExternalToolError: The staged file could not be probed.
            PersistenceError: The locator could not be recorded.
        """
        ctx_logger = add_log_context(logger, video_id=str(video.id), user_id=str(video.user_id))
        ctx_logger.info("Uploading video", extra={"upload_filename": upload.filename})

        bucket = self.storage.bucket_name
        try:
            async with self.stager.stage(upload.upload.file, suffix=STAGED_VIDEO_SUFFIX) as staged:
                ctx_logger.debug("Staged upload", extra={"staged_path": str(staged.path)})

                aspect = await self.classifier.classify(staged.path)
                key = derive_object_key(staged.name, aspect)
                ctx_logger.debug(
                    "Derived object key", extra={"aspect_ratio": aspect.value, "object_key": key}
                )

                await self.storage.upload_fileobj(staged.handle, bucket, key, upload.media_type)
        finally:
            await upload.close()

        locator = VideoLocator(bucket=bucket, key=key)
        try:
            updated = await self._record_locator(video, locator)
        except PersistenceError:
            await self._compensate(locator, ctx_logger)
            raise

        ctx_logger.info("Video uploaded", extra={"object_key": key})
        return updated

    async def _record_locator(self, video: Video, locator: VideoLocator) -> Video:
        if self.settings.locator_format == "structured":
            changes = {"video_locator": locator, "video_url": None}
        else:
            changes = {"video_url": locator.to_legacy_string(), "video_locator": None}
        changes["updated_at"] = datetime.now(UTC)

        return await self.store.update_video(video.model_copy(update=changes))

    async def _compensate(self, locator: VideoLocator, ctx_logger: logging.LoggerAdapter) -> None:
        if not self.settings.compensate_orphaned_uploads:
            ctx_logger.warning(
                "Locator not recorded, leaving orphaned object",
                extra={"bucket": locator.bucket, "object_key": locator.key},
            )
            return

        try:
            await self.storage.delete_object(locator.bucket, locator.key)
        except StorageError:
            ctx_logger.exception(
                "Failed to delete orphaned object",
                extra={"bucket": locator.bucket, "object_key": locator.key},
            )
        else:
            ctx_logger.info(
                "Deleted orphaned object",
                extra={"bucket": locator.bucket, "object_key": locator.key},
            )


class ThumbnailService:
    """Writes thumbnails under the assets directory and links them from the record."""

    def __init__(
        self,
        settings: Settings,
        store: VideoStore,
        name_generator: NameGenerator | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.names = name_generator or TokenNameGenerator()

    async def upload_thumbnail(self, video: Video, upload: IntakeFile) -> Video:
        """
        Save the thumbnail and point ``thumbnail_url`` at it.

        Raises:
            StorageError: The file could not be written.
            PersistenceError: The record could not be updated; the saved file
                is removed again.
        """
        extension = upload.media_type.split("/", 1)[1]
        filename = f"{self.names.new_name()}.{extension}"
        assets_root = self.settings.assets_root
        path = assets_root / filename

        created = False
        try:
            assets_root.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(path, "xb") as out:
                created = True
                while chunk := await upload.upload.read(self.settings.upload_copy_chunk_bytes):
                    await out.write(chunk)
        except OSError as e:
            logger.exception("Failed to write thumbnail %s", path)
            if created:
                path.unlink(missing_ok=True)
            raise StorageError("Error saving file") from e
        finally:
            await upload.close()

        thumbnail_url = f"{self.settings.thumbnail_base_url}/assets/{filename}"
        try:
            updated = await self.store.update_video(
                video.model_copy(update={"thumbnail_url": thumbnail_url, "updated_at": datetime.now(UTC)})
            )
        except PersistenceError:
            logger.warning("Removing thumbnail %s after failed record update", path)
            path.unlink(missing_ok=True)
            raise

        logger.info("Saved thumbnail for video %s at %s", video.id, path)
        return updated


__all__ = ["ThumbnailService", "VideoUploadService"]
