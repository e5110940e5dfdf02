"""
Temporary staging of uploaded files.

An upload is copied into a uniquely named local file before it is probed and
sent to object storage. The staged file only lives for the duration of the
request: ``UploadStager.stage`` is an async context manager that removes the
file on every exit path.
"""

import asyncio
import logging
import secrets
import shutil
import tempfile
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, Protocol

from tubely.config import Settings
from tubely.core.errors import StorageError


logger = logging.getLogger(__name__)

# 32 random bytes, url-safe base64 encoded
NAME_TOKEN_BYTES = 32


class NameGenerator(Protocol):
    """Source of collision-resistant names for staged files and thumbnails."""

    def new_name(self) -> str: ...


class TokenNameGenerator:
    """Names drawn from ``secrets.token_urlsafe``."""

    def __init__(self, nbytes: int = NAME_TOKEN_BYTES) -> None:
        self._nbytes = nbytes

    def new_name(self) -> str:
        return secrets.token_urlsafe(self._nbytes)


@dataclass
class StagedFile:
    """A staged upload: its path and an open binary handle positioned at offset 0."""

    path: Path
    handle: BinaryIO

    @property
    def name(self) -> str:
        return self.path.name


class UploadStager:
    """
    Copies upload streams into transient local files.

    Example usage:
        ```python
        stager = UploadStager(settings)
        async with stager.stage(upload.file, suffix=".mp4") as staged:
            aspect = await classifier.classify(staged.path)
        # staged.path no longer exists here
        ```
    """

    def __init__(self, settings: Settings, name_generator: NameGenerator | None = None) -> None:
        self._directory = Path(settings.upload_temp_dir or tempfile.gettempdir())
        self._prefix = settings.upload_temp_prefix
        self._chunk_size = settings.upload_copy_chunk_bytes
        self._names = name_generator or TokenNameGenerator()

    @asynccontextmanager
    async def stage(self, source: BinaryIO, suffix: str = ".mp4") -> AsyncIterator[StagedFile]:
        """
        Copy ``source`` fully into a new file and yield it rewound to offset 0.

        Raises:
            StorageError: If the file cannot be created or the copy fails.
        """
        path = self._directory / f"{self._prefix}{self._names.new_name()}{suffix}"

        try:
            handle = await asyncio.to_thread(path.open, "x+b")
        except OSError as e:
            logger.exception("Failed to create staged file %s", path)
            raise StorageError("Couldn't create temp file") from e

        try:
            try:
                await asyncio.to_thread(self._copy, source, handle)
            except OSError as e:
                logger.exception("Failed to copy upload into %s", path)
                raise StorageError("Couldn't write to temp file") from e

            logger.debug("Staged upload at %s", path)
            yield StagedFile(path=path, handle=handle)
        finally:
            handle.close()
            path.unlink(missing_ok=True)
            logger.debug("Removed staged upload %s", path)

    def _copy(self, source: BinaryIO, handle: BinaryIO) -> None:
        shutil.copyfileobj(source, handle, self._chunk_size)
        handle.flush()
        handle.seek(0)


__all__ = ["NameGenerator", "StagedFile", "TokenNameGenerator", "UploadStager"]
