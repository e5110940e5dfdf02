"""
Multipart intake for video and thumbnail uploads.

Parses the request body with Starlette's form parser and pulls out a single
file field together with its declared media type. Anything that is not an
allowed media type is rejected here, before a byte is written locally.
"""

import logging
from dataclasses import dataclass

from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request

from tubely.core.errors import ClientInputError


logger = logging.getLogger(__name__)

VIDEO_FIELD = "video"
THUMBNAIL_FIELD = "thumbnail"

VIDEO_MEDIA_TYPES: frozenset[str] = frozenset({"video/mp4"})
THUMBNAIL_MEDIA_TYPES: frozenset[str] = frozenset({"image/jpeg", "image/png"})


@dataclass
class IntakeFile:
    """A validated file part of a multipart body."""

    upload: UploadFile
    media_type: str
    filename: str

    async def close(self) -> None:
        await self.upload.close()


def parse_media_type(content_type: str | None) -> str:
    """
    Strip parameters from a Content-Type value and lower-case it.

    Raises:
        ClientInputError: If the value is missing or not of the form type/subtype.
    """
    if not content_type:
        raise ClientInputError("Missing Content-Type for file")

    media_type = content_type.split(";", 1)[0].strip().lower()
    main_type, slash, sub_type = media_type.partition("/")
    if not slash or not main_type or not sub_type:
        raise ClientInputError("Invalid Content-Type")
    return media_type


async def read_upload(request: Request, field: str, allowed: frozenset[str]) -> IntakeFile:
    """
    Extract the file part ``field`` from the request's multipart body.

    Raises:
        ClientInputError: On parse failure, a missing or non-file field, or a
            media type outside ``allowed``.
    """
    try:
        form = await request.form()
    except (StarletteHTTPException, MultiPartException) as e:
        logger.warning("Failed to parse multipart body: %s", e)
        raise ClientInputError("Unable to parse form file") from e

    upload = form.get(field)
    if not isinstance(upload, UploadFile):
        raise ClientInputError("Unable to parse form file")

    try:
        media_type = parse_media_type(upload.content_type)
        if media_type not in allowed:
            logger.info("Rejected upload with media type %s for field %s", media_type, field)
            raise ClientInputError("Invalid file type")
    except ClientInputError:
        await upload.close()
        raise

    return IntakeFile(upload=upload, media_type=media_type, filename=upload.filename or "")


__all__ = [
    "THUMBNAIL_FIELD",
    "THUMBNAIL_MEDIA_TYPES",
    "VIDEO_FIELD",
    "VIDEO_MEDIA_TYPES",
    "IntakeFile",
    "parse_media_type",
    "read_upload",
]
