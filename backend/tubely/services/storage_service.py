"""
S3-compatible object storage service for Tubely.

Wraps the boto3 operations the video pipeline needs: streaming a staged file
into the bucket, deleting an object again when its locator could not be
recorded, and presigning short-lived ``get_object`` URLs for playback.
Works against AWS S3 and S3-compatible endpoints such as MinIO.

boto3 is synchronous, so every call runs in a worker thread through
``async_wrap`` and the event loop is never blocked on network I/O.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime, timedelta
from functools import wraps
from typing import Any, BinaryIO, TypeVar
from urllib.parse import parse_qs, urlsplit

import boto3

from botocore.client import BaseClient, Config
from botocore.exceptions import BotoCoreError, ClientError

from tubely.config import Settings, get_settings
from tubely.core.errors import SigningError, StorageError


logger = logging.getLogger(__name__)

T = TypeVar("T")

AMZ_DATE_FORMAT = "%Y%m%dT%H%M%SZ"

# Singleton container for the storage service instance
_singleton_container: dict[str, "StorageService"] = {}


def async_wrap(func: Callable[..., T]) -> Callable[..., Awaitable[T]]:
    """
    Decorator that runs a blocking boto3 call in a worker thread.

    Uses asyncio.to_thread so S3 round trips don't stall the event loop.
    """

    @wraps(func)
    async def wrapper(*args: Any, **kwargs: Any) -> T:
        return await asyncio.to_thread(func, *args, **kwargs)

    return wrapper


def build_s3_client(settings: Settings) -> BaseClient:
    """
    Create a boto3 S3 client from settings.

    Explicit credentials are passed only when both parts are configured;
    otherwise boto3 falls back to its default credential chain.
    """
    client_config = Config(
        signature_version="s3v4",
        s3={"addressing_style": "path" if settings.s3_force_path_style else "auto"},
        connect_timeout=settings.s3_connect_timeout_seconds,
        read_timeout=settings.s3_read_timeout_seconds,
        retries={"max_attempts": 3, "mode": "standard"},
    )

    client_kwargs: dict[str, Any] = {
        "service_name": "s3",
        "region_name": settings.s3_region,
        "config": client_config,
    }
    if settings.s3_endpoint_url:
        client_kwargs["endpoint_url"] = settings.s3_endpoint_url
    if settings.s3_access_key_id and settings.s3_secret_access_key:
        client_kwargs["aws_access_key_id"] = settings.s3_access_key_id
        client_kwargs["aws_secret_access_key"] = settings.s3_secret_access_key

    return boto3.client(**client_kwargs)


def presigned_url_expires_at(url: str) -> datetime:
    """
    Return the instant a SigV4 query-string URL stops being valid.

    Computed from the signed ``X-Amz-Date`` and ``X-Amz-Expires`` parameters.

    Raises:
        ValueError: If either parameter is missing or malformed.
    """
    query = parse_qs(urlsplit(url).query)
    try:
        signed_at = datetime.strptime(query["X-Amz-Date"][0], AMZ_DATE_FORMAT).replace(tzinfo=UTC)
        expires_in = int(query["X-Amz-Expires"][0])
    except (KeyError, IndexError) as e:
        raise ValueError(f"not a SigV4 presigned URL: {url}") from e
    return signed_at + timedelta(seconds=expires_in)


def is_presigned_url_valid(url: str, at: datetime) -> bool:
    """Whether S3 would still accept ``url`` at instant ``at``."""
    return at < presigned_url_expires_at(url)


class StorageService:
    """
    Async facade over a boto3 S3 client.

    Attributes:
        bucket_name: Bucket that receives uploaded videos

    Example:
        ```python
        storage = StorageService(settings)
        await storage.upload_fileobj(staged.handle, storage.bucket_name, key, "video/mp4")
        url = await storage.generate_presigned_download_url(storage.bucket_name, key, 5)
        ```
    """

    def __init__(self, settings: Settings, client: BaseClient | None = None) -> None:
        self.bucket_name = settings.s3_bucket_name
        self._client = client or build_s3_client(settings)

        logger.info(
            "StorageService initialized with bucket=%s, endpoint=%s",
            self.bucket_name,
            settings.s3_endpoint_url or "AWS S3 default",
        )

    async def upload_fileobj(
        self,
        fileobj: BinaryIO,
        bucket: str,
        key: str,
        content_type: str,
    ) -> None:
        """
        Stream ``fileobj`` from its current position to EOF into ``bucket/key``.

        Raises:
            StorageError: On any client or service error.
        """
        logger.info("Uploading object bucket=%s key=%s content_type=%s", bucket, key, content_type)

        @async_wrap
        def _upload() -> None:
            self._client.upload_fileobj(
                fileobj,
                bucket,
                key,
                ExtraArgs={"ContentType": content_type},
            )

        try:
            await _upload()
        except ClientError as e:
            logger.exception(
                "S3 rejected upload of %s: %s", key, e.response.get("Error", {}).get("Message")
            )
            raise StorageError("Error uploading file to S3") from e
        except (BotoCoreError, OSError) as e:
            logger.exception("Storage error during upload of %s", key)
            raise StorageError("Error uploading file to S3") from e

        logger.info("Successfully uploaded %s to bucket %s", key, bucket)

    async def delete_object(self, bucket: str, key: str) -> None:
        """
        Delete ``bucket/key``. S3 treats deleting a missing object as success.

        Raises:
            StorageError: On any client or service error.
        """
        logger.info("Deleting object bucket=%s key=%s", bucket, key)

        @async_wrap
        def _delete() -> None:
            self._client.delete_object(Bucket=bucket, Key=key)

        try:
            await _delete()
        except (ClientError, BotoCoreError) as e:
            logger.exception("Failed to delete %s from bucket %s", key, bucket)
            raise StorageError("Error deleting file from S3") from e

    async def generate_presigned_download_url(self, bucket: str, key: str, expires_in: int) -> str:
        """
        Presign a ``get_object`` URL for ``bucket/key`` valid for ``expires_in`` seconds.

        Raises:
            SigningError: If the client cannot sign the request.
        """

        @async_wrap
        def _generate() -> str:
            return self._client.generate_presigned_url(
                ClientMethod="get_object",
                Params={"Bucket": bucket, "Key": key},
                ExpiresIn=expires_in,
                HttpMethod="GET",
            )

        try:
            url = await _generate()
        except (ClientError, BotoCoreError) as e:
            logger.exception("Failed to presign bucket=%s key=%s", bucket, key)
            raise SigningError("Couldn't generate presigned URL") from e

        logger.debug("Presigned %s/%s for %d seconds", bucket, key, expires_in)
        return url


def get_storage_service() -> StorageService:
    """
    FastAPI dependency returning the process-wide StorageService.

    The boto3 client is created on first use and then reused; clients are
    thread-safe and the worker threads of ``async_wrap`` share it.
    """
    if "instance" not in _singleton_container:
        _singleton_container["instance"] = StorageService(get_settings())
    return _singleton_container["instance"]


__all__ = [
    "StorageService",
    "async_wrap",
    "build_s3_client",
    "get_storage_service",
    "is_presigned_url_valid",
    "presigned_url_expires_at",
]
