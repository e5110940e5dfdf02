"""
Error taxonomy for the Tubely upload and playback pipeline.

Every failure that can end a request is one of the exceptions below. Each
carries the HTTP status it maps to and a short public message; the underlying
cause (chained with ``raise ... from``) is logged server-side and never sent
to the caller.
"""

from fastapi import status


class TubelyError(Exception):
    """Base exception for failures that abort a request."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ClientInputError(TubelyError):
    """Malformed identifier, malformed multipart body or unsupported media type."""

    status_code = status.HTTP_400_BAD_REQUEST


class AuthError(TubelyError):
    """Missing or invalid token, or the caller does not own the video."""

    status_code = status.HTTP_401_UNAUTHORIZED


class ExternalToolError(TubelyError):
    """The media probe could not run, its output was undecodable, or it reported no streams."""


class StorageError(TubelyError):
    """Local staging or remote object storage failed."""


class PersistenceError(TubelyError):
    """Video record fetch or update failed."""


class VideoNotFoundError(PersistenceError):
    """The requested video record does not exist."""

    status_code = status.HTTP_400_BAD_REQUEST


class SigningError(TubelyError):
    """The stored locator is malformed or presigning failed."""


__all__ = [
    "AuthError",
    "ClientInputError",
    "ExternalToolError",
    "PersistenceError",
    "SigningError",
    "StorageError",
    "TubelyError",
    "VideoNotFoundError",
]
