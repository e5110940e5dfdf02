"""
Access token handling for Tubely.

Bearer tokens are HS256 JWTs whose ``sub`` claim is the user's UUID and whose
``iss`` claim must match the configured issuer. Token issuance for real users
happens elsewhere; ``create_access_token`` exists for tooling and tests.

Usage:
    ```python
    from fastapi import Depends
    from tubely.core.auth import get_current_user_id

    @router.get("/videos")
    async def list_videos(user_id: UUID = Depends(get_current_user_id)):
        ...
    ```
"""

import logging
from datetime import UTC, datetime, timedelta
from uuid import UUID

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from tubely.config import Settings, get_settings
from tubely.core.errors import AuthError
from tubely.models.video import Video


logger = logging.getLogger(__name__)

# Missing credentials resolve to None; get_current_user_id turns that into a 401
security = HTTPBearer(
    scheme_name="JWT",
    description="Bearer access token",
    auto_error=False,
)


def create_access_token(user_id: UUID, settings: Settings, expires_in: timedelta | None = None) -> str:
    """
    Mint an HS256 access token for ``user_id``.

    Example:
        ```python
        token = create_access_token(user_id, get_settings())
        ```
    """
    now = datetime.now(UTC)
    expire = now + (expires_in or timedelta(minutes=settings.jwt_expiration_minutes))
    payload = {
        "iss": settings.jwt_issuer,
        "sub": str(user_id),
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def validate_access_token(token: str, settings: Settings) -> UUID:
    """
    Verify signature, expiry and issuer, and return the subject's UUID.

    Raises:
        AuthError: If the token is invalid or its subject is not a UUID.
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
        )
    except JWTError as e:
        logger.warning("Access token validation failed: %s", e)
        raise AuthError("Couldn't validate JWT") from e

    try:
        return UUID(payload["sub"])
    except (KeyError, TypeError, ValueError) as e:
        logger.warning("Access token has an invalid subject")
        raise AuthError("Couldn't validate JWT") from e


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> UUID:
    """
    FastAPI dependency resolving the caller's user id from the bearer token.

    Raises:
        AuthError: If the header is missing or the token is invalid.
    """
    if credentials is None or not credentials.credentials:
        raise AuthError("Couldn't find JWT")
    return validate_access_token(credentials.credentials, settings)


def ensure_video_owner(video: Video, user_id: UUID) -> None:
    """
    Raises:
        AuthError: If ``user_id`` does not own ``video``.
    """
    if video.user_id != user_id:
        logger.warning("User %s attempted to modify video %s owned by %s", user_id, video.id, video.user_id)
        raise AuthError("User is not the video owner")


__all__ = [
    "create_access_token",
    "ensure_video_owner",
    "get_current_user_id",
    "security",
    "validate_access_token",
]
