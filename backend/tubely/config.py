"""
Tubely Configuration Management Module

This module provides configuration management for the Tubely backend using
Pydantic Settings. It loads and validates all environment variables required for:
- Application settings (name, environment, debug mode, logging)
- Access token validation
- MongoDB connection and pooling
- S3-compatible object storage and presigned playback URLs
- Temporary staging of uploads and ffprobe invocation
- Local thumbnail storage

The resulting Settings value is immutable; components receive it at
construction time instead of reading process-wide state.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Configuration settings for the Tubely backend.

    Values are read from environment variables and an optional .env file with
    full type validation. Instances are frozen: pass a new Settings value to a
    component instead of mutating an existing one.

    Configuration Categories:
    - Application: name, environment, debug mode, logging, bind address
    - Auth: secret and claims used to validate bearer tokens
    - MongoDB: connection URI and pool settings for the video records
    - S3: bucket, region, endpoint, credentials, presigned URL expiry
    - Staging: temporary directory, file prefix and copy chunk size
    - Probing: ffprobe executable and timeout
    - Thumbnails: local assets directory and public base URL

    Example usage:
        ```python
        from tubely.config import Settings

        settings = Settings(s3_bucket_name="tubely-private")
        print(settings.presigned_url_expiration_seconds)
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(default="tubely", description="Application name used in logs and docs")

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=False, description="Enable hot-reload when run as a script")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(
        default=False, description="Emit JSON log records instead of plain text"
    )

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    public_base_url: str | None = Field(
        default=None,
        description="Base URL used to build thumbnail links (defaults to http://localhost:{port})",
    )

    cors_origins: list[str] = Field(
        default=["http://localhost:8091"],
        description="List of allowed CORS origins for frontend access",
    )

    # =========================================================================
    # Auth Configuration
    # =========================================================================

    secret_key: str = Field(
        default="development-secret-key-change-in-production-32chars",
        description="Secret used to sign and validate access tokens",
        min_length=32,
    )

    jwt_algorithm: str = Field(default="HS256", description="Access token signing algorithm")

    jwt_issuer: str = Field(default="tubely-access", description="Expected access token issuer")

    jwt_expiration_minutes: int = Field(
        default=60, description="Lifetime of minted access tokens in minutes", ge=1
    )

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI (e.g., mongodb://localhost:27017)",
    )

    mongodb_db_name: str = Field(default="tubely", description="MongoDB database name")

    mongodb_min_pool_size: int = Field(
        default=1, description="Minimum number of connections in the MongoDB pool", ge=0
    )

    mongodb_max_pool_size: int = Field(
        default=50, description="Maximum number of connections in the MongoDB pool", ge=1
    )

    # =========================================================================
    # S3 Storage Configuration
    # =========================================================================

    s3_bucket_name: str = Field(
        default="tubely-videos", description="Bucket that receives uploaded videos"
    )

    s3_region: str = Field(default="us-east-1", description="Region of the video bucket")

    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL for MinIO (None for AWS S3)"
    )

    s3_access_key_id: str | None = Field(
        default=None, description="Access key ID (None uses the default credential chain)"
    )

    s3_secret_access_key: str | None = Field(
        default=None, description="Secret access key (None uses the default credential chain)"
    )

    s3_force_path_style: bool = Field(
        default=False, description="Use path-style addressing (needed by MinIO)"
    )

    s3_connect_timeout_seconds: float = Field(
        default=10.0, description="boto3 connect timeout", gt=0
    )

    s3_read_timeout_seconds: float = Field(default=60.0, description="boto3 read timeout", gt=0)

    presigned_url_expiration_seconds: int = Field(
        default=5,
        description="Lifetime of presigned playback URLs in seconds",
        ge=1,
        le=604800,
    )

    locator_format: Literal["legacy", "structured"] = Field(
        default="legacy",
        description="How new video locators are written: 'bucket,key' string or bucket/key fields",
    )

    compensate_orphaned_uploads: bool = Field(
        default=True,
        description="Delete the uploaded object when recording its locator fails",
    )

    # =========================================================================
    # Staging and Probing
    # =========================================================================

    upload_temp_dir: Path | None = Field(
        default=None, description="Directory for staged uploads (None uses the system default)"
    )

    upload_temp_prefix: str = Field(
        default="tubely-upload-", description="File name prefix of staged uploads"
    )

    upload_copy_chunk_bytes: int = Field(
        default=1024 * 1024, description="Chunk size used when staging uploads", ge=1024
    )

    ffprobe_path: str = Field(default="ffprobe", description="ffprobe executable")

    ffprobe_timeout_seconds: float | None = Field(
        default=30.0, description="Timeout for a single ffprobe run (None waits forever)"
    )

    # =========================================================================
    # Thumbnails
    # =========================================================================

    assets_root: Path = Field(
        default=Path("assets"), description="Directory that stores uploaded thumbnails"
    )

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate that log_level is a valid logging level."""
        valid_levels = {"debug", "info", "warning", "error", "critical"}
        normalized = v.lower()
        if normalized not in valid_levels:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {', '.join(valid_levels)}")
        return normalized

    @field_validator("app_env")
    @classmethod
    def validate_app_env(cls, v: str) -> str:
        """Validate that app_env is a valid environment name."""
        valid_envs = {"development", "staging", "production", "testing"}
        normalized = v.lower()
        if normalized not in valid_envs:
            raise ValueError(f"Invalid app_env '{v}'. Must be one of: {', '.join(valid_envs)}")
        return normalized

    @field_validator("s3_bucket_name")
    @classmethod
    def validate_bucket_name(cls, v: str) -> str:
        """Bucket names end up inside 'bucket,key' locators and may not contain commas."""
        if "," in v:
            raise ValueError("s3_bucket_name must not contain a comma")
        return v

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string if provided as string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def thumbnail_base_url(self) -> str:
        """Base URL under which /assets is served."""
        return (self.public_base_url or f"http://localhost:{self.port}").rstrip("/")


@lru_cache
def get_settings() -> Settings:
    """
    Get the process-wide Settings instance.

    The settings are loaded once from the environment and reused. Components
    still receive the value explicitly through their constructors so tests can
    pass their own Settings.

    Returns:
        Settings: The cached configuration instance.
    """
    return Settings()
