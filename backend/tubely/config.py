"""
Tubely Configuration Management Module

This module provides configuration management for the Tubely media upload
backend using Pydantic Settings. It loads and validates all environment
variables required for:
- Application settings (name, environment, debug mode, logging)
- MongoDB connection for the video record store
- S3/MinIO object storage for video assets
- Local asset directory used for persisted thumbnails
- Shared JWT secret for bearer authentication
- Upload limits and the ffprobe metadata extractor

All settings support environment variable overrides and .env file loading with
validation and type safety.
"""

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Thumbnail persistence backends accepted by ``thumbnail_backend``
THUMBNAIL_BACKENDS = {"disk", "s3", "memory"}


class Settings(BaseSettings):
    """
    Configuration settings for the Tubely upload backend.

    Configuration Categories:
    - Application: Core app settings like name, environment, debug mode
    - Auth: Shared secret for HS256 bearer tokens
    - MongoDB: Video record store connection
    - S3/MinIO: Object storage bucket and region used to build public URLs
    - Assets: Local directory and public base URL for self-served files
    - Upload: Size limits, thumbnail backend, ffprobe and timeouts

    Example usage:
        ```python
        from tubely.config import get_settings

        settings = get_settings()
        print(f"Uploading videos to bucket: {settings.s3_bucket_name}")
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(
        default="tubely",
        description="Application name displayed in API documentation and logs",
    )

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    debug: bool = Field(default=True, description="Enable hot-reload and verbose logging")

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(
        default=False, description="Emit structured JSON logs instead of plain text"
    )

    host: str = Field(default="0.0.0.0", description="Host address for the API server to bind to")

    port: int = Field(default=8091, description="Port number for the API server", ge=1, le=65535)

    public_base_url: str | None = Field(
        default=None,
        description="Base URL used for self-referential asset URLs "
        "(defaults to http://localhost:{port})",
    )

    cors_origins: list[str] = Field(
        default=["http://localhost:3000"],
        description="List of allowed CORS origins for frontend access",
    )

    # =========================================================================
    # Authentication
    # =========================================================================

    jwt_secret: str = Field(
        default="development-jwt-secret-change-in-production-32chars",
        description="Shared secret used to sign and validate HS256 bearer tokens",
        min_length=32,
    )

    jwt_expiration_hours: int = Field(
        default=24, description="Lifetime of locally issued tokens in hours", ge=1, le=168
    )

    # =========================================================================
    # MongoDB Configuration
    # =========================================================================

    mongodb_uri: str = Field(
        default="mongodb://localhost:27017",
        description="MongoDB connection URI (e.g., mongodb://localhost:27017)",
    )

    mongodb_db_name: str = Field(default="tubely", description="MongoDB database name")

    # =========================================================================
    # S3/MinIO Storage Configuration
    # =========================================================================

    s3_endpoint_url: str | None = Field(
        default=None, description="S3-compatible endpoint URL for MinIO (None for AWS S3)"
    )

    s3_access_key_id: str | None = Field(default=None, description="S3 access key ID")

    s3_secret_access_key: str | None = Field(default=None, description="S3 secret access key")

    s3_bucket_name: str = Field(
        default="tubely-videos", description="S3 bucket name for uploaded videos"
    )

    s3_region: str = Field(default="us-east-1", description="AWS region of the S3 bucket")

    # =========================================================================
    # Local Assets
    # =========================================================================

    assets_root: str = Field(
        default="./assets", description="Directory holding locally persisted assets"
    )

    thumbnail_backend: str = Field(
        default="disk",
        description="Where thumbnails are persisted: disk, s3 or memory (non-durable registry)",
    )

    # =========================================================================
    # Upload Settings
    # =========================================================================

    max_video_upload_bytes: int = Field(
        default=1 << 30, description="Maximum video upload size in bytes (1 GiB)", ge=1
    )

    max_thumbnail_upload_bytes: int = Field(
        default=10 << 20, description="Maximum thumbnail upload size in bytes (10 MiB)", ge=1
    )

    scratch_dir: str | None = Field(
        default=None, description="Directory for scratch files (None uses the system temp dir)"
    )

    ffprobe_binary: str = Field(default="ffprobe", description="ffprobe executable name or path")

    probe_timeout_seconds: float = Field(
        default=30.0, description="Upper bound for a single ffprobe invocation", gt=0
    )

    storage_timeout_seconds: float = Field(
        default=300.0, description="Upper bound for a single storage backend transfer", gt=0
    )

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
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

    @field_validator("thumbnail_backend")
    @classmethod
    def validate_thumbnail_backend(cls, v: str) -> str:
        """Validate that thumbnail_backend names a known persistence strategy."""
        normalized = v.lower()
        if normalized not in THUMBNAIL_BACKENDS:
            raise ValueError(
                f"Invalid thumbnail_backend '{v}'. "
                f"Must be one of: {', '.join(sorted(THUMBNAIL_BACKENDS))}"
            )
        return normalized

    @field_validator("cors_origins", mode="before")
    @classmethod
    def validate_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string if provided as string."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("public_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        return v.rstrip("/") if v else v

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def base_url(self) -> str:
        """Base URL for URLs that point back at this server."""
        return self.public_base_url or f"http://localhost:{self.port}"


@lru_cache
def get_settings() -> Settings:
    """
    Get the global Settings instance.

    The ``lru_cache`` decorator ensures the Settings object is created once on
    first call, and subsequent calls return the cached instance without
    re-reading environment variables or .env files.

    Returns:
        Settings: The global configuration instance.
    """
    return Settings()
