"""
Application Configuration

Settings class using pydantic-settings for environment variable loading.
Defines render limits, timeouts and the fixed composition policy.
"""

import tempfile
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings can be overridden via environment variables.
    For example, FFMPEG_TIMEOUT can be set via FFMPEG_TIMEOUT env var.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="Video Builder", description="Application name")
    version: str = Field(default="0.1.0", description="API version")
    log_level: str = Field(default="INFO", description="Root logging level")

    # Server
    host: str = Field(default="0.0.0.0", description="Bind address")
    port: int = Field(default=3000, description="Listening port")

    # CORS
    cors_origins: str = Field(
        default="*",
        description="Comma-separated list of allowed CORS origins",
    )

    # Request limits
    max_body_size: int = Field(
        default=50 * 1024 * 1024,  # 50MB
        description="Maximum request body size in bytes (default: 50MB)",
    )

    # Temporary files
    temp_root: str = Field(
        default_factory=tempfile.gettempdir,
        description="Parent directory for per-request render workspaces",
    )

    # Media acquisition
    download_timeout: float = Field(
        default=120.0,
        gt=0,
        description="Timeout in seconds for each remote media fetch",
    )
    max_download_bytes: int = Field(
        default=500 * 1024 * 1024,  # 500MB
        description="Maximum size of a single downloaded media file",
    )
    stream_chunk_size: int = Field(
        default=1024 * 1024,
        gt=0,
        description="Chunk size in bytes for downloads and response streaming",
    )

    # Composition
    ffmpeg_path: str = Field(default="ffmpeg", description="FFmpeg executable")
    ffmpeg_timeout: float = Field(
        default=600.0,  # 10 minutes
        gt=0,
        description="Maximum FFmpeg runtime in seconds",
    )
    video_codec: str = Field(default="libx264", description="Output video codec")
    audio_codec: str = Field(default="aac", description="Output audio codec")

    # Output geometry
    default_width: int = Field(default=1080, description="Output width when unset")
    default_height: int = Field(default=1920, description="Output height when unset")
    max_output_dimension: int = Field(
        default=4096,
        description="Largest accepted output width or height",
    )

    # Cancellation
    disconnect_poll_interval: float = Field(
        default=0.5,
        gt=0,
        description="Seconds between client-disconnect checks while rendering",
    )

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string to list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings instance.

    Uses lru_cache to ensure settings are only loaded once per process.

    Returns:
        Settings: Application settings instance

    Example:
        >>> settings = get_settings()
        >>> print(settings.port)
        3000
    """
    return Settings()
