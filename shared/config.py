"""
Configuration management.

Centralized environment variable management and validation.
"""

from pathlib import Path
from typing import Literal, Optional
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from shared.errors import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,  # Allow case-insensitive env var matching
        extra="ignore"
    )

    # Environment
    environment: Literal["development", "staging", "production"] = "development"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_dir: Path = Path("logs")

    # Encoding engine
    ffmpeg_binary: str = "ffmpeg"

    # Filesystem layout
    # OUTPUT_DIR: destination for finished exports before they are committed to the library
    # TEMP_DIR: namespace for per-export intermediates (edit script, silent video, padded audio)
    output_dir: Path = Path("exports")
    temp_dir: Path = Path("exports/tmp")
    assets_dir: Path = Path("assets/audio")
    background_audio: str = "background-music.mp3"

    # Slide timing
    # SECONDS_PER_PHOTO must match the dwell time the preview used, or the
    # exported cuts drift away from what the user watched
    seconds_per_photo: float = 3.0
    final_frame_seconds: float = 0.1

    # AUDIO_PADDING_SECONDS: extra audio synthesized past the video length so the
    # mux step never runs out of samples
    audio_padding_seconds: float = 1.0

    # Photo selection
    max_photos: int = 12

    # Local media library
    library_root: Path = Path("library")
    library_collection: str = "Downloads"

    # Supabase Storage (optional, enables the cloud-backed media library)
    supabase_url: Optional[str] = None
    supabase_service_key: Optional[str] = None
    storage_bucket: str = "slideshow-exports"

    @field_validator("seconds_per_photo", "final_frame_seconds")
    @classmethod
    def validate_positive_duration(cls, v: float) -> float:
        """Validate slide durations are positive."""
        if v <= 0:
            raise ConfigError("Slide durations must be positive")
        return v

    @field_validator("audio_padding_seconds")
    @classmethod
    def validate_audio_padding(cls, v: float) -> float:
        """Validate audio padding covers downstream rounding."""
        if v < 1.0:
            raise ConfigError("AUDIO_PADDING_SECONDS must be at least 1.0")
        return v

    @field_validator("max_photos")
    @classmethod
    def validate_max_photos(cls, v: int) -> int:
        """Validate photo limit."""
        if v < 1:
            raise ConfigError("MAX_PHOTOS must be at least 1")
        return v

    @field_validator("supabase_url")
    @classmethod
    def validate_supabase_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate Supabase URL format when configured."""
        if not v:
            return None
        if not v.startswith(("http://", "https://")):
            raise ConfigError("SUPABASE_URL must be a valid HTTP/HTTPS URL")
        return v

    @property
    def supabase_enabled(self) -> bool:
        """True when both Supabase URL and service key are configured."""
        return bool(self.supabase_url and self.supabase_service_key)


# Singleton instance
try:
    settings = Settings()
except Exception as e:
    # Re-raise as ConfigError for consistency
    if isinstance(e, ConfigError):
        raise
    raise ConfigError(f"Failed to load configuration: {str(e)}") from e
