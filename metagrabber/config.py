"""
Configuration module for the MetaGrabber transcription API.

This module centralizes all environment variables, constants, and runtime configuration
using pydantic-settings for type-safe configuration management.
"""

import shutil
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # CORS Configuration
    allowed_origin: str = Field(
        default="*",
        validation_alias="ALLOWED_ORIGIN",
        description="Allowed CORS origin for API requests"
    )

    # API Authentication
    api_key: str = Field(
        default="",
        validation_alias="API_KEY",
        description="API key for endpoint authentication"
    )

    # Directory Configuration
    cache_dir: str = Field(
        default="./cache",
        validation_alias="CACHE_DIR",
        description="Root directory for per-job temporary workspaces"
    )

    cache_ttl_hours: int = Field(
        default=3,
        validation_alias="CACHE_TTL_HOURS",
        description="Age after which orphaned job workspaces are swept"
    )

    # Provider Configuration
    openai_api_key: Optional[str] = Field(
        default=None,
        validation_alias="OPENAI_API_KEY",
        description="Seed key added to an empty key pool on startup"
    )

    openai_api_base: str = Field(
        default="https://api.openai.com/v1",
        validation_alias="OPENAI_API_BASE",
        description="Base URL of the transcription provider"
    )

    transcription_model: str = Field(
        default="whisper-1",
        validation_alias="TRANSCRIPTION_MODEL",
        description="Provider model identifier"
    )

    transcribe_timeout: int = Field(
        default=300,
        validation_alias="TRANSCRIBE_TIMEOUT",
        description="Seconds to wait for one provider call"
    )

    max_transcribe_attempts: int = Field(
        default=3,
        ge=1,
        validation_alias="MAX_TRANSCRIBE_ATTEMPTS",
        description="Attempt ceiling per audio segment"
    )

    retry_backoff_sec: float = Field(
        default=1.0,
        ge=0,
        validation_alias="RETRY_BACKOFF_SEC",
        description="Base delay between retryable attempts (doubles each retry, 0 disables)"
    )

    # Key Pool Persistence
    supabase_url: Optional[str] = Field(
        default=None,
        validation_alias="SUPABASE_URL",
        description="Supabase project URL"
    )

    supabase_service_key: Optional[str] = Field(
        default=None,
        validation_alias="SUPABASE_SERVICE_KEY",
        description="Supabase service role key"
    )

    keys_file: str = Field(
        default="./data/api_keys.json",
        validation_alias="KEYS_FILE",
        description="Local key store used when Supabase is not configured"
    )

    # Media Tools
    ffmpeg_binary: str = Field(
        default="ffmpeg",
        validation_alias="FFMPEG_BINARY",
        description="Path to ffmpeg"
    )

    ffprobe_binary: str = Field(
        default="ffprobe",
        validation_alias="FFPROBE_BINARY",
        description="Path to ffprobe"
    )

    # Audio Pipeline
    max_upload_mb: int = Field(
        default=24,
        validation_alias="MAX_UPLOAD_MB",
        description="Audio size ceiling per provider call (provider limit is 25MB)"
    )

    chunk_window_sec: int = Field(
        default=600,
        validation_alias="CHUNK_WINDOW_SEC",
        description="Length of each chunk window in seconds"
    )

    long_media_threshold_sec: int = Field(
        default=600,
        validation_alias="LONG_MEDIA_THRESHOLD_SEC",
        description="Media longer than this is extracted at LOW_BITRATE"
    )

    high_bitrate: str = Field(default="128k", validation_alias="HIGH_BITRATE")
    low_bitrate: str = Field(default="64k", validation_alias="LOW_BITRATE")
    chunk_bitrate: str = Field(default="48k", validation_alias="CHUNK_BITRATE")

    live_capture_max_sec: int = Field(
        default=600,
        validation_alias="LIVE_CAPTURE_MAX_SEC",
        description="Wall-clock cap for live playlist capture"
    )

    download_timeout: int = Field(
        default=300,
        validation_alias="DOWNLOAD_TIMEOUT",
        description="Read timeout for media downloads in seconds"
    )

    min_download_bytes: int = Field(
        default=1000,
        validation_alias="MIN_DOWNLOAD_BYTES",
        description="Downloads smaller than this are treated as error pages"
    )

    # Concurrency Control
    max_concurrent_transcriptions: int = Field(
        default=2,
        validation_alias="MAX_CONCURRENT_TRANSCRIPTIONS",
        description="Maximum concurrent transcription jobs"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @property
    def supabase_enabled(self) -> bool:
        return bool(self.supabase_url and self.supabase_service_key)


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


def log_startup_status(settings: Settings) -> None:
    """Print tool and storage status on startup."""
    for binary in (settings.ffmpeg_binary, settings.ffprobe_binary):
        if shutil.which(binary):
            print(f"INFO: {binary} found")
        else:
            print(f"WARNING: {binary} not found - audio extraction will fail")

    print(f"INFO: Max concurrent transcriptions set to: {settings.max_concurrent_transcriptions}")

    if settings.supabase_enabled:
        print("INFO: Supabase configuration detected - API keys stored in settings table")
    else:
        print(f"INFO: Supabase not configured - API keys stored in {settings.keys_file}")
