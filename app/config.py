"""
Application Configuration

Load settings from environment variables with validation.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional
from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings from environment variables."""

    # Environment
    environment: str = "development"
    debug: bool = True
    disable_scheduler: bool = False  # serverless deploys drive ingestion via the trigger endpoint

    # Admin access (X-API-Key for scheduler/automation endpoints)
    admin_api_key: str = "cinemax-admin"

    # Redis (optional, used for API quota accounting)
    redis_url: Optional[str] = None

    # External APIs
    youtube_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_web_search: bool = True

    # Operator notifications (Telegram Bot API)
    telegram_bot_token: Optional[str] = None
    admin_telegram_user_id: Optional[str] = None

    # Storage
    data_dir: str = "./data"
    movies_file: str = "movies.json"
    progress_file: str = "channelProgress.json"
    watch_progress_file: str = "watchProgress.json"  # notification-only channels
    monitoring_config_file: str = "monitoringConfig.json"
    posters_dir: str = "./public/posters"
    poster_url_prefix: str = "/posters"

    # Ingestion
    ingestion_batch_size: int = 5
    http_timeout_seconds: float = 15.0
    rate_limit_per_minute: int = 6  # manual trigger endpoint
    enrichment_timeout_seconds: float = 60.0

    # Quota Management
    youtube_daily_quota_limit: int = 9000

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    @property
    def movies_path(self) -> Path:
        return Path(self.data_dir) / self.movies_file

    @property
    def progress_path(self) -> Path:
        return Path(self.data_dir) / self.progress_file

    @property
    def watch_progress_path(self) -> Path:
        return Path(self.data_dir) / self.watch_progress_file

    @property
    def monitoring_config_path(self) -> Path:
        return Path(self.data_dir) / self.monitoring_config_file


@lru_cache()
def get_settings() -> Settings:
    """Cached settings instance."""
    return Settings()
