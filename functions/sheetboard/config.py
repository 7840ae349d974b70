"""
Configuration and settings for the bulletin-board service.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    api_prefix: str = Field(default="/api")
    page_title: str = Field(default="Bulletin Board")

    # Google Sheets / Drive (service account credentials)
    spreadsheet_id: Optional[str] = Field(default=None, env="SPREADSHEET_ID")
    posts_sheet_name: str = Field(default="Posts", env="POSTS_SHEET_NAME")
    settings_sheet_name: str = Field(
        default="Settings", env="SETTINGS_SHEET_NAME"
    )
    google_service_account_file: Optional[str] = Field(
        default=None, env="GOOGLE_SERVICE_ACCOUNT_FILE"
    )

    # SQL row table (SQLite/Postgres) instead of a spreadsheet
    database_url: Optional[str] = Field(default=None, env="DATABASE_URL")

    # S3-compatible storage (Tencent COS) instead of Drive
    cos_endpoint: Optional[str] = Field(default=None, env="COS_ENDPOINT")
    cos_region: Optional[str] = Field(default=None, env="COS_REGION")
    cos_bucket: Optional[str] = Field(default=None, env="COS_BUCKET")
    aws_access_key_id: Optional[str] = Field(
        default=None, env="AWS_ACCESS_KEY_ID"
    )
    aws_secret_access_key: Optional[str] = Field(
        default=None, env="AWS_SECRET_ACCESS_KEY"
    )

    # Shared document lock across worker processes
    redis_url: Optional[str] = Field(default=None, env="REDIS_URL")
    redis_lock_prefix: str = Field(default="sheetboard:lock", env="REDIS_LOCK_PREFIX")

    # LLM / Gemini
    gemini_api_key: Optional[str] = Field(default=None, env="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-flash", env="GEMINI_MODEL")

    # Board defaults written to an empty settings store
    default_password: str = Field(default="9999")
    default_folder_name: str = Field(default="bbs_files")
    default_page_size: int = Field(default=5)

    # Timing
    cache_ttl_seconds: float = Field(default=300.0)
    write_lock_timeout_seconds: float = Field(default=10.0)
    generation_lock_timeout_seconds: float = Field(default=30.0)
    generation_max_attempts: int = Field(default=3)
    generation_retry_delay_seconds: float = Field(default=1.0)

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False, env="USE_IN_MEMORY_BACKENDS"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
