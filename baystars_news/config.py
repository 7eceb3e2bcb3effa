"""
Application configuration using Pydantic Settings.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "BayStars News"
    app_version: str = "0.1.0"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_json: bool = Field(default=False, description="Render logs as JSON lines")

    # Subject the sources are filtered and queried for
    subject: str = Field(default="ベイスターズ")

    # Storage
    data_dir: Path = Field(default=Path("articles"))
    snapshot_filename: str = "raw-articles.json"
    index_filename: str = "index.json"

    # Fetching
    request_timeout: float = Field(default=10.0, gt=0)
    user_agent: str = Field(
        default="Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
    )
    max_title_length: int = Field(default=150, ge=1)
    max_records_per_source: int = Field(default=10, ge=1)

    # Index
    index_max_items: int = Field(default=100, ge=1)

    # Article generation
    anthropic_api_key: str | None = Field(default=None)
    openai_api_key: str | None = Field(default=None)
    anthropic_model: str = "claude-3-haiku-20240307"
    openai_model: str = "gpt-4o-mini"
    generation_max_tokens: int = Field(default=1024, ge=1)
    generation_delay_seconds: float = Field(
        default=0.5,
        ge=0.0,
        description="Pause between consecutive generator calls",
    )
    article_category: str = "ベイスターズニュース"
    article_author: str = "AI記事生成"

    # Scheduler
    schedule_hour: str = Field(default="*/6", description="Cron hour field for `serve`")
    schedule_minute: int = Field(default=0, ge=0, le=59)

    @property
    def snapshot_path(self) -> Path:
        return self.data_dir / self.snapshot_filename

    @property
    def index_path(self) -> Path:
        return self.data_dir / self.index_filename


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
