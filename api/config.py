"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Literal

from pydantic import Field, RedisDsn
from pydantic_settings import BaseSettings, SettingsConfigDict

API_VERSION = "0.1.0"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Environment
    env: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    # API Server
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_workers: int = 1
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    # AI provider (OpenAI-compatible chat completions)
    openai_api_key: str | None = None
    ai_base_url: str = "https://api.openai.com/v1"
    ai_model: str = "gpt-4.1"
    ai_overview_model: str = "gpt-4.1"
    ai_vision_model: str = "gpt-4o-mini"
    ai_timeout_seconds: float = 60.0
    ai_max_attempts: int = 3
    ai_retry_delay_seconds: float = 1.0

    # Crawler
    crawler_user_agent: str = "SEO-Optimizer-Bot/1.0 (+https://seooptimizer.com/bot)"
    crawler_timeout: float = 15.0
    crawler_max_depth: int = 3
    page_batch_size: int = 3

    # Analysis defaults (per-run options override these)
    default_max_pages: int = 25
    default_crawl_delay_ms: int = 1000

    # Insights
    insights_batch_size: int = 3
    insights_batch_delay_ms: int = 200
    trial_suggestion_limit: int = 5

    # Suggestion cache
    suggestion_cache_backend: Literal["memory", "redis"] = "memory"
    suggestion_cache_ttl_seconds: int = 6 * 60 * 60
    redis_url: RedisDsn | None = None

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.env == "production"

    @property
    def is_test(self) -> bool:
        """Check if running in test mode."""
        return self.env == "test"

    @property
    def ai_enabled(self) -> bool:
        """Check if AI augmentation is available (has an API key)."""
        return bool(self.openai_api_key)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
