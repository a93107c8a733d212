from __future__ import annotations

from functools import lru_cache
from typing import Literal
from urllib.parse import urlsplit

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOCAL_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="APP_",
        extra="ignore",
        case_sensitive=False,
    )

    # Application
    debug: bool = False
    log_level: str = "INFO"

    # API
    api_prefix: str = "/api/v1"
    cors_origins: list[str] = [
        "http://localhost:3000",
        "http://localhost:8000",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8000",
    ]
    root_path: str = ""

    # Storage
    storage_backend: Literal["supabase", "memory"] = "supabase"
    supabase_url: str = ""
    supabase_service_role_key: str = ""

    # AI enrichment
    ai_enabled: bool = False
    enable_async_ai: bool = True
    ai_api_key: str = ""
    ai_base_url: str = "https://api.openai.com/v1"
    ai_model: str = "gpt-3.5-turbo"
    ai_temperature: float = 0.7
    ai_max_tokens: int = 1024
    ai_timeout_seconds: float = 30.0

    # Page scraping
    scrape_timeout_seconds: float = 30.0
    scrape_max_bytes: int = 128 * 1024
    scrape_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )

    # Background work
    ai_worker_count: int = 5
    enrichment_queue_size: int = 1000
    tag_optimize_interval_seconds: float = 0

    @field_validator("ai_worker_count")
    @classmethod
    def at_least_one_worker(cls, v: int) -> int:
        return max(1, v)

    @property
    def async_enrichment_active(self) -> bool:
        return self.ai_enabled and self.enable_async_ai

    def validate_runtime(self) -> tuple[list[str], list[str]]:
        """Return (errors, warnings) for settings that cannot work at runtime."""
        errors: list[str] = []
        warnings: list[str] = []

        if self.storage_backend == "supabase":
            if not self.supabase_url:
                errors.append("APP_SUPABASE_URL is required when APP_STORAGE_BACKEND=supabase")
            if not self.supabase_service_role_key:
                errors.append(
                    "APP_SUPABASE_SERVICE_ROLE_KEY is required when APP_STORAGE_BACKEND=supabase"
                )

        if self.ai_enabled:
            if not self.ai_api_key:
                errors.append("APP_AI_API_KEY is required when APP_AI_ENABLED=true")
            host = urlsplit(self.ai_base_url).hostname or ""
            if host in _LOCAL_HOSTS:
                warnings.append(f"APP_AI_BASE_URL points at a local address ({self.ai_base_url})")

        return errors, warnings


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
