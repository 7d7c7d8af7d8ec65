import math
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_ORIGINS = (
    "https://jiaruilei.github.io,"
    "http://localhost:3000,"
    "http://localhost:5173,"
    "http://localhost:5500"
)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "info"
    allowed_origins: str = Field(
        default=DEFAULT_ALLOWED_ORIGINS, description="Comma separated exact-match origins"
    )

    openai_api_key: str | None = None
    openai_api_base: str = "https://api.openai.com/v1"
    openai_timeout_s: float = 60.0

    database_url: str | None = None
    database_pool_size: int = 5
    pgsslmode: str = ""
    analytics_table: str = "events"
    analytics_sample: str = "1"
    analytics_log_chat_content: str = "false"
    analytics_write_timeout_s: float = 2.0

    @property
    def allowed_origin_set(self) -> frozenset[str]:
        return frozenset(item.strip() for item in self.allowed_origins.split(",") if item.strip())

    @property
    def persistence_enabled(self) -> bool:
        return bool(self.database_url and self.database_url.strip())

    @property
    def database_sslmode(self) -> str:
        return "disable" if self.pgsslmode.strip().lower() == "disable" else "require"

    @property
    def analytics_sample_rate(self) -> float:
        return parse_sample_rate(self.analytics_sample)

    @property
    def chat_content_logging_enabled(self) -> bool:
        # privacy toggle: only the exact string "true" turns it on
        return self.analytics_log_chat_content == "true"


class SamplingSettings(BaseSettings):
    """Only the sampling knob, read straight from the process environment."""

    model_config = SettingsConfigDict(case_sensitive=False, extra="ignore")

    analytics_sample: str = "1"


def parse_sample_rate(raw: str) -> float:
    """Parse ``ANALYTICS_SAMPLE``; anything that is not a finite number disables sampling."""
    try:
        rate = float(raw.strip())
    except ValueError:
        return 1.0
    if not math.isfinite(rate):
        return 1.0
    return rate


@lru_cache
def get_settings() -> Settings:
    return Settings()


def clear_settings_cache() -> None:
    get_settings.cache_clear()


def current_sample_rate() -> float:
    # Bypasses the cache so the rate can be tuned on a running process.
    return parse_sample_rate(SamplingSettings().analytics_sample)
