from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration."""

    host: str = "0.0.0.0"
    port: int = 8000
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    pixabay_access_key: str
    pixabay_api_url: str = "https://pixabay.com/api/"
    pixabay_image_type: str = "photo"

    telegram_bot_token: str
    telegram_api_url: str = "https://api.telegram.org"
    telegram_use_polling: bool = True
    telegram_poll_timeout_seconds: int = 30
    telegram_webhook_url: str | None = None
    telegram_webhook_secret: str | None = None

    request_timeout_seconds: float = 15.0

    # Pixabay accepts per_page >= 3, Telegram albums hold at most 10 items.
    page_size: int = Field(default=5, ge=3, le=10)
    session_max_entries: int = Field(default=10_000, ge=1)
    session_ttl_seconds: int = 86400  # 24 hours

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_delivery_mode(self) -> "Settings":
        """Webhook delivery needs a public URL and a secret to authenticate Telegram."""
        if not self.telegram_use_polling:
            if not self.telegram_webhook_url:
                raise ValueError("TELEGRAM_WEBHOOK_URL is required when polling is disabled")
            if not self.telegram_webhook_secret:
                raise ValueError("TELEGRAM_WEBHOOK_SECRET is required when polling is disabled")
        return self


def get_settings() -> Settings:
    """Return the application settings singleton (loaded from env / .env)."""
    global _SETTINGS
    try:
        return _SETTINGS
    except NameError:
        _SETTINGS = Settings()
        return _SETTINGS
