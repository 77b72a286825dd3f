from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-backed runtime settings."""

    app_name: str = "FXSignal"
    env: str = "dev"
    log_level: str = "INFO"

    database_url: str | None = None
    telegram_bot_token: str | None = None
    telegram_chat_id: str | None = None
    telegram_api_base: str = "https://api.telegram.org"
    notify_timezone: str = "UTC"
    notify_timeout_seconds: float = Field(default=10.0, gt=0)

    random_seed: int | None = None
    max_attempts: int = Field(default=10, gt=0)
    min_base_confidence: int = Field(default=50, ge=0, le=99)
    min_final_confidence: int = Field(default=55, ge=0, le=99)

    @field_validator(
        "database_url",
        "telegram_bot_token",
        "telegram_chat_id",
        "random_seed",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    model_config = SettingsConfigDict(
        env_prefix="FXSIGNAL_",
        env_file=".env",
        env_file_encoding="utf-8-sig",
        extra="ignore",
    )
