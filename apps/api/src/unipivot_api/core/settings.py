from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="allow")

    environment: Literal["development", "staging", "production"] = "development"
    database_url: str = "sqlite+aiosqlite:///./unipivot.db"
    otel_tracing_enabled: bool = True

    # Store round-trips inherit this deadline when the caller gives none
    store_timeout_seconds: float = 5.0

    # Reward claim gates
    reward_claim_ip_window_hours: int = 24
    reward_claim_ip_limit: int = 2

    # Reward claim risk scoring
    reward_claim_velocity_window_minutes: int = 60
    reward_claim_velocity_threshold: int = 5
    reward_claim_account_reuse_weight: int = 40
    reward_claim_phone_reuse_weight: int = 30
    reward_claim_ip_velocity_weight: int = 30
    reward_claim_flag_threshold: int = 30

    # Admin notifications
    notification_timeout_seconds: float = 3.0
    admin_notification_emails: list[str] = Field(default_factory=list)

    @field_validator("admin_notification_emails", mode="before")
    @classmethod
    def _parse_recipient_list(cls, value: object) -> list[str]:
        if value is None:
            return []
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        if isinstance(value, (list, tuple, set)):
            return [str(item).strip() for item in value if str(item).strip()]
        return []

    # Email / notification settings
    smtp_host: str | None = None
    smtp_port: int = 587
    smtp_username: str | None = None
    smtp_password: str | None = None
    smtp_use_tls: bool = True
    smtp_sender_email: str | None = None


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[arg-type]


settings = get_settings()
