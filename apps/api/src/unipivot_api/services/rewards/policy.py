from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from unipivot_api.core.settings import Settings, get_settings


@dataclass(frozen=True)
class RewardGuardPolicy:
    """Gate limits and risk weights applied to reward claims."""

    ip_window: timedelta = timedelta(hours=24)
    ip_limit: int = 2
    velocity_window: timedelta = timedelta(hours=1)
    velocity_threshold: int = 5
    account_reuse_weight: int = 40
    phone_reuse_weight: int = 30
    ip_velocity_weight: int = 30
    flag_threshold: int = 30
    store_timeout_seconds: float = 5.0

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> "RewardGuardPolicy":
        settings = settings or get_settings()
        return cls(
            ip_window=timedelta(hours=settings.reward_claim_ip_window_hours),
            ip_limit=settings.reward_claim_ip_limit,
            velocity_window=timedelta(minutes=settings.reward_claim_velocity_window_minutes),
            velocity_threshold=settings.reward_claim_velocity_threshold,
            account_reuse_weight=settings.reward_claim_account_reuse_weight,
            phone_reuse_weight=settings.reward_claim_phone_reuse_weight,
            ip_velocity_weight=settings.reward_claim_ip_velocity_weight,
            flag_threshold=settings.reward_claim_flag_threshold,
            store_timeout_seconds=settings.store_timeout_seconds,
        )
