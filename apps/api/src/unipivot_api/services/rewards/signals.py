"""Reason codes for claim rejections and risk signals, plus their admin-facing text."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class RejectionReason(str, Enum):
    IP_RATE_LIMITED = "ip_rate_limited"
    ALREADY_CLAIMED = "already_claimed"
    FINANCIAL_IDENTITY_REUSED = "financial_identity_reused"


class RiskSignal(str, Enum):
    ACCOUNT_REUSE = "account_reuse"
    PHONE_REUSE = "phone_reuse"
    IP_VELOCITY = "ip_velocity"


@dataclass(frozen=True)
class SignalHit:
    signal: RiskSignal
    weight: int
    detail: dict[str, Any] = field(default_factory=dict)


def describe_signal(hit: SignalHit) -> str:
    if hit.signal is RiskSignal.ACCOUNT_REUSE:
        return f"Bank account already used by another user (surveyId: {hit.detail.get('survey_id')})"
    if hit.signal is RiskSignal.PHONE_REUSE:
        return "Phone number already used by another user"
    if hit.signal is RiskSignal.IP_VELOCITY:
        return f"{hit.detail.get('count')} claims from the same IP within {hit.detail.get('window_minutes')} minutes"
    return hit.signal.value
