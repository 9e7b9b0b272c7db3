"""Exceptions raised by the reward claim pipeline.

Policy rejections are not exceptions; they come back as `ClaimRejected`
values. These cover bad input and infrastructure failure only.
"""

from __future__ import annotations


class RewardClaimError(Exception):
    """Base class for reward claim failures."""


class InvalidClaimSubmissionError(RewardClaimError):
    """A required claim field is missing or empty."""

    def __init__(self, missing: list[str]) -> None:
        super().__init__(f"Missing required claim fields: {', '.join(missing)}")
        self.missing = missing


class SurveyNotFoundError(RewardClaimError):
    pass


class SurveyNotClaimableError(RewardClaimError):
    """Survey is still running or carries no reward."""


class ClaimStoreUnavailableError(RewardClaimError):
    """A store round-trip failed or exceeded the request deadline."""

    def __init__(self, stage: str) -> None:
        super().__init__(f"Reward claim store unavailable during {stage}")
        self.stage = stage
