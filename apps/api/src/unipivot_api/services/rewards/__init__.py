"""Reward claim fraud guard."""

from .errors import (
    ClaimStoreUnavailableError,
    InvalidClaimSubmissionError,
    RewardClaimError,
    SurveyNotClaimableError,
    SurveyNotFoundError,
)
from .guard import (
    ALREADY_CLAIMED_MESSAGE,
    CLAIM_ACCEPTED_MESSAGE,
    GENERIC_ERROR_MESSAGE,
    ClaimAccepted,
    ClaimDecision,
    ClaimRejected,
    ClaimSubmission,
    RewardClaimGuard,
    RiskAssessment,
)
from .policy import RewardGuardPolicy
from .signals import RejectionReason, RiskSignal, SignalHit, describe_signal

__all__ = [
    "ALREADY_CLAIMED_MESSAGE",
    "CLAIM_ACCEPTED_MESSAGE",
    "GENERIC_ERROR_MESSAGE",
    "ClaimAccepted",
    "ClaimDecision",
    "ClaimRejected",
    "ClaimStoreUnavailableError",
    "ClaimSubmission",
    "InvalidClaimSubmissionError",
    "RejectionReason",
    "RewardClaimError",
    "RewardClaimGuard",
    "RewardGuardPolicy",
    "RiskAssessment",
    "RiskSignal",
    "SignalHit",
    "SurveyNotClaimableError",
    "SurveyNotFoundError",
    "describe_signal",
]
