"""Identity resolution services."""

from .matching import (
    AlertLevel,
    ApplicantAttributes,
    ApplicationAlert,
    MatchResult,
    MatchType,
    MemberMatcher,
    ProgramAlertReport,
    normalize_email,
    normalize_phone,
)

__all__ = [
    "AlertLevel",
    "ApplicantAttributes",
    "ApplicationAlert",
    "MatchResult",
    "MatchType",
    "MemberMatcher",
    "ProgramAlertReport",
    "normalize_email",
    "normalize_phone",
]
