"""Program application intake."""

from .intake import (
    ApplicantRestrictedError,
    ApplicationIntakeError,
    ApplicationIntakeService,
    ApplicationsClosedError,
    ApplicationSubmission,
    DuplicateApplicationError,
    IntakeOutcome,
    ProgramNotFoundError,
)

__all__ = [
    "ApplicantRestrictedError",
    "ApplicationIntakeError",
    "ApplicationIntakeService",
    "ApplicationsClosedError",
    "ApplicationSubmission",
    "DuplicateApplicationError",
    "IntakeOutcome",
    "ProgramNotFoundError",
]
