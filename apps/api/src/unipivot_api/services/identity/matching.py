"""Cascading member matcher used by application intake.

Rules are tried from strongest to weakest identity evidence and the
first hit wins:

1. email (normalized, exact)
2. phone (digits only, exact)
3. name + birth year (exact)
4. name (exact) + hometown (substring)

The alert level attached to a match is a pure function of the matched
member's status so reviewers can trace it back to the moderator
decision that set it. The matcher never writes to the store and lets
store errors propagate so callers fail closed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable, Optional, Sequence, Tuple
from uuid import UUID

from loguru import logger
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from unipivot_api.models.member import Member, MemberStatusEnum
from unipivot_api.models.program import ProgramApplication
from unipivot_api.observability.fraud import get_fraud_store


_NON_DIGITS = re.compile(r"[^0-9]")


def digits_only(value: str | None) -> str:
    """Strip every non-digit character (phone and bank account formatting)."""

    if not value:
        return ""
    return _NON_DIGITS.sub("", value)


def normalize_phone(value: str | None) -> str:
    return digits_only(value)


def normalize_email(value: str | None) -> str:
    if not value:
        return ""
    return value.strip().lower()


class MatchType(str, Enum):
    EMAIL = "email"
    PHONE = "phone"
    NAME_BIRTH = "name_birth"
    NAME_HOMETOWN = "name_hometown"


class AlertLevel(str, Enum):
    NONE = "NONE"
    WATCH = "WATCH"
    WARNING = "WARNING"
    BLOCKED = "BLOCKED"


_STATUS_ALERTS = {
    MemberStatusEnum.BLOCKED: AlertLevel.BLOCKED,
    MemberStatusEnum.WARNING: AlertLevel.WARNING,
    MemberStatusEnum.WATCH: AlertLevel.WATCH,
}

_ALERT_MESSAGES = {
    AlertLevel.BLOCKED: "{name} is a blocked member; approval is not recommended.",
    AlertLevel.WARNING: "{name} is a member under warning; review carefully before approving.",
    AlertLevel.WATCH: "{name} is on the watch list; confirm details before approving.",
}


def alert_level_for(status: MemberStatusEnum | str | None) -> AlertLevel:
    try:
        return _STATUS_ALERTS.get(MemberStatusEnum(status), AlertLevel.NONE)
    except ValueError:
        return AlertLevel.NONE


def alert_message_for(level: AlertLevel, name: str) -> Optional[str]:
    template = _ALERT_MESSAGES.get(level)
    return template.format(name=name) if template else None


@dataclass(frozen=True)
class ApplicantAttributes:
    """Unvalidated identity attributes supplied by an applicant."""

    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    birth_year: Optional[int] = None
    hometown: Optional[str] = None

    @property
    def batch_key(self) -> str:
        return f"{self.name}-{self.email or ''}-{self.phone or ''}"


@dataclass
class MatchResult:
    matched: bool
    alert_level: AlertLevel = AlertLevel.NONE
    member: Optional[Member] = None
    match_type: Optional[MatchType] = None
    alert_message: Optional[str] = None

    @classmethod
    def no_match(cls) -> "MatchResult":
        return cls(matched=False)

    @classmethod
    def for_member(cls, member: Member, match_type: MatchType) -> "MatchResult":
        level = alert_level_for(member.status)
        return cls(
            matched=True,
            member=member,
            match_type=match_type,
            alert_level=level,
            alert_message=alert_message_for(level, member.name),
        )


@dataclass
class ApplicationAlert:
    application_id: UUID
    applicant_name: str
    result: MatchResult


@dataclass
class ProgramAlertReport:
    total_applications: int
    alerts: list[ApplicationAlert] = field(default_factory=list)

    def count(self, level: AlertLevel) -> int:
        return sum(1 for alert in self.alerts if alert.result.alert_level == level)

    @property
    def blocked_count(self) -> int:
        return self.count(AlertLevel.BLOCKED)

    @property
    def warning_count(self) -> int:
        return self.count(AlertLevel.WARNING)

    @property
    def watch_count(self) -> int:
        return self.count(AlertLevel.WATCH)


_Rule = Tuple[MatchType, Sequence[ColumnElement[bool]], Optional[Callable[[Member], bool]]]


class MemberMatcher:
    """Resolve applicants to member records."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def match(self, applicant: ApplicantAttributes) -> MatchResult:
        result = await self._resolve(applicant)
        get_fraud_store().record_match(
            result.match_type.value if result.match_type else None,
            result.alert_level.value,
        )
        if result.alert_level is not AlertLevel.NONE:
            logger.warning(
                "Applicant matched flagged member",
                member_id=str(result.member.id),
                match_type=result.match_type.value,
                alert_level=result.alert_level.value,
            )
        return result

    async def match_many(self, applicants: Iterable[ApplicantAttributes]) -> dict[str, MatchResult]:
        results: dict[str, MatchResult] = {}
        for applicant in applicants:
            results[applicant.batch_key] = await self.match(applicant)
        return results

    async def scan_program_applications(self, program_id: UUID) -> ProgramAlertReport:
        """Re-match every application of a program and collect non-NONE alerts."""

        stmt = (
            select(ProgramApplication)
            .where(ProgramApplication.program_id == program_id)
            .order_by(ProgramApplication.created_at)
        )
        applications = (await self._session.execute(stmt)).scalars().all()

        report = ProgramAlertReport(total_applications=len(applications))
        for application in applications:
            result = await self.match(
                ApplicantAttributes(
                    name=application.name or "",
                    email=application.email,
                    phone=application.phone,
                    birth_year=application.birth_year,
                    hometown=application.hometown,
                )
            )
            if result.alert_level is not AlertLevel.NONE:
                report.alerts.append(
                    ApplicationAlert(
                        application_id=application.id,
                        applicant_name=application.name or "(no name)",
                        result=result,
                    )
                )
        return report

    async def _resolve(self, applicant: ApplicantAttributes) -> MatchResult:
        for match_type, criteria, accept in self._cascade(applicant):
            member = await self._first(criteria, accept)
            if member is not None:
                return MatchResult.for_member(member, match_type)
        return MatchResult.no_match()

    def _cascade(self, applicant: ApplicantAttributes) -> Iterable[_Rule]:
        email = normalize_email(applicant.email)
        if email:
            yield MatchType.EMAIL, (Member.email == email,), None

        phone = normalize_phone(applicant.phone)
        if phone:
            yield MatchType.PHONE, (Member.phone == phone,), None

        if applicant.birth_year:
            yield MatchType.NAME_BIRTH, (
                Member.name == applicant.name,
                Member.birth_year == applicant.birth_year,
            ), None

        hometown = applicant.hometown
        if hometown:
            # LIKE is case-insensitive on some dialects; the substring test stays in Python.
            yield MatchType.NAME_HOMETOWN, (
                Member.name == applicant.name,
                Member.hometown.is_not(None),
            ), lambda member: hometown in member.hometown

    async def _first(
        self,
        criteria: Sequence[ColumnElement[bool]],
        accept: Callable[[Member], bool] | None,
    ) -> Optional[Member]:
        stmt = select(Member).where(*criteria).order_by(Member.created_at, Member.id)
        if accept is None:
            result = await self._session.execute(stmt.limit(1))
            return result.scalar_one_or_none()

        result = await self._session.execute(stmt)
        return next((member for member in result.scalars() if accept(member)), None)


__all__ = [
    "AlertLevel",
    "ApplicantAttributes",
    "ApplicationAlert",
    "MatchResult",
    "MatchType",
    "MemberMatcher",
    "ProgramAlertReport",
    "alert_level_for",
    "alert_message_for",
    "digits_only",
    "normalize_email",
    "normalize_phone",
]
