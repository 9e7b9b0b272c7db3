"""Program application intake built on the member matcher."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from unipivot_api.models.member import Member, MemberGradeEnum
from unipivot_api.models.notification import AdminNotificationTypeEnum
from unipivot_api.models.program import ApplicationStatusEnum, Program, ProgramApplication
from unipivot_api.services.identity import (
    AlertLevel,
    ApplicantAttributes,
    MatchResult,
    MemberMatcher,
    normalize_email,
    normalize_phone,
)
from unipivot_api.services.notifications import AdminNotifier, render_alert_application


class ApplicationIntakeError(Exception):
    """Base class for intake failures surfaced to the applicant."""


class ProgramNotFoundError(ApplicationIntakeError):
    pass


class ApplicationsClosedError(ApplicationIntakeError):
    pass


class ApplicantRestrictedError(ApplicationIntakeError):
    """Blocked member applying to a program that auto-rejects them."""


class DuplicateApplicationError(ApplicationIntakeError):
    pass


@dataclass(frozen=True)
class ApplicationSubmission:
    program_id: UUID
    name: str
    email: str
    phone: str
    birth_year: Optional[int] = None
    hometown: Optional[str] = None
    motivation: Optional[str] = None
    user_id: Optional[UUID] = None


@dataclass
class IntakeOutcome:
    application: ProgramApplication
    match: MatchResult


_REVIEW_LEVELS = {AlertLevel.BLOCKED, AlertLevel.WARNING}


class ApplicationIntakeService:
    """Match the applicant, apply the program's approval policy, and record the outcome."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        matcher: MemberMatcher | None = None,
        notifier: AdminNotifier | None = None,
    ) -> None:
        self._db = session
        self._matcher = matcher or MemberMatcher(session)
        self._notifier = notifier or AdminNotifier(session)

    async def submit(self, submission: ApplicationSubmission) -> IntakeOutcome:
        program = await self._db.get(Program, submission.program_id)
        if program is None:
            raise ProgramNotFoundError(str(submission.program_id))
        if not program.application_open:
            raise ApplicationsClosedError(str(program.id))

        email = normalize_email(submission.email)
        phone = normalize_phone(submission.phone)
        match = await self._matcher.match(
            ApplicantAttributes(
                name=submission.name.strip(),
                email=email,
                phone=phone,
                birth_year=submission.birth_year,
                hometown=submission.hometown,
            )
        )
        member = match.member
        if member is None and submission.user_id is not None:
            member = await self._linked_member(submission.user_id)

        if match.alert_level is AlertLevel.BLOCKED and program.auto_reject_blocked:
            logger.warning(
                "Blocked member application auto-rejected",
                program_id=str(program.id),
                member_id=str(member.id),
            )
            raise ApplicantRestrictedError(str(program.id))

        await self._ensure_not_duplicate(program.id, email, phone, member.id if member else None, submission.user_id)

        status = await self._decide_status(program, match, member)
        application = ProgramApplication(
            program_id=program.id,
            user_id=submission.user_id,
            name=submission.name.strip(),
            email=email,
            phone=phone,
            birth_year=submission.birth_year,
            hometown=submission.hometown,
            motivation=submission.motivation,
            matched_member_id=member.id if member else None,
            matched_member_code=member.member_code if member else None,
            member_grade=member.grade if member else None,
            member_status=member.status if member else None,
            match_type=match.match_type.value if match.match_type else None,
            alert_level=match.alert_level.value,
            status=status,
        )
        self._db.add(application)
        await self._db.commit()
        logger.info(
            "Program application recorded",
            application_id=str(application.id),
            program_id=str(program.id),
            status=status.value,
            alert_level=match.alert_level.value,
        )

        if match.alert_level in _REVIEW_LEVELS:
            await self._notifier.notify(
                AdminNotificationTypeEnum.ALERT_APPLICATION,
                render_alert_application(
                    alert_level=match.alert_level.value,
                    applicant_name=application.name,
                    program_title=program.title,
                    alert_message=match.alert_message,
                ),
                data={
                    "applicationId": str(application.id),
                    "alertLevel": match.alert_level.value,
                    "memberCode": application.matched_member_code,
                },
            )

        return IntakeOutcome(application=application, match=match)

    async def _linked_member(self, user_id: UUID) -> Optional[Member]:
        """Member tied to the signed-in account, used when the cascade finds nobody."""

        stmt = select(Member).where(Member.user_id == user_id).limit(1)
        return (await self._db.execute(stmt)).scalar_one_or_none()

    async def _ensure_not_duplicate(
        self,
        program_id: UUID,
        email: str,
        phone: str,
        member_id: UUID | None,
        user_id: UUID | None,
    ) -> None:
        # Blank keys would collide with every other blank-keyed application
        conditions = []
        if email:
            conditions.append(ProgramApplication.email == email)
        if phone:
            conditions.append(ProgramApplication.phone == phone)
        if member_id is not None:
            conditions.append(ProgramApplication.matched_member_id == member_id)
        if user_id is not None:
            conditions.append(ProgramApplication.user_id == user_id)
        if not conditions:
            return

        stmt = (
            select(ProgramApplication.id)
            .where(ProgramApplication.program_id == program_id, or_(*conditions))
            .limit(1)
        )
        if (await self._db.execute(stmt)).scalar_one_or_none() is not None:
            raise DuplicateApplicationError(str(program_id))

    async def _decide_status(
        self,
        program: Program,
        match: MatchResult,
        member: Optional[Member],
    ) -> ApplicationStatusEnum:
        if program.max_participants:
            approved_stmt = select(func.count(ProgramApplication.id)).where(
                ProgramApplication.program_id == program.id,
                ProgramApplication.status == ApplicationStatusEnum.APPROVED,
            )
            approved = (await self._db.execute(approved_stmt)).scalar_one()
            if approved >= program.max_participants:
                return ApplicationStatusEnum.WAITLIST

        if match.alert_level in _REVIEW_LEVELS:
            return ApplicationStatusEnum.PENDING

        grade = member.grade if member else None
        if (program.auto_approve_vvip and grade == MemberGradeEnum.VVIP) or (
            program.auto_approve_vip and grade == MemberGradeEnum.VIP
        ):
            return ApplicationStatusEnum.APPROVED

        return ApplicationStatusEnum.PENDING
