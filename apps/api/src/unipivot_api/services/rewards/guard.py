"""Reward claim guard.

A claim passes three hard gates in a fixed order, cheapest and most
certain first, and any gate firing ends evaluation:

1. IP rate: too many claims for this survey from one IP in the window.
2. User dedup: this user already claimed this survey.
3. Financial identity: another user in this survey used the same bank
   account or phone number.

Claims that pass are scored with additive, cross-survey risk signals.
A score at or above the flag threshold still persists the claim, marked
for manual review, and notifies admins. Gates 1 and 3 answer with the
same generic message so the caller cannot tell which rule fired.

Every store round-trip runs under the request deadline. A timeout or
database error raises `ClaimStoreUnavailableError` and nothing is
written. The (survey_id, user_id) unique constraint is the final word
on duplicates: an insert conflict is reported exactly like gate 2.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field, replace
from datetime import datetime
from http import HTTPStatus
from typing import Any, Awaitable, Callable, ClassVar, Optional, TypeVar, Union
from uuid import UUID

from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from unipivot_api.db.base import utcnow
from unipivot_api.models.notification import AdminNotificationTypeEnum
from unipivot_api.models.reward_claim import LabSurvey, RewardClaim
from unipivot_api.observability.fraud import get_fraud_store
from unipivot_api.services.identity.matching import digits_only
from unipivot_api.services.notifications import AdminNotifier, render_flagged_claim

from .errors import (
    ClaimStoreUnavailableError,
    InvalidClaimSubmissionError,
    SurveyNotClaimableError,
    SurveyNotFoundError,
)
from .policy import RewardGuardPolicy
from .signals import RejectionReason, RiskSignal, SignalHit, describe_signal


GENERIC_ERROR_MESSAGE = "We could not process your request. Please contact support."
ALREADY_CLAIMED_MESSAGE = "You have already participated in this survey."
CLAIM_ACCEPTED_MESSAGE = "Your reward claim was received and will be paid after admin approval."

_REJECTIONS = {
    RejectionReason.IP_RATE_LIMITED: (HTTPStatus.TOO_MANY_REQUESTS, GENERIC_ERROR_MESSAGE),
    RejectionReason.ALREADY_CLAIMED: (HTTPStatus.CONFLICT, ALREADY_CLAIMED_MESSAGE),
    RejectionReason.FINANCIAL_IDENTITY_REUSED: (HTTPStatus.CONFLICT, GENERIC_ERROR_MESSAGE),
}

T = TypeVar("T")


@dataclass(frozen=True)
class ClaimSubmission:
    """Raw claim as received from the claimant."""

    _REQUIRED_FIELDS: ClassVar[tuple[str, ...]] = (
        "real_name",
        "phone_number",
        "bank_code",
        "bank_name",
        "account_number",
    )

    survey_id: UUID
    user_id: UUID
    real_name: str
    phone_number: str
    bank_code: str
    bank_name: str
    account_number: str
    ip_address: str = "0.0.0.0"
    user_agent: Optional[str] = None

    def normalized(self) -> "ClaimSubmission":
        """Validate required fields and strip phone/account formatting."""

        missing = [name for name in self._REQUIRED_FIELDS if not (getattr(self, name) or "").strip()]
        phone = digits_only(self.phone_number)
        account = digits_only(self.account_number)
        if not phone and "phone_number" not in missing:
            missing.append("phone_number")
        if not account and "account_number" not in missing:
            missing.append("account_number")
        if missing:
            raise InvalidClaimSubmissionError(missing)

        return replace(
            self,
            real_name=self.real_name.strip(),
            phone_number=phone,
            account_number=account,
            bank_code=self.bank_code.strip(),
            bank_name=self.bank_name.strip(),
            ip_address=(self.ip_address or "").strip() or "0.0.0.0",
        )


@dataclass(frozen=True)
class ClaimRejected:
    reason: RejectionReason
    http_status: int
    message: str


@dataclass(frozen=True)
class ClaimAccepted:
    claim_id: UUID
    amount: int
    flagged: bool
    risk_score: int
    signals: tuple[SignalHit, ...] = ()

    @property
    def message(self) -> str:
        return CLAIM_ACCEPTED_MESSAGE


ClaimDecision = Union[ClaimAccepted, ClaimRejected]


@dataclass
class RiskAssessment:
    hits: list[SignalHit] = field(default_factory=list)

    @property
    def score(self) -> int:
        return sum(hit.weight for hit in self.hits)

    def should_flag(self, threshold: int) -> bool:
        return bool(self.hits) and self.score >= threshold

    @property
    def codes(self) -> list[str]:
        return [hit.signal.value for hit in self.hits]

    def describe(self) -> list[str]:
        return [describe_signal(hit) for hit in self.hits]


class _Deadline:
    """Bounds each store call by whatever is left of the request deadline."""

    def __init__(self, expires_at: float) -> None:
        self._expires_at = expires_at

    @classmethod
    def start(cls, deadline: float | None, default_timeout: float) -> "_Deadline":
        if deadline is not None:
            return cls(deadline)
        return cls(asyncio.get_running_loop().time() + default_timeout)

    def remaining(self) -> float:
        return self._expires_at - asyncio.get_running_loop().time()

    async def run(self, stage: str, awaitable: Awaitable[T]) -> T:
        remaining = self.remaining()
        if remaining <= 0:
            close = getattr(awaitable, "close", None)
            if close is not None:
                close()
            logger.error("Reward claim deadline exhausted", stage=stage)
            raise ClaimStoreUnavailableError(stage)
        try:
            return await asyncio.wait_for(awaitable, timeout=remaining)
        except asyncio.TimeoutError as exc:
            logger.error("Reward claim store call timed out", stage=stage, timeout_seconds=round(remaining, 3))
            raise ClaimStoreUnavailableError(stage) from exc
        except IntegrityError:
            raise
        except SQLAlchemyError as exc:
            logger.exception("Reward claim store call failed", stage=stage)
            raise ClaimStoreUnavailableError(stage) from exc


class RewardClaimGuard:
    """Decide whether a reward claim is accepted, rejected, or accepted for review."""

    def __init__(
        self,
        session: AsyncSession,
        *,
        policy: RewardGuardPolicy | None = None,
        notifier: AdminNotifier | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._session = session
        self._policy = policy or RewardGuardPolicy.from_settings()
        self._notifier = notifier or AdminNotifier(session)
        self._clock = clock or utcnow

    @property
    def policy(self) -> RewardGuardPolicy:
        return self._policy

    async def evaluate_claim(
        self,
        submission: ClaimSubmission,
        *,
        deadline: float | None = None,
    ) -> ClaimDecision:
        """Run the gates, score, and persist. `deadline` is an event-loop timestamp."""

        claim_input = submission.normalized()
        budget = _Deadline.start(deadline, self._policy.store_timeout_seconds)

        survey = await budget.run("survey lookup", self._session.get(LabSurvey, claim_input.survey_id))
        if survey is None:
            raise SurveyNotFoundError(str(claim_input.survey_id))
        if not survey.accepts_claims or not survey.reward_amount or survey.reward_amount <= 0:
            raise SurveyNotClaimableError(str(survey.id))

        now = self._clock()
        log = logger.bind(
            survey_id=str(claim_input.survey_id),
            user_id=str(claim_input.user_id),
            ip_address=claim_input.ip_address,
        )

        recent_ip_claims = await budget.run("ip rate gate", self._count_recent_ip_claims(claim_input, now))
        if recent_ip_claims >= self._policy.ip_limit:
            log.warning("Reward claim rejected by IP rate gate", recent_claims=recent_ip_claims)
            return self._reject(RejectionReason.IP_RATE_LIMITED)

        existing_claim_id = await budget.run("user gate", self._find_user_claim(claim_input))
        if existing_claim_id is not None:
            log.info("Reward claim rejected as duplicate", existing_claim_id=str(existing_claim_id))
            return self._reject(RejectionReason.ALREADY_CLAIMED)

        shared_claim_id = await budget.run(
            "financial identity gate", self._find_financial_identity_claim(claim_input)
        )
        if shared_claim_id is not None:
            log.warning("Reward claim rejected by financial identity gate", matched_claim_id=str(shared_claim_id))
            return self._reject(RejectionReason.FINANCIAL_IDENTITY_REUSED)

        assessment = await self._assess_risk(claim_input, now, budget)
        flagged = assessment.should_flag(self._policy.flag_threshold)
        reasons = assessment.describe()

        claim = RewardClaim(
            survey_id=claim_input.survey_id,
            user_id=claim_input.user_id,
            real_name=claim_input.real_name,
            phone_number=claim_input.phone_number,
            bank_code=claim_input.bank_code,
            bank_name=claim_input.bank_name,
            account_number=claim_input.account_number,
            amount=survey.reward_amount,
            ip_address=claim_input.ip_address,
            user_agent=claim_input.user_agent,
            flagged=flagged,
            flag_reason="; ".join(reasons) if flagged else None,
            flag_codes=assessment.codes if flagged else None,
            risk_score=assessment.score,
            created_at=now,
        )
        self._session.add(claim)
        try:
            await budget.run("claim insert", self._session.commit())
        except IntegrityError:
            await self._session.rollback()
            log.warning("Concurrent duplicate reward claim rejected by unique constraint")
            return self._reject(RejectionReason.ALREADY_CLAIMED)
        except ClaimStoreUnavailableError:
            await self._session.rollback()
            raise

        claim_id, amount = claim.id, claim.amount
        get_fraud_store().record_acceptance(flagged=flagged, signals=assessment.codes)
        log.info(
            "Reward claim accepted",
            claim_id=str(claim_id),
            risk_score=assessment.score,
            flagged=flagged,
        )

        if flagged:
            log.warning(
                "Reward claim flagged for review",
                claim_id=str(claim_id),
                risk_score=assessment.score,
                signals=assessment.codes,
            )
            await self._notify_flagged(claim, survey, assessment, reasons)

        return ClaimAccepted(
            claim_id=claim_id,
            amount=amount,
            flagged=flagged,
            risk_score=assessment.score,
            signals=tuple(assessment.hits),
        )

    def _reject(self, reason: RejectionReason) -> ClaimRejected:
        http_status, message = _REJECTIONS[reason]
        get_fraud_store().record_rejection(reason.value)
        return ClaimRejected(reason=reason, http_status=int(http_status), message=message)

    async def _count_recent_ip_claims(self, claim: ClaimSubmission, now: datetime) -> int:
        stmt = select(func.count(RewardClaim.id)).where(
            RewardClaim.survey_id == claim.survey_id,
            RewardClaim.ip_address == claim.ip_address,
            RewardClaim.created_at >= now - self._policy.ip_window,
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def _find_user_claim(self, claim: ClaimSubmission) -> Optional[UUID]:
        stmt = (
            select(RewardClaim.id)
            .where(RewardClaim.survey_id == claim.survey_id, RewardClaim.user_id == claim.user_id)
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def _find_financial_identity_claim(self, claim: ClaimSubmission) -> Optional[UUID]:
        stmt = (
            select(RewardClaim.id)
            .where(
                RewardClaim.survey_id == claim.survey_id,
                RewardClaim.user_id != claim.user_id,
                or_(
                    RewardClaim.account_number == claim.account_number,
                    RewardClaim.phone_number == claim.phone_number,
                ),
            )
            .limit(1)
        )
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def _assess_risk(
        self,
        claim: ClaimSubmission,
        now: datetime,
        budget: _Deadline,
    ) -> RiskAssessment:
        """Score cross-survey signals. These read all surveys, unlike the gates."""

        assessment = RiskAssessment()

        account_stmt = (
            select(RewardClaim.survey_id)
            .where(
                RewardClaim.account_number == claim.account_number,
                RewardClaim.user_id != claim.user_id,
            )
            .order_by(RewardClaim.created_at)
            .limit(1)
        )
        account_survey_id = await budget.run("account reuse signal", self._scalar_or_none(account_stmt))
        if account_survey_id is not None:
            assessment.hits.append(
                SignalHit(
                    RiskSignal.ACCOUNT_REUSE,
                    self._policy.account_reuse_weight,
                    {"survey_id": str(account_survey_id)},
                )
            )

        phone_stmt = (
            select(RewardClaim.id)
            .where(
                RewardClaim.phone_number == claim.phone_number,
                RewardClaim.user_id != claim.user_id,
            )
            .limit(1)
        )
        phone_claim_id = await budget.run("phone reuse signal", self._scalar_or_none(phone_stmt))
        if phone_claim_id is not None:
            assessment.hits.append(SignalHit(RiskSignal.PHONE_REUSE, self._policy.phone_reuse_weight))

        velocity_stmt = select(func.count(RewardClaim.id)).where(
            RewardClaim.ip_address == claim.ip_address,
            RewardClaim.created_at >= now - self._policy.velocity_window,
        )
        velocity_count = await budget.run("ip velocity signal", self._scalar_or_none(velocity_stmt)) or 0
        if velocity_count >= self._policy.velocity_threshold:
            assessment.hits.append(
                SignalHit(
                    RiskSignal.IP_VELOCITY,
                    self._policy.ip_velocity_weight,
                    {
                        "count": int(velocity_count),
                        "window_minutes": int(self._policy.velocity_window.total_seconds() // 60),
                    },
                )
            )

        return assessment

    async def _scalar_or_none(self, stmt: Any) -> Any:
        return (await self._session.execute(stmt)).scalar_one_or_none()

    async def _notify_flagged(
        self,
        claim: RewardClaim,
        survey: LabSurvey,
        assessment: RiskAssessment,
        reasons: list[str],
    ) -> None:
        template = render_flagged_claim(
            survey_title=survey.title,
            risk_score=assessment.score,
            reasons=reasons,
            real_name=claim.real_name,
            phone_number=claim.phone_number,
        )
        await self._notifier.notify(
            AdminNotificationTypeEnum.REWARD_CLAIM_FLAGGED,
            template,
            data={
                "claimId": str(claim.id),
                "surveyId": str(survey.id),
                "surveyTitle": survey.title,
                "userId": str(claim.user_id),
                "riskScore": assessment.score,
                "flagCodes": assessment.codes,
                "flagReasons": reasons,
            },
        )


__all__ = [
    "ALREADY_CLAIMED_MESSAGE",
    "CLAIM_ACCEPTED_MESSAGE",
    "ClaimAccepted",
    "ClaimDecision",
    "ClaimRejected",
    "ClaimSubmission",
    "GENERIC_ERROR_MESSAGE",
    "RewardClaimGuard",
    "RiskAssessment",
]
