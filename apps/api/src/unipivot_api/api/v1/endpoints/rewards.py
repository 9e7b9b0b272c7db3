"""Survey reward claim intake."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from unipivot_api.api.dependencies.session import get_client_ip, require_member_session
from unipivot_api.db.session import get_session
from unipivot_api.models.reward_claim import RewardClaim
from unipivot_api.models.user import User
from unipivot_api.services.rewards import (
    ClaimRejected,
    ClaimStoreUnavailableError,
    ClaimSubmission,
    InvalidClaimSubmissionError,
    RewardClaimGuard,
    SurveyNotClaimableError,
    SurveyNotFoundError,
)

router = APIRouter(prefix="/surveys", tags=["Rewards"])

CLAIM_FAILED_MESSAGE = "Something went wrong while submitting your reward claim."


class RewardClaimRequest(BaseModel):
    realName: Optional[str] = None
    phoneNumber: Optional[str] = None
    bankCode: Optional[str] = None
    bankName: Optional[str] = None
    accountNumber: Optional[str] = None


class RewardClaimResponse(BaseModel):
    success: bool
    message: str
    claimId: UUID
    amount: int


class RewardClaimSummary(BaseModel):
    id: UUID
    status: str
    amount: int
    bankName: str
    accountNumber: str
    realName: str
    createdAt: datetime
    paidAt: Optional[datetime]


class RewardClaimStatusResponse(BaseModel):
    hasClaim: bool
    claim: Optional[RewardClaimSummary] = None


def mask_account_number(value: str) -> str:
    return f"{value[:4]}****{value[-4:]}"


async def get_reward_claim_guard(db: AsyncSession = Depends(get_session)) -> RewardClaimGuard:
    return RewardClaimGuard(db)


@router.post(
    "/{survey_id}/claim",
    response_model=RewardClaimResponse,
    status_code=status.HTTP_200_OK,
)
async def submit_reward_claim(
    survey_id: UUID,
    payload: RewardClaimRequest,
    request: Request,
    current_user: User = Depends(require_member_session),
    guard: RewardClaimGuard = Depends(get_reward_claim_guard),
) -> RewardClaimResponse:
    """Submit a reward claim. Flagging is never visible to the claimant."""

    submission = ClaimSubmission(
        survey_id=survey_id,
        user_id=current_user.id,
        real_name=payload.realName or "",
        phone_number=payload.phoneNumber or "",
        bank_code=payload.bankCode or "",
        bank_name=payload.bankName or "",
        account_number=payload.accountNumber or "",
        ip_address=get_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    try:
        decision = await guard.evaluate_claim(submission)
    except InvalidClaimSubmissionError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please fill in all required fields.",
        ) from exc
    except SurveyNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Survey not found") from exc
    except SurveyNotClaimableError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Rewards for this survey cannot be claimed yet.",
        ) from exc
    except ClaimStoreUnavailableError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=CLAIM_FAILED_MESSAGE,
        ) from exc

    if isinstance(decision, ClaimRejected):
        raise HTTPException(status_code=decision.http_status, detail=decision.message)

    return RewardClaimResponse(
        success=True,
        message=decision.message,
        claimId=decision.claim_id,
        amount=decision.amount,
    )


@router.get(
    "/{survey_id}/claim",
    response_model=RewardClaimStatusResponse,
)
async def get_my_reward_claim(
    survey_id: UUID,
    current_user: User = Depends(require_member_session),
    db: AsyncSession = Depends(get_session),
) -> RewardClaimStatusResponse:
    stmt = select(RewardClaim).where(
        RewardClaim.survey_id == survey_id,
        RewardClaim.user_id == current_user.id,
    )
    claim = (await db.execute(stmt)).scalar_one_or_none()
    if claim is None:
        return RewardClaimStatusResponse(hasClaim=False)

    return RewardClaimStatusResponse(
        hasClaim=True,
        claim=RewardClaimSummary(
            id=claim.id,
            status=claim.status.value,
            amount=claim.amount,
            bankName=claim.bank_name,
            accountNumber=mask_account_number(claim.account_number),
            realName=claim.real_name,
            createdAt=claim.created_at,
            paidAt=claim.paid_at,
        ),
    )
