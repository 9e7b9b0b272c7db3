from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from unipivot_api.db.session import get_session
from unipivot_api.services.identity import ApplicantAttributes, MemberMatcher

router = APIRouter(prefix="/members", tags=["Members"])


class MemberMatchRequest(BaseModel):
    name: str = Field(min_length=1)
    email: Optional[str] = None
    phone: Optional[str] = None
    birthYear: Optional[int] = Field(default=None, ge=1900, le=2100)
    hometown: Optional[str] = None


class MemberMatchResponse(BaseModel):
    matched: bool
    matchType: Optional[str]
    alertLevel: str
    alertMessage: Optional[str]
    memberGrade: Optional[str]


@router.post("/match", response_model=MemberMatchResponse)
async def check_member_status(
    payload: MemberMatchRequest,
    db: AsyncSession = Depends(get_session),
) -> MemberMatchResponse:
    """Look up an applicant's standing before they apply."""

    result = await MemberMatcher(db).match(
        ApplicantAttributes(
            name=payload.name.strip(),
            email=payload.email,
            phone=payload.phone,
            birth_year=payload.birthYear,
            hometown=payload.hometown,
        )
    )
    return MemberMatchResponse(
        matched=result.matched,
        matchType=result.match_type.value if result.match_type else None,
        alertLevel=result.alert_level.value,
        alertMessage=result.alert_message,
        memberGrade=result.member.grade.value if result.member else None,
    )
