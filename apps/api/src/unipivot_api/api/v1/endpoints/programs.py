"""Program application intake and applicant alert review."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException, status
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from unipivot_api.db.session import get_session
from unipivot_api.models.program import Program
from unipivot_api.services.applications import (
    ApplicantRestrictedError,
    ApplicationIntakeService,
    ApplicationsClosedError,
    ApplicationSubmission,
    DuplicateApplicationError,
    ProgramNotFoundError,
)
from unipivot_api.services.identity import MemberMatcher

router = APIRouter(prefix="/programs", tags=["Programs"])

RESTRICTED_MESSAGE = "Your application could not be accepted. Please contact us for details."


class ApplicationCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=3)
    phone: str = Field(min_length=1)
    birthYear: Optional[int] = Field(default=None, ge=1900, le=2100)
    hometown: Optional[str] = None
    motivation: Optional[str] = None


class ApplicationCreateResponse(BaseModel):
    success: bool
    applicationId: UUID
    status: str


class ApplicationAlertResponse(BaseModel):
    applicationId: UUID
    applicantName: str
    alertLevel: str
    matchType: Optional[str]
    alertMessage: Optional[str]
    memberCode: Optional[str]


class ProgramAlertReportResponse(BaseModel):
    totalApplications: int
    blockedCount: int
    warningCount: int
    watchCount: int
    alerts: list[ApplicationAlertResponse]


async def get_intake_service(db: AsyncSession = Depends(get_session)) -> ApplicationIntakeService:
    return ApplicationIntakeService(db)


@router.post(
    "/{program_id}/applications",
    response_model=ApplicationCreateResponse,
    status_code=status.HTTP_201_CREATED,
)
async def submit_application(
    program_id: UUID,
    payload: ApplicationCreateRequest,
    session_user: str | None = Header(None, alias="X-Session-User"),
    service: ApplicationIntakeService = Depends(get_intake_service),
) -> ApplicationCreateResponse:
    user_id: UUID | None = None
    if session_user:
        try:
            user_id = UUID(session_user)
        except ValueError as error:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Invalid session user identifier",
            ) from error

    try:
        outcome = await service.submit(
            ApplicationSubmission(
                program_id=program_id,
                name=payload.name,
                email=payload.email,
                phone=payload.phone,
                birth_year=payload.birthYear,
                hometown=payload.hometown,
                motivation=payload.motivation,
                user_id=user_id,
            )
        )
    except ProgramNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Program not found") from exc
    except ApplicationsClosedError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Applications are closed") from exc
    except ApplicantRestrictedError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=RESTRICTED_MESSAGE) from exc
    except DuplicateApplicationError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="You have already applied") from exc

    return ApplicationCreateResponse(
        success=True,
        applicationId=outcome.application.id,
        status=outcome.application.status.value,
    )


@router.get("/{program_id}/alerts", response_model=ProgramAlertReportResponse)
async def get_program_alerts(
    program_id: UUID,
    db: AsyncSession = Depends(get_session),
) -> ProgramAlertReportResponse:
    """Re-check every applicant of a program against the member registry."""

    if await db.get(Program, program_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Program not found")

    report = await MemberMatcher(db).scan_program_applications(program_id)
    return ProgramAlertReportResponse(
        totalApplications=report.total_applications,
        blockedCount=report.blocked_count,
        warningCount=report.warning_count,
        watchCount=report.watch_count,
        alerts=[
            ApplicationAlertResponse(
                applicationId=alert.application_id,
                applicantName=alert.applicant_name,
                alertLevel=alert.result.alert_level.value,
                matchType=alert.result.match_type.value if alert.result.match_type else None,
                alertMessage=alert.result.alert_message,
                memberCode=alert.result.member.member_code if alert.result.member else None,
            )
            for alert in report.alerts
        ],
    )
