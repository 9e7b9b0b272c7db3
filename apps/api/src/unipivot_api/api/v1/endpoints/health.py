from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from unipivot_api.db.session import get_session

router = APIRouter()


class ReadinessPayload(BaseModel):
    status: str
    database: str


@router.get("/healthz", summary="Service health check")
async def service_health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/readyz", summary="Service readiness", response_model=ReadinessPayload)
async def service_readiness(session: AsyncSession = Depends(get_session)) -> ReadinessPayload:
    try:
        await session.execute(text("SELECT 1"))
    except SQLAlchemyError as error:
        return ReadinessPayload(status="error", database=f"unreachable ({error.__class__.__name__})")
    return ReadinessPayload(status="ready", database="ok")
