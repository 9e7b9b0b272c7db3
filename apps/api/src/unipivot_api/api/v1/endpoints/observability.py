from __future__ import annotations

from typing import Dict

from fastapi import APIRouter
from pydantic import BaseModel

from unipivot_api.observability.fraud import get_fraud_store

router = APIRouter(prefix="/observability", tags=["Observability"])


class FraudSnapshotResponse(BaseModel):
    matches: Dict[str, Dict[str, int]]
    claims: Dict[str, int]
    rejections: Dict[str, int]
    signals: Dict[str, int]


@router.get("/fraud", response_model=FraudSnapshotResponse)
async def get_fraud_snapshot() -> FraudSnapshotResponse:
    return FraudSnapshotResponse(**get_fraud_store().snapshot().as_dict())
