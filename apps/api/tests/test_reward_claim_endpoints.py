from __future__ import annotations

from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select

from unipivot_api.api.v1.endpoints.rewards import get_reward_claim_guard, mask_account_number
from unipivot_api.models.reward_claim import LabSurvey, LabSurveyStatusEnum, RewardClaim
from unipivot_api.models.user import User
from unipivot_api.services.rewards import ClaimStoreUnavailableError


CLAIM_BODY = {
    "realName": "Kim",
    "phoneNumber": "010-1111-2222",
    "bankCode": "088",
    "bankName": "Shinhan",
    "accountNumber": "110-222-3333",
}


async def _seed(session_factory, *, users: int = 1, status=LabSurveyStatusEnum.COMPLETED):
    async with session_factory() as session:
        survey = LabSurvey(title="Dormitory Survey", status=status, reward_amount=5000)
        members = [User(email=f"claimant-{index}@example.com") for index in range(users)]
        session.add(survey)
        session.add_all(members)
        await session.commit()
        return survey.id, [member.id for member in members]


def _client(app) -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


@pytest.mark.asyncio
async def test_claim_flow_over_http(app_with_db) -> None:
    app, session_factory = app_with_db
    survey_id, (user_a, user_b) = await _seed(session_factory, users=2)

    async with _client(app) as client:
        accepted = await client.post(
            f"/api/v1/surveys/{survey_id}/claim",
            json=CLAIM_BODY,
            headers={"X-Session-User": str(user_a), "X-Forwarded-For": "198.51.100.7, 10.0.0.1"},
        )
        colluder = await client.post(
            f"/api/v1/surveys/{survey_id}/claim",
            json={**CLAIM_BODY, "phoneNumber": "01099990000", "accountNumber": "1102223333"},
            headers={"X-Session-User": str(user_b), "X-Real-IP": "198.51.100.8"},
        )
        retry = await client.post(
            f"/api/v1/surveys/{survey_id}/claim",
            json=CLAIM_BODY,
            headers={"X-Session-User": str(user_a), "X-Forwarded-For": "198.51.100.7"},
        )

    assert accepted.status_code == 200
    body = accepted.json()
    assert body["success"] is True
    assert body["amount"] == 5000
    assert "flagged" not in body
    assert "riskScore" not in body

    assert colluder.status_code == 409
    assert colluder.json() == {"detail": "We could not process your request. Please contact support."}

    assert retry.status_code == 409
    assert retry.json() == {"detail": "You have already participated in this survey."}

    async with session_factory() as session:
        claims = (await session.execute(select(RewardClaim))).scalars().all()
    assert len(claims) == 1
    assert claims[0].ip_address == "198.51.100.7"
    assert claims[0].account_number == "1102223333"


@pytest.mark.asyncio
async def test_ip_rate_limit_returns_429(app_with_db) -> None:
    app, session_factory = app_with_db
    survey_id, users = await _seed(session_factory, users=3)

    async with _client(app) as client:
        responses = []
        for index, user_id in enumerate(users):
            responses.append(
                await client.post(
                    f"/api/v1/surveys/{survey_id}/claim",
                    json={**CLAIM_BODY, "phoneNumber": f"0102000000{index}", "accountNumber": f"700000{index}"},
                    headers={"X-Session-User": str(user_id), "X-Forwarded-For": "203.0.113.99"},
                )
            )

    assert [response.status_code for response in responses] == [200, 200, 429]
    assert responses[2].json()["detail"] == "We could not process your request. Please contact support."


@pytest.mark.asyncio
async def test_claim_requires_session(app_with_db) -> None:
    app, session_factory = app_with_db
    survey_id, _ = await _seed(session_factory)

    async with _client(app) as client:
        anonymous = await client.post(f"/api/v1/surveys/{survey_id}/claim", json=CLAIM_BODY)
        unknown = await client.post(
            f"/api/v1/surveys/{survey_id}/claim",
            json=CLAIM_BODY,
            headers={"X-Session-User": str(uuid4())},
        )
        malformed = await client.post(
            f"/api/v1/surveys/{survey_id}/claim",
            json=CLAIM_BODY,
            headers={"X-Session-User": "not-a-uuid"},
        )

    assert anonymous.status_code == 401
    assert unknown.status_code == 401
    assert malformed.status_code == 400


@pytest.mark.asyncio
async def test_claim_validation_and_survey_errors(app_with_db) -> None:
    app, session_factory = app_with_db
    survey_id, (user_id,) = await _seed(session_factory)
    running_id, _ = await _seed(session_factory, users=0, status=LabSurveyStatusEnum.IN_PROGRESS)
    headers = {"X-Session-User": str(user_id)}

    async with _client(app) as client:
        incomplete = await client.post(
            f"/api/v1/surveys/{survey_id}/claim",
            json={**CLAIM_BODY, "bankName": ""},
            headers=headers,
        )
        missing = await client.post(f"/api/v1/surveys/{uuid4()}/claim", json=CLAIM_BODY, headers=headers)
        running = await client.post(f"/api/v1/surveys/{running_id}/claim", json=CLAIM_BODY, headers=headers)

    assert incomplete.status_code == 400
    assert incomplete.json()["detail"] == "Please fill in all required fields."
    assert missing.status_code == 404
    assert running.status_code == 400


class _UnavailableGuard:
    async def evaluate_claim(self, submission, *, deadline=None):
        raise ClaimStoreUnavailableError("ip rate gate")


@pytest.mark.asyncio
async def test_store_outage_returns_generic_500(app_with_db) -> None:
    app, session_factory = app_with_db
    survey_id, (user_id,) = await _seed(session_factory)
    app.dependency_overrides[get_reward_claim_guard] = lambda: _UnavailableGuard()

    async with _client(app) as client:
        response = await client.post(
            f"/api/v1/surveys/{survey_id}/claim",
            json=CLAIM_BODY,
            headers={"X-Session-User": str(user_id)},
        )

    assert response.status_code == 500
    assert response.json() == {"detail": "Something went wrong while submitting your reward claim."}


@pytest.mark.asyncio
async def test_get_claim_masks_account_number(app_with_db) -> None:
    app, session_factory = app_with_db
    survey_id, (user_id,) = await _seed(session_factory)
    headers = {"X-Session-User": str(user_id)}

    async with _client(app) as client:
        before = await client.get(f"/api/v1/surveys/{survey_id}/claim", headers=headers)
        await client.post(f"/api/v1/surveys/{survey_id}/claim", json=CLAIM_BODY, headers=headers)
        after = await client.get(f"/api/v1/surveys/{survey_id}/claim", headers=headers)

    assert before.status_code == 200
    assert before.json() == {"hasClaim": False, "claim": None}

    payload = after.json()
    assert payload["hasClaim"] is True
    assert payload["claim"]["accountNumber"] == "1102****3333"
    assert payload["claim"]["status"] == "pending_approval"
    assert payload["claim"]["amount"] == 5000
    assert payload["claim"]["paidAt"] is None


def test_mask_account_number_keeps_edges() -> None:
    assert mask_account_number("1102223333") == "1102****3333"
    assert mask_account_number("12345678") == "1234****5678"
