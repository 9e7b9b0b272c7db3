from __future__ import annotations

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest
from httpx import ASGITransport, AsyncClient

from unipivot_api.core.logging import JsonLogSink, redact
from unipivot_api.observability.fraud import FraudObservabilityStore, get_fraud_store
from unipivot_api.observability.tracing import _parse_headers
from unipivot_api.services.rewards import RewardGuardPolicy


def test_fraud_store_counts_decisions() -> None:
    store = FraudObservabilityStore()
    store.record_match("email", "BLOCKED")
    store.record_match(None, "NONE")
    store.record_rejection("ip_rate_limited")
    store.record_rejection("already_claimed")
    store.record_acceptance(flagged=True, signals=["account_reuse", "phone_reuse"])
    store.record_acceptance(flagged=False, signals=[])

    snapshot = store.snapshot().as_dict()

    assert snapshot["matches"] == {
        "by_type": {"email": 1, "none": 1},
        "by_alert_level": {"BLOCKED": 1, "NONE": 1},
    }
    assert snapshot["claims"] == {"rejected": 2, "accepted": 2, "flagged": 1}
    assert snapshot["rejections"] == {"ip_rate_limited": 1, "already_claimed": 1}
    assert snapshot["signals"] == {"account_reuse": 1, "phone_reuse": 1}

    store.reset()
    assert store.snapshot().claims == {}


def test_parse_otlp_headers() -> None:
    assert _parse_headers(None) is None
    assert _parse_headers("authorization=Bearer abc, x-team = fraud,broken") == {
        "authorization": "Bearer abc",
        "x-team": "fraud",
    }


def test_policy_reads_settings_defaults() -> None:
    policy = RewardGuardPolicy.from_settings()

    assert policy.ip_limit == 2
    assert policy.ip_window.total_seconds() == 24 * 3600
    assert policy.velocity_threshold == 5
    assert policy.velocity_window.total_seconds() == 3600
    assert (policy.account_reuse_weight, policy.phone_reuse_weight, policy.ip_velocity_weight) == (40, 30, 30)
    assert policy.flag_threshold == 30


@pytest.mark.asyncio
async def test_fraud_snapshot_endpoint(app_with_db) -> None:
    app, _ = app_with_db
    store = get_fraud_store()
    store.record_rejection("financial_identity_reused")

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.get("/api/v1/observability/fraud")

    assert response.status_code == 200
    payload = response.json()
    assert payload["rejections"] == {"financial_identity_reused": 1}
    assert payload["claims"] == {"rejected": 1}


@pytest.mark.asyncio
async def test_health_endpoints(app_with_db) -> None:
    app, _ = app_with_db

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        liveness = await client.get("/healthz")
        readiness = await client.get("/api/v1/readyz")

    assert liveness.status_code == 200
    assert liveness.json()["status"] == "ok"
    assert readiness.json() == {"status": "ready", "database": "ok"}


def test_log_payload_redacts_claimant_identifiers() -> None:
    sink = JsonLogSink(service_name="unipivot-api", environment="test", version="0.1.0")
    record = {
        "time": datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc),
        "level": SimpleNamespace(name="WARNING"),
        "message": "Reward claim flagged for review",
        "name": "unipivot_api.services.rewards.guard",
        "extra": {"claim_id": "c-1", "account_number": "1102223333", "phone_number": "0101"},
        "exception": None,
    }

    payload = sink.render(record)

    assert payload["level"] == "warning"
    assert payload["service"] == "unipivot-api"
    assert payload["claim_id"] == "c-1"
    assert payload["account_number"] == "***3333"
    assert payload["phone_number"] == "***"
    assert "trace_id" not in payload
    assert redact({"survey_id": "s-1"}) == {"survey_id": "s-1"}
