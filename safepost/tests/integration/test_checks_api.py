from __future__ import annotations

import json

import pytest
from httpx import ASGITransport, AsyncClient

from safepost.apps.api.deps import get_provider
from safepost.apps.api.main import create_app
from safepost.core.config import get_settings
from safepost.providers.llm.fake import FakeLLMProvider
from safepost.tests.utils.db import seed_corpus
from safepost.tests.utils.fakes import (
    GUARANTEE_CONTENT,
    GUARANTEE_RULE,
    TESTIMONIAL_RULE,
    issue,
    scenario_responder,
    verdict,
)


def _headers(user_id: str = "u1", plan: str | None = "free") -> dict[str, str]:
    headers = {"X-User-Id": user_id}
    if plan is not None:
        headers["X-Plan"] = plan
    return headers


def _client(provider: FakeLLMProvider) -> AsyncClient:
    app = create_app()
    app.dependency_overrides[get_provider] = lambda: provider
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def _check_body(content: str = GUARANTEE_CONTENT) -> dict:
    return {"content": content, "content_type": "social_media_post", "platform": "instagram"}


@pytest.fixture(autouse=True)
def fast_retries(monkeypatch) -> None:
    monkeypatch.setenv("ENGINE_RETRY_BACKOFF_MS", "0")
    get_settings.cache_clear()


async def test_health_is_enveloped() -> None:
    async with _client(FakeLLMProvider()) as client:
        response = await client.get("/v1/health", headers={"X-Request-Id": "req-123"})
    assert response.status_code == 200
    body = response.json()
    assert body["data"]["status"] == "ok"
    assert body["meta"] == {"request_id": "req-123", "api_version": "v1"}
    assert response.headers["X-Request-Id"] == "req-123"


async def test_missing_user_header_is_unauthorized() -> None:
    async with _client(FakeLLMProvider()) as client:
        response = await client.post("/v1/checks", json=_check_body())
    assert response.status_code == 401
    assert response.json()["error"]["code"] == "AUTH_UNAUTHORIZED"


async def test_guarantee_scenario_end_to_end() -> None:
    await seed_corpus()
    provider = FakeLLMProvider([scenario_responder()])
    async with _client(provider) as client:
        created = await client.post("/v1/checks", json=_check_body(), headers=_headers())
        assert created.status_code == 201
        check = created.json()["data"]
        assert check["overall_status"] == "non_compliant"
        assert check["display"]["critical_count"] == 1
        assert check["display"]["default_expanded_index"] == 0
        assert check["display"]["issues"][0]["guideline_reference"] == GUARANTEE_RULE.citation
        assert check["usage"] == {"checks_used": 1, "limit": 3, "remaining": 2, "at_limit": False}

        rewrites = await client.post(f"/v1/checks/{check['id']}/rewrites", headers=_headers())
        assert rewrites.status_code == 200
        options = rewrites.json()["data"]["options"]
        assert len(options) == 3
        assert all("guaranteed" not in option["content"].lower() for option in options)

        # Rewrites are not persisted on the saved check.
        fetched = await client.get(f"/v1/checks/{check['id']}", headers=_headers())
        assert fetched.status_code == 200
        assert "rewrites" not in fetched.json()["data"]["result"]


async def test_empty_corpus_maps_to_503() -> None:
    provider = FakeLLMProvider([scenario_responder()])
    async with _client(provider) as client:
        response = await client.post("/v1/checks", json=_check_body(), headers=_headers())
    assert response.status_code == 503
    error = response.json()["error"]
    assert error["code"] == "EMPTY_CORPUS"
    assert error["details"]["retryable"] is False
    assert provider.calls == []


async def test_checks_recover_once_corpus_is_seeded() -> None:
    provider = FakeLLMProvider([scenario_responder()])
    async with _client(provider) as client:
        before = await client.post("/v1/checks", json=_check_body(), headers=_headers())
        await seed_corpus()
        after = await client.post("/v1/checks", json=_check_body(), headers=_headers())
    assert before.status_code == 503
    assert after.status_code == 201


async def test_guidelines_refresh_swaps_snapshot() -> None:
    await seed_corpus([GUARANTEE_RULE])
    async with _client(FakeLLMProvider()) as client:
        first = await client.get("/v1/guidelines", headers=_headers())
        await seed_corpus([TESTIMONIAL_RULE])
        cached = await client.get("/v1/guidelines", headers=_headers())
        refreshed = await client.post("/v1/guidelines/refresh", headers=_headers())
    assert first.json()["data"]["count"] == 1
    assert cached.json()["data"]["count"] == 1
    assert refreshed.status_code == 200
    assert refreshed.json()["data"]["count"] == 2


async def test_engine_errors_map_to_gateway_statuses() -> None:
    await seed_corpus()
    contradictory = FakeLLMProvider([json.dumps(verdict("non_compliant", [issue("Warning")]))])
    async with _client(contradictory) as client:
        response = await client.post("/v1/checks", json=_check_body(), headers=_headers())
    assert response.status_code == 502
    assert response.json()["error"]["code"] == "CONTRACT_VIOLATION"

    unknown = FakeLLMProvider([json.dumps(verdict("requires_review", [issue("Info")]))])
    async with _client(unknown) as client:
        response = await client.post("/v1/checks", json=_check_body(), headers=_headers())
    assert response.status_code == 502
    assert response.json()["error"]["code"] == "UNKNOWN_SEVERITY"

    down = FakeLLMProvider([RuntimeError("reset")])
    async with _client(down) as client:
        response = await client.post("/v1/checks", json=_check_body(), headers=_headers())
    assert response.status_code == 503
    assert response.json()["error"]["details"]["retryable"] is True


async def test_invalid_content_is_422() -> None:
    await seed_corpus()
    async with _client(FakeLLMProvider()) as client:
        empty = await client.post("/v1/checks", json=_check_body("  "), headers=_headers())
        bad_type = await client.post(
            "/v1/checks",
            json={"content": "x", "content_type": "billboard"},
            headers=_headers(),
        )
    assert empty.status_code == 422
    assert empty.json()["error"]["code"] == "INVALID_INPUT"
    assert bad_type.status_code == 422


async def test_not_healthcare_content_is_out_of_scope() -> None:
    await seed_corpus()
    provider = FakeLLMProvider([json.dumps(verdict("not_healthcare", summary="This is a bakery ad."))])
    async with _client(provider) as client:
        response = await client.post("/v1/checks", json=_check_body("Fresh bread daily"), headers=_headers())
        history = await client.get("/v1/checks", headers=_headers())
    assert response.status_code == 422
    assert response.json()["error"]["code"] == "CONTENT_OUT_OF_SCOPE"
    assert history.json()["data"] == []


async def test_history_listing_ownership_notes_and_delete() -> None:
    await seed_corpus()
    async with _client(FakeLLMProvider([scenario_responder()])) as client:
        first = (await client.post("/v1/checks", json=_check_body("post one"), headers=_headers())).json()
        second = (await client.post("/v1/checks", json=_check_body("post two"), headers=_headers())).json()

        listed = await client.get("/v1/checks", headers=_headers())
        assert [item["id"] for item in listed.json()["data"]] == [second["data"]["id"], first["data"]["id"]]
        limited = await client.get("/v1/checks", params={"limit": 1}, headers=_headers())
        assert len(limited.json()["data"]) == 1

        check_id = first["data"]["id"]
        foreign = await client.get(f"/v1/checks/{check_id}", headers=_headers(user_id="u2"))
        assert foreign.status_code == 404

        patched = await client.patch(
            f"/v1/checks/{check_id}", json={"notes": "Sent to marketing"}, headers=_headers()
        )
        assert patched.status_code == 200
        assert patched.json()["data"]["notes"] == "Sent to marketing"
        rejected = await client.patch(
            f"/v1/checks/{check_id}", json={"overall_status": "compliant"}, headers=_headers()
        )
        assert rejected.status_code == 422

        deleted = await client.delete(f"/v1/checks/{check_id}", headers=_headers())
        again = await client.delete(f"/v1/checks/{check_id}", headers=_headers())
        assert deleted.status_code == 204
        assert again.status_code == 204
        missing = await client.get(f"/v1/checks/{check_id}", headers=_headers())
        assert missing.status_code == 404


async def test_monthly_limit_returns_402() -> None:
    await seed_corpus()
    async with _client(FakeLLMProvider([scenario_responder()])) as client:
        for _ in range(3):
            ok = await client.post("/v1/checks", json=_check_body(), headers=_headers(plan="free"))
            assert ok.status_code == 201
        blocked = await client.post("/v1/checks", json=_check_body(), headers=_headers(plan="free"))
        me = await client.get("/v1/entitlements/me", headers=_headers(plan="free"))
    assert blocked.status_code == 402
    assert blocked.json()["error"]["code"] == "CHECK_LIMIT_REACHED"
    assert me.json()["data"]["usage"]["at_limit"] is True


async def test_entitlements_me_defaults_unknown_plan_to_lowest_tier() -> None:
    async with _client(FakeLLMProvider()) as client:
        response = await client.get("/v1/entitlements/me", headers=_headers(plan=""))
    entitlement = response.json()["data"]["entitlement"]
    assert entitlement["plan_key"] == "free"
    assert entitlement["capabilities"]["pdf_export"] is False
    assert entitlement["display_name"] == "SafePost Starter"


async def test_unknown_plan_header_is_logged(caplog) -> None:
    caplog.set_level("WARNING", logger="safepost.services.entitlements")
    async with _client(FakeLLMProvider()) as client:
        response = await client.get("/v1/entitlements/me", headers=_headers(plan="platinum"))
    assert response.json()["data"]["entitlement"]["plan_key"] == "free"
    assert "entitlement_unknown_plan plan_key=platinum" in caplog.text


async def test_export_and_bulk_are_gated_server_side() -> None:
    await seed_corpus()
    async with _client(FakeLLMProvider([scenario_responder()])) as client:
        created = await client.post("/v1/checks", json=_check_body(), headers=_headers(plan="proplus"))
        check_id = created.json()["data"]["id"]

        denied = await client.post(f"/v1/checks/{check_id}/export", headers=_headers(plan="proplus"))
        assert denied.status_code == 403
        assert denied.json()["error"]["details"]["feature"] == "pdf_export"

        allowed = await client.post(f"/v1/checks/{check_id}/export", headers=_headers(plan="ultra"))
        assert allowed.status_code == 200
        assert allowed.json()["data"]["check"]["id"] == check_id

        bulk_body = {"items": [_check_body("one"), _check_body(" ")]}
        bulk_denied = await client.post("/v1/checks/bulk", json=bulk_body, headers=_headers(plan="proplus"))
        assert bulk_denied.status_code == 403
        bulk = await client.post("/v1/checks/bulk", json=bulk_body, headers=_headers(plan="ultra"))
    assert bulk.status_code == 200
    data = bulk.json()["data"]
    assert (data["total"], data["succeeded"], data["failed"]) == (2, 1, 1)
    assert data["items"][1]["error"]["code"] == "INVALID_INPUT"


async def test_stateless_rewrites() -> None:
    async with _client(FakeLLMProvider([scenario_responder()])) as client:
        nothing = await client.post(
            "/v1/rewrites", json={"content": GUARANTEE_CONTENT, "issues": []}, headers=_headers()
        )
        bad = await client.post(
            "/v1/rewrites",
            json={"content": GUARANTEE_CONTENT, "issues": [issue("info")]},
            headers=_headers(),
        )
        ok = await client.post(
            "/v1/rewrites",
            json={"content": GUARANTEE_CONTENT, "issues": [issue("Critical")]},
            headers=_headers(),
        )
    assert nothing.status_code == 422
    assert nothing.json()["error"]["code"] == "NOTHING_TO_REWRITE"
    assert bad.status_code == 422
    assert bad.json()["error"]["code"] == "INVALID_INPUT"
    assert ok.status_code == 200
    assert ok.json()["data"]["count"] == 3


async def test_guidelines_and_ops_metrics() -> None:
    await seed_corpus()
    async with _client(FakeLLMProvider([scenario_responder()])) as client:
        guidelines = await client.get("/v1/guidelines", headers=_headers())
        await client.post("/v1/checks", json=_check_body(), headers=_headers())
        metrics = await client.get("/v1/ops/metrics", headers=_headers())
    assert guidelines.json()["data"]["count"] == 2
    assert [item["category"] for item in guidelines.json()["data"]["items"]] == sorted(
        item["category"] for item in guidelines.json()["data"]["items"]
    )
    data = metrics.json()["data"]
    assert data["counters"]["checks_completed_total"] == 1
    assert data["external_calls"]["compliance_engine"]["calls"] == 1
