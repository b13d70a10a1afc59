from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from vokalconnect.apps.api.main import create_app
from vokalconnect.tests.utils.auth import create_test_user
from vokalconnect.tests.utils.fixtures import create_test_business


async def _redeem(client: AsyncClient, code: str, headers: dict[str, str]) -> None:
    response = await client.post("/api/verify-access-code", json={"code": code}, headers=headers)
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_intake_questions_and_answers() -> None:
    owner_id, owner_headers = await create_test_user(role="ADMIN")
    business_id, code = await create_test_business(admin_id=owner_id)
    _client_id, client_headers = await create_test_user()

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        goals = await client.post(
            "/api/intake-questions",
            json={"businessId": business_id, "question": "Top goal this year?", "area": "Strategy", "order": 1},
            headers=owner_headers,
        )
        budget = await client.post(
            "/api/intake-questions",
            json={"businessId": business_id, "question": "Monthly budget", "type": "number", "order": 2},
            headers=owner_headers,
        )
        bad_type = await client.post(
            "/api/intake-questions",
            json={"businessId": business_id, "question": "Pick one", "type": "SLIDER"},
            headers=owner_headers,
        )
        assert goals.status_code == 201
        assert budget.json()["question"]["type"] == "NUMBER"
        assert bad_type.status_code == 400
        goals_id = goals.json()["question"]["id"]
        budget_id = budget.json()["question"]["id"]

        before_portal = await client.get(
            f"/api/portal/intake-questions?businessId={business_id}", headers=client_headers
        )
        assert before_portal.status_code == 401

        await _redeem(client, code, client_headers)
        saved = await client.post(
            "/api/portal/intake-answers",
            json={"businessId": business_id, "answers": {goals_id: "Double revenue", budget_id: 5000, "nope": "x"}},
            headers=client_headers,
        )
        assert saved.json() == {"success": True, "saved": 2}
        # Re-answering overwrites instead of adding rows.
        await client.post(
            "/api/portal/intake-answers",
            json={"businessId": business_id, "answers": {goals_id: "Triple revenue"}},
            headers=client_headers,
        )
        grouped = await client.get(
            f"/api/portal/intake-questions?businessId={business_id}", headers=client_headers
        )

        deleted = await client.delete(f"/api/intake-questions/{budget_id}", headers=owner_headers)
        missing = await client.delete(f"/api/intake-questions/{budget_id}", headers=owner_headers)

    questions = grouped.json()["questions"]
    assert list(questions) == ["Strategy", "Other"]
    assert questions["Strategy"][0]["savedAnswer"] == "Triple revenue"
    assert questions["Other"][0]["savedAnswer"] == "5000"
    assert deleted.status_code == 204
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_client_may_only_request_tools() -> None:
    owner_id, owner_headers = await create_test_user(role="ADMIN")
    business_id, code = await create_test_business(admin_id=owner_id)
    _client_id, client_headers = await create_test_user()

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        await _redeem(client, code, client_headers)
        tools = await client.get(f"/api/business/{business_id}/tools", headers=owner_headers)
        tool_id = tools.json()["tools"][0]["id"]

        requested = await client.patch(
            f"/api/tools/{tool_id}", json={"status": "requested", "isRequested": True}, headers=client_headers
        )
        granted = await client.patch(f"/api/tools/{tool_id}", json={"status": "GRANTED"}, headers=client_headers)
        invalid = await client.patch(f"/api/tools/{tool_id}", json={"status": "MAYBE"}, headers=owner_headers)
        by_owner = await client.patch(f"/api/tools/{tool_id}", json={"status": "DENIED"}, headers=owner_headers)
        unknown = await client.patch("/api/tools/missing", json={"status": "DENIED"}, headers=owner_headers)

    assert requested.status_code == 200
    assert requested.json()["tool"]["status"] == "REQUESTED"
    assert requested.json()["tool"]["isRequested"] is True
    assert granted.status_code == 403
    assert invalid.status_code == 400
    assert by_owner.json()["tool"]["status"] == "DENIED"
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_metrics_fall_back_to_industry_benchmarks() -> None:
    owner_id, headers = await create_test_user(role="ADMIN")
    business_id, _code = await create_test_business(admin_id=owner_id)

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        saved = await client.put(
            f"/api/businesses/{business_id}/metrics",
            json={"metrics": [{"name": "Churn Rate", "type": "TEXT", "value": "4%"}]},
            headers=headers,
        )
        listed = await client.get(f"/api/businesses/{business_id}/metrics", headers=headers)
        benchmarks = await client.get("/api/metrics/benchmarks?industry=Retail", headers=headers)

    assert saved.status_code == 200
    metrics = listed.json()["metrics"]
    assert metrics[0]["name"] == "Churn Rate"
    # create_test_business uses the Technology industry.
    assert metrics[0]["benchmark"] == "5%"
    assert benchmarks.json()["benchmarks"]["Churn Rate"] == "3%"
