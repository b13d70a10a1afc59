from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from vokalconnect.apps.api.main import create_app
from vokalconnect.tests.utils.auth import create_test_user
from vokalconnect.tests.utils.fixtures import create_test_business


def _highlight_texts(scorecards: list[dict], category: str) -> list[tuple[str, bool]]:
    for scorecard in scorecards:
        if scorecard["category"] == category:
            return [(item["text"], item["aiGenerated"]) for item in scorecard["highlights"]["items"]]
    raise AssertionError(f"no {category} scorecard")


@pytest.mark.asyncio
async def test_leadsie_url_owner_only_writes() -> None:
    owner_id, owner_headers = await create_test_user(role="ADMIN")
    business_id, code = await create_test_business(admin_id=owner_id)
    _member_id, member_headers = await create_test_user(role="ADMIN")
    _client_id, client_headers = await create_test_user()

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        await client.post("/api/admin/grant-all-access", headers=owner_headers)
        await client.post("/api/verify-access-code", json={"code": code}, headers=client_headers)
        member_write = await client.post(
            f"/api/business/{business_id}/leadsie-url", json={"url": "https://leadsie.test/x"}, headers=member_headers
        )
        owner_write = await client.post(
            f"/api/business/{business_id}/leadsie-url", json={"url": "https://leadsie.test/acme"}, headers=owner_headers
        )
        client_read = await client.get(f"/api/business/{business_id}/leadsie-url", headers=client_headers)

    assert member_write.status_code == 403
    assert member_write.json()["error"] == "Not authorized"
    assert owner_write.status_code == 200
    assert client_read.json() == {"url": "https://leadsie.test/acme"}


@pytest.mark.asyncio
async def test_preload_keeps_manual_highlights_and_replaces_generated() -> None:
    owner_id, headers = await create_test_user(role="ADMIN")
    business_id, _code = await create_test_business(admin_id=owner_id)

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        first = await client.post(f"/api/business/{business_id}/scorecards/preload", headers=headers)
        manual = await client.post(
            f"/api/business/{business_id}/scorecards/Conversion/highlights",
            json={"text": "Checkout drops on Safari", "serviceArea": "Website"},
            headers=headers,
        )
        second = await client.post(f"/api/business/{business_id}/scorecards/preload", headers=headers)

    assert first.status_code == 200
    assert manual.status_code == 201
    generated_once = _highlight_texts(first.json()["scorecards"], "Conversion")
    assert len(generated_once) == 3
    after = _highlight_texts(second.json()["scorecards"], "Conversion")
    assert after[0] == ("Checkout drops on Safari", False)
    assert after[1:] == generated_once
    scores = {item["category"]: item["score"] for item in second.json()["scorecards"]}
    assert scores == {"Foundation": 75, "Acquisition": 82, "Conversion": 65, "Retention": 70}


@pytest.mark.asyncio
async def test_brain_aggregates_business_snapshot() -> None:
    owner_id, headers = await create_test_user(role="ADMIN")
    business_id, _code = await create_test_business(admin_id=owner_id)
    _other_id, other_headers = await create_test_user(role="ADMIN")

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        await client.put(
            f"/api/businesses/{business_id}/metrics",
            json={"metrics": [{"name": "Monthly revenue", "type": "NUMBER", "value": "42000", "target": "50000"}]},
            headers=headers,
        )
        await client.post(f"/api/business/{business_id}/scorecards/initialize", headers=headers)
        await client.post(
            "/api/opportunities",
            json={"businessId": business_id, "title": "Bundle pricing", "category": "EBITDA"},
            headers=headers,
        )
        question = await client.post(
            "/api/intake-questions",
            json={"businessId": business_id, "question": "Who is your ideal customer?", "area": "Strategy"},
            headers=headers,
        )
        brain = await client.get(f"/api/business/{business_id}/brain", headers=headers)
        outsider = await client.get(f"/api/business/{business_id}/brain", headers=other_headers)

    assert question.status_code == 201
    assert brain.status_code == 200
    body = brain.json()
    assert body["business"]["name"] == "Acme Coffee"
    assert body["publishedTypes"] == {"scorecard": False, "opportunities": False, "assessments": False}
    assert body["metrics"][0]["name"] == "Monthly revenue"
    assert body["metrics"][0]["value"] == "42000"
    assert sorted(item["category"] for item in body["scorecards"]) == [
        "Acquisition",
        "Conversion",
        "Foundation",
        "Retention",
    ]
    assert [item["title"] for item in body["opportunities"]] == ["Bundle pricing"]
    assert body["intake"] == [
        {"area": "Strategy", "question": "Who is your ideal customer?", "answers": []}
    ]
    assert outsider.status_code == 403
