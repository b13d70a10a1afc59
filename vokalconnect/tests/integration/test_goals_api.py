from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

from vokalconnect.apps.api.main import create_app
from vokalconnect.domain.models import Goal
from vokalconnect.persistence.db import SessionLocal
from vokalconnect.tests.utils.auth import create_test_user
from vokalconnect.tests.utils.fixtures import create_test_business


@pytest.mark.asyncio
async def test_goals_and_kpis_require_business_id_and_access() -> None:
    owner_id, _owner_headers = await create_test_user(role="ADMIN")
    business_id, _code = await create_test_business(admin_id=owner_id)
    _other_id, other_headers = await create_test_user(role="ADMIN")

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        anonymous = await client.get(f"/api/admin/goals?businessId={business_id}")
        missing = await client.get("/api/admin/kpis", headers=other_headers)
        forbidden_goals = await client.get(f"/api/admin/goals?businessId={business_id}", headers=other_headers)
        forbidden_kpis = await client.get(f"/api/admin/kpis?businessId={business_id}", headers=other_headers)
        unknown = await client.get("/api/admin/goals?businessId=nope", headers=other_headers)

    assert anonymous.status_code == 401
    assert missing.status_code == 400
    assert missing.json()["error"] == "Business ID is required"
    assert forbidden_goals.status_code == 403
    assert forbidden_goals.json()["error"] == "You do not have access to this business"
    assert forbidden_kpis.status_code == 403
    assert unknown.status_code == 403


@pytest.mark.asyncio
async def test_goals_listed_newest_first_and_members_see_them() -> None:
    owner_id, owner_headers = await create_test_user(role="ADMIN")
    business_id, _code = await create_test_business(admin_id=owner_id)
    _member_id, member_headers = await create_test_user(role="ADMIN")
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    async with SessionLocal() as session:
        for offset, name in enumerate(("Launch loyalty", "Double wholesale", "Open second store")):
            session.add(Goal(business_id=business_id, name=name, created_at=base + timedelta(days=offset)))
        await session.commit()

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        owner_view = await client.get(f"/api/admin/goals?businessId={business_id}", headers=owner_headers)
        granted = await client.post("/api/admin/grant-all-access", headers=owner_headers)
        member_view = await client.get(f"/api/admin/goals?businessId={business_id}", headers=member_headers)

    assert owner_view.status_code == 200
    assert [item["name"] for item in owner_view.json()["items"]] == [
        "Open second store",
        "Double wholesale",
        "Launch loyalty",
    ]
    assert granted.status_code == 200
    assert member_view.json() == owner_view.json()


@pytest.mark.asyncio
async def test_goal_and_kpi_crud() -> None:
    owner_id, headers = await create_test_user(role="ADMIN")
    business_id, _code = await create_test_business(admin_id=owner_id)

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        goal = await client.post(
            "/api/admin/goals",
            json={"businessId": business_id, "name": "Grow repeat orders", "targetDate": "2025-06-30T00:00:00Z"},
            headers=headers,
        )
        bad_status = await client.post(
            "/api/admin/goals",
            json={"businessId": business_id, "name": "Other", "status": "someday"},
            headers=headers,
        )
        goal_id = goal.json()["goal"]["id"]
        updated = await client.patch(f"/api/admin/goals/{goal_id}", json={"status": "completed"}, headers=headers)
        for name, unit in (("Repeat rate", "%"), ("Average order value", "USD")):
            created = await client.post(
                "/api/admin/kpis",
                json={"businessId": business_id, "name": name, "target": "30", "unit": unit},
                headers=headers,
            )
            assert created.status_code == 201
        kpis = await client.get(f"/api/admin/kpis?businessId={business_id}", headers=headers)
        kpi_id = kpis.json()["items"][0]["id"]
        patched = await client.patch(f"/api/admin/kpis/{kpi_id}", json={"current": "42"}, headers=headers)
        deleted = await client.delete(f"/api/admin/goals/{goal_id}", headers=headers)
        missing = await client.delete(f"/api/admin/goals/{goal_id}", headers=headers)
        remaining = await client.get(f"/api/admin/goals?businessId={business_id}", headers=headers)

    assert goal.status_code == 201
    assert goal.json()["goal"]["status"] == "IN_PROGRESS"
    assert goal.json()["goal"]["targetDate"].startswith("2025-06-30")
    assert bad_status.status_code == 400
    assert updated.json()["goal"]["status"] == "COMPLETED"
    assert [item["name"] for item in kpis.json()["items"]] == ["Average order value", "Repeat rate"]
    assert patched.json()["kpi"]["current"] == "42"
    assert patched.json()["kpi"]["target"] == "30"
    assert deleted.status_code == 204
    assert missing.status_code == 404
    assert remaining.json() == {"items": []}
