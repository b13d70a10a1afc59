from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select

from vokalconnect.apps.api.main import create_app
from vokalconnect.domain.models import AuditEvent, BusinessMember
from vokalconnect.persistence.db import SessionLocal
from vokalconnect.tests.utils.auth import create_test_user
from vokalconnect.tests.utils.fixtures import create_test_business


async def _member_count() -> int:
    async with SessionLocal() as session:
        result = await session.execute(select(func.count()).select_from(BusinessMember))
        return int(result.scalar_one())


@pytest.mark.asyncio
async def test_grant_all_access_fills_missing_memberships() -> None:
    owner_id, owner_headers = await create_test_user(role="ADMIN")
    _other_admin_id, other_headers = await create_test_user(role="ADMIN")
    _client_id, client_headers = await create_test_user()
    business_id, _code = await create_test_business(admin_id=owner_id)

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        before = await client.get(f"/api/businesses/{business_id}", headers=other_headers)
        forbidden = await client.post("/api/admin/grant-all-access", headers=client_headers)
        first = await client.post("/api/admin/grant-all-access", headers=owner_headers)
        second = await client.post("/api/admin/grant-all-access", headers=owner_headers)
        after = await client.get(f"/api/businesses/{business_id}", headers=other_headers)

    assert before.status_code == 403
    assert forbidden.status_code == 403
    assert first.json() == {"success": True, "grantsCreated": 3}
    assert second.json() == {"success": True, "grantsCreated": 0}
    assert after.status_code == 200
    assert await _member_count() == 3

    async with SessionLocal() as session:
        result = await session.execute(
            select(AuditEvent)
            .where(AuditEvent.event_type == "admin.grant_all_access")
            .order_by(AuditEvent.id)
        )
        events = list(result.scalars().all())
    assert [event.metadata_json["grants_created"] for event in events] == [3, 0]


@pytest.mark.asyncio
async def test_reports_require_fields_and_support_delete() -> None:
    owner_id, headers = await create_test_user(role="ADMIN")
    business_id, _code = await create_test_business(admin_id=owner_id)
    base = f"/api/business/{business_id}/reports"

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        invalid = await client.post(base, json={"title": "Q3 audit"}, headers=headers)
        created = await client.post(
            base,
            json={
                "auditTypeId": "seo",
                "title": "Q3 SEO audit",
                "bucket": "acquisition",
                "score": 72,
                "findings": [{"text": "Thin content"}],
            },
            headers=headers,
        )
        other_bucket = await client.post(
            base,
            json={"auditTypeId": "ux", "title": "UX review", "bucket": "conversion"},
            headers=headers,
        )
        filtered = await client.get(f"{base}?bucket=acquisition", headers=headers)
        report_id = created.json()["report"]["id"]
        deleted = await client.delete(f"{base}/{report_id}", headers=headers)
        missing = await client.delete(f"{base}/{report_id}", headers=headers)
        anonymous = await client.delete(f"{base}/{report_id}")

    assert invalid.status_code == 400
    body = invalid.json()
    assert body["error"] == "Required fields missing"
    assert body["details"]["requiredFields"] == ["auditTypeId", "title", "bucket"]
    assert body["details"]["missingFields"] == ["auditTypeId", "bucket"]
    assert created.status_code == 201
    assert created.json()["report"]["createdById"] == owner_id
    assert other_bucket.status_code == 201
    assert [row["title"] for row in filtered.json()["reports"]] == ["Q3 SEO audit"]
    assert deleted.status_code == 204
    assert missing.status_code == 404
    assert anonymous.status_code == 401


@pytest.mark.asyncio
async def test_tool_configurations_are_per_admin() -> None:
    _first_id, first_headers = await create_test_user(role="ADMIN")
    _second_id, second_headers = await create_test_user(role="ADMIN")

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        saved = await client.put(
            "/api/admin/tool-configurations",
            json={"toolName": "Google Analytics", "config": {"propertyId": "123"}},
            headers=first_headers,
        )
        updated = await client.put(
            "/api/admin/tool-configurations",
            json={"toolName": "Google Analytics", "config": {"propertyId": "456"}},
            headers=first_headers,
        )
        mine = await client.get("/api/admin/tool-configurations", headers=first_headers)
        theirs = await client.get("/api/admin/tool-configurations", headers=second_headers)

    assert saved.status_code == 200
    assert updated.json()["configuration"]["config"] == {"propertyId": "456"}
    assert [row["config"] for row in mine.json()["configurations"]] == [{"propertyId": "456"}]
    assert theirs.json()["configurations"] == []
