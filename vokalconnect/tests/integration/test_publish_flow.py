from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from vokalconnect.apps.api.main import create_app
from vokalconnect.tests.utils.auth import create_test_user


@pytest.mark.asyncio
async def test_publish_scenario_end_to_end() -> None:
    _admin_id, admin_headers = await create_test_user(role="ADMIN")
    _client_id, client_headers = await create_test_user()

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        created = await client.post(
            "/api/businesses", json={"name": "Acme Coffee", "industry": "Retail"}, headers=admin_headers
        )
        assert created.status_code == 201
        business = created.json()["business"]
        business_id = business["id"]

        init = await client.post(f"/api/business/{business_id}/scorecards/initialize", headers=admin_headers)
        assert init.json()["created"] == 4
        await client.post(
            "/api/opportunities",
            json={"businessId": business_id, "title": "Fix checkout", "category": "Revenue"},
            headers=admin_headers,
        )
        await client.put(
            f"/api/business/{business_id}/assessments/Brand",
            json={"score": 3.5},
            headers=admin_headers,
        )

        redeemed = await client.post(
            "/api/verify-access-code", json={"code": business["code"]}, headers=client_headers
        )
        assert redeemed.json()["hasPublishedItems"] is False

        dashboard = await client.get(f"/api/portal/{business_id}/dashboard", headers=client_headers)
        assert dashboard.status_code == 200
        assert dashboard.json()["scorecards"] == []
        assert dashboard.json()["opportunities"] == []

        published = await client.post(f"/api/business/{business_id}/scorecard/publish", headers=admin_headers)
        assert published.status_code == 200
        assert published.json() == {
            "success": True,
            "domain": "scorecard",
            "isPublished": True,
            "hasPublishedItems": True,
        }

        status = await client.get(f"/api/portal/{business_id}/publish-status", headers=client_headers)
        assert status.json() == {
            "hasPublishedItems": True,
            "publishedTypes": {"scorecard": True, "opportunities": False, "assessments": False},
        }
        dashboard = await client.get(f"/api/portal/{business_id}/dashboard", headers=client_headers)
        body = dashboard.json()
        assert {card["category"] for card in body["scorecards"]} == {
            "Foundation",
            "Acquisition",
            "Conversion",
            "Retention",
        }
        assert body["opportunities"] == []
        assert body["assessments"] == []

        scorecards = await client.get(f"/api/business/{business_id}/scorecards", headers=admin_headers)
        assert all(card["isPublished"] for card in scorecards.json()["scorecards"])

        unpublished = await client.post(
            f"/api/business/{business_id}/scorecard/unpublish", headers=admin_headers
        )
        assert unpublished.json()["hasPublishedItems"] is False
        scorecards = await client.get(f"/api/business/{business_id}/scorecards", headers=admin_headers)
        assert not any(card["isPublished"] for card in scorecards.json()["scorecards"])
        dashboard = await client.get(f"/api/portal/{business_id}/dashboard", headers=client_headers)
        assert dashboard.json()["scorecards"] == []


@pytest.mark.asyncio
async def test_new_rows_follow_business_flag() -> None:
    _admin_id, admin_headers = await create_test_user(role="ADMIN")

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        created = await client.post("/api/businesses", json={"name": "Flag Co"}, headers=admin_headers)
        business_id = created.json()["business"]["id"]

        # Publishing an empty domain still records the request.
        await client.post(f"/api/business/{business_id}/opportunities/publish", headers=admin_headers)
        status = await client.get(
            f"/api/business/{business_id}/opportunities/publish-status", headers=admin_headers
        )
        assert status.json() == {"domain": "opportunities", "isPublished": True}

        opportunity = await client.post(
            "/api/opportunities",
            json={
                "businessId": business_id,
                "title": "Cut CAC",
                "category": "EBITDA",
                "description": "Consolidate agencies [SPAN:6]",
            },
            headers=admin_headers,
        )
        assert opportunity.status_code == 201
        created_row = opportunity.json()["opportunity"]
        assert created_row["isPublished"] is True
        assert created_row["timelineSpan"] == 6
        assert created_row["description"] == "Consolidate agencies"

        await client.post(f"/api/business/{business_id}/assessments/publish", headers=admin_headers)
        saved = await client.post(
            f"/api/business/{business_id}/assessments/Digital/answers",
            json={"questions": [{"question": "Q1", "score": 4, "note": "Good"}, {"question": "Q2", "score": 2}]},
            headers=admin_headers,
        )
        assert saved.status_code == 200
        assert saved.json()["assessment"]["isPublished"] is True
        assert saved.json()["assessment"]["score"] == 3
        assert saved.json()["notes"] == ["Good"]
        assert saved.json()["scores"] == [4, 2]


@pytest.mark.asyncio
async def test_publish_rejects_unknown_domain_and_non_admins() -> None:
    _admin_id, admin_headers = await create_test_user(role="ADMIN")
    _client_id, client_headers = await create_test_user()

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        created = await client.post("/api/businesses", json={"name": "Gate Co"}, headers=admin_headers)
        business_id = created.json()["business"]["id"]
        unknown = await client.post(f"/api/business/{business_id}/reports/publish", headers=admin_headers)
        forbidden = await client.post(f"/api/business/{business_id}/scorecard/publish", headers=client_headers)
        anonymous = await client.post(f"/api/business/{business_id}/scorecard/publish")

    assert unknown.status_code == 400
    assert forbidden.status_code == 403
    assert anonymous.status_code == 401


@pytest.mark.asyncio
async def test_legacy_scorecard_rows_follow_scorecard_flag() -> None:
    _admin_id, admin_headers = await create_test_user(role="ADMIN")

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        created = await client.post(
            "/api/businesses", json={"name": "Legacy Co", "industry": "Retail"}, headers=admin_headers
        )
        business_id = created.json()["business"]["id"]
        for title in ("Conversion scorecard", "Grow wholesale"):
            response = await client.post(
                "/api/opportunities",
                json={"businessId": business_id, "title": title, "category": "Revenue"},
                headers=admin_headers,
            )
            assert response.status_code == 201

        await client.post(f"/api/business/{business_id}/scorecard/publish", headers=admin_headers)
        legacy = await client.get(
            f"/api/opportunities?businessId={business_id}&type=scorecard", headers=admin_headers
        )
        regular = await client.get(
            f"/api/opportunities?businessId={business_id}&type=regular", headers=admin_headers
        )
        added_after = await client.post(
            "/api/opportunities",
            json={"businessId": business_id, "title": "SCORECARD: Retention", "category": "De-Risk"},
            headers=admin_headers,
        )
        await client.post(f"/api/business/{business_id}/scorecard/unpublish", headers=admin_headers)
        after_unpublish = await client.get(
            f"/api/opportunities?businessId={business_id}&type=scorecard", headers=admin_headers
        )

    assert [row["title"] for row in legacy.json()["opportunities"]] == ["Conversion scorecard"]
    assert legacy.json()["opportunities"][0]["isPublished"] is True
    assert [row["title"] for row in regular.json()["opportunities"]] == ["Grow wholesale"]
    assert regular.json()["opportunities"][0]["isPublished"] is False
    assert added_after.json()["opportunity"]["isPublished"] is True
    assert {row["isPublished"] for row in after_unpublish.json()["opportunities"]} == {False}
    assert len(after_unpublish.json()["opportunities"]) == 2
