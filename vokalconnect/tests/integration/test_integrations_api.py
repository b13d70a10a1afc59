from __future__ import annotations

from datetime import datetime, timedelta, timezone

import httpx
import pytest
from httpx import ASGITransport, AsyncClient

from vokalconnect.apps.api.main import create_app
from vokalconnect.core.errors import TokenRefreshError
from vokalconnect.domain.models import ToolConnection
from vokalconnect.persistence.db import SessionLocal
from vokalconnect.persistence.repos import tools as tools_repo
from vokalconnect.services import integrations
from vokalconnect.services.oauth import client as oauth_client
from vokalconnect.services.oauth.connections import get_valid_access_token, refresh_tool_connection
from vokalconnect.tests.utils.auth import create_test_user


async def _seed_connection(
    user_id: str,
    tool_name: str,
    *,
    access_token: str = "stored-access",
    refresh_token: str | None = "stored-refresh",
    expires_at: datetime | None = None,
) -> None:
    async with SessionLocal() as session:
        session.add(
            ToolConnection(
                user_id=user_id,
                tool_name=tool_name,
                access_token=access_token,
                refresh_token=refresh_token,
                expires_at=expires_at,
            )
        )
        await session.commit()


def _route_provider_calls(monkeypatch: pytest.MonkeyPatch, handler) -> None:  # type: ignore[no-untyped-def]
    real_client = httpx.AsyncClient

    def _client_factory(*args, **kwargs):  # type: ignore[no-untyped-def]
        kwargs["transport"] = httpx.MockTransport(handler)
        return real_client(*args, **kwargs)

    monkeypatch.setattr(integrations.httpx, "AsyncClient", _client_factory)


def _fake_refresh(monkeypatch: pytest.MonkeyPatch, body: dict) -> list[dict]:
    calls: list[dict] = []

    async def _fake_request(provider, payload):  # type: ignore[no-untyped-def]
        calls.append(dict(payload))
        return httpx.Response(200, json=body)

    monkeypatch.setattr(oauth_client, "_token_request", _fake_request)
    return calls


@pytest.mark.asyncio
async def test_upstream_failure_is_500_with_provider_body(monkeypatch: pytest.MonkeyPatch) -> None:
    user_id, headers = await create_test_user()
    await _seed_connection(user_id, "Meta Ads")
    upstream_body = {"error": {"message": "Service temporarily unavailable", "code": 2}}
    _route_provider_calls(monkeypatch, lambda request: httpx.Response(500, json=upstream_body))

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/integrations/meta-ads/summary", headers=headers)

    assert response.status_code == 500
    body = response.json()
    assert body["code"] == "UPSTREAM_ERROR"
    assert body["error"] == "Meta Ads API error: 500"
    assert body["details"] == {"upstreamStatus": 500, "upstream": upstream_body}


@pytest.mark.asyncio
async def test_no_ad_accounts_is_404(monkeypatch: pytest.MonkeyPatch) -> None:
    user_id, headers = await create_test_user()
    await _seed_connection(user_id, "LinkedIn Page")
    await _seed_connection(user_id, "Meta Ads")
    _route_provider_calls(
        monkeypatch,
        lambda request: httpx.Response(200, json={"elements": []} if "linkedin" in request.url.host else {"data": []}),
    )

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        linkedin = await client.get("/api/integrations/linkedin-page/summary", headers=headers)
        meta = await client.get("/api/integrations/meta-ads/summary", headers=headers)
        not_connected = await client.get("/api/integrations/shopify/summary", headers=headers)

    assert linkedin.status_code == 404
    assert linkedin.json()["error"] == "No ad accounts found"
    assert meta.status_code == 404
    assert not_connected.status_code == 404
    assert not_connected.json()["error"] == "Shopify connection not found"


@pytest.mark.asyncio
async def test_summary_sums_shopify_orders(monkeypatch: pytest.MonkeyPatch) -> None:
    user_id, headers = await create_test_user()
    await _seed_connection(user_id, "Shopify", access_token="shop-token")
    seen: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        edges = [
            {"node": {"id": "1", "totalPriceSet": {"shopMoney": {"amount": "19.50"}}}},
            {"node": {"id": "2", "totalPriceSet": {"shopMoney": {"amount": "5.25"}}}},
        ]
        return httpx.Response(200, json={"data": {"orders": {"edges": edges}}})

    _route_provider_calls(monkeypatch, _handler)

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/integrations/shopify/summary", headers=headers)

    assert response.status_code == 200
    assert response.json() == {"provider": "shopify", "summary": {"orders": 2, "revenue": 24.75}}
    assert seen[0].url.host == "vokal-test.myshopify.com"
    assert seen[0].headers["X-Shopify-Access-Token"] == "shop-token"


@pytest.mark.asyncio
async def test_expired_connection_is_refreshed_before_the_read(monkeypatch: pytest.MonkeyPatch) -> None:
    user_id, headers = await create_test_user()
    await _seed_connection(
        user_id,
        "Google Analytics",
        access_token="old-access",
        expires_at=datetime.now(timezone.utc) - timedelta(minutes=1),
    )
    refresh_calls = _fake_refresh(monkeypatch, {"access_token": "new-access", "expires_in": 3600})
    seen: list[str] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.headers["Authorization"])
        return httpx.Response(200, json={"totalResults": 1, "items": [{"webProperties": [{}, {}]}]})

    _route_provider_calls(monkeypatch, _handler)

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get("/api/integrations/google-analytics/summary", headers=headers)

    assert response.status_code == 200
    assert response.json()["summary"] == {"accounts": 1, "properties": 2}
    assert seen == ["Bearer new-access"]
    assert refresh_calls[0]["refresh_token"] == "stored-refresh"


@pytest.mark.asyncio
async def test_refresh_keeps_previous_refresh_token_when_none_returned(monkeypatch: pytest.MonkeyPatch) -> None:
    user_id, _ = await create_test_user()
    await _seed_connection(user_id, "LinkedIn Page", access_token="old-access", refresh_token="keep-me")
    _fake_refresh(monkeypatch, {"access_token": "fresh-access", "expires_in": 600})

    async with SessionLocal() as session:
        token = await refresh_tool_connection(session, user_id, "LinkedIn Page")
    async with SessionLocal() as session:
        connection = await tools_repo.get_connection(session, user_id, "LinkedIn Page")

    assert token == "fresh-access"
    assert connection.access_token == "fresh-access"
    assert connection.refresh_token == "keep-me"
    assert connection.expires_at is not None


@pytest.mark.asyncio
async def test_refresh_replaces_rotated_refresh_token(monkeypatch: pytest.MonkeyPatch) -> None:
    user_id, _ = await create_test_user()
    await _seed_connection(user_id, "Shopify", refresh_token="old-refresh")
    _fake_refresh(monkeypatch, {"access_token": "a2", "refresh_token": "rotated"})

    async with SessionLocal() as session:
        await refresh_tool_connection(session, user_id, "Shopify")
        connection = await tools_repo.get_connection(session, user_id, "Shopify")

    assert connection.refresh_token == "rotated"


@pytest.mark.asyncio
async def test_valid_token_skips_refresh_and_missing_refresh_token_fails(monkeypatch: pytest.MonkeyPatch) -> None:
    user_id, _ = await create_test_user()
    await _seed_connection(
        user_id, "Meta Ads", access_token="still-good", expires_at=datetime.now(timezone.utc) + timedelta(hours=1)
    )
    await _seed_connection(
        user_id,
        "Shopify",
        refresh_token=None,
        expires_at=datetime.now(timezone.utc) - timedelta(hours=1),
    )
    refresh_calls = _fake_refresh(monkeypatch, {"access_token": "unused"})

    async with SessionLocal() as session:
        assert await get_valid_access_token(session, user_id, "Meta Ads") == "still-good"
        with pytest.raises(TokenRefreshError):
            await get_valid_access_token(session, user_id, "Shopify")

    assert refresh_calls == []
