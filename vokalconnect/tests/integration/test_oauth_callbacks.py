from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest
from httpx import ASGITransport, AsyncClient

from vokalconnect.apps.api.main import create_app
from vokalconnect.apps.api.routes import oauth as oauth_routes
from vokalconnect.core.errors import TokenExchangeError
from vokalconnect.persistence.db import SessionLocal
from vokalconnect.persistence.repos import tools as tools_repo
from vokalconnect.services.oauth.client import TokenResponse
from vokalconnect.tests.utils.auth import create_test_user
from vokalconnect.tests.utils.fixtures import create_test_business


def _redirect(response) -> tuple[str, dict[str, list[str]]]:  # type: ignore[no-untyped-def]
    assert response.status_code == 302
    location = urlparse(response.headers["location"])
    return f"{location.scheme}://{location.netloc}{location.path}", parse_qs(location.query)


def _fake_exchange(monkeypatch: pytest.MonkeyPatch, *, fail: bool = False) -> list[str]:
    codes: list[str] = []

    async def _exchange(*, provider, code, redirect_uri):  # type: ignore[no-untyped-def]
        codes.append(code)
        if fail:
            raise TokenExchangeError("Token exchange failed")
        return TokenResponse(
            access_token=f"{provider.key}-access",
            refresh_token=f"{provider.key}-refresh",
            expires_in=3600,
            token_type="Bearer",
            scope=None,
        )

    monkeypatch.setattr(oauth_routes, "exchange_code_for_tokens", _exchange)
    return codes


async def _business_with_portal() -> tuple[str, str, str, dict[str, str]]:
    admin_id, _ = await create_test_user(role="ADMIN")
    business_id, code = await create_test_business(admin_id=admin_id)
    client_id, headers = await create_test_user()
    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.post("/api/verify-access-code", json={"code": code}, headers=headers)
        assert response.status_code == 200
    return business_id, code, client_id, headers


@pytest.mark.asyncio
async def test_start_redirects_to_provider() -> None:
    _business_id, code, _client_id, headers = await _business_with_portal()

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get(f"/auth/linkedin-page?business_code={code.lower()}", headers=headers)
        missing = await client.get("/auth/linkedin-page", headers=headers)
        unknown = await client.get(f"/auth/tiktok?business_code={code}", headers=headers)

    target, query = _redirect(response)
    assert target == "https://www.linkedin.com/oauth/v2/authorization"
    assert query["state"] == [code]
    assert query["redirect_uri"] == ["http://portal.test/auth/linkedin-page/callback"]
    assert missing.status_code == 400
    assert unknown.status_code == 404


@pytest.mark.asyncio
async def test_start_rejects_unknown_code_and_callers_without_portal() -> None:
    admin_id, admin_headers = await create_test_user(role="ADMIN")
    _business_id, code = await create_test_business(admin_id=admin_id)
    _outsider_id, outsider_headers = await create_test_user()

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        bad_code = await client.get("/auth/meta-ads?business_code=ZZZZ9999", headers=outsider_headers)
        no_portal = await client.get(f"/auth/meta-ads?business_code={code}", headers=outsider_headers)
        owner = await client.get(f"/auth/meta-ads?business_code={code}", headers=admin_headers)

    assert bad_code.status_code == 404
    assert bad_code.json()["error"] == "Invalid business code"
    assert no_portal.status_code == 401
    assert owner.status_code == 302


@pytest.mark.asyncio
async def test_callback_stores_connection_and_grants_tool(monkeypatch: pytest.MonkeyPatch) -> None:
    business_id, code, client_id, headers = await _business_with_portal()
    codes = _fake_exchange(monkeypatch)

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get(
            f"/auth/google-analytics/callback?code=provider-code&state={code}", headers=headers
        )
        connections = await client.get("/api/tool-connections", headers=headers)

    target, query = _redirect(response)
    assert target == f"http://portal.test/connect/{code}"
    assert query["success"] == ["Google Analytics connected successfully"]
    assert codes == ["provider-code"]

    async with SessionLocal() as session:
        connection = await tools_repo.get_connection(session, client_id, "Google Analytics")
        tool = await tools_repo.get_tool_by_name(session, business_id, "Google Analytics")
    assert connection is not None
    assert connection.access_token == "google-analytics-access"
    assert connection.refresh_token == "google-analytics-refresh"
    assert tool.status == "GRANTED"

    listed = connections.json()["connections"]
    assert [row["toolName"] for row in listed] == ["Google Analytics"]
    assert "accessToken" not in listed[0]


@pytest.mark.asyncio
async def test_callback_without_session_uses_first_active_portal(monkeypatch: pytest.MonkeyPatch) -> None:
    _business_id, code, client_id, _headers = await _business_with_portal()
    _fake_exchange(monkeypatch)

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get(f"/auth/meta-ads/callback?code=c&state={code}")

    _target, query = _redirect(response)
    assert query["success"] == ["Meta Ads connected successfully"]
    async with SessionLocal() as session:
        assert await tools_repo.get_connection(session, client_id, "Meta Ads") is not None


@pytest.mark.asyncio
async def test_callback_error_redirects(monkeypatch: pytest.MonkeyPatch) -> None:
    admin_id, _ = await create_test_user(role="ADMIN")
    _lonely_business_id, lonely_code = await create_test_business(admin_id=admin_id, name="No Portal Co")
    _business_id, code, _client_id, headers = await _business_with_portal()
    codes = _fake_exchange(monkeypatch)

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        missing = await client.get(f"/auth/shopify/callback?state={code}", headers=headers)
        invalid = await client.get("/auth/shopify/callback?code=c&state=NOPE1234", headers=headers)
        no_portal = await client.get(f"/auth/shopify/callback?code=c&state={lonely_code}")

    _target, query = _redirect(missing)
    assert query["error"] == ["Missing required parameters"]
    target, query = _redirect(invalid)
    assert target == "http://portal.test/connect/NOPE1234"
    assert query["error"] == ["Invalid business code"]
    _target, query = _redirect(no_portal)
    assert query["error"] == ["Client portal not found"]
    # No provider call happens before the business and portal are resolved.
    assert codes == []


@pytest.mark.asyncio
async def test_callback_exchange_failure_redirects(monkeypatch: pytest.MonkeyPatch) -> None:
    _business_id, code, client_id, headers = await _business_with_portal()
    _fake_exchange(monkeypatch, fail=True)

    transport = ASGITransport(app=create_app())
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        response = await client.get(f"/auth/linkedin-page/callback?code=c&state={code}", headers=headers)

    _target, query = _redirect(response)
    assert query["error"] == ["Failed to exchange authorization code"]
    async with SessionLocal() as session:
        assert await tools_repo.get_connection(session, client_id, "LinkedIn Page") is None
