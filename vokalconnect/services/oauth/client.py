from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
import logging
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import httpx

from vokalconnect.core.config import get_settings
from vokalconnect.core.errors import TokenExchangeError, TokenRefreshError
from vokalconnect.services.oauth.providers import OAuthProvider


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenResponse:
    access_token: str
    refresh_token: str | None
    expires_in: int | None
    token_type: str | None
    scope: str | None

    def expires_at(self, now: datetime | None = None) -> datetime | None:
        if self.expires_in is None:
            return None
        base = now or datetime.now(timezone.utc)
        return base + timedelta(seconds=int(self.expires_in))


def callback_url(provider: OAuthProvider) -> str:
    settings = get_settings()
    return f"{settings.public_base_url.rstrip('/')}/auth/{provider.key}/callback"


def build_authorize_url(*, provider: OAuthProvider, redirect_uri: str, state: str) -> str:
    # Construct the authorization URL; state carries the business access code.
    settings = get_settings()
    query = {
        "client_id": provider.client_id(settings),
        "redirect_uri": redirect_uri,
        "response_type": "code",
        "scope": provider.scope_separator.join(provider.scopes),
        "state": state,
    }
    query.update(provider.extra_authorize_params)
    return f"{provider.resolved_authorize_url(settings)}?{urlencode(query)}"


def append_query_params(url: str, params: dict[str, str]) -> str:
    # Safely append query params to redirect URLs without clobbering existing data.
    parsed = urlparse(url)
    query = dict(parse_qsl(parsed.query))
    query.update(params)
    return urlunparse(parsed._replace(query=urlencode(query)))


def _parse_token_body(body: Any) -> TokenResponse:
    if not isinstance(body, dict) or not body.get("access_token"):
        raise ValueError("Token response missing access_token")
    expires_in = body.get("expires_in")
    return TokenResponse(
        access_token=str(body["access_token"]),
        refresh_token=body.get("refresh_token"),
        expires_in=int(expires_in) if expires_in is not None else None,
        token_type=body.get("token_type"),
        scope=body.get("scope"),
    )


async def _token_request(provider: OAuthProvider, payload: dict[str, str]) -> httpx.Response:
    settings = get_settings()
    timeout = settings.ext_call_timeout_ms / 1000
    token_url = provider.resolved_token_url(settings)
    async with httpx.AsyncClient(timeout=timeout) as client:
        if provider.token_method == "GET":
            return await client.get(token_url, params=payload)
        return await client.post(token_url, data=payload)


async def exchange_code_for_tokens(*, provider: OAuthProvider, code: str, redirect_uri: str) -> TokenResponse:
    """Exchange an authorization code at the provider token endpoint.

    Raises TokenExchangeError for non-2xx responses or bodies without an
    access token. Transport errors propagate as httpx exceptions.
    """
    settings = get_settings()
    payload = {
        "grant_type": "authorization_code",
        "code": code,
        "redirect_uri": redirect_uri,
        "client_id": provider.client_id(settings),
        "client_secret": provider.client_secret(settings),
    }
    response = await _token_request(provider, payload)
    if response.status_code >= 400:
        logger.warning(
            "oauth_token_exchange_failed provider=%s status=%s",
            provider.key,
            response.status_code,
        )
        raise TokenExchangeError("Token exchange failed")
    try:
        return _parse_token_body(response.json())
    except ValueError as exc:
        logger.warning("oauth_token_exchange_malformed provider=%s", provider.key)
        raise TokenExchangeError("Token exchange response malformed") from exc


async def refresh_access_token(*, provider: OAuthProvider, refresh_token: str) -> TokenResponse:
    settings = get_settings()
    payload = {
        "grant_type": "refresh_token",
        "refresh_token": refresh_token,
        "client_id": provider.client_id(settings),
        "client_secret": provider.client_secret(settings),
    }
    response = await _token_request(provider, payload)
    if response.status_code >= 400:
        logger.warning(
            "oauth_token_refresh_failed provider=%s status=%s",
            provider.key,
            response.status_code,
        )
        raise TokenRefreshError("Failed to refresh token")
    try:
        return _parse_token_body(response.json())
    except ValueError as exc:
        raise TokenRefreshError("Refresh response malformed") from exc
