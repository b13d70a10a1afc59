from __future__ import annotations

from urllib.parse import parse_qs, urlparse

import pytest

from vokalconnect.core.errors import ProviderConfigError
from vokalconnect.services.oauth.client import append_query_params, build_authorize_url, callback_url
from vokalconnect.services.oauth.providers import PROVIDERS, get_provider, provider_for_tool


def _query(url: str) -> dict[str, list[str]]:
    return parse_qs(urlparse(url).query)


def test_registry_covers_supported_providers() -> None:
    assert set(PROVIDERS) == {"google-analytics", "meta-ads", "linkedin-page", "shopify"}
    with pytest.raises(ProviderConfigError):
        get_provider("tiktok")


def test_tool_names_resolve_to_refresh_provider() -> None:
    assert provider_for_tool("Google Ads").key == "google-analytics"
    assert provider_for_tool("Meta Dataset").key == "meta-ads"
    assert provider_for_tool("LinkedIn Ads").key == "linkedin-page"
    with pytest.raises(ProviderConfigError):
        provider_for_tool("Mailchimp")


def test_google_authorize_url_requests_offline_access() -> None:
    provider = get_provider("google-analytics")
    url = build_authorize_url(provider=provider, redirect_uri=callback_url(provider), state="AB12CD34")
    assert url.startswith("https://accounts.google.com/o/oauth2/v2/auth?")
    query = _query(url)
    assert query["client_id"] == ["google-client"]
    assert query["redirect_uri"] == ["http://portal.test/auth/google-analytics/callback"]
    assert query["response_type"] == ["code"]
    assert query["state"] == ["AB12CD34"]
    assert query["access_type"] == ["offline"]
    assert query["prompt"] == ["consent"]
    assert query["scope"] == [
        "https://www.googleapis.com/auth/analytics.readonly https://www.googleapis.com/auth/analytics"
    ]


def test_meta_scopes_are_comma_separated() -> None:
    provider = get_provider("meta-ads")
    url = build_authorize_url(provider=provider, redirect_uri="http://portal.test/cb", state="X")
    assert _query(url)["scope"] == ["ads_read,ads_management,pages_show_list,pages_read_engagement"]


def test_shopify_endpoints_resolve_against_shop_domain() -> None:
    provider = get_provider("shopify")
    url = build_authorize_url(provider=provider, redirect_uri="http://portal.test/cb", state="X")
    assert url.startswith("https://vokal-test.myshopify.com/admin/oauth/authorize?")


def test_append_query_params_keeps_existing_query() -> None:
    url = append_query_params("http://portal.test/connect/AB?tab=tools", {"error": "Invalid business code"})
    query = _query(url)
    assert query["tab"] == ["tools"]
    assert query["error"] == ["Invalid business code"]
