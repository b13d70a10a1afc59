"""Read-side provider integrations.

Each provider exposes one summary: fetch a single report with the caller's
stored token (refreshed when expired) and sum the interesting fields.
"""

from __future__ import annotations

from datetime import date, timedelta
import json
import logging
from typing import Any

import httpx
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.core.config import get_settings
from vokalconnect.core.errors import IntegrationError, NotFoundError, ProviderConfigError
from vokalconnect.services.oauth.connections import get_valid_access_token
from vokalconnect.services.oauth.providers import (
    GOOGLE_ANALYTICS,
    LINKEDIN_PAGE,
    META_ADS,
    SHOPIFY,
    OAuthProvider,
    get_provider,
)


logger = logging.getLogger(__name__)

GA_MANAGEMENT_BASE = "https://www.googleapis.com/analytics/v3"
META_GRAPH_BASE = "https://graph.facebook.com/v18.0"
LINKEDIN_API_BASE = "https://api.linkedin.com/v2"

_SHOPIFY_ORDERS_QUERY = """
query RecentOrders($first: Int!) {
  orders(first: $first) {
    edges { node { id totalPriceSet { shopMoney { amount } } } }
  }
}
"""


def _to_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


def _error_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


async def _get_json(
    provider: OAuthProvider,
    method: str,
    url: str,
    *,
    headers: dict[str, str],
    params: dict[str, str] | None = None,
    json_body: dict[str, Any] | None = None,
) -> Any:
    timeout = get_settings().ext_call_timeout_ms / 1000
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.request(method, url, headers=headers, params=params, json=json_body)
    if response.status_code >= 400:
        logger.warning("integration_call_failed provider=%s status=%s", provider.key, response.status_code)
        raise IntegrationError(
            f"{provider.tool_name} API error: {response.status_code}",
            status_code=response.status_code,
            upstream=_error_body(response),
        )
    return response.json()


def summarize_google_analytics(body: dict[str, Any]) -> dict[str, Any]:
    items = body.get("items") or []
    return {
        "accounts": _to_int(body.get("totalResults", len(items))),
        "properties": sum(len(item.get("webProperties") or []) for item in items),
    }


def summarize_meta_ads(body: dict[str, Any]) -> dict[str, Any]:
    impressions = clicks = 0
    spend = 0.0
    accounts = body.get("data") or []
    for account in accounts:
        for row in (account.get("insights") or {}).get("data") or []:
            impressions += _to_int(row.get("impressions"))
            clicks += _to_int(row.get("clicks"))
            spend += _to_float(row.get("spend"))
    return {"accounts": len(accounts), "impressions": impressions, "clicks": clicks, "spend": round(spend, 2)}


def summarize_linkedin(body: dict[str, Any]) -> dict[str, Any]:
    elements = body.get("elements") or []
    return {
        "impressions": sum(_to_int(element.get("impressions")) for element in elements),
        "clicks": sum(_to_int(element.get("clicks")) for element in elements),
        "spend": round(
            sum(_to_float(element.get("costInLocalCurrency", element.get("spend"))) for element in elements),
            2,
        ),
    }


def summarize_shopify(body: dict[str, Any]) -> dict[str, Any]:
    edges = ((body.get("data") or {}).get("orders") or {}).get("edges") or []
    total = sum(
        _to_float((((edge.get("node") or {}).get("totalPriceSet") or {}).get("shopMoney") or {}).get("amount"))
        for edge in edges
    )
    return {"orders": len(edges), "revenue": round(total, 2)}


async def _google_analytics_summary(token: str) -> dict[str, Any]:
    body = await _get_json(
        GOOGLE_ANALYTICS,
        "GET",
        f"{GA_MANAGEMENT_BASE}/management/accountSummaries",
        headers={"Authorization": f"Bearer {token}"},
    )
    return summarize_google_analytics(body)


async def _meta_ads_summary(token: str) -> dict[str, Any]:
    body = await _get_json(
        META_ADS,
        "GET",
        f"{META_GRAPH_BASE}/me/adaccounts",
        headers={"Authorization": f"Bearer {token}"},
        params={"fields": "id,name,insights.date_preset(last_30d){impressions,clicks,spend}"},
    )
    if not body.get("data"):
        raise NotFoundError("No ad accounts found")
    return summarize_meta_ads(body)


async def _linkedin_summary(token: str) -> dict[str, Any]:
    headers = {"Authorization": f"Bearer {token}", "X-Restli-Protocol-Version": "2.0.0"}
    accounts = await _get_json(
        LINKEDIN_PAGE,
        "GET",
        f"{LINKEDIN_API_BASE}/adAccountsV2",
        headers=headers,
        params={"q": "search", "search": json.dumps({"status": {"values": ["ACTIVE"]}})},
    )
    elements = accounts.get("elements") or []
    if not elements:
        raise NotFoundError("No ad accounts found")
    end = date.today()
    start = end - timedelta(days=30)
    analytics = await _get_json(
        LINKEDIN_PAGE,
        "GET",
        f"{LINKEDIN_API_BASE}/adAnalyticsV2",
        headers=headers,
        params={
            "q": "analytics",
            "pivot": "ACCOUNT",
            "timeGranularity": "ALL",
            "dateRange.start.day": str(start.day),
            "dateRange.start.month": str(start.month),
            "dateRange.start.year": str(start.year),
            "dateRange.end.day": str(end.day),
            "dateRange.end.month": str(end.month),
            "dateRange.end.year": str(end.year),
            "accounts[0]": f"urn:li:sponsoredAccount:{elements[0].get('id')}",
        },
    )
    summary = summarize_linkedin(analytics)
    summary["accounts"] = len(elements)
    return summary


async def _shopify_summary(token: str) -> dict[str, Any]:
    settings = get_settings()
    if not settings.shopify_shop_domain:
        raise ProviderConfigError("shopify shop domain is not configured")
    body = await _get_json(
        SHOPIFY,
        "POST",
        f"https://{settings.shopify_shop_domain}/admin/api/{settings.shopify_api_version}/graphql.json",
        headers={"X-Shopify-Access-Token": token},
        json_body={"query": _SHOPIFY_ORDERS_QUERY, "variables": {"first": 50}},
    )
    if body.get("errors"):
        raise IntegrationError("Shopify API error", upstream={"errors": body["errors"]})
    return summarize_shopify(body)


_SUMMARY_FETCHERS = {
    GOOGLE_ANALYTICS.key: _google_analytics_summary,
    META_ADS.key: _meta_ads_summary,
    LINKEDIN_PAGE.key: _linkedin_summary,
    SHOPIFY.key: _shopify_summary,
}


async def fetch_provider_summary(session: AsyncSession, *, provider_key: str, user_id: str) -> dict[str, Any]:
    """Return the summed read-side summary for one connected provider."""
    provider = get_provider(provider_key)
    token = await get_valid_access_token(session, user_id, provider.tool_name)
    return await _SUMMARY_FETCHERS[provider.key](token)
