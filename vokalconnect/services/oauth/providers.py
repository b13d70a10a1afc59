"""Registry of the OAuth providers a client can connect.

Every provider follows the same flow; only endpoints, scopes and the
credentials to use differ, so each one is a single frozen record here.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from vokalconnect.core.config import Settings
from vokalconnect.core.errors import ProviderConfigError


@dataclass(frozen=True)
class OAuthProvider:
    key: str
    # Tool row / ToolConnection name the grant is recorded under.
    tool_name: str
    authorize_url: str
    token_url: str
    scopes: tuple[str, ...]
    scope_separator: str
    # Settings attribute prefix for <prefix>_client_id / <prefix>_client_secret.
    credentials: str
    token_method: str = "POST"
    extra_authorize_params: dict[str, str] = field(default_factory=dict)
    # Tool names whose stored tokens are refreshed through this provider.
    refresh_tool_names: tuple[str, ...] = ()
    # Endpoints containing {shop} are resolved against shopify_shop_domain.
    per_shop: bool = False

    def client_id(self, settings: Settings) -> str:
        value = getattr(settings, f"{self.credentials}_client_id", None)
        if not value:
            raise ProviderConfigError(f"{self.key} client id is not configured")
        return value

    def client_secret(self, settings: Settings) -> str:
        value = getattr(settings, f"{self.credentials}_client_secret", None)
        if not value:
            raise ProviderConfigError(f"{self.key} client secret is not configured")
        return value

    def _resolve(self, template: str, settings: Settings) -> str:
        if not self.per_shop:
            return template
        if not settings.shopify_shop_domain:
            raise ProviderConfigError("shopify shop domain is not configured")
        return template.format(shop=settings.shopify_shop_domain)

    def resolved_authorize_url(self, settings: Settings) -> str:
        return self._resolve(self.authorize_url, settings)

    def resolved_token_url(self, settings: Settings) -> str:
        return self._resolve(self.token_url, settings)


GOOGLE_ANALYTICS = OAuthProvider(
    key="google-analytics",
    tool_name="Google Analytics",
    authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
    token_url="https://oauth2.googleapis.com/token",
    scopes=(
        "https://www.googleapis.com/auth/analytics.readonly",
        "https://www.googleapis.com/auth/analytics",
    ),
    scope_separator=" ",
    credentials="google",
    # Offline access plus forced consent guarantees a refresh token.
    extra_authorize_params={"access_type": "offline", "prompt": "consent"},
    refresh_tool_names=("Google Analytics", "Google Ads"),
)

META_ADS = OAuthProvider(
    key="meta-ads",
    tool_name="Meta Ads",
    authorize_url="https://www.facebook.com/v18.0/dialog/oauth",
    token_url="https://graph.facebook.com/v18.0/oauth/access_token",
    scopes=("ads_read", "ads_management", "pages_show_list", "pages_read_engagement"),
    scope_separator=",",
    credentials="meta",
    # Graph API takes the exchange parameters on the query string.
    token_method="GET",
    refresh_tool_names=("Meta Ads", "Meta Page", "Meta Dataset"),
)

LINKEDIN_PAGE = OAuthProvider(
    key="linkedin-page",
    tool_name="LinkedIn Page",
    authorize_url="https://www.linkedin.com/oauth/v2/authorization",
    token_url="https://www.linkedin.com/oauth/v2/accessToken",
    scopes=("r_organization_social", "rw_organization_admin", "r_ads", "r_ads_reporting"),
    scope_separator=" ",
    credentials="linkedin",
    refresh_tool_names=("LinkedIn Page", "LinkedIn Ads"),
)

SHOPIFY = OAuthProvider(
    key="shopify",
    tool_name="Shopify",
    authorize_url="https://{shop}/admin/oauth/authorize",
    token_url="https://{shop}/admin/oauth/access_token",
    scopes=("read_products", "read_orders", "read_customers", "read_analytics"),
    scope_separator=",",
    credentials="shopify",
    refresh_tool_names=("Shopify",),
    per_shop=True,
)

PROVIDERS: dict[str, OAuthProvider] = {
    provider.key: provider for provider in (GOOGLE_ANALYTICS, META_ADS, LINKEDIN_PAGE, SHOPIFY)
}


def get_provider(key: str) -> OAuthProvider:
    try:
        return PROVIDERS[key]
    except KeyError as exc:
        raise ProviderConfigError(f"Unsupported provider: {key}") from exc


def provider_for_tool(tool_name: str) -> OAuthProvider:
    for provider in PROVIDERS.values():
        if tool_name in provider.refresh_tool_names:
            return provider
    raise ProviderConfigError(f"Unsupported tool: {tool_name}")
