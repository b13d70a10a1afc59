from __future__ import annotations


class VokalError(Exception):
    """Base error for Vokal Connect."""


class NotFoundError(VokalError):
    """Requested record does not exist or is not visible to the caller."""


class ScorecardNotFoundError(NotFoundError):
    """No scorecard exists for the requested business/category."""

    def __init__(self, category: str) -> None:
        super().__init__(f"Scorecard not found for {category}")
        self.category = category


class HighlightNotFoundError(NotFoundError):
    """Highlight id is not attached to the addressed scorecard."""

    def __init__(self, highlight_id: str) -> None:
        super().__init__(f"Highlight not found: {highlight_id}")
        self.highlight_id = highlight_id


class ProviderConfigError(VokalError):
    """Missing or invalid OAuth provider configuration."""


class TokenExchangeError(VokalError):
    """Provider rejected the authorization code exchange."""


class TokenRefreshError(VokalError):
    """Refreshing stored provider tokens failed."""


class IntegrationError(VokalError):
    """Provider read call failed; carries the upstream status and body when known."""

    def __init__(self, message: str, *, status_code: int | None = None, upstream: object | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.upstream = upstream
