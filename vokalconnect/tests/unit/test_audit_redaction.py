from __future__ import annotations

from vokalconnect.services.audit import sanitize_metadata


def test_audit_redacts_tokens_and_secrets() -> None:
    # Provider tokens must never reach the audit table.
    payload = {
        "access_token": "ya29.secret",
        "refresh_token": "1//refresh",
        "client_secret": "super-secret",
        "nested": {"authorization": "Bearer abc", "password": "hunter2"},
        "provider": "google-analytics",
    }
    sanitized = sanitize_metadata(payload)
    assert sanitized["access_token"] == "[REDACTED]"
    assert sanitized["refresh_token"] == "[REDACTED]"
    assert sanitized["client_secret"] == "[REDACTED]"
    assert sanitized["nested"]["authorization"] == "[REDACTED]"
    assert sanitized["nested"]["password"] == "[REDACTED]"
    assert sanitized["provider"] == "google-analytics"
