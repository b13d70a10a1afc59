from __future__ import annotations

import jwt
import pytest

from vokalconnect.services.auth.passwords import hash_password, verify_password
from vokalconnect.services.auth.sessions import (
    InvalidSessionToken,
    decode_session_token,
    issue_session_token,
    normalize_role,
)


def test_session_token_round_trip() -> None:
    token = issue_session_token(user_id="user-1", role="admin")
    claims = decode_session_token(token)
    assert claims.user_id == "user-1"
    assert claims.role == "ADMIN"


def test_expired_session_token_rejected() -> None:
    token = issue_session_token(user_id="user-1", role="CLIENT", ttl_hours=-1)
    with pytest.raises(InvalidSessionToken):
        decode_session_token(token)


def test_foreign_signature_rejected() -> None:
    token = jwt.encode({"sub": "user-1", "exp": 4102444800}, "another-secret", algorithm="HS256")
    with pytest.raises(InvalidSessionToken):
        decode_session_token(token)


def test_unknown_role_rejected() -> None:
    with pytest.raises(ValueError):
        normalize_role("superuser")


def test_password_hash_verification() -> None:
    hashed = hash_password("password123")
    assert hashed != "password123"
    assert verify_password("password123", hashed)
    assert not verify_password("wrong-password", hashed)
