from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt

from vokalconnect.core.config import get_settings


_ALGORITHM = "HS256"

ROLE_ADMIN = "ADMIN"
ROLE_CLIENT = "CLIENT"
ROLES = {ROLE_ADMIN, ROLE_CLIENT}


@dataclass(frozen=True)
class SessionClaims:
    user_id: str
    role: str
    expires_at: datetime


class InvalidSessionToken(Exception):
    # Raised for expired, tampered, or structurally invalid session tokens.
    pass


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_role(role: str) -> str:
    normalized = role.strip().upper()
    if normalized not in ROLES:
        raise ValueError(f"Unsupported role: {role}")
    return normalized


def issue_session_token(*, user_id: str, role: str, ttl_hours: int | None = None) -> str:
    settings = get_settings()
    hours = settings.session_ttl_hours if ttl_hours is None else ttl_hours
    now = _utc_now()
    claims = {
        "sub": user_id,
        "role": normalize_role(role),
        "iat": int(now.timestamp()),
        "exp": int((now + timedelta(hours=hours)).timestamp()),
    }
    return jwt.encode(claims, settings.session_secret, algorithm=_ALGORITHM)


def decode_session_token(token: str) -> SessionClaims:
    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.session_secret,
            algorithms=[_ALGORITHM],
            options={"require": ["sub", "exp"]},
        )
    except jwt.PyJWTError as exc:
        raise InvalidSessionToken(str(exc)) from exc
    try:
        role = normalize_role(str(claims.get("role") or ROLE_CLIENT))
    except ValueError as exc:
        raise InvalidSessionToken(str(exc)) from exc
    return SessionClaims(
        user_id=str(claims["sub"]),
        role=role,
        expires_at=datetime.fromtimestamp(int(claims["exp"]), tz=timezone.utc),
    )
