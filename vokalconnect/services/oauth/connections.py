from __future__ import annotations

from datetime import datetime, timezone
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.core.errors import NotFoundError, TokenRefreshError
from vokalconnect.domain.models import ToolConnection
from vokalconnect.persistence.repos import tools as tools_repo
from vokalconnect.services.oauth.client import TokenResponse, refresh_access_token
from vokalconnect.services.oauth.providers import provider_for_tool


logger = logging.getLogger(__name__)


def _as_utc(value: datetime | None) -> datetime | None:
    # sqlite hands back naive datetimes; stored values are always UTC.
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def is_expired(connection: ToolConnection, now: datetime | None = None) -> bool:
    expires_at = _as_utc(connection.expires_at)
    if expires_at is None:
        return False
    return expires_at <= (now or datetime.now(timezone.utc))


async def store_tool_connection(
    session: AsyncSession, *, user_id: str, tool_name: str, tokens: TokenResponse
) -> ToolConnection:
    """Upsert the (user, tool) connection with fresh token material.

    A missing refresh token in ``tokens`` keeps the stored one. The caller
    owns the commit.
    """
    connection = await tools_repo.get_connection(session, user_id, tool_name)
    if connection is None:
        connection = ToolConnection(user_id=user_id, tool_name=tool_name)
        session.add(connection)
    connection.access_token = tokens.access_token
    if tokens.refresh_token:
        connection.refresh_token = tokens.refresh_token
    connection.expires_at = tokens.expires_at()
    try:
        await session.flush()
    except IntegrityError:
        # A parallel callback created the row first; overwrite it instead.
        await session.rollback()
        connection = await tools_repo.get_connection(session, user_id, tool_name)
        if connection is None:
            raise
        connection.access_token = tokens.access_token
        if tokens.refresh_token:
            connection.refresh_token = tokens.refresh_token
        connection.expires_at = tokens.expires_at()
        await session.flush()
    return connection


async def refresh_tool_connection(session: AsyncSession, user_id: str, tool_name: str) -> str:
    """Refresh the stored access token and return the new one. Commits."""
    connection = await tools_repo.get_connection(session, user_id, tool_name)
    if connection is None:
        raise NotFoundError("Tool connection not found")
    if not connection.refresh_token:
        raise TokenRefreshError("No refresh token available")
    provider = provider_for_tool(tool_name)
    tokens = await refresh_access_token(provider=provider, refresh_token=connection.refresh_token)
    connection.access_token = tokens.access_token
    connection.refresh_token = tokens.refresh_token or connection.refresh_token
    connection.expires_at = tokens.expires_at()
    await session.commit()
    logger.info("tool_connection_refreshed user_id=%s tool=%s", user_id, tool_name)
    return tokens.access_token


async def get_valid_access_token(session: AsyncSession, user_id: str, tool_name: str) -> str:
    connection = await tools_repo.get_connection(session, user_id, tool_name)
    if connection is None or not connection.access_token:
        raise NotFoundError(f"{tool_name} connection not found")
    if is_expired(connection):
        return await refresh_tool_connection(session, user_id, tool_name)
    return connection.access_token
