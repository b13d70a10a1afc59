from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import Tool, ToolConfiguration, ToolConnection


async def count_tools(session: AsyncSession, business_id: str) -> int:
    result = await session.execute(select(func.count(Tool.id)).where(Tool.business_id == business_id))
    return int(result.scalar_one())


async def list_tools(session: AsyncSession, business_id: str) -> list[Tool]:
    result = await session.execute(
        select(Tool).where(Tool.business_id == business_id).order_by(Tool.created_at, Tool.name)
    )
    return list(result.scalars().all())


async def get_tool(session: AsyncSession, tool_id: str) -> Tool | None:
    return await session.get(Tool, tool_id)


async def get_tool_by_name(session: AsyncSession, business_id: str, name: str) -> Tool | None:
    result = await session.execute(
        select(Tool).where(Tool.business_id == business_id, Tool.name == name)
    )
    return result.scalar_one_or_none()


async def get_connection(session: AsyncSession, user_id: str, tool_name: str) -> ToolConnection | None:
    result = await session.execute(
        select(ToolConnection).where(
            ToolConnection.user_id == user_id,
            ToolConnection.tool_name == tool_name,
        )
    )
    return result.scalar_one_or_none()


async def list_connections(session: AsyncSession, user_id: str) -> list[ToolConnection]:
    result = await session.execute(
        select(ToolConnection)
        .where(ToolConnection.user_id == user_id)
        .order_by(ToolConnection.tool_name)
    )
    return list(result.scalars().all())


async def list_configurations(session: AsyncSession, user_id: str) -> list[ToolConfiguration]:
    result = await session.execute(
        select(ToolConfiguration)
        .where(ToolConfiguration.user_id == user_id)
        .order_by(ToolConfiguration.tool_name)
    )
    return list(result.scalars().all())


async def get_configuration(session: AsyncSession, user_id: str, tool_name: str) -> ToolConfiguration | None:
    result = await session.execute(
        select(ToolConfiguration).where(
            ToolConfiguration.user_id == user_id,
            ToolConfiguration.tool_name == tool_name,
        )
    )
    return result.scalar_one_or_none()
