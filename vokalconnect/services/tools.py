from __future__ import annotations

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import Tool
from vokalconnect.persistence.repos import tools as tools_repo


logger = logging.getLogger(__name__)

TOOL_STATUSES = ("PENDING", "GRANTED", "DENIED", "REQUESTED")

# Seeded for every business that has no tool rows yet.
DEFAULT_TOOLS: tuple[tuple[str, str], ...] = (
    ("Google Analytics", "Track website traffic and user behavior"),
    ("Google Ads", "Manage and optimize Google advertising campaigns"),
    ("Meta Ads", "Manage Facebook and Instagram advertising campaigns"),
    ("Meta Page", "Access Facebook page insights and management"),
    ("Meta Dataset", "Access Meta data for analysis and reporting"),
    ("LinkedIn Page", "Manage LinkedIn company page and insights"),
    ("LinkedIn Ads", "Manage LinkedIn advertising campaigns"),
    ("Shopify", "Access store data, orders, and analytics"),
)


async def ensure_default_tools(session: AsyncSession, business_id: str) -> int:
    """Seed the default tool requests when the business has none.

    Returns the number of rows added. Idempotent: a business with any tool
    rows is left untouched. The caller owns the commit.
    """
    if await tools_repo.count_tools(session, business_id) > 0:
        return 0
    for name, description in DEFAULT_TOOLS:
        session.add(
            Tool(
                business_id=business_id,
                name=name,
                description=description,
                status="PENDING",
                is_requested=False,
            )
        )
    await session.flush()
    logger.info("default_tools_seeded business_id=%s count=%s", business_id, len(DEFAULT_TOOLS))
    return len(DEFAULT_TOOLS)


async def mark_tool_granted(session: AsyncSession, business_id: str, tool_name: str) -> Tool:
    # Businesses created before a tool existed still get a row on first grant.
    tool = await tools_repo.get_tool_by_name(session, business_id, tool_name)
    if tool is None:
        tool = Tool(business_id=business_id, name=tool_name, status="GRANTED", is_requested=False)
        session.add(tool)
        await session.flush()
        return tool
    tool.status = "GRANTED"
    return tool


def normalize_tool_status(status: str) -> str:
    normalized = status.strip().upper()
    if normalized not in TOOL_STATUSES:
        raise ValueError(f"Unsupported tool status: {status}")
    return normalized
