from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import Principal, get_db, require_admin
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.apps.api.response import success_response
from vokalconnect.domain.models import ToolConfiguration
from vokalconnect.persistence.repos import tools as tools_repo
from vokalconnect.services.audit import record_event
from vokalconnect.services.businesses import grant_all_access


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/admin", tags=["admin"], responses=DEFAULT_ERROR_RESPONSES)


class ToolConfigurationRequest(BaseModel):
    toolName: str = Field(min_length=1)
    config: dict[str, Any] = Field(default_factory=dict)


def _config_to_dict(configuration: ToolConfiguration) -> dict[str, Any]:
    return {
        "toolName": configuration.tool_name,
        "config": configuration.config or {},
        "updatedAt": configuration.updated_at.isoformat() if configuration.updated_at else None,
    }


@router.post("/grant-all-access")
async def grant_all_access_route(
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    try:
        created = await grant_all_access(db, granted_by=principal.user_id)
    except IntegrityError as exc:
        # A concurrent grant inserted some pairs first; the caller can simply retry.
        await db.rollback()
        raise HTTPException(
            status_code=409,
            detail={"code": "CONFLICT", "message": "Access grants changed concurrently, retry"},
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to grant access") from exc
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type="admin.grant_all_access",
        outcome="success",
        resource_type="business_members",
        request=request,
        metadata={"grants_created": created},
        commit=True,
    )
    return success_response(grantsCreated=created)


@router.get("/tool-configurations")
async def list_tool_configurations(
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    rows = await tools_repo.list_configurations(db, principal.user_id)
    return {"configurations": [_config_to_dict(row) for row in rows]}


@router.put("/tool-configurations")
async def save_tool_configuration(
    payload: ToolConfigurationRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    configuration = await tools_repo.get_configuration(db, principal.user_id, payload.toolName)
    if configuration is None:
        configuration = ToolConfiguration(user_id=principal.user_id, tool_name=payload.toolName)
        db.add(configuration)
    configuration.config = dict(payload.config)
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to save tool configuration") from exc
    return success_response(configuration=_config_to_dict(configuration))
