from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import Principal, get_current_principal, get_db
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.core.config import get_settings
from vokalconnect.persistence.repos import users as users_repo
from vokalconnect.services.audit import record_event
from vokalconnect.services.auth.passwords import hash_password, verify_password
from vokalconnect.services.auth.sessions import ROLE_CLIENT, issue_session_token


router = APIRouter(prefix="/api/auth", tags=["auth"], responses=DEFAULT_ERROR_RESPONSES)


class RegisterRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=8)
    name: str | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


class UserResponse(BaseModel):
    id: str
    email: str
    name: str | None
    role: str


class SessionResponse(BaseModel):
    token: str
    user: UserResponse


def _to_user(user) -> UserResponse:
    return UserResponse(id=user.id, email=user.email, name=user.name, role=user.role)


def _set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        settings.session_cookie_name,
        token,
        max_age=settings.session_ttl_hours * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.public_base_url.startswith("https://"),
    )


@router.post("/register", response_model=SessionResponse, status_code=201)
async def register(
    payload: RegisterRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    # Self-registration only ever creates clients; admins come from the seed script.
    try:
        user = await users_repo.create_user(
            db,
            email=payload.email,
            password_hash=hash_password(payload.password),
            role=ROLE_CLIENT,
            name=payload.name,
        )
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        raise HTTPException(
            status_code=409,
            detail={"code": "USER_EXISTS", "message": "A user with this email already exists"},
        ) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create user") from exc

    token = issue_session_token(user_id=user.id, role=user.role)
    _set_session_cookie(response, token)
    await record_event(
        session=db,
        actor_type="user",
        actor_id=user.id,
        actor_role=user.role,
        event_type="auth.user.registered",
        outcome="success",
        resource_type="user",
        resource_id=user.id,
        request=request,
        commit=True,
    )
    return SessionResponse(token=token, user=_to_user(user))


@router.post("/login", response_model=SessionResponse)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    db: AsyncSession = Depends(get_db),
) -> SessionResponse:
    user = await users_repo.get_user_by_email(db, payload.email)
    if user is None or not verify_password(payload.password, user.password_hash):
        await record_event(
            session=db,
            actor_type="anonymous",
            actor_id=None,
            actor_role=None,
            event_type="auth.login.failure",
            outcome="failure",
            resource_type="auth",
            request=request,
            error_code="AUTH_UNAUTHORIZED",
            commit=True,
        )
        # Same message for unknown email and wrong password.
        raise HTTPException(
            status_code=401,
            detail={"code": "AUTH_UNAUTHORIZED", "message": "Invalid email or password"},
        )
    token = issue_session_token(user_id=user.id, role=user.role)
    _set_session_cookie(response, token)
    await record_event(
        session=db,
        actor_type="user",
        actor_id=user.id,
        actor_role=user.role,
        event_type="auth.login.success",
        outcome="success",
        resource_type="auth",
        request=request,
        commit=True,
    )
    return SessionResponse(token=token, user=_to_user(user))


@router.post("/logout")
async def logout(response: Response) -> dict:
    response.delete_cookie(get_settings().session_cookie_name)
    return {"success": True}


@router.get("/me", response_model=UserResponse)
async def me(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> UserResponse:
    user = await users_repo.get_user(db, principal.user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return _to_user(user)
