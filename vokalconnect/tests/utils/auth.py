from __future__ import annotations

from uuid import uuid4

from vokalconnect.persistence.db import SessionLocal
from vokalconnect.persistence.repos import users as users_repo
from vokalconnect.services.auth.passwords import hash_password
from vokalconnect.services.auth.sessions import issue_session_token


async def create_test_user(
    *,
    role: str = "CLIENT",
    email: str | None = None,
    password: str = "password123",
) -> tuple[str, dict[str, str]]:
    # Provision a user and a bearer session for integration tests.
    address = email or f"user-{uuid4().hex[:10]}@example.test"
    async with SessionLocal() as session:
        user = await users_repo.create_user(
            session,
            email=address,
            password_hash=hash_password(password),
            role=role,
            name=f"Test {role.title()}",
        )
        user_id = user.id
        await session.commit()
    token = issue_session_token(user_id=user_id, role=role)
    return user_id, {"Authorization": f"Bearer {token}"}
