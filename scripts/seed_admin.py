from __future__ import annotations

import argparse
import asyncio
import sys

from vokalconnect.core.logging import configure_logging
from vokalconnect.persistence.db import SessionLocal
from vokalconnect.persistence.repos import users as users_repo
from vokalconnect.services.audit import record_event
from vokalconnect.services.auth.passwords import hash_password


DEFAULT_ADMIN_EMAIL = "admin@vokal.io"
DEFAULT_ADMIN_PASSWORD = "password123"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Create or update an ADMIN user")
    parser.add_argument("--email", default=DEFAULT_ADMIN_EMAIL, help="Admin login email")
    parser.add_argument("--password", default=DEFAULT_ADMIN_PASSWORD, help="Admin password")
    parser.add_argument("--name", default="Vokal Admin", help="Display name")
    return parser


async def _seed_admin(args: argparse.Namespace) -> int:
    async with SessionLocal() as session:
        user = await users_repo.get_user_by_email(session, args.email)
        if user is None:
            user = await users_repo.create_user(
                session,
                email=args.email,
                password_hash=hash_password(args.password),
                role="ADMIN",
                name=args.name,
            )
            action = "created"
        else:
            # Existing accounts are promoted and get the new password.
            user.role = "ADMIN"
            user.password_hash = hash_password(args.password)
            if args.name:
                user.name = args.name
            action = "updated"
        user_id = user.id
        await session.commit()

        await record_event(
            session=session,
            actor_type="system",
            actor_id="seed_admin",
            actor_role="ADMIN",
            event_type=f"auth.admin.{action}",
            outcome="success",
            resource_type="user",
            resource_id=user_id,
            metadata={"email": args.email},
            commit=True,
        )

    print(f"Admin user {action}:")
    print(f"  user_id: {user_id}")
    print(f"  email: {args.email}")
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    configure_logging()
    try:
        return asyncio.run(_seed_admin(args))
    except Exception as exc:  # noqa: BLE001 - surface provisioning failures clearly
        print(f"seed_admin failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
