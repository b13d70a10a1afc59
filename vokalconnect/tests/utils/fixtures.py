from __future__ import annotations

from vokalconnect.persistence.db import SessionLocal
from vokalconnect.services.businesses import create_business


async def create_test_business(*, admin_id: str, name: str = "Acme Coffee") -> tuple[str, str]:
    # Returns (business_id, access_code).
    async with SessionLocal() as session:
        business = await create_business(
            session,
            admin_id=admin_id,
            name=name,
            industry="Technology",
            website="https://acme.test",
            description="Specialty coffee roaster",
        )
        business_id = business.id
        code = business.code
        await session.commit()
    return business_id, code
