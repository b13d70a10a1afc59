from __future__ import annotations

import os
import tempfile

# Settings are cached on first import, so the test environment goes in first.
_TEST_DB_DIR = tempfile.mkdtemp(prefix="vokalconnect-tests-")
os.environ["DATABASE_URL"] = os.environ.get(
    "TEST_DATABASE_URL", f"sqlite+aiosqlite:///{_TEST_DB_DIR}/vokalconnect.db"
)
os.environ.setdefault("SESSION_SECRET", "test-session-secret")
os.environ.setdefault("PUBLIC_BASE_URL", "http://portal.test")
os.environ.setdefault("GOOGLE_CLIENT_ID", "google-client")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "google-secret")
os.environ.setdefault("META_CLIENT_ID", "meta-client")
os.environ.setdefault("META_CLIENT_SECRET", "meta-secret")
os.environ.setdefault("LINKEDIN_CLIENT_ID", "linkedin-client")
os.environ.setdefault("LINKEDIN_CLIENT_SECRET", "linkedin-secret")
os.environ.setdefault("SHOPIFY_CLIENT_ID", "shopify-client")
os.environ.setdefault("SHOPIFY_CLIENT_SECRET", "shopify-secret")
os.environ.setdefault("SHOPIFY_SHOP_DOMAIN", "vokal-test.myshopify.com")

import pytest  # noqa: E402

from vokalconnect.domain.models import Base  # noqa: E402
from vokalconnect.persistence.db import engine  # noqa: E402


@pytest.fixture(autouse=True)
async def reset_schema_between_tests() -> None:
    # Each test starts from empty tables; the engine is disposed so no
    # connection outlives the loop it was opened on.
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()
