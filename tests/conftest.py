import asyncio
import os
import tempfile
from typing import Optional

# Settings are read at import time; point them at SQLite before the app loads.
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{tempfile.gettempdir()}/marketplace-test.db"
os.environ["SEED_ON_STARTUP"] = "false"
os.environ["VALIDATE_CONFIGURATION"] = "false"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from app.database import Base, get_db
from app.main import app
from app.models import Integration
from app.schemas.integration import AuthorizationResult, ConnectionTestResult
from app.seed import seed_catalog
from app.services.external import (
    ConnectionTester,
    ExternalAuthorizer,
    get_authorizer,
    get_connection_tester,
)


class FakeAuthorizer(ExternalAuthorizer):
    def __init__(self) -> None:
        self.result = AuthorizationResult(success=True, message="Authorized")
        self.delay = 0.0
        self.error: Optional[BaseException] = None
        self.calls: list[str] = []

    async def authorize(self, integration, credentials):
        self.calls.append(integration.name)
        if self.error is not None:
            raise self.error
        if self.delay:
            await asyncio.sleep(self.delay)
        return self.result


class FakeTester(ConnectionTester):
    def __init__(self) -> None:
        self.result = ConnectionTestResult(success=True, message="Connection test successful!")
        self.calls: list[tuple] = []

    async def test(self, integration, credentials, configuration):
        self.calls.append((integration.name, credentials, configuration))
        return self.result


@pytest.fixture
def session_factory(tmp_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'marketplace.db'}", poolclass=NullPool)

    async def create_tables() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    asyncio.run(create_tables())
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    asyncio.run(engine.dispose())


@pytest.fixture
def authorizer() -> FakeAuthorizer:
    return FakeAuthorizer()


@pytest.fixture
def tester() -> FakeTester:
    return FakeTester()


@pytest.fixture
def overrides(session_factory, authorizer, tester):
    async def override_get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_authorizer] = lambda: authorizer
    app.dependency_overrides[get_connection_tester] = lambda: tester
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(overrides) -> TestClient:
    return TestClient(overrides)


@pytest.fixture
def seeded(session_factory) -> dict[str, str]:
    """Seed the catalog and return integration ids keyed by name."""

    async def run() -> dict[str, str]:
        async with session_factory() as db:
            await seed_catalog(db)
            await db.commit()
            result = await db.execute(select(Integration))
            return {integration.name: str(integration.id) for integration in result.scalars().all()}

    return asyncio.run(run())
