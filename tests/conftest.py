"""
Test fixtures and configuration.
"""

from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from sequestre.config.settings import (
    Settings,
    load_config,
    override_settings,
    reset_settings,
)
from sequestre.di.container import get_container, reset_container
from sequestre.infrastructure.persistence.database import Database
from tests.helpers.factories import (
    ADMIN_KEY,
    ADMIN_TOKEN,
    FUNDER_KEY,
    TREASURY_KEY,
)
from tests.helpers.fakes import FakeLedgerRegistry

# In-memory SQLite, one database per test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest.fixture
def test_settings() -> Settings:
    """Test settings with signing keys and admin token set."""
    settings = load_config(env="test")
    return settings.model_copy(
        update={
            "DATABASE_URL": TEST_DATABASE_URL,
            "ADMIN_API_TOKEN": ADMIN_TOKEN,
            "FUNDER_PRIVATE_KEY": FUNDER_KEY,
            "ADMIN_PRIVATE_KEY": ADMIN_KEY,
            "TREASURY_PRIVATE_KEY": TREASURY_KEY,
            "MIRROR_SYNC_ENABLED": False,
            "REDIS_ENABLED": False,
        }
    )


@pytest.fixture(autouse=True)
def settings(test_settings: Settings):
    """Install test settings globally; reset container afterwards."""
    override_settings(test_settings)
    yield test_settings
    reset_container()
    reset_settings()


@pytest_asyncio.fixture(scope="function")
async def test_db() -> AsyncGenerator[Database, None]:
    """
    Create test database and tables.

    Each test gets a clean database.
    """
    db = Database(database_url=TEST_DATABASE_URL, echo=False)
    await db.connect()
    await db.create_tables()

    yield db

    await db.drop_tables()
    await db.disconnect()


@pytest_asyncio.fixture(scope="function")
async def db_session(test_db: Database) -> AsyncGenerator[AsyncSession, None]:
    """Provide database session for tests."""
    async with test_db.session() as session:
        yield session


@pytest.fixture
def ledger_registry() -> FakeLedgerRegistry:
    """In-memory ledgers for every supported network."""
    return FakeLedgerRegistry()


@pytest_asyncio.fixture(scope="function")
async def client(
    test_db: Database,
    ledger_registry: FakeLedgerRegistry,
    test_settings: Settings,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide HTTP client for API testing.

    The container is wired to the test database and in-memory ledgers.
    """
    from sequestre.main import create_app

    container = get_container()
    container._database = test_db
    container.ledger_registry = ledger_registry

    app = create_app(test_settings)
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def admin_headers() -> dict:
    return {"X-Admin-Token": ADMIN_TOKEN}
