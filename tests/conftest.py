"""Pytest configuration and fixtures."""
import os
from pathlib import Path
import uuid

import pytest
from alembic import command
from alembic.config import Config as AlembicConfig
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Ensure the application uses a dedicated SQLite database during tests
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["ADMIN_API_KEY"] = "test-admin-key"
os.environ["PAYMENT_WEBHOOK_SECRET"] = "test-webhook-secret"
os.environ["REDIS_URL"] = ""

from arena.config import get_settings
from tests.helpers import sample_match_data


BASE_DIR = Path(__file__).resolve().parent.parent
TEST_DB_PATH = BASE_DIR / "test.db"
settings = get_settings()


@pytest.fixture(scope="session", autouse=True)
def apply_migrations():
    """Apply database migrations against the test database."""
    if TEST_DB_PATH.exists():
        try:
            TEST_DB_PATH.unlink()
        except PermissionError:
            pass  # Migrations will reuse it

    alembic_cfg = AlembicConfig(str(BASE_DIR / "alembic.ini"))
    alembic_cfg.set_main_option("sqlalchemy.url", settings.database_url)
    command.upgrade(alembic_cfg, "head")

    yield

    if TEST_DB_PATH.exists():
        try:
            TEST_DB_PATH.unlink()
        except PermissionError:
            # Still in use; cleaned up on the next run
            pass


@pytest.fixture
async def test_engine():
    """Create test database engine using the same database as migrations."""
    engine = create_async_engine(
        settings.database_url,
        echo=False,
        pool_pre_ping=True,
        pool_recycle=300,
    )

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(test_engine):
    """Create test database session."""
    async_session = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()
        await session.close()


@pytest.fixture
def session_maker(test_engine):
    """Session factory for tests that need several independent sessions."""
    return async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def test_app(test_engine):
    """Create test app with database override."""
    from arena.main import app
    from arena.database import get_db

    async def override_get_db():
        async_session = async_sessionmaker(
            test_engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        async with async_session() as session:
            try:
                yield session
            finally:
                await session.close()

    app.dependency_overrides[get_db] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def wallet_factory(db_session):
    """Factory for wallets owned by fresh users."""
    from arena.services import WalletService

    wallet_service = WalletService(db_session)

    async def _create_wallet(initial_balance: int = 1000, user_id: uuid.UUID | None = None):
        unique_id = uuid.uuid4().hex[:8]
        return await wallet_service.create_wallet(
            user_id=user_id or uuid.uuid4(),
            user_name=f"player_{unique_id}",
            user_email=f"player_{unique_id}@example.com",
            initial_balance=initial_balance,
        )

    return _create_wallet


@pytest.fixture
async def match_factory(db_session):
    """Factory for upcoming matches; keyword arguments override the sample data."""
    from arena.services import MatchService

    match_service = MatchService(db_session)

    async def _create_match(**overrides):
        return await match_service.create_match(sample_match_data(**overrides))

    return _create_match
