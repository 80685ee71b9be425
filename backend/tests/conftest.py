"""Shared fixtures: a migrated SQLite database, the app and an HTTP client."""

from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest
import pytest_asyncio
from alembic import command
from alembic.config import Config
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel

from api.deps import get_db
from app import create_app
from core.config import settings
from services import RateLimiter, set_rate_limiter

BACKEND_DIR = Path(__file__).resolve().parents[1]


def _alembic_config() -> Config:
    config = Config(str(BACKEND_DIR / "alembic.ini"))
    config.set_main_option("script_location", str(BACKEND_DIR / "alembic"))
    return config


def _enable_sqlite_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


@pytest.fixture(scope="session")
def test_database_url(tmp_path_factory: pytest.TempPathFactory) -> Iterator[str]:
    """Build the schema once per run by upgrading a scratch SQLite file to head."""
    db_path = tmp_path_factory.mktemp("db") / "sessions-test.db"
    database_url = f"sqlite+aiosqlite:///{db_path}"

    # env.py reads the URL from settings.
    configured_url = settings.database_url
    settings.database_url = database_url
    try:
        command.upgrade(_alembic_config(), "head")
    finally:
        settings.database_url = configured_url
    yield database_url


@pytest_asyncio.fixture()
async def test_engine(test_database_url: str) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(test_database_url)
    event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture()
def session_maker(test_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(test_engine, expire_on_commit=False)


@pytest_asyncio.fixture(autouse=True)
async def clean_database(session_maker: async_sessionmaker[AsyncSession]) -> AsyncIterator[None]:
    """Empty every table, children first, so each test starts from nothing."""
    async with session_maker() as session:
        for table in reversed(SQLModel.metadata.sorted_tables):
            await session.execute(table.delete())
        await session.commit()
    yield


@pytest_asyncio.fixture()
async def db_session(session_maker: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_maker() as session:
        yield session


@pytest.fixture()
def app(session_maker: async_sessionmaker[AsyncSession]) -> FastAPI:
    application = create_app()

    async def _get_test_db() -> AsyncIterator[AsyncSession]:
        async with session_maker() as session:
            yield session

    application.dependency_overrides[get_db] = _get_test_db
    return application


@pytest_asyncio.fixture()
async def async_client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://testserver",
    ) as client:
        yield client


class CountingRedis:
    """Minimal stand-in for the two Redis calls the rate limiter makes."""

    def __init__(self) -> None:
        self.counters: dict[str, int] = {}

    async def incr(self, key: str) -> int:
        self.counters[key] = self.counters.get(key, 0) + 1
        return self.counters[key]

    async def expire(self, key: str, ttl: int) -> None:
        return None


@pytest.fixture(autouse=True)
def generous_rate_limiter() -> Iterator[RateLimiter]:
    limiter = RateLimiter(CountingRedis(), limit=10_000, window_seconds=60)
    set_rate_limiter(limiter)
    yield limiter
    set_rate_limiter(None)
