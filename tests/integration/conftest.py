"""Shared fixtures for integration tests.

Database tests run against the PostgreSQL server configured by
``DATABASE_CONFIG__DATABASE_URL``; they are skipped when it can not be
reached. Tables are created once per engine and every test runs inside a
connection-level transaction that is rolled back afterwards.
"""

from collections.abc import AsyncGenerator, Generator

import asyncpg
import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, create_async_engine
from sqlalchemy.pool import NullPool

from member_service.core.config import get_settings
from member_service.core.context import RequestContext
from member_service.infrastructure.database.base import Base


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None]:
    """Load fresh settings for each test."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def clean_request_context() -> Generator[None]:
    """Clear RequestContext before and after each test."""
    RequestContext.clear()
    yield
    RequestContext.clear()


@pytest.fixture
def database_url() -> str:
    """URL of the PostgreSQL database the tests run against."""
    return get_settings().database_config.database_url


@pytest.fixture
async def db_engine(database_url: str) -> AsyncGenerator[AsyncEngine]:
    """Engine with the member service tables in place.

    Skips the test when the database is not reachable.
    """
    engine = create_async_engine(database_url, poolclass=NullPool)
    try:
        async with engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
    except (OSError, SQLAlchemyError, asyncpg.PostgresError) as exc:
        await engine.dispose()
        pytest.skip(f"PostgreSQL is not available: {type(exc).__name__}")

    yield engine

    await engine.dispose()


@pytest.fixture
async def db_session(db_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Session whose changes are rolled back when the test ends.

    The session is bound to a connection with an open transaction, so every
    flush made by the code under test is discarded afterwards.
    """
    async with db_engine.connect() as connection:
        transaction = await connection.begin()
        session = AsyncSession(bind=connection, expire_on_commit=False)
        try:
            async with session:
                yield session
        finally:
            await transaction.rollback()
