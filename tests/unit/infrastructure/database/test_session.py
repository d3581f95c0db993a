"""Unit tests for database session management."""

import pytest
import pytest_check
from pytest_mock import MockerFixture, MockType
from sqlalchemy.exc import OperationalError

from member_service.infrastructure.database.dependencies import get_db
from member_service.infrastructure.database.session import (
    _DatabaseManager,
    check_database_connection,
    get_async_session,
)

SESSION = "member_service.infrastructure.database.session"


@pytest.fixture
def session_factory(mocker: MockerFixture) -> MockType:
    """Patch the session factory to hand out one mock session.

    Returns:
        MockType: The session the factory yields.
    """
    session = mocker.MagicMock()
    session.commit = mocker.AsyncMock()
    session.rollback = mocker.AsyncMock()
    session_cm = mocker.MagicMock()
    session_cm.__aenter__ = mocker.AsyncMock(return_value=session)
    session_cm.__aexit__ = mocker.AsyncMock(return_value=None)
    mocker.patch(
        f"{SESSION}.get_session_factory",
        return_value=mocker.Mock(return_value=session_cm),
    )
    return session


@pytest.mark.unit
class TestGetAsyncSession:
    """Test cases for the request session context."""

    async def test_commit_on_success(self, session_factory: MockType) -> None:
        """Sessions commit when the block succeeds."""
        async with get_async_session() as session:
            assert session is session_factory

        with pytest_check.check:
            session_factory.commit.assert_awaited_once()
        with pytest_check.check:
            session_factory.rollback.assert_not_awaited()

    async def test_rollback_on_error(self, session_factory: MockType) -> None:
        """Sessions roll back and re-raise when the block fails."""
        with pytest.raises(ValueError, match="bad member"):
            async with get_async_session():
                raise ValueError("bad member")

        with pytest_check.check:
            session_factory.rollback.assert_awaited_once()
        with pytest_check.check:
            session_factory.commit.assert_not_awaited()

    async def test_get_db_yields_session(self, session_factory: MockType) -> None:
        """The FastAPI dependency yields the request session."""
        generator = get_db()
        session = await anext(generator)

        with pytest_check.check:
            assert session is session_factory
        with pytest.raises(StopAsyncIteration):
            await anext(generator)
        session_factory.commit.assert_awaited_once()


@pytest.mark.unit
class TestCheckDatabaseConnection:
    """Test cases for the database health probe."""

    async def test_healthy(self, mocker: MockerFixture) -> None:
        """A successful SELECT 1 is healthy."""
        conn = mocker.MagicMock()
        conn.execute = mocker.AsyncMock()
        engine = mocker.MagicMock()
        engine.connect.return_value.__aenter__ = mocker.AsyncMock(return_value=conn)
        engine.connect.return_value.__aexit__ = mocker.AsyncMock(return_value=None)
        mocker.patch(f"{SESSION}.get_engine", return_value=engine)

        assert await check_database_connection() == (True, None)

    async def test_unhealthy(self, mocker: MockerFixture) -> None:
        """Driver errors are reported with their message."""
        engine = mocker.MagicMock()
        engine.connect.side_effect = OperationalError("SELECT 1", {}, Exception("refused"))
        mocker.patch(f"{SESSION}.get_engine", return_value=engine)

        healthy, error = await check_database_connection()

        with pytest_check.check:
            assert healthy is False
        with pytest_check.check:
            assert error is not None
        with pytest_check.check:
            assert "refused" in error


@pytest.mark.unit
class TestDatabaseManager:
    """Test cases for the engine holder."""

    def test_engine_created_once(self, mocker: MockerFixture) -> None:
        """The engine is built on first use and reused."""
        mock_create = mocker.patch(f"{SESSION}.create_database_engine")
        manager = _DatabaseManager()

        first = manager.get_engine()
        second = manager.get_engine()

        with pytest_check.check:
            assert first is second
        with pytest_check.check:
            mock_create.assert_called_once()

    async def test_close_disposes_engine(self, mocker: MockerFixture) -> None:
        """Closing disposes the engine and forgets it."""
        engine = mocker.MagicMock()
        engine.dispose = mocker.AsyncMock()
        mocker.patch(f"{SESSION}.create_database_engine", return_value=engine)
        manager = _DatabaseManager()
        manager.get_engine()

        await manager.close()

        with pytest_check.check:
            engine.dispose.assert_awaited_once()
        with pytest_check.check:
            assert manager._engine is None
