"""Fixtures for database infrastructure unit tests."""

from typing import cast

import pytest
from pytest_mock import MockerFixture, MockType
from sqlalchemy.ext.asyncio import AsyncSession

from member_service.infrastructure.database.models import Member, MemberTrait
from member_service.infrastructure.database.store import EntityStore, MemberStore


@pytest.fixture
def mock_session(mocker: MockerFixture) -> MockType:
    """Mock AsyncSession with async execute, flush and refresh.

    Returns:
        MockType: Session mock; ``add`` is a plain mock.
    """
    session = mocker.Mock(spec=AsyncSession)
    session.execute = mocker.AsyncMock()
    session.flush = mocker.AsyncMock()
    session.refresh = mocker.AsyncMock()
    session.add = mocker.MagicMock()
    return cast("MockType", session)


@pytest.fixture
def member_store(mock_session: MockType) -> MemberStore:
    """Member store bound to the mock session."""
    return MemberStore(mock_session)


@pytest.fixture
def trait_store(mock_session: MockType) -> EntityStore[MemberTrait]:
    """Generic store of member traits bound to the mock session."""
    return EntityStore(mock_session, MemberTrait)


def set_rows(mocker: MockerFixture, session: MockType, rows: list[object]) -> MockType:
    """Make ``session.execute`` return ``rows`` through ``scalars().all()``.

    Returns:
        MockType: The execute mock, for call assertions.
    """
    mock_result = mocker.MagicMock()
    mock_result.scalars.return_value.all.return_value = rows
    return cast(
        "MockType",
        mocker.patch.object(session, "execute", mocker.AsyncMock(return_value=mock_result)),
    )


def executed_sql(execute: MockType) -> str:
    """SQL text of the statement passed to the last execute call."""
    return str(execute.call_args.args[0])


def make_member(user_id: int, handle: str) -> Member:
    """Build an unsaved member."""
    return Member(user_id=user_id, handle=handle, handle_lower=handle.lower())
