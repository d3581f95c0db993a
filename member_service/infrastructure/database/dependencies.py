"""FastAPI dependency injection for database sessions."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from member_service.infrastructure.database.session import get_async_session


async def get_db() -> AsyncGenerator[AsyncSession]:
    """Provide a request-scoped database session.

    Yields:
        AsyncGenerator[AsyncSession]: Session committed when the request
            succeeds and rolled back when it fails.
    """
    async with get_async_session() as session:
        logger.debug("Providing database session for request")
        yield session


DatabaseSession = Annotated[AsyncSession, Depends(get_db)]
