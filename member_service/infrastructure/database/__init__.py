"""Document store access layer: SQLAlchemy 2.0 async over PostgreSQL.

Core components:
- **base**: Declarative base and the abstract ``Document``
- **models**: Member collections and the name -> class registry
- **session**: Async engine and session management
- **store**: Generic entity store (lookup, create, update, scan, query)
- **dependencies**: FastAPI dependency injection helpers
"""

from member_service.infrastructure.database.base import Base, Document
from member_service.infrastructure.database.dependencies import (
    DatabaseSession,
    get_db,
)
from member_service.infrastructure.database.models import (
    COLLECTIONS,
    Member,
    MemberTrait,
)
from member_service.infrastructure.database.session import (
    close_database,
    create_database_engine,
    get_async_session,
    get_engine,
    get_session_factory,
)
from member_service.infrastructure.database.store import (
    EntityStore,
    MemberStore,
    get_store,
)

__all__ = [
    "COLLECTIONS",
    "Base",
    "DatabaseSession",
    "Document",
    "EntityStore",
    "Member",
    "MemberStore",
    "MemberTrait",
    "close_database",
    "create_database_engine",
    "get_async_session",
    "get_db",
    "get_engine",
    "get_session_factory",
    "get_store",
]
