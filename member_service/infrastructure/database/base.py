"""SQLAlchemy declarative base and common document fields.

Every collection of the member service is a ``Document`` subclass. A
document declares the attribute used as its hash key (``__hash_key__``);
further unique or indexed columns act as secondary keys and are the only
attributes the store accepts in indexed queries.

Key components:
- **Naming conventions**: Standardized constraint names
- **Base class**: Configured declarative base with metadata
- **Document**: Abstract model with timestamps, key introspection and a
  plain-dict view used at the serialization boundary
"""

from datetime import datetime
from typing import Any, ClassVar

from sqlalchemy import DateTime, MetaData, func, inspect
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class Base(DeclarativeBase):
    """SQLAlchemy declarative base with naming conventions."""

    metadata = MetaData(naming_convention=NAMING_CONVENTION)


class Document(Base):
    """Abstract base for every stored collection.

    Subclasses must set ``__hash_key__`` to the name of the attribute that
    identifies a document. Timestamps are maintained by the database.
    """

    __abstract__ = True
    __hash_key__: ClassVar[str]

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
        doc="Timestamp when the document was created (UTC)",
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
        doc="Timestamp when the document was last updated (UTC)",
    )

    @classmethod
    def attribute_names(cls) -> frozenset[str]:
        """Names of all mapped column attributes."""
        return frozenset(attr.key for attr in inspect(cls).column_attrs)

    @classmethod
    def indexed_attribute_names(cls) -> frozenset[str]:
        """Names of attributes backed by a key or index.

        Includes the hash key, primary key columns and every column declared
        with ``unique=True`` or ``index=True``.
        """
        names = {cls.__hash_key__}
        for attr in inspect(cls).column_attrs:
            column = attr.columns[0]
            if column.primary_key or column.unique or column.index:
                names.add(attr.key)
        return frozenset(names)

    def to_dict(self) -> dict[str, Any]:
        """Return the column values as a plain dictionary."""
        return {name: getattr(self, name) for name in sorted(self.attribute_names())}

    def __repr__(self) -> str:
        """Return ``<ClassName(hash_key=value)>``."""
        key = self.__hash_key__
        return f"<{self.__class__.__name__}({key}={getattr(self, key, None)})>"
