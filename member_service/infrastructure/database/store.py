"""Generic entity store over the member service collections.

One ``EntityStore`` is bound to a session and a document class; it offers
the handful of primitives every collection needs: unique-key lookup,
create, shallow update, unindexed scan and indexed query. Collections can
be resolved by name through ``get_store``.

Failures are never swallowed or retried here. Missing rows surface as
``NotFoundError``, driver failures as ``StoreReadError`` / ``StoreWriteError``
chained to the SQLAlchemy exception.
"""

from collections.abc import Collection, Mapping

from loguru import logger
from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from member_service.core.error_context import sanitize_dict
from member_service.core.exceptions import (
    BadRequestError,
    NotFoundError,
    StoreReadError,
    StoreWriteError,
)
from member_service.core.observability import trace_operation
from member_service.core.types import DocumentData, QueryDescriptor, ScanParams
from member_service.infrastructure.database.base import Document
from member_service.infrastructure.database.models import COLLECTIONS, Member

# Scan values of these types mean "attribute is one of"
_MULTI_VALUE_TYPES = (list, tuple, set, frozenset)


class EntityStore[T: Document]:
    """Data access for a single collection.

    Args:
        session: The async SQLAlchemy session to use for operations.
        model_class: The document class this store manages.

    Example:
        store = EntityStore(session, MemberTrait)
        traits = await store.query({"user_id": 123})
    """

    def __init__(self, session: AsyncSession, model_class: type[T]) -> None:
        self.session = session
        self.model_class = model_class
        logger.debug("Initialized entity store for {}", self.collection)

    @property
    def collection(self) -> str:
        """Collection name, as registered in ``COLLECTIONS``."""
        return self.model_class.__name__

    async def get_by_unique_key(self, key_name: str, value: object) -> T:
        """Fetch the one document whose ``key_name`` equals ``value``.

        If the store holds several matches, the first one in hash-key order
        is returned and a warning is logged.

        Args:
            key_name: An indexed attribute (hash key or secondary unique key).
            value: The value to look up.

        Returns:
            T: The matching document.

        Raises:
            NotFoundError: If no document matches.
            BadRequestError: If ``key_name`` is not an indexed attribute.
            StoreReadError: If the store call fails.
        """
        stmt = self._indexed_select({key_name: value}).limit(2)
        with trace_operation(
            "store.get_by_unique_key", collection=self.collection, key=key_name
        ):
            rows = await self._fetch(stmt, "get_by_unique_key")

        if not rows:
            logger.debug(
                "{} not found with {}: {}", self.collection, key_name, value
            )
            raise NotFoundError(
                f"Can not find {self.collection} with {key_name}: {value}",
                context={"collection": self.collection, "key": key_name},
            )

        if len(rows) > 1:
            logger.warning(
                "Multiple {} documents share {}: {}, returning the first",
                self.collection,
                key_name,
                value,
            )

        return rows[0]

    async def create(self, data: DocumentData) -> T:
        """Build a document from ``data`` and persist it.

        Args:
            data: Attribute values of the new document.

        Returns:
            T: The persisted document with server-generated values loaded.

        Raises:
            BadRequestError: If ``data`` names attributes the collection lacks.
            StoreWriteError: If persisting fails (constraint, connectivity).
        """
        unknown = set(data) - self.model_class.attribute_names()
        if unknown:
            raise BadRequestError(
                f"Unknown {self.collection} attributes: {', '.join(sorted(unknown))}",
                context={"collection": self.collection},
            )

        logger.debug(
            "Creating {} document - data: {}", self.collection, sanitize_dict(dict(data))
        )

        instance = self.model_class(**data)
        with trace_operation("store.create", collection=self.collection):
            await self._persist(instance, "create")

        logger.info("Created {} document {!r}", self.collection, instance)
        return instance

    async def update(self, entity: T, data: DocumentData) -> T:
        """Shallow-merge ``data`` onto ``entity`` and persist it.

        Every key of ``data`` overwrites the attribute with the same name;
        other attributes are left untouched. Keys that are not attributes of
        the collection are skipped with a warning. No concurrency check is
        made, the last write wins.

        Args:
            entity: A document previously loaded by the caller.
            data: Attribute values to overwrite.

        Returns:
            T: The same document, persisted.

        Raises:
            StoreWriteError: If persisting fails.
        """
        attribute_names = self.model_class.attribute_names()
        applied: list[str] = []
        for key, value in data.items():
            if key in attribute_names:
                setattr(entity, key, value)
                applied.append(key)
            else:
                logger.warning(
                    "Attempted to update non-existent field '{}' on {}",
                    key,
                    self.collection,
                )

        with trace_operation("store.update", collection=self.collection):
            await self._persist(entity, "update")

        logger.info(
            "Updated {} document {!r} - fields: {}", self.collection, entity, applied
        )
        return entity

    async def scan(self, scan_params: ScanParams | None = None) -> list[T]:
        """Unindexed bulk retrieval.

        Args:
            scan_params: Attribute filters; a list, tuple or set value matches
                any of its members, ``None`` matches missing values.

        Returns:
            list[T]: Matching documents in hash-key order, empty when none match.

        Raises:
            BadRequestError: If a filter names an unknown attribute.
            StoreReadError: If the store call fails.
        """
        stmt = select(self.model_class)
        for name, value in (scan_params or {}).items():
            column = self._column(name, self.model_class.attribute_names())
            if isinstance(value, _MULTI_VALUE_TYPES):
                stmt = stmt.where(column.in_(list(value)))
            elif value is None:
                stmt = stmt.where(column.is_(None))
            else:
                stmt = stmt.where(column == value)

        with trace_operation("store.scan", collection=self.collection):
            rows = await self._fetch(self._ordered(stmt), "scan")

        logger.debug("Scanned {} - found {} documents", self.collection, len(rows))
        return rows

    async def query(self, query_descriptor: QueryDescriptor) -> list[T]:
        """Indexed retrieval by equality on key or indexed attributes.

        Args:
            query_descriptor: Indexed attribute -> expected value.

        Returns:
            list[T]: Matching documents in hash-key order, empty when none match.

        Raises:
            BadRequestError: If the descriptor names a non-indexed attribute.
            StoreReadError: If the store call fails.
        """
        stmt = self._indexed_select(query_descriptor)
        with trace_operation("store.query", collection=self.collection):
            rows = await self._fetch(stmt, "query")

        logger.debug("Queried {} - found {} documents", self.collection, len(rows))
        return rows

    def _column(
        self, name: str, allowed: Collection[str]
    ) -> InstrumentedAttribute[object]:
        if name not in allowed:
            raise BadRequestError(
                f"Attribute '{name}' can not be used to filter {self.collection}",
                context={"collection": self.collection, "attribute": name},
            )
        column: InstrumentedAttribute[object] = getattr(self.model_class, name)
        return column

    def _ordered(self, stmt: Select[tuple[T]]) -> Select[tuple[T]]:
        return stmt.order_by(getattr(self.model_class, self.model_class.__hash_key__))

    def _indexed_select(self, conditions: Mapping[str, object]) -> Select[tuple[T]]:
        indexed = self.model_class.indexed_attribute_names()
        stmt = select(self.model_class)
        for name, value in conditions.items():
            stmt = stmt.where(self._column(name, indexed) == value)
        return self._ordered(stmt)

    async def _fetch(self, stmt: Select[tuple[T]], operation: str) -> list[T]:
        try:
            result = await self.session.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as exc:
            logger.error(
                "{} {} failed: {}", self.collection, operation, type(exc).__name__
            )
            raise StoreReadError(
                f"Failed to {operation} {self.collection}",
                context={"collection": self.collection, "operation": operation},
                cause=exc,
            ) from exc

    async def _persist(self, instance: T, operation: str) -> None:
        try:
            self.session.add(instance)
            await self.session.flush()
            # Load server-generated values (timestamps)
            await self.session.refresh(instance)
        except SQLAlchemyError as exc:
            logger.error(
                "{} {} failed: {}", self.collection, operation, type(exc).__name__
            )
            raise StoreWriteError(
                f"Failed to {operation} {self.collection}",
                context={"collection": self.collection, "operation": operation},
                cause=exc,
            ) from exc


class MemberStore(EntityStore[Member]):
    """Entity store for member profiles."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Member)

    async def get_by_handle(self, handle: str) -> Member:
        """Fetch a member by handle, ignoring case.

        Raises:
            NotFoundError: If no member has this handle.
        """
        try:
            return await self.get_by_unique_key("handle_lower", handle.lower())
        except NotFoundError as exc:
            raise NotFoundError(
                f'Member with handle: "{handle}" doesn\'t exist',
                context={"handle": handle},
            ) from exc


def get_store(session: AsyncSession, collection: str) -> EntityStore[Document]:
    """Build the entity store of a collection given its name.

    Args:
        session: The async session to bind.
        collection: A name registered in ``COLLECTIONS`` (e.g. ``"Member"``).

    Returns:
        EntityStore[Document]: Store for that collection.

    Raises:
        BadRequestError: If the collection is unknown.
    """
    model_class = COLLECTIONS.get(collection)
    if model_class is None:
        raise BadRequestError(
            f"Unknown collection: {collection}", context={"collection": collection}
        )
    return EntityStore(session, model_class)
