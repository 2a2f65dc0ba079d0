import logging
from typing import Any, List, Optional, Type, TypeVar

from sqlalchemy import func, insert, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import create_async_engine

from src.domain.exceptions import DatabaseConnectionError, NotFoundError, PersistenceError
from src.domain.models import Entity
from src.infrastructure.descriptors import EntityDescriptor, descriptor_for, metadata

logger = logging.getLogger(__name__)

E = TypeVar('E', bound=Entity)

# Driver-level failures (refused connection, dropped socket) surface as OSError.
STORAGE_ERRORS = (SQLAlchemyError, OSError)


class Database:
    """
    Generic persistence layer for every entity kind with a registered descriptor.

    Each instance owns exactly one database connection; concurrent callers of
    the same instance are serialized through it. Rows with a non-null
    deleted_at are invisible to every read and write.
    """

    def __init__(self, db_url: str):
        self.engine = create_async_engine(db_url, echo=False, pool_size=1, max_overflow=0)

    @classmethod
    async def connect(cls, db_url: str) -> "Database":
        """
        Builds a Database and verifies the server is reachable.

        Raises:
            DatabaseConnectionError: If the engine cannot be created or the probe fails.
        """
        logger.debug("Establishing database connection.")
        try:
            database = cls(db_url)
        except (SQLAlchemyError, ImportError) as e:
            raise DatabaseConnectionError(f"Invalid database configuration: {e}") from e

        try:
            await database.ping()
        except PersistenceError as e:
            await database.close()
            raise DatabaseConnectionError(f"Could not connect to database: {e}") from e

        logger.info("Successfully connected to database.")
        return database

    async def ping(self) -> None:
        """Runs SELECT 1 against the database."""
        await self._execute(text('SELECT 1'), "ping", "database")

    async def create_schema(self) -> None:
        """Creates the entity tables if they do not exist yet."""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(metadata.create_all)
        except STORAGE_ERRORS as e:
            logger.error(f"Database.create_schema - Failed: {e}")
            raise PersistenceError(str(e)) from e

    async def close(self) -> None:
        await self.engine.dispose()

    async def create(self, entity: E) -> E:
        """
        Inserts an entity and returns it as materialized by the database,
        including its server-assigned id and timestamps.
        """
        descriptor = descriptor_for(type(entity))
        values = dict(zip(descriptor.columns, descriptor.to_params(entity)))
        stmt = insert(descriptor.table).values(values).returning(*descriptor.table.c)

        row = await self._fetch_one(stmt, "create", descriptor)
        if row is None:
            raise PersistenceError(f"Insert into {descriptor.table_name} returned no row.")
        logger.debug(f"Database.create<{descriptor.table_name}> - Created entity {row['id']}")
        return descriptor.from_row(row)

    async def get(self, kind: Type[E], entity_id: str) -> E:
        """
        Fetches a single live entity by id.

        Raises:
            NotFoundError: If no row has that id or the row is soft-deleted.
        """
        descriptor = descriptor_for(kind)
        table = descriptor.table
        stmt = select(table).where(table.c.id == entity_id, table.c.deleted_at.is_(None))

        row = await self._fetch_one(stmt, "get", descriptor)
        if row is None:
            logger.debug(f"Database.get<{descriptor.table_name}> - Entity not found: {entity_id}")
            raise NotFoundError(descriptor.table_name, entity_id)
        return descriptor.from_row(row)

    async def list_all(self, kind: Type[E]) -> List[E]:
        """Fetches every live entity of a kind, oldest first."""
        descriptor = descriptor_for(kind)
        table = descriptor.table
        stmt = select(table).where(table.c.deleted_at.is_(None)).order_by(table.c.created_at)

        rows = await self._fetch_all(stmt, "list_all", descriptor)
        logger.debug(f"Database.list_all<{descriptor.table_name}> - Retrieved {len(rows)} entities")
        return [descriptor.from_row(row) for row in rows]

    async def update(self, entity: E) -> E:
        """
        Overwrites every descriptor column of a live entity and refreshes updated_at.

        Raises:
            NotFoundError: If no live row has the entity's id.
        """
        descriptor = descriptor_for(type(entity))
        table = descriptor.table
        if entity.id is None:
            raise NotFoundError(descriptor.table_name, "<unsaved>")

        stmt = (
            update(table)
            .where(table.c.id == entity.id, table.c.deleted_at.is_(None))
            .values(**descriptor.update_set(entity), updated_at=func.now())
            .returning(*table.c)
        )

        row = await self._fetch_one(stmt, "update", descriptor)
        if row is None:
            raise NotFoundError(descriptor.table_name, entity.id)
        return descriptor.from_row(row)

    async def remove(self, kind: Type[E], entity_id: str) -> E:
        """
        Soft-deletes an entity by stamping deleted_at; the row is kept.

        Raises:
            NotFoundError: If no live row has that id.
        """
        descriptor = descriptor_for(kind)
        table = descriptor.table
        stmt = (
            update(table)
            .where(table.c.id == entity_id, table.c.deleted_at.is_(None))
            .values(deleted_at=func.now())
            .returning(*table.c)
        )

        row = await self._fetch_one(stmt, "remove", descriptor)
        if row is None:
            raise NotFoundError(descriptor.table_name, entity_id)
        logger.debug(f"Database.remove<{descriptor.table_name}> - Soft deleted entity {entity_id}")
        return descriptor.from_row(row)

    async def _fetch_one(self, stmt, operation: str, descriptor: EntityDescriptor) -> Optional[Any]:
        result = await self._execute(stmt, operation, descriptor.table_name)
        return result.mappings().first()

    async def _fetch_all(self, stmt, operation: str, descriptor: EntityDescriptor) -> List[Any]:
        result = await self._execute(stmt, operation, descriptor.table_name)
        return list(result.mappings().all())

    async def _execute(self, stmt, operation: str, label: str):
        try:
            async with self.engine.begin() as conn:
                return await conn.execute(stmt)
        except STORAGE_ERRORS as e:
            logger.error(f"Database.{operation}<{label}> - Failed: {e}")
            raise PersistenceError(str(e)) from e
