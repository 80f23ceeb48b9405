"""Catalog and column introspection for arbitrary tables."""

import asyncio
import logging
from typing import List, Optional, Tuple

from sqlalchemy import MetaData, Table, UniqueConstraint, func, inspect, select
from sqlalchemy import table as table_clause
from sqlalchemy.exc import CompileError, NoSuchTableError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.exceptions import UnknownTable
from app.core.retry import retry_read
from app.schemas.table import ColumnDescriptor, KeyRole, TableCatalogEntry, TableSchema
from app.services.coercion import TypeFamily, type_family
from app.services.key_resolver import resolve_key

settings = get_settings()
logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """
    Reads table and column metadata from the store's catalog.

    Nothing is cached between calls: every lookup re-reads the catalog so a
    table dropped or altered since the last request is noticed.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def table_names(self) -> List[str]:
        """List all administrable tables, in catalog order."""

        def _table_names(sync_session: Session) -> List[str]:
            return inspect(sync_session.connection()).get_table_names(schema=settings.DB_SCHEMA)

        names = await retry_read(
            lambda: self.db.run_sync(_table_names),
            "Listing tables",
            on_retry=self.reset,
        )
        excluded = set(settings.EXCLUDED_TABLES)
        return [name for name in names if name not in excluded]

    async def list_tables(self) -> List[TableCatalogEntry]:
        """List all tables with their row counts."""
        entries = []
        for name in await self.table_names():
            entries.append(TableCatalogEntry(name=name, row_count=await self._try_count(name)))
        return entries

    async def ensure_table(self, table_name: str) -> None:
        """Raise UnknownTable unless the table is currently in the catalog."""
        if table_name not in await self.table_names():
            raise UnknownTable(table_name)

    async def describe_table(self, table_name: str) -> TableSchema:
        """Get the ordered column descriptors and identity column of a table."""
        _, schema = await self.reflect_table(table_name)
        return schema

    async def reflect_table(self, table_name: str) -> Tuple[Table, TableSchema]:
        """
        Reflect a table for statement building.

        Returns:
            The reflected SQLAlchemy table and its descriptor form

        Raises:
            UnknownTable: If the name is not an exact catalog match
        """
        await self.ensure_table(table_name)

        def _reflect(sync_session: Session) -> Tuple[Table, List[ColumnDescriptor]]:
            connection = sync_session.connection()
            reflected = Table(
                table_name,
                MetaData(),
                autoload_with=connection,
                schema=settings.DB_SCHEMA,
                resolve_fks=False,
            )
            return reflected, [
                _describe_column(reflected, column, connection.dialect)
                for column in reflected.columns
            ]

        try:
            reflected, columns = await retry_read(
                lambda: self.db.run_sync(_reflect),
                f"Reading schema of '{table_name}'",
                on_retry=self.reset,
            )
        except NoSuchTableError:
            # Dropped between the catalog check and reflection
            raise UnknownTable(table_name)
        if not columns:
            raise UnknownTable(table_name)

        schema = TableSchema(table_name=table_name, columns=columns)
        schema.identity = resolve_key(schema)
        return reflected, schema

    async def count_rows(self, table_name: str) -> int:
        """
        Count rows with a separate statement, bounded by COUNT_TIMEOUT_SECONDS.

        Raises:
            asyncio.TimeoutError: If counting takes too long
        """
        stmt = select(func.count()).select_from(
            table_clause(table_name, schema=settings.DB_SCHEMA)
        )
        result = await asyncio.wait_for(
            self.db.execute(stmt), timeout=settings.COUNT_TIMEOUT_SECONDS
        )
        return result.scalar() or 0

    async def _try_count(self, table_name: str) -> Optional[int]:
        try:
            return await self.count_rows(table_name)
        except asyncio.TimeoutError:
            logger.warning(f"Row count for '{table_name}' timed out; reporting as unknown")
        except SQLAlchemyError as e:
            logger.warning(f"Row count for '{table_name}' failed; reporting as unknown: {e}")
        await self.reset()
        return None

    async def reset(self) -> None:
        """Discard a failed transaction so the session can be reused."""
        try:
            await self.db.rollback()
        except SQLAlchemyError as e:
            logger.warning(f"Rollback after failed read did not complete: {e}")


def _describe_column(reflected: Table, column, dialect) -> ColumnDescriptor:
    try:
        type_name = column.type.compile(dialect=dialect)
    except CompileError:
        type_name = type(column.type).__name__.upper()

    if column.primary_key:
        key_role = KeyRole.PRIMARY
    elif _is_unique(reflected, column):
        key_role = KeyRole.UNIQUE
    else:
        key_role = KeyRole.NONE

    default_value = None
    if column.server_default is not None:
        arg = getattr(column.server_default, "arg", None)
        default_value = str(getattr(arg, "text", arg)) if arg is not None else None

    return ColumnDescriptor(
        name=column.name,
        type=type_name,
        nullable=bool(column.nullable),
        key_role=key_role,
        default_value=default_value,
        is_auto_generated=_is_auto_generated(reflected, column, type_name, default_value),
    )


def _is_unique(reflected: Table, column) -> bool:
    if column.unique:
        return True
    for constraint in reflected.constraints:
        if isinstance(constraint, UniqueConstraint):
            names = [c.name for c in constraint.columns]
            if names == [column.name]:
                return True
    for index in reflected.indexes:
        if index.unique and [c.name for c in index.columns] == [column.name]:
            return True
    return False


def _is_auto_generated(reflected: Table, column, type_name: str, default_value: Optional[str]) -> bool:
    if column.computed is not None or column.identity is not None:
        return True
    if column.autoincrement is True:
        return True
    if default_value and default_value.lower().startswith("nextval("):
        return True
    # Reflection said the store will not fill it in
    if column.autoincrement is False:
        return False
    if reflected.kwargs.get("sqlite_with_rowid", True) is False:
        return False
    # A lone integer primary key is assigned by the store (serial, rowid, auto_increment)
    return bool(
        column.primary_key
        and len(reflected.primary_key.columns) == 1
        and type_family(type_name) == TypeFamily.INTEGER
    )
