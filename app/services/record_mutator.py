"""Insert, update and delete for tables whose structure is only known at runtime."""

import logging
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import Table, delete, insert, update
from sqlalchemy.exc import (
    DataError,
    DisconnectionError,
    IntegrityError,
    InterfaceError,
    OperationalError,
)
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import (
    AmbiguousIdentity,
    ConstraintViolation,
    InvalidFieldType,
    InvalidRequest,
    MissingRequiredField,
    RecordNotFound,
    StoreUnavailable,
    UnknownColumn,
)
from app.schemas.table import ColumnDescriptor, InsertResult, TableSchema
from app.services.coercion import coerce_value, is_blank, to_wire_value
from app.services.introspector import SchemaIntrospector

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("audit")

CONNECTIVITY_ERRORS = (OperationalError, InterfaceError, DisconnectionError)


class RecordMutator:
    """
    Generic row writer.

    Column names reach a statement only as columns of the freshly reflected
    table; values are always bound parameters. Writes are never retried.
    """

    def __init__(self, db: AsyncSession, introspector: Optional[SchemaIntrospector] = None):
        self.db = db
        self.introspector = introspector or SchemaIntrospector(db)

    async def insert(
        self,
        table_name: str,
        fields: Mapping[str, Any],
        confirm_identity: bool = False,
    ) -> InsertResult:
        """
        Insert one row.

        Blank values for auto-generated or defaulted columns are dropped so the
        store fills them in.

        Raises:
            UnknownTable, UnknownColumn, MissingRequiredField, AmbiguousIdentity,
            InvalidFieldType, ConstraintViolation, StoreUnavailable
        """
        table, schema = await self.introspector.reflect_table(table_name)
        self._check_columns(schema, fields)

        values = {
            name: value
            for name, value in fields.items()
            if not (is_blank(value) and _store_fills(schema.column(name)))
        }
        for column in schema.columns:
            if _is_required(column) and is_blank(values.get(column.name)):
                raise MissingRequiredField(column.name)

        self._check_identity(schema, confirm_identity)
        params = self._coerce_fields(schema, values)

        key = schema.identity.column
        stmt = insert(table)
        if params:
            stmt = stmt.values(params)

        returning = self.db.get_bind().dialect.insert_returning
        if returning:
            stmt = stmt.returning(table.c[key])

        result = await self._execute_write(stmt, table_name)
        if returning:
            new_id = result.scalar_one_or_none()
        else:
            new_id = params.get(key, result.lastrowid)
        await self._commit(table_name)

        audit_logger.info(
            f"INSERT table={table_name} {key}={new_id!r} columns={sorted(params)}"
        )
        return InsertResult(id=to_wire_value(new_id), identity=schema.identity)

    async def update(
        self,
        table_name: str,
        identity_value: Any,
        fields: Mapping[str, Any],
        confirm_identity: bool = False,
    ) -> None:
        """
        Update the row addressed by the table's identity column.

        No concurrency token is checked: the last writer wins.

        Raises:
            UnknownTable, UnknownColumn, InvalidRequest, AmbiguousIdentity,
            InvalidFieldType, RecordNotFound, ConstraintViolation, StoreUnavailable
        """
        table, schema = await self.introspector.reflect_table(table_name)
        self._check_columns(schema, fields)
        if not fields:
            raise InvalidRequest("No fields to update")

        self._check_identity(schema, confirm_identity)
        params = self._coerce_fields(schema, fields)
        key_column, key_value = self._identity_clause(table, schema, identity_value)

        stmt = update(table).where(key_column == key_value).values(params)
        result = await self._execute_write(stmt, table_name)
        await self._check_affected(result.rowcount, table_name, schema, identity_value)
        await self._commit(table_name)

        audit_logger.info(
            f"UPDATE table={table_name} {schema.identity.column}={identity_value!r} "
            f"columns={sorted(params)}"
        )

    async def delete(
        self,
        table_name: str,
        identity_value: Any,
        confirm_identity: bool = False,
    ) -> None:
        """
        Delete the row addressed by the table's identity column.

        Raises:
            UnknownTable, AmbiguousIdentity, InvalidFieldType, RecordNotFound,
            ConstraintViolation, StoreUnavailable
        """
        table, schema = await self.introspector.reflect_table(table_name)
        self._check_identity(schema, confirm_identity)
        key_column, key_value = self._identity_clause(table, schema, identity_value)

        stmt = delete(table).where(key_column == key_value)
        result = await self._execute_write(stmt, table_name)
        await self._check_affected(result.rowcount, table_name, schema, identity_value)
        await self._commit(table_name)

        audit_logger.info(
            f"DELETE table={table_name} {schema.identity.column}={identity_value!r}"
        )

    @staticmethod
    def _check_columns(schema: TableSchema, fields: Mapping[str, Any]) -> None:
        known = set(schema.column_names)
        for name in fields:
            if name not in known:
                raise UnknownColumn(schema.table_name, name)

    @staticmethod
    def _check_identity(schema: TableSchema, confirm_identity: bool) -> None:
        if schema.identity.ambiguous and not confirm_identity:
            raise AmbiguousIdentity(schema.table_name, schema.identity.column)

    @staticmethod
    def _coerce_fields(schema: TableSchema, fields: Mapping[str, Any]) -> Dict[str, Any]:
        return {name: coerce_value(schema.column(name), value) for name, value in fields.items()}

    @staticmethod
    def _identity_clause(table: Table, schema: TableSchema, identity_value: Any):
        if is_blank(identity_value):
            raise InvalidRequest("Record identity is required")
        key = schema.identity.column
        return table.c[key], coerce_value(schema.column(key), identity_value)

    async def _check_affected(
        self, rowcount: int, table_name: str, schema: TableSchema, identity_value: Any
    ) -> None:
        if rowcount == 0:
            await self.db.rollback()
            raise RecordNotFound(table_name, identity_value)
        if rowcount > 1:
            await self.db.rollback()
            logger.warning(
                f"Write on '{table_name}' by {schema.identity.column}={identity_value!r} "
                f"matched {rowcount} rows; rolled back"
            )
            raise AmbiguousIdentity(
                table_name,
                schema.identity.column,
                f"'{schema.identity.column}' = {identity_value!r} matches {rowcount} rows "
                f"in table '{table_name}'; nothing was changed",
            )

    async def _execute_write(self, stmt, table_name: str):
        try:
            return await self.db.execute(stmt)
        except IntegrityError as e:
            await self.db.rollback()
            message = _store_message(e)
            logger.info(f"Store rejected write on '{table_name}': {message}")
            raise ConstraintViolation(message) from e
        except DataError as e:
            await self.db.rollback()
            message = _store_message(e)
            logger.info(f"Store rejected value on '{table_name}': {message}")
            raise InvalidFieldType(None, message=message) from e
        except CONNECTIVITY_ERRORS as e:
            await self.db.rollback()
            # SQLite reports a dropped table as an OperationalError
            await self.introspector.ensure_table(table_name)
            logger.error(f"Write on '{table_name}' failed, store unavailable: {e}")
            raise StoreUnavailable(f"Writing to '{table_name}' failed: store unavailable") from e

    async def _commit(self, table_name: str) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConstraintViolation(_store_message(e)) from e
        except CONNECTIVITY_ERRORS as e:
            await self.db.rollback()
            logger.error(f"Commit on '{table_name}' failed, store unavailable: {e}")
            raise StoreUnavailable(f"Writing to '{table_name}' failed: store unavailable") from e


def _store_message(error) -> str:
    return str(error.orig) if error.orig is not None else str(error)


def _store_fills(column: ColumnDescriptor) -> bool:
    return column.is_auto_generated or column.default_value is not None


def _is_required(column: ColumnDescriptor) -> bool:
    return not column.nullable and column.default_value is None and not column.is_auto_generated
