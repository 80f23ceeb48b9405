"""Bounded, paginated row fetching for arbitrary tables."""

import asyncio
import logging
import math
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.core.exceptions import InvalidRequest, StoreUnavailable
from app.core.retry import retry_read
from app.schemas.table import Pagination, RecordPage
from app.services.coercion import to_wire_value
from app.services.introspector import SchemaIntrospector

settings = get_settings()
logger = logging.getLogger(__name__)


class PaginatedQueryExecutor:
    """Turns a table name and page request into a safe row fetch plus total."""

    def __init__(self, db: AsyncSession, introspector: Optional[SchemaIntrospector] = None):
        self.db = db
        self.introspector = introspector or SchemaIntrospector(db)

    async def fetch_page(self, table_name: str, page: int = 1, limit: Optional[int] = None) -> RecordPage:
        """
        Fetch one page of rows.

        Args:
            table_name: Table to read, must be in the current catalog
            page: 1-based page number
            limit: Rows per page, capped at MAX_PAGE_SIZE

        Raises:
            InvalidRequest: If page or limit is below 1
            UnknownTable: If the table does not exist
            StoreUnavailable: If the store cannot be reached or counting times out
        """
        if limit is None:
            limit = settings.DEFAULT_PAGE_SIZE
        if page < 1:
            raise InvalidRequest(f"Page must be a positive integer, got {page}")
        if limit < 1:
            raise InvalidRequest(f"Limit must be a positive integer, got {limit}")
        if limit > settings.MAX_PAGE_SIZE:
            logger.info(f"Capping page size {limit} to {settings.MAX_PAGE_SIZE}")
            limit = settings.MAX_PAGE_SIZE

        table, schema = await self.introspector.reflect_table(table_name)
        offset = (page - 1) * limit

        stmt = select(table).limit(limit).offset(offset)
        # Stable ordering only when the identity column can be trusted
        if schema.identity is not None and not schema.identity.ambiguous:
            stmt = stmt.order_by(table.c[schema.identity.column])

        async def _fetch_rows():
            result = await self.db.execute(stmt)
            return [dict(row) for row in result.mappings().all()]

        try:
            rows = await retry_read(
                _fetch_rows,
                f"Reading rows of '{table_name}'",
                on_retry=self.introspector.reset,
            )
            total = await retry_read(
                lambda: self.introspector.count_rows(table_name),
                f"Counting rows of '{table_name}'",
                on_retry=self.introspector.reset,
            )
        except asyncio.TimeoutError:
            await self.introspector.reset()
            raise StoreUnavailable(
                f"Counting rows of '{table_name}' exceeded {settings.COUNT_TIMEOUT_SECONDS}s"
            )
        except StoreUnavailable:
            # SQLite reports a table dropped since reflection as an OperationalError
            await self.introspector.reset()
            await self.introspector.ensure_table(table_name)
            raise

        total_pages = max(1, math.ceil(total / limit))
        logger.debug(
            f"Fetched {len(rows)} rows from '{table_name}' (page {page}/{total_pages}, total {total})"
        )

        return RecordPage(
            table_name=table_name,
            rows=[
                {name: to_wire_value(value) for name, value in row.items()}
                for row in rows
            ],
            pagination=Pagination(
                page=page,
                limit=limit,
                total=total,
                total_pages=total_pages,
            ),
        )
