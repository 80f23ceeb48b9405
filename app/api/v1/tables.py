"""Generic table administration endpoints."""

import logging
from typing import Any, Dict, List

from fastapi import APIRouter, Body, Query, status

from app.api.deps import CurrentAdmin, DbSession
from app.config import get_settings
from app.schemas.table import (
    ApiResponse,
    InsertResult,
    RecordPage,
    TableCatalogEntry,
    TableSchema,
)
from app.services.introspector import SchemaIntrospector
from app.services.query_executor import PaginatedQueryExecutor
from app.services.record_mutator import RecordMutator

settings = get_settings()
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tables", tags=["tables"])


@router.get("", response_model=ApiResponse[List[TableCatalogEntry]])
async def list_tables(
    db: DbSession,
    current_admin: CurrentAdmin,
) -> ApiResponse[List[TableCatalogEntry]]:
    """List all tables with their row counts."""
    service = SchemaIntrospector(db)
    return ApiResponse(data=await service.list_tables())


@router.get("/{table_name}/schema", response_model=ApiResponse[TableSchema])
async def get_table_schema(
    table_name: str,
    db: DbSession,
    current_admin: CurrentAdmin,
) -> ApiResponse[TableSchema]:
    """Get column descriptors and the identity column of a table."""
    service = SchemaIntrospector(db)
    return ApiResponse(data=await service.describe_table(table_name))


@router.get("/{table_name}", response_model=ApiResponse[RecordPage])
async def get_table_rows(
    table_name: str,
    db: DbSession,
    current_admin: CurrentAdmin,
    page: int = Query(default=1),
    limit: int = Query(default=settings.DEFAULT_PAGE_SIZE),
) -> ApiResponse[RecordPage]:
    """
    Get one page of rows.

    ``page`` and ``limit`` are checked by the executor so that out-of-range
    values get the same error envelope as every other failure.
    """
    executor = PaginatedQueryExecutor(db)
    return ApiResponse(data=await executor.fetch_page(table_name, page=page, limit=limit))


@router.post(
    "/{table_name}",
    response_model=ApiResponse[InsertResult],
    status_code=status.HTTP_201_CREATED,
)
async def insert_record(
    table_name: str,
    db: DbSession,
    current_admin: CurrentAdmin,
    fields: Dict[str, Any] = Body(...),
    confirm_identity: bool = Query(default=False),
) -> ApiResponse[InsertResult]:
    """Insert a row built from a flat column-to-value mapping."""
    mutator = RecordMutator(db)
    result = await mutator.insert(table_name, fields, confirm_identity=confirm_identity)
    logger.info(f"Admin {current_admin.get('sub')} inserted into '{table_name}'")
    return ApiResponse(data=result, message="Record inserted successfully")


@router.put(
    "/{table_name}/{record_id:path}",
    response_model=ApiResponse[None],
    response_model_exclude_none=True,
)
async def update_record(
    table_name: str,
    record_id: str,
    db: DbSession,
    current_admin: CurrentAdmin,
    fields: Dict[str, Any] = Body(...),
    confirm_identity: bool = Query(default=False),
) -> ApiResponse[None]:
    """Update the row whose identity column equals ``record_id``."""
    mutator = RecordMutator(db)
    await mutator.update(table_name, record_id, fields, confirm_identity=confirm_identity)
    logger.info(f"Admin {current_admin.get('sub')} updated '{table_name}' record {record_id}")
    return ApiResponse(message="Record updated successfully")


@router.delete(
    "/{table_name}/{record_id:path}",
    response_model=ApiResponse[None],
    response_model_exclude_none=True,
)
async def delete_record(
    table_name: str,
    record_id: str,
    db: DbSession,
    current_admin: CurrentAdmin,
    confirm_identity: bool = Query(default=False),
) -> ApiResponse[None]:
    """Delete the row whose identity column equals ``record_id``."""
    mutator = RecordMutator(db)
    await mutator.delete(table_name, record_id, confirm_identity=confirm_identity)
    logger.info(f"Admin {current_admin.get('sub')} deleted '{table_name}' record {record_id}")
    return ApiResponse(message="Record deleted successfully")
