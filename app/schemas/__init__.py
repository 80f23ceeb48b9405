"""Pydantic schemas for request/response validation."""

from app.schemas.table import (
    ApiResponse,
    BlobMarker,
    ColumnDescriptor,
    ErrorDetail,
    ErrorResponse,
    InsertResult,
    KeyResolution,
    KeyRole,
    KeySource,
    Pagination,
    RecordPage,
    TableCatalogEntry,
    TableSchema,
)

__all__ = [
    "ApiResponse",
    "BlobMarker",
    "ColumnDescriptor",
    "ErrorDetail",
    "ErrorResponse",
    "InsertResult",
    "KeyResolution",
    "KeyRole",
    "KeySource",
    "Pagination",
    "RecordPage",
    "TableCatalogEntry",
    "TableSchema",
]
