"""Table schemas for catalog, introspection and paging."""

import enum
from typing import Dict, Generic, List, Literal, Optional, TypeVar, Union

from pydantic import BaseModel, ConfigDict, computed_field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class WireModel(BaseModel):
    """Base for payloads serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class KeyRole(str, enum.Enum):
    """Role a column plays in identifying rows."""

    NONE = "none"
    PRIMARY = "primary"
    UNIQUE = "unique"


class KeySource(str, enum.Enum):
    """How the identity column of a table was found."""

    DECLARED_PRIMARY = "declared_primary"
    COMPOSITE_PRIMARY = "composite_primary"
    ID_COLUMN = "id_column"
    FIRST_COLUMN = "first_column"


class BlobMarker(WireModel):
    """Placeholder sent instead of raw binary column content."""

    type: Literal["blob"] = "blob"
    size: int


WireValue = Union[None, bool, int, float, str, BlobMarker]


class TableCatalogEntry(WireModel):
    """Catalog entry. ``row_count`` is None when it could not be counted."""

    name: str
    row_count: Optional[int] = None


class ColumnDescriptor(WireModel):
    """Column information schema."""

    name: str
    type: str
    nullable: bool
    key_role: KeyRole = KeyRole.NONE
    default_value: Optional[Union[bool, int, float, str]] = None
    is_auto_generated: bool = False


class KeyResolution(WireModel):
    """Identity column of a table together with how it was resolved."""

    column: str
    source: KeySource

    @computed_field
    @property
    def ambiguous(self) -> bool:
        """True when writes addressed by this column may hit the wrong rows."""
        return self.source in (KeySource.FIRST_COLUMN, KeySource.COMPOSITE_PRIMARY)


class TableSchema(WireModel):
    """Ordered column descriptors of one table."""

    table_name: str
    columns: List[ColumnDescriptor]
    identity: Optional[KeyResolution] = None

    def column(self, name: str) -> Optional[ColumnDescriptor]:
        for col in self.columns:
            if col.name == name:
                return col
        return None

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]


class Pagination(WireModel):
    page: int
    limit: int
    total: int
    total_pages: int


class RecordPage(WireModel):
    """One page of rows from a table."""

    table_name: str
    rows: List[Dict[str, WireValue]]
    pagination: Pagination


class InsertResult(WireModel):
    """Identity of a freshly inserted row."""

    id: WireValue = None
    identity: KeyResolution


class ErrorDetail(BaseModel):
    kind: str
    message: str


class ErrorResponse(BaseModel):
    """Uniform error envelope."""

    success: bool = False
    error: ErrorDetail


class ApiResponse(BaseModel, Generic[T]):
    """Uniform success envelope."""

    success: bool = True
    data: Optional[T] = None
    message: Optional[str] = None
