"""Explorer state fixtures that need no server."""

import pytest

from app.explorer.state import ExplorerState, load_page, load_schema, select_table
from app.schemas.table import (
    ColumnDescriptor,
    KeyResolution,
    KeyRole,
    KeySource,
    Pagination,
    RecordPage,
    TableSchema,
)


def make_schema(source=KeySource.DECLARED_PRIMARY, column="id") -> TableSchema:
    return TableSchema(
        table_name="campaigns",
        columns=[
            ColumnDescriptor(name="id", type="INTEGER", nullable=False, key_role=KeyRole.PRIMARY),
            ColumnDescriptor(name="title", type="VARCHAR(200)", nullable=False),
        ],
        identity=KeyResolution(column=column, source=source),
    )


def make_page(page=1, total_pages=3) -> RecordPage:
    return RecordPage(
        table_name="campaigns",
        rows=[{"id": page, "title": f"Campaign {page}"}],
        pagination=Pagination(page=page, limit=1, total=total_pages, total_pages=total_pages),
    )


@pytest.fixture
def loaded():
    """Factory for a campaigns state with a page loaded."""

    def _loaded(page=1, total_pages=3, **schema_kwargs) -> ExplorerState:
        state = select_table(ExplorerState(), "campaigns")
        state = load_schema(state, make_schema(**schema_kwargs))
        return load_page(state, make_page(page, total_pages))

    return _loaded


@pytest.fixture
def schema_factory():
    return make_schema


@pytest.fixture
def page_factory():
    return make_page
