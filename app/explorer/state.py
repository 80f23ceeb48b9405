"""Explicit state of the admin table explorer."""

import enum
from dataclasses import dataclass, replace
from typing import Any, Optional

from app.schemas.table import KeySource, RecordPage, TableSchema


class ExplorerPhase(str, enum.Enum):
    IDLE = "idle"
    TABLE_SELECTED = "table_selected"
    SCHEMA_LOADED = "schema_loaded"
    PAGE_LOADED = "page_loaded"
    EDITING_RECORD = "editing_record"
    ADDING_RECORD = "adding_record"


class InvalidTransition(ValueError):
    """Raised when an action is not allowed in the current phase."""


@dataclass(frozen=True)
class ExplorerError:
    """An error to show the admin. ``message`` is the server's text verbatim."""

    kind: str
    message: str
    status_code: Optional[int] = None


@dataclass(frozen=True)
class ExplorerState:
    """
    Immutable snapshot of the explorer.

    Every explorer action takes a state and returns the next one, so the
    current page to re-fetch after a mutation is always the one in hand.
    """

    phase: ExplorerPhase = ExplorerPhase.IDLE
    table_name: Optional[str] = None
    schema: Optional[TableSchema] = None
    page: Optional[RecordPage] = None
    editing_identity: Any = None
    error: Optional[ExplorerError] = None

    @property
    def current_page(self) -> int:
        return self.page.pagination.page if self.page else 1

    @property
    def total_pages(self) -> int:
        return self.page.pagination.total_pages if self.page else 1

    @property
    def can_go_previous(self) -> bool:
        return self.phase == ExplorerPhase.PAGE_LOADED and self.current_page > 1

    @property
    def can_go_next(self) -> bool:
        return self.phase == ExplorerPhase.PAGE_LOADED and self.current_page < self.total_pages

    @property
    def identity_column(self) -> Optional[str]:
        if self.schema is None or self.schema.identity is None:
            return None
        return self.schema.identity.column

    @property
    def identity_warning(self) -> Optional[str]:
        """Warning to display when rows are addressed by a guessed identity."""
        if self.schema is None or self.schema.identity is None:
            return None
        identity = self.schema.identity
        if identity.source == KeySource.DECLARED_PRIMARY:
            return None
        if identity.source == KeySource.ID_COLUMN:
            return (
                f"'{self.table_name}' declares no primary key; rows are addressed "
                f"by its 'id' column."
            )
        return (
            f"'{self.table_name}' has no single primary key; rows are addressed by "
            f"'{identity.column}', which may not be unique. Edits and deletes need "
            f"confirmation."
        )


def require_phase(state: ExplorerState, *phases: ExplorerPhase) -> None:
    if state.phase not in phases:
        allowed = ", ".join(p.value for p in phases)
        raise InvalidTransition(f"Not allowed in phase '{state.phase.value}' (needs {allowed})")


def select_table(state: ExplorerState, table_name: str) -> ExplorerState:
    return ExplorerState(phase=ExplorerPhase.TABLE_SELECTED, table_name=table_name)


def load_schema(state: ExplorerState, schema: TableSchema) -> ExplorerState:
    require_phase(state, ExplorerPhase.TABLE_SELECTED)
    return replace(state, phase=ExplorerPhase.SCHEMA_LOADED, schema=schema, error=None)


def load_page(state: ExplorerState, page: RecordPage) -> ExplorerState:
    if state.schema is None:
        raise InvalidTransition("A page cannot be shown before the schema is loaded")
    return replace(
        state,
        phase=ExplorerPhase.PAGE_LOADED,
        page=page,
        editing_identity=None,
        error=None,
    )


def fail_fetch(state: ExplorerState, error: ExplorerError) -> ExplorerState:
    """A failed read keeps the table and schema so the admin does not lose their place."""
    if state.table_name is None:
        return replace(state, phase=ExplorerPhase.IDLE, error=error)
    return replace(
        state,
        phase=ExplorerPhase.TABLE_SELECTED,
        editing_identity=None,
        error=error,
    )


def start_adding(state: ExplorerState) -> ExplorerState:
    require_phase(state, ExplorerPhase.PAGE_LOADED)
    return replace(state, phase=ExplorerPhase.ADDING_RECORD, editing_identity=None, error=None)


def start_editing(state: ExplorerState, identity_value: Any) -> ExplorerState:
    require_phase(state, ExplorerPhase.PAGE_LOADED)
    return replace(
        state,
        phase=ExplorerPhase.EDITING_RECORD,
        editing_identity=identity_value,
        error=None,
    )


def cancel_editing(state: ExplorerState) -> ExplorerState:
    require_phase(state, ExplorerPhase.EDITING_RECORD, ExplorerPhase.ADDING_RECORD)
    return replace(state, phase=ExplorerPhase.PAGE_LOADED, editing_identity=None, error=None)


def with_error(state: ExplorerState, error: ExplorerError) -> ExplorerState:
    """Attach an error without leaving the phase, e.g. a rejected write keeps its form open."""
    return replace(state, error=error)
