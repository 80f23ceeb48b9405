"""Async client driving the table administration API for the admin UI."""

import logging
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote

import httpx
import pandas as pd

from app.config import get_settings
from app.explorer import state as transitions
from app.explorer.state import (
    ExplorerError,
    ExplorerPhase,
    ExplorerState,
    require_phase,
)
from app.schemas.table import RecordPage, TableCatalogEntry, TableSchema

settings = get_settings()
logger = logging.getLogger(__name__)


class ExplorerRequestError(Exception):
    """An API call failed; ``error`` carries the server's kind and message."""

    def __init__(self, error: ExplorerError):
        self.error = error
        super().__init__(f"{error.kind}: {error.message}")


class SubmissionInProgress(RuntimeError):
    """A write is already in flight; the submit control should be disabled."""


class TableExplorer:
    """
    Orchestrates catalog, schema, paging and edit dialogs over the HTTP API.

    The explorer keeps no pagination or selection state of its own: callers
    pass an ``ExplorerState`` in and get the next one back. The only internal
    flag is the in-flight guard that stands in for a disabled submit button.
    """

    def __init__(self, client: httpx.AsyncClient, page_size: Optional[int] = None):
        self.client = client
        self.page_size = page_size or settings.DEFAULT_PAGE_SIZE
        self._submitting = False

    @classmethod
    def connect(cls, base_url: str, token: str, **kwargs) -> "TableExplorer":
        """Create an explorer with its own HTTP client, e.g. ``http://host/api/v1``."""
        client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Authorization": f"Bearer {token}"},
            timeout=30.0,
        )
        return cls(client, **kwargs)

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self) -> "TableExplorer":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    @property
    def submitting(self) -> bool:
        return self._submitting

    # Reads

    async def list_tables(self) -> List[TableCatalogEntry]:
        payload = await self._request("GET", "/tables")
        return [TableCatalogEntry.model_validate(entry) for entry in payload["data"]]

    async def select_table(self, state: ExplorerState, table_name: str) -> ExplorerState:
        """Select a table, load its schema, then its first page."""
        state = transitions.select_table(state, table_name)
        try:
            payload = await self._request("GET", f"/tables/{_segment(table_name)}/schema")
        except ExplorerRequestError as e:
            return transitions.fail_fetch(state, e.error)
        state = transitions.load_schema(state, TableSchema.model_validate(payload["data"]))
        return await self.go_to_page(state, 1)

    async def go_to_page(self, state: ExplorerState, page: int) -> ExplorerState:
        """Fetch a page from the server. Out-of-range pages are left for the server to judge."""
        if state.schema is None:
            raise transitions.InvalidTransition("Select a table before paging")
        try:
            payload = await self._request(
                "GET",
                f"/tables/{_segment(state.table_name)}",
                params={"page": page, "limit": self.page_size},
            )
        except ExplorerRequestError as e:
            return transitions.fail_fetch(state, e.error)
        return transitions.load_page(state, RecordPage.model_validate(payload["data"]))

    async def refresh(self, state: ExplorerState) -> ExplorerState:
        """Re-fetch the current page."""
        return await self.go_to_page(state, state.current_page)

    async def next_page(self, state: ExplorerState) -> ExplorerState:
        if not state.can_go_next:
            return transitions.with_error(
                state, ExplorerError("NavigationDisabled", "Already on the last page")
            )
        return await self.go_to_page(state, state.current_page + 1)

    async def previous_page(self, state: ExplorerState) -> ExplorerState:
        if not state.can_go_previous:
            return transitions.with_error(
                state, ExplorerError("NavigationDisabled", "Already on the first page")
            )
        return await self.go_to_page(state, state.current_page - 1)

    # Dialogs

    def begin_add(self, state: ExplorerState) -> ExplorerState:
        return transitions.start_adding(state)

    def begin_edit(self, state: ExplorerState, row: Mapping[str, Any]) -> ExplorerState:
        column = state.identity_column
        if column is None or column not in row:
            raise ValueError(f"Row has no value for identity column {column!r}")
        return transitions.start_editing(state, row[column])

    def cancel_edit(self, state: ExplorerState) -> ExplorerState:
        return transitions.cancel_editing(state)

    # Writes

    async def submit(
        self,
        state: ExplorerState,
        fields: Dict[str, Any],
        confirm_identity: bool = False,
    ) -> ExplorerState:
        """
        Save the add or edit dialog, then re-fetch the current page.

        Raises:
            SubmissionInProgress: If another write from this explorer is pending
        """
        require_phase(state, ExplorerPhase.ADDING_RECORD, ExplorerPhase.EDITING_RECORD)
        params = {"confirm_identity": "true"} if confirm_identity else None
        table = _segment(state.table_name)

        if state.phase == ExplorerPhase.ADDING_RECORD:
            method, path = "POST", f"/tables/{table}"
        else:
            method, path = "PUT", f"/tables/{table}/{_segment(state.editing_identity)}"

        try:
            await self._write(method, path, json=fields, params=params)
        except ExplorerRequestError as e:
            return transitions.with_error(state, e.error)
        return await self._reload_after_mutation(state)

    async def delete_row(
        self,
        state: ExplorerState,
        row: Mapping[str, Any],
        confirm_identity: bool = False,
    ) -> ExplorerState:
        """Delete a row of the loaded page, then re-fetch the current page."""
        require_phase(state, ExplorerPhase.PAGE_LOADED)
        column = state.identity_column
        if column is None or column not in row:
            raise ValueError(f"Row has no value for identity column {column!r}")

        params = {"confirm_identity": "true"} if confirm_identity else None
        path = f"/tables/{_segment(state.table_name)}/{_segment(row[column])}"
        try:
            await self._write("DELETE", path, params=params)
        except ExplorerRequestError as e:
            return transitions.with_error(state, e.error)
        return await self._reload_after_mutation(state)

    def to_dataframe(self, state: ExplorerState) -> pd.DataFrame:
        """The loaded page as a DataFrame, columns in schema order."""
        if state.page is None or state.schema is None:
            return pd.DataFrame()
        return pd.DataFrame(state.page.rows, columns=state.schema.column_names)

    async def _reload_after_mutation(self, state: ExplorerState) -> ExplorerState:
        refreshed = await self.refresh(state)
        if refreshed.phase != ExplorerPhase.PAGE_LOADED:
            return refreshed
        # Deleting the last row of the last page leaves the current page empty
        if not refreshed.page.rows and refreshed.current_page > refreshed.total_pages:
            return await self.go_to_page(refreshed, refreshed.total_pages)
        return refreshed

    async def _write(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        if self._submitting:
            raise SubmissionInProgress("A change is already being saved")
        self._submitting = True
        try:
            return await self._request(method, path, **kwargs)
        finally:
            self._submitting = False

    async def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise ExplorerRequestError(ExplorerError("NetworkError", str(e)))

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.is_error or not payload.get("success", False):
            error = payload.get("error") or {}
            raise ExplorerRequestError(
                ExplorerError(
                    kind=error.get("kind") or _kind_for_status(response.status_code),
                    message=error.get("message") or payload.get("detail") or response.text,
                    status_code=response.status_code,
                )
            )
        return payload


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


def _kind_for_status(status_code: int) -> str:
    if status_code == 401:
        return "Unauthorized"
    if status_code == 403:
        return "Forbidden"
    return "HttpError"
