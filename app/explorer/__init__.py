"""Admin-side table explorer: state machine and API client."""

from app.explorer.client import ExplorerRequestError, SubmissionInProgress, TableExplorer
from app.explorer.state import (
    ExplorerError,
    ExplorerPhase,
    ExplorerState,
    InvalidTransition,
)

__all__ = [
    "ExplorerError",
    "ExplorerPhase",
    "ExplorerRequestError",
    "ExplorerState",
    "InvalidTransition",
    "SubmissionInProgress",
    "TableExplorer",
]
