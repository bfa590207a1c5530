"""
Undo Module - action history with time-bounded undo.

Records reversible mutations in an in-memory working set and a durable
ledger, reverses them at most once within their undo window, and serves the
filterable action history.
"""

from .cache import ActionCache
from .exceptions import (
    ActionNotFoundError,
    AlreadyUndoneError,
    UndoError,
    UndoExpiredError,
)
from .manager import UndoManager
from .models import (
    ActionHistoryFilters,
    ActionHistoryItem,
    ActionHistoryPage,
    ActionPurgeResult,
    ActionType,
    UndoableAction,
    UndoResult,
    describe_action,
)
from .storage import ActionHistoryDB, ActionLedgerStorage, SQLActionLedgerStorage

__all__ = [
    # Manager
    "UndoManager",
    "ActionCache",
    # Storage
    "ActionLedgerStorage",
    "SQLActionLedgerStorage",
    "ActionHistoryDB",
    # Models
    "ActionType",
    "UndoableAction",
    "ActionHistoryItem",
    "ActionHistoryFilters",
    "ActionHistoryPage",
    "UndoResult",
    "ActionPurgeResult",
    "describe_action",
    # Exceptions
    "UndoError",
    "ActionNotFoundError",
    "AlreadyUndoneError",
    "UndoExpiredError",
]
