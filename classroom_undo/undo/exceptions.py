"""Exceptions for undo operations.

Messages are shown to teachers as they are, so they are written in Indonesian
like the rest of the dashboard.
"""

from typing import Optional


class UndoError(Exception):
    """Base exception for undo operations."""

    def __init__(self, message: str, action_id: Optional[str] = None):
        self.action_id = action_id
        super().__init__(message)


class ActionNotFoundError(UndoError):
    """Raised when an action is neither cached nor in the ledger."""

    def __init__(self, action_id: str):
        super().__init__("Aksi tidak ditemukan", action_id=action_id)


class AlreadyUndoneError(UndoError):
    """Raised when an action has already been undone."""

    def __init__(self, action_id: str):
        super().__init__("Aksi sudah di-undo", action_id=action_id)


class UndoExpiredError(UndoError):
    """Raised when the undo window of an action has passed."""

    def __init__(self, action_id: str):
        super().__init__("Waktu undo telah habis", action_id=action_id)
