"""
Classroom Undo Toolkit - recoverable deletion for a teacher dashboard.

This toolkit implements the trash, the action history with time-bounded undo
and the periodic retention sweep behind a school-management dashboard. It
works against any relational database SQLAlchemy supports.

Key Features
------------
* **Soft Delete**: Records go to a 30-day trash instead of being destroyed
* **Undo**: Every recorded mutation can be reversed once within its window
* **Action History**: Filterable, paginated ledger of past mutations
* **Cleanup**: Throttled sweep that purges expired trash and old history

Quick Start
-----------
>>> from classroom_undo import (
...     SoftDeleteService, SQLActionLedgerStorage, UndoManager,
...     create_session_factory,
... )
>>>
>>> session_factory = create_session_factory("sqlite:///classroom.db")
>>> trash = SoftDeleteService(session_factory)
>>> undo = UndoManager(trash, SQLActionLedgerStorage(session_factory))
>>>
>>> await trash.soft_delete("students", student_id, owner_id=teacher_id)
>>> action = await undo.record_action(teacher_id, "delete", "students", [student_id])
>>> await undo.undo(action.id)

See README.md for the command line.
"""

__version__ = "1.0.0"

from .cleanup import CleanupScheduler, CleanupService, start_cleanup_scheduler
from .clock import FrozenClock, utcnow
from .config import UndoConfig, configure, get_config, set_config
from .database import Base, create_session_factory, init_db
from .soft_delete import EntityKind, SoftDeleteMixin, SoftDeleteService
from .undo import ActionType, SQLActionLedgerStorage, UndoManager

__all__ = [
    # Soft Delete
    "SoftDeleteMixin",
    "SoftDeleteService",
    "EntityKind",
    # Undo
    "UndoManager",
    "SQLActionLedgerStorage",
    "ActionType",
    # Cleanup
    "CleanupService",
    "CleanupScheduler",
    "start_cleanup_scheduler",
    # Database
    "Base",
    "create_session_factory",
    "init_db",
    # Configuration
    "UndoConfig",
    "configure",
    "get_config",
    "set_config",
    # Clock
    "FrozenClock",
    "utcnow",
]
