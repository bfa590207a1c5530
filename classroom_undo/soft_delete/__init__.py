"""
Soft Delete Module - the dashboard trash.

Provides the mixin, tables, services and result models for moving records
into a 30-day trash, restoring them, and purging them once the retention
window has passed.
"""

from .exceptions import (
    InvalidSnapshotError,
    PartialCleanupError,
    PersistenceError,
    RecordNotFoundError,
    SoftDeleteError,
    UnknownEntityError,
)
from .mixins import SoftDeleteMixin, days_remaining
from .models import (
    AttendanceData,
    ClassData,
    DeletedItem,
    EntityKind,
    OperationResult,
    PurgeResult,
    RawRecordData,
    SoftDeleteResult,
    StudentData,
    TaskData,
    TrashSummary,
)
from .services import SoftDeleteService
from .tables import AttendanceRecord, ClassRecord, StudentRecord, TaskRecord

__all__ = [
    # Mixins
    "SoftDeleteMixin",
    "days_remaining",
    # Services
    "SoftDeleteService",
    # Tables
    "StudentRecord",
    "ClassRecord",
    "AttendanceRecord",
    "TaskRecord",
    # Models
    "EntityKind",
    "DeletedItem",
    "StudentData",
    "ClassData",
    "AttendanceData",
    "TaskData",
    "RawRecordData",
    "OperationResult",
    "SoftDeleteResult",
    "PurgeResult",
    "TrashSummary",
    # Exceptions
    "SoftDeleteError",
    "PersistenceError",
    "RecordNotFoundError",
    "UnknownEntityError",
    "InvalidSnapshotError",
    "PartialCleanupError",
]
