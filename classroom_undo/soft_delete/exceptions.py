"""Exceptions for soft delete operations."""

from typing import Iterable, Optional


class SoftDeleteError(Exception):
    """Base exception for soft delete operations."""

    def __init__(self, message: str, entity_id: Optional[str] = None):
        self.entity_id = entity_id
        super().__init__(message)


class PersistenceError(SoftDeleteError):
    """Raised when the underlying read or write against the store fails."""


class RecordNotFoundError(PersistenceError):
    """Raised when one or more records do not exist (or belong to someone else)."""

    def __init__(self, entity: str, missing_ids: Iterable[str]):
        self.missing_ids = sorted(missing_ids)
        joined = ", ".join(self.missing_ids)
        super().__init__(
            f"{entity} record(s) not found: {joined}",
            entity_id=self.missing_ids[0] if len(self.missing_ids) == 1 else None,
        )


class UnknownEntityError(SoftDeleteError):
    """Raised when an entity kind has no registered table."""

    def __init__(self, entity: str):
        super().__init__(f"Entity type {entity} is not registered")


class InvalidSnapshotError(SoftDeleteError):
    """Raised when a stored snapshot cannot be written back to its record."""

    def __init__(self, entity_id: str, reason: str):
        super().__init__(
            f"Snapshot for {entity_id} cannot be applied: {reason}",
            entity_id=entity_id,
        )


class PartialCleanupError(SoftDeleteError):
    """Raised when the purge of some entity kinds failed while others succeeded."""

    def __init__(self, failed_entities: Iterable[str]):
        self.failed_entities = list(failed_entities)
        super().__init__(
            f"Cleanup failed for: {', '.join(self.failed_entities)}"
        )
