"""
SQLAlchemy mixins for soft delete functionality.

A record is live while ``deleted_at`` is NULL and sits in the trash once it
carries a timestamp.
"""

from datetime import date, datetime
from typing import Any, Dict, Optional

from sqlalchemy import DateTime
from sqlalchemy.orm import Mapped, Query, Session, mapped_column

SECONDS_PER_DAY = 24 * 60 * 60


class SoftDeleteMixin:
    """
    Mixin to add soft delete functionality to SQLAlchemy models.

    Provides:
    - A nullable, indexed ``deleted_at`` column
    - Methods to move a record into and out of the trash
    - Retention countdown helpers
    - Query helpers for live and trashed records

    Usage:
        class Student(Base, SoftDeleteMixin):
            __tablename__ = 'students'
            id = Column(String(36), primary_key=True)
            name = Column(String(200))
    """

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime, nullable=True, index=True
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def mark_deleted(self, now: datetime) -> None:
        """
        Move this record into the trash.

        Re-deleting a trashed record refreshes ``deleted_at``, restarting its
        retention window.

        Args:
            now: Deletion timestamp (naive UTC)
        """
        self.deleted_at = now

    def mark_restored(self) -> None:
        """Take this record out of the trash. Live records are left as they are."""
        self.deleted_at = None

    def days_remaining(self, now: datetime, retention_days: int) -> int:
        """
        Whole days left before this record becomes eligible for purge.

        Args:
            now: Reference time
            retention_days: Length of the retention window

        Returns:
            Days remaining, never negative (0 for live records)
        """
        if self.deleted_at is None:
            return 0
        return days_remaining(self.deleted_at, now, retention_days)

    @classmethod
    def query_active(cls, session: Session) -> Query[Any]:
        """
        Return query for live (non-deleted) records only.

        Args:
            session: SQLAlchemy session

        Returns:
            Query filtered to exclude trashed records
        """
        return session.query(cls).filter(cls.deleted_at.is_(None))

    @classmethod
    def query_deleted(cls, session: Session) -> Query[Any]:
        """
        Return query for trashed records only.

        Args:
            session: SQLAlchemy session

        Returns:
            Query filtered to include only trashed records
        """
        return session.query(cls).filter(cls.deleted_at.is_not(None))

    @classmethod
    def query_all(cls, session: Session) -> Query[Any]:
        """Return query for all records including trashed ones."""
        return session.query(cls)

    def to_dict(self, include_deleted_fields: bool = True) -> Dict[str, Any]:
        """
        Convert model to a JSON-friendly dictionary.

        Args:
            include_deleted_fields: Whether to include ``deleted_at``

        Returns:
            Column values with dates rendered as ISO strings
        """
        result: Dict[str, Any] = {}

        table = getattr(self, "__table__", None)
        if table is None:
            return result

        for column in table.columns:
            value = getattr(self, column.key, None)
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            result[column.key] = value

        if not include_deleted_fields:
            result.pop("deleted_at", None)

        return result


def days_remaining(deleted_at: datetime, now: datetime, retention_days: int) -> int:
    """
    Compute ``max(0, retention_days - floor((now - deleted_at) / 1 day))``.

    Args:
        deleted_at: When the record was trashed
        now: Reference time
        retention_days: Length of the retention window

    Returns:
        Whole days left in the retention window
    """
    elapsed = (now - deleted_at).total_seconds()
    days_since_delete = max(0, int(elapsed // SECONDS_PER_DAY))
    return max(0, retention_days - days_since_delete)
