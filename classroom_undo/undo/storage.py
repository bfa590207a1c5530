"""
Durable storage for the action history ledger.

Provides an abstract interface and a SQLAlchemy implementation backed by the
``action_history`` table.
"""

from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, String, Text, desc
from sqlalchemy.orm import sessionmaker

from ..database import Base
from ..soft_delete.models import EntityKind
from .models import ActionHistoryFilters, ActionType, UndoableAction


class ActionHistoryDB(Base):  # type: ignore[valid-type,misc]
    """SQLAlchemy model for ledger rows."""

    __tablename__ = "action_history"

    id = Column(String(64), primary_key=True)
    user_id = Column(String(100), nullable=False, index=True)

    action_type = Column(String(20), nullable=False, index=True)
    entity_type = Column(String(20), nullable=False, index=True)
    affected_ids = Column(JSON, nullable=False)
    previous_state = Column(JSON, nullable=True)
    description = Column(Text, nullable=False, default="")

    created_at = Column(DateTime, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
    can_undo = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("idx_action_history_user_created", user_id, created_at),
    )


class ActionLedgerStorage(ABC):
    """Abstract base class for ledger storage backends."""

    @abstractmethod
    async def initialize(self) -> None:
        """Initialize the storage backend."""
        pass

    @abstractmethod
    async def store(self, action: UndoableAction) -> None:
        """
        Persist a newly recorded action.

        Args:
            action: Action to store
        """
        pass

    @abstractmethod
    async def get_by_id(self, action_id: str) -> Optional[UndoableAction]:
        """
        Get a specific action by ID.

        Args:
            action_id: ID of the action

        Returns:
            Reconstructed action or None if not found
        """
        pass

    @abstractmethod
    async def mark_undone(self, action_id: str) -> bool:
        """
        Clear the undo flag of an action.

        Returns:
            True if a row was updated
        """
        pass

    @abstractmethod
    async def query(
        self,
        owner_id: str,
        filters: Optional[ActionHistoryFilters] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[UndoableAction], int]:
        """
        Query an owner's actions, newest first.

        Args:
            owner_id: Owner of the actions
            filters: Optional filters
            limit: Page size
            offset: Rows to skip

        Returns:
            Tuple of (page of actions, total matching rows)
        """
        pass

    @abstractmethod
    async def delete_for_owner(self, owner_id: str) -> int:
        """Delete every row of an owner and return the count."""
        pass

    @abstractmethod
    async def purge_expired_before(self, cutoff: datetime) -> int:
        """Delete rows whose undo window closed before ``cutoff``."""
        pass


class SQLActionLedgerStorage(ActionLedgerStorage):
    """SQL database storage backend for the ledger."""

    def __init__(self, session_factory: sessionmaker):  # type: ignore[type-arg]
        """
        Initialize SQL ledger storage.

        Args:
            session_factory: Session factory bound to the target database
        """
        self.SessionLocal = session_factory

    async def initialize(self) -> None:
        """Create the ledger table if it does not exist."""
        engine = self.SessionLocal.kw["bind"]
        Base.metadata.create_all(bind=engine, tables=[ActionHistoryDB.__table__])

    def _action_to_db(self, action: UndoableAction) -> ActionHistoryDB:
        """Convert UndoableAction to database model."""
        return ActionHistoryDB(
            id=action.id,
            user_id=action.owner_id,
            action_type=action.action_type.value,
            entity_type=action.entity.value,
            affected_ids=list(action.entity_ids),
            previous_state=action.previous_state,
            description=action.description,
            created_at=action.created_at,
            expires_at=action.expires_at,
            can_undo=not action.undone,
        )

    def _db_to_action(self, row: ActionHistoryDB) -> UndoableAction:
        """Convert database model to UndoableAction."""
        return UndoableAction(
            id=row.id,
            owner_id=row.user_id,
            action_type=ActionType(row.action_type),
            entity=EntityKind(row.entity_type),
            entity_ids=list(row.affected_ids or []),
            previous_state=row.previous_state,
            created_at=row.created_at,
            expires_at=row.expires_at,
            undone=not row.can_undo,
            description=row.description or "",
        )

    async def store(self, action: UndoableAction) -> None:
        """Store a single action."""
        with self.SessionLocal() as session:
            session.add(self._action_to_db(action))
            session.commit()

    async def get_by_id(self, action_id: str) -> Optional[UndoableAction]:
        """Get a specific action."""
        with self.SessionLocal() as session:
            row = (
                session.query(ActionHistoryDB)
                .filter(ActionHistoryDB.id == action_id)
                .first()
            )

            if row:
                return self._db_to_action(row)
            return None

    async def mark_undone(self, action_id: str) -> bool:
        with self.SessionLocal() as session:
            updated = (
                session.query(ActionHistoryDB)
                .filter(ActionHistoryDB.id == action_id)
                .update({ActionHistoryDB.can_undo: False}, synchronize_session=False)
            )
            session.commit()
            return bool(updated)

    async def query(
        self,
        owner_id: str,
        filters: Optional[ActionHistoryFilters] = None,
        limit: int = 20,
        offset: int = 0,
    ) -> Tuple[List[UndoableAction], int]:
        """Query an owner's actions with filters."""
        filters = filters or ActionHistoryFilters()

        with self.SessionLocal() as session:
            q = session.query(ActionHistoryDB).filter(
                ActionHistoryDB.user_id == owner_id
            )

            # "all" means no filter
            if filters.action_type and filters.action_type != "all":
                q = q.filter(
                    ActionHistoryDB.action_type == ActionType(filters.action_type).value
                )
            if filters.entity and filters.entity != "all":
                q = q.filter(
                    ActionHistoryDB.entity_type == EntityKind(filters.entity).value
                )

            # Apply date range filter, end date covers the whole day
            if filters.start_date:
                q = q.filter(
                    ActionHistoryDB.created_at
                    >= filters.day_start(filters.start_date)
                )
            if filters.end_date:
                q = q.filter(
                    ActionHistoryDB.created_at
                    < filters.day_start(filters.end_date + timedelta(days=1))
                )

            if filters.search:
                q = q.filter(ActionHistoryDB.description.ilike(f"%{filters.search}%"))

            total = q.count()

            rows = (
                q.order_by(desc(ActionHistoryDB.created_at), desc(ActionHistoryDB.id))
                .limit(limit)
                .offset(offset)
                .all()
            )
            return [self._db_to_action(row) for row in rows], total

    async def delete_for_owner(self, owner_id: str) -> int:
        with self.SessionLocal() as session:
            deleted = (
                session.query(ActionHistoryDB)
                .filter(ActionHistoryDB.user_id == owner_id)
                .delete(synchronize_session=False)
            )
            session.commit()
            return int(deleted)

    async def purge_expired_before(self, cutoff: datetime) -> int:
        with self.SessionLocal() as session:
            deleted = (
                session.query(ActionHistoryDB)
                .filter(ActionHistoryDB.expires_at < cutoff)
                .delete(synchronize_session=False)
            )
            session.commit()
            return int(deleted)
