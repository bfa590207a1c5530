"""
Service layer for soft delete operations.

Moves dashboard records into and out of the trash, lists the trash with its
retention countdown, and purges what has outlived the retention window.
Every public operation returns a result model instead of raising.
"""

import asyncio
import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, Union

from dateutil.parser import isoparse
from pydantic import ValidationError
from sqlalchemy import Date, DateTime
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from ..clock import Clock, utcnow
from ..config import UndoConfig, get_config
from .exceptions import (
    InvalidSnapshotError,
    PartialCleanupError,
    RecordNotFoundError,
    SoftDeleteError,
    UnknownEntityError,
)
from .mixins import SoftDeleteMixin, days_remaining
from .models import (
    DeletedItem,
    EntityKind,
    OperationResult,
    PurgeResult,
    SoftDeleteResult,
    TrashSummary,
    build_payload,
    validate_payload,
)
from .tables import AttendanceRecord, ClassRecord, StudentRecord, TaskRecord

logger = logging.getLogger(__name__)

EntityRef = Union[EntityKind, str]


class SoftDeleteService:
    """
    Service for the dashboard trash.

    Handles soft deletion, restoration, permanent deletion, trash listings
    and the retention purge for every registered entity kind.
    """

    def __init__(
        self,
        session_factory: sessionmaker,  # type: ignore[type-arg]
        config: Optional[UndoConfig] = None,
        clock: Optional[Clock] = None,
        tables: Optional[Dict[EntityKind, Type[Any]]] = None,
    ):
        """
        Initialize the soft delete service.

        Args:
            session_factory: SQLAlchemy session factory
            config: Toolkit configuration, defaults to the global one
            clock: Callable returning the current naive UTC time
            tables: Optional overrides of the entity kind -> table registry
        """
        self.SessionLocal = session_factory
        self.config = config or get_config()
        self.clock = clock or utcnow

        self.tables: Dict[EntityKind, Type[Any]] = {}
        self._initialize_default_tables()
        for entity, table in (tables or {}).items():
            self.register_table(entity, table)

    @property
    def retention_days(self) -> int:
        return self.config.retention_days

    def _initialize_default_tables(self) -> None:
        """Register the bundled table for every entity kind."""
        self.tables[EntityKind.STUDENTS] = StudentRecord
        self.tables[EntityKind.CLASSES] = ClassRecord
        self.tables[EntityKind.ATTENDANCE] = AttendanceRecord
        self.tables[EntityKind.TASKS] = TaskRecord

    def register_table(self, entity: EntityRef, table: Type[Any]) -> None:
        """
        Register the mapped class backing an entity kind.

        Args:
            entity: Entity kind
            table: Mapped class with ``id``, ``user_id`` and ``deleted_at``
        """
        self.tables[self._resolve(entity)] = table

    async def soft_delete(
        self, entity: EntityRef, entity_id: str, owner_id: Optional[str] = None
    ) -> SoftDeleteResult:
        """
        Move one record into the trash.

        Args:
            entity: Entity kind
            entity_id: ID of the record
            owner_id: Optional owner the record must belong to

        Returns:
            Result with the deletion timestamp
        """
        try:
            deleted_at = self._set_deleted_at(
                entity, [entity_id], self.clock(), owner_id
            )
            return SoftDeleteResult(success=True, deleted_at=deleted_at)
        except Exception as e:
            return self._failure(SoftDeleteResult, "Failed to soft delete", e)

    async def soft_delete_bulk(
        self,
        entity: EntityRef,
        entity_ids: Sequence[str],
        owner_id: Optional[str] = None,
    ) -> SoftDeleteResult:
        """
        Move several records into the trash with one shared timestamp.

        Either every record is trashed or none is.

        Args:
            entity: Entity kind
            entity_ids: IDs of the records
            owner_id: Optional owner the records must belong to

        Returns:
            Result with the shared deletion timestamp
        """
        try:
            deleted_at = self._set_deleted_at(
                entity, entity_ids, self.clock(), owner_id
            )
            return SoftDeleteResult(success=True, deleted_at=deleted_at)
        except Exception as e:
            return self._failure(SoftDeleteResult, "Failed to bulk soft delete", e)

    async def restore(
        self, entity: EntityRef, entity_id: str, owner_id: Optional[str] = None
    ) -> OperationResult:
        """Take one record out of the trash. Restoring a live record is a no-op."""
        try:
            self._set_deleted_at(entity, [entity_id], None, owner_id)
            return OperationResult(success=True)
        except Exception as e:
            return self._failure(OperationResult, "Failed to restore", e)

    async def restore_bulk(
        self,
        entity: EntityRef,
        entity_ids: Sequence[str],
        owner_id: Optional[str] = None,
    ) -> OperationResult:
        """Take several records out of the trash in one transaction."""
        try:
            self._set_deleted_at(entity, entity_ids, None, owner_id)
            return OperationResult(success=True)
        except Exception as e:
            return self._failure(OperationResult, "Failed to bulk restore", e)

    async def permanent_delete(
        self, entity: EntityRef, entity_id: str, owner_id: Optional[str] = None
    ) -> OperationResult:
        """
        Remove one record from the store. This cannot be undone.

        No confirmation or dependency check happens here; callers must gate
        this behind an explicit user confirmation.
        """
        try:
            self._hard_delete(entity, [entity_id], owner_id)
            return OperationResult(success=True)
        except Exception as e:
            return self._failure(OperationResult, "Failed to permanently delete", e)

    async def permanent_delete_bulk(
        self,
        entity: EntityRef,
        entity_ids: Sequence[str],
        owner_id: Optional[str] = None,
    ) -> PurgeResult:
        """Remove several records of one kind from the store."""
        try:
            kind = self._resolve(entity)
            count = self._hard_delete(kind, entity_ids, owner_id)
            result = PurgeResult(success=True)
            result.deleted_counts[kind.value] = count
            return result
        except Exception as e:
            return self._failure(PurgeResult, "Failed to permanently delete", e)

    async def empty_trash(self, owner_id: str) -> PurgeResult:
        """
        Permanently delete everything in an owner's trash.

        A failing entity kind is logged and skipped.

        Args:
            owner_id: Owner whose trash is emptied

        Returns:
            Rows removed per entity kind
        """
        result = PurgeResult(success=True)

        for kind, table in self.tables.items():
            try:
                with self.SessionLocal() as session:
                    count = (
                        session.query(table)
                        .filter(
                            table.user_id == owner_id,
                            table.deleted_at.is_not(None),
                        )
                        .delete(synchronize_session=False)
                    )
                    session.commit()
                result.deleted_counts[kind.value] = count
            except SQLAlchemyError as e:
                logger.error(f"Failed to empty {kind.value} trash for {owner_id}: {e}")
                result.failed_entities.append(kind.value)

        if result.failed_entities:
            result.error = str(PartialCleanupError(result.failed_entities))

        logger.info(
            f"Emptied trash for {owner_id}: {result.total_deleted} record(s) removed"
        )
        return result

    async def apply_snapshot(
        self,
        entity: EntityRef,
        entity_id: str,
        state: Dict[str, Any],
        owner_id: Optional[str] = None,
    ) -> OperationResult:
        """
        Write a stored snapshot back onto a record, verbatim.

        Used to undo updates. There is no check against changes made after
        the snapshot was taken; the snapshot wins.

        Args:
            entity: Entity kind
            entity_id: ID of the record
            state: Column values captured before the update
            owner_id: Optional owner the record must belong to

        Returns:
            Operation result
        """
        try:
            table = self._get_table(entity)
            columns = {column.key: column for column in table.__table__.columns}

            values: Dict[str, Any] = {}
            for key, value in state.items():
                if key not in columns:
                    raise InvalidSnapshotError(entity_id, f"unknown column '{key}'")
                if key == "id":
                    if str(value) != str(entity_id):
                        raise InvalidSnapshotError(entity_id, "primary key differs")
                    continue
                values[key] = self._coerce_value(columns[key], value)

            with self.SessionLocal() as session:
                record = self._owned_query(session, table, [entity_id], owner_id).first()
                if record is None:
                    raise RecordNotFoundError(self._resolve(entity).value, [entity_id])

                self._check_snapshot(entity, record, entity_id, values)
                for key, value in values.items():
                    setattr(record, key, value)
                session.commit()

            return OperationResult(success=True)
        except Exception as e:
            return self._failure(OperationResult, "Failed to restore previous state", e)

    async def get_deleted_items(
        self, entity: EntityRef, owner_id: str
    ) -> List[DeletedItem]:
        """
        List an owner's trashed records of one kind, newest deletion first.

        Args:
            entity: Entity kind
            owner_id: Owner of the records

        Returns:
            Trashed items with their retention countdown, or an empty list
            if the store could not be read
        """
        try:
            kind = self._resolve(entity)
            table = self._get_table(kind)
            now = self.clock()

            with self.SessionLocal() as session:
                rows = (
                    session.query(table)
                    .filter(
                        table.user_id == owner_id,
                        table.deleted_at.is_not(None),
                    )
                    .order_by(table.deleted_at.desc())
                    .all()
                )

                # A row that fails its payload model is listed as raw data
                return [
                    DeletedItem(
                        id=str(row.id),
                        entity=kind,
                        deleted_at=row.deleted_at,
                        days_remaining=days_remaining(
                            row.deleted_at, now, self.retention_days
                        ),
                        data=build_payload(
                            kind, row.to_dict(include_deleted_fields=False)
                        ),
                    )
                    for row in rows
                ]
        except Exception as e:
            logger.error(f"Failed to get deleted {entity}: {e}")
            return []

    async def get_all_deleted_items(self, owner_id: str) -> List[DeletedItem]:
        """List an owner's whole trash across every entity kind."""
        results = await asyncio.gather(
            *(self.get_deleted_items(kind, owner_id) for kind in self.tables)
        )

        items = [item for result in results for item in result]
        items.sort(key=lambda item: item.deleted_at, reverse=True)
        return items

    async def get_trash_summary(self, owner_id: str) -> TrashSummary:
        """Count an owner's trash by kind and by how soon it expires."""
        summary = TrashSummary()
        for item in await self.get_all_deleted_items(owner_id):
            summary.add_item(item)
        return summary

    async def cleanup_expired(self) -> PurgeResult:
        """
        Permanently delete records trashed longer than the retention window.

        Records deleted strictly before ``now - retention_days`` are removed.
        A failure on one entity kind is logged and skipped; the sweep still
        reports success with that kind's count left at 0.

        Returns:
            Rows removed per entity kind
        """
        result = PurgeResult(success=True)

        try:
            cutoff = self.clock() - timedelta(days=self.retention_days)

            for kind, table in self.tables.items():
                try:
                    with self.SessionLocal() as session:
                        ids = [
                            row[0]
                            for row in session.query(table.id)
                            .filter(table.deleted_at < cutoff)
                            .all()
                        ]
                        if not ids:
                            continue

                        session.query(table).filter(table.id.in_(ids)).delete(
                            synchronize_session=False
                        )
                        session.commit()
                    result.deleted_counts[kind.value] = len(ids)
                except SQLAlchemyError as e:
                    logger.error(f"Failed to purge expired {kind.value}: {e}")
                    result.failed_entities.append(kind.value)

            if result.failed_entities:
                result.error = str(PartialCleanupError(result.failed_entities))

            return result
        except Exception as e:
            failed = self._failure(
                PurgeResult, "Failed to cleanup expired records", e
            )
            failed.deleted_counts = result.deleted_counts
            return failed

    def _set_deleted_at(
        self,
        entity: EntityRef,
        entity_ids: Sequence[str],
        value: Optional[datetime],
        owner_id: Optional[str],
    ) -> Optional[datetime]:
        """Set ``deleted_at`` on every listed record in one transaction."""
        table = self._get_table(entity)
        wanted = self._unique_ids(entity_ids)

        with self.SessionLocal() as session:
            records = self._owned_query(session, table, wanted, owner_id).all()
            self._require_all(entity, wanted, records)

            for record in records:
                if value is None:
                    record.mark_restored()
                else:
                    record.mark_deleted(value)
            session.commit()

        return value

    def _hard_delete(
        self, entity: EntityRef, entity_ids: Sequence[str], owner_id: Optional[str]
    ) -> int:
        """Delete every listed record in one transaction."""
        table = self._get_table(entity)
        wanted = self._unique_ids(entity_ids)

        with self.SessionLocal() as session:
            records = self._owned_query(session, table, wanted, owner_id).all()
            self._require_all(entity, wanted, records)

            for record in records:
                session.delete(record)
            session.commit()

        return len(records)

    def _owned_query(
        self,
        session: Session,
        table: Type[Any],
        entity_ids: Iterable[str],
        owner_id: Optional[str],
    ) -> Any:
        query = session.query(table).filter(table.id.in_(list(entity_ids)))
        if owner_id is not None:
            query = query.filter(table.user_id == owner_id)
        return query

    def _require_all(
        self, entity: EntityRef, wanted: List[str], records: List[SoftDeleteMixin]
    ) -> None:
        found = {str(getattr(record, "id")) for record in records}
        missing = set(wanted) - found
        if missing:
            raise RecordNotFoundError(self._resolve(entity).value, missing)

    def _unique_ids(self, entity_ids: Sequence[str]) -> List[str]:
        if isinstance(entity_ids, str):
            raise SoftDeleteError("Expected a list of IDs, got a single string")

        wanted = list(dict.fromkeys(str(entity_id) for entity_id in entity_ids))
        if not wanted:
            raise SoftDeleteError("No items given")
        return wanted

    def _resolve(self, entity: EntityRef) -> EntityKind:
        if isinstance(entity, EntityKind):
            return entity
        try:
            return EntityKind(entity)
        except ValueError:
            raise UnknownEntityError(str(entity)) from None

    def _get_table(self, entity: EntityRef) -> Type[Any]:
        """Get the mapped class registered for an entity kind."""
        kind = self._resolve(entity)
        if kind not in self.tables:
            raise UnknownEntityError(kind.value)
        return self.tables[kind]

    def _check_snapshot(
        self, entity: EntityRef, record: Any, entity_id: str, values: Dict[str, Any]
    ) -> None:
        """Reject snapshot values that the record's payload model would refuse."""
        kind = self._resolve(entity)
        merged = {**record.to_dict(include_deleted_fields=False), **values}
        try:
            validate_payload(kind, merged)
        except ValidationError as e:
            # Fields already invalid before the snapshot are not its fault
            bad = sorted(
                str(error["loc"][0])
                for error in e.errors()
                if error["loc"] and error["loc"][0] in values
            )
            if bad:
                raise InvalidSnapshotError(
                    entity_id, f"invalid value for {', '.join(bad)}"
                )

    def _coerce_value(self, column: Any, value: Any) -> Any:
        """Turn ISO strings from JSON snapshots back into date values."""
        if not isinstance(value, str):
            return value

        if isinstance(column.type, DateTime):
            parsed = isoparse(value)
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
            return parsed
        if isinstance(column.type, Date):
            parsed_date: date = isoparse(value).date()
            return parsed_date

        return value

    def _failure(self, result_cls: Type[Any], default: str, error: Exception) -> Any:
        """Log an error and convert it into a failed result."""
        if isinstance(error, (SoftDeleteError, SQLAlchemyError)):
            logger.error(f"{default}: {error}")
        else:
            logger.exception(f"{default}: unexpected error")

        return result_cls(success=False, error=str(error) or default)
