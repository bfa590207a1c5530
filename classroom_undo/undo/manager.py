"""
Undo manager implementation.

Records every reversible mutation in an in-memory working set and in the
durable ledger, and reverses a recorded mutation at most once within its
undo window.
"""

import logging
from datetime import timedelta
from typing import List, Optional, Sequence, Union

from ..clock import Clock
from ..config import UndoConfig
from ..soft_delete.exceptions import SoftDeleteError
from ..soft_delete.models import EntityKind, OperationResult
from ..soft_delete.services import SoftDeleteService
from .cache import ActionCache
from .exceptions import (
    ActionNotFoundError,
    AlreadyUndoneError,
    UndoError,
    UndoExpiredError,
)
from .models import (
    ActionHistoryFilters,
    ActionHistoryItem,
    ActionHistoryPage,
    ActionPurgeResult,
    ActionType,
    StateRecord,
    UndoableAction,
    UndoResult,
    describe_action,
    generate_action_id,
)
from .storage import ActionLedgerStorage

logger = logging.getLogger(__name__)


class UndoManager:
    """Action history with time-bounded, exactly-once undo.

    The manager delegates every change of a domain record to the
    ``SoftDeleteService``; it only owns its own ledger entries.

    Attributes:
        soft_delete (SoftDeleteService): Store used to reverse mutations.
        storage (ActionLedgerStorage): Durable ledger.
        cache (ActionCache): In-memory working set of recent actions.

    Example:
        >>> manager = UndoManager(service, SQLActionLedgerStorage(session_factory))
        >>> await service.soft_delete("students", "s1")
        >>> action = await manager.record_action("t1", "delete", "students", ["s1"])
        >>> await manager.undo(action.id)
        UndoResult(success=True, error=None, action_id='action_...')
    """

    def __init__(
        self,
        soft_delete_service: SoftDeleteService,
        storage: ActionLedgerStorage,
        cache: Optional[ActionCache] = None,
        config: Optional[UndoConfig] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize the undo manager.

        Args:
            soft_delete_service: Store that performs restores and deletions
            storage: Durable ledger backend
            cache: Working set, a new one sized from the config by default
            config: Toolkit configuration, defaults to the service's
            clock: Time source, defaults to the service's
        """
        self.soft_delete = soft_delete_service
        self.storage = storage
        self.config = config or soft_delete_service.config
        self.clock = clock or soft_delete_service.clock

        if cache is None:
            undo_config = self.config.get_undo_config()
            cache = ActionCache(
                max_size=undo_config["max_cached_actions"],
                horizon=undo_config["memory_horizon"],
            )
        self.cache = cache

    async def record_action(
        self,
        owner_id: str,
        action_type: Union[ActionType, str],
        entity: Union[EntityKind, str],
        entity_ids: Sequence[str],
        previous_state: Optional[List[StateRecord]] = None,
        description: Optional[str] = None,
        timeout_ms: Optional[int] = None,
    ) -> UndoableAction:
        """
        Record a completed mutation so it can be undone.

        Args:
            owner_id: Teacher who performed the mutation
            action_type: Kind of mutation
            entity: Entity kind the mutation applied to
            entity_ids: Affected record IDs
            previous_state: Snapshots taken before the mutation, one per ID
            description: Summary, generated when omitted
            timeout_ms: Length of the undo window, defaults to the config

        Returns:
            The recorded action

        Raises:
            pydantic.ValidationError: If the action is malformed
        """
        if timeout_ms is None:
            timeout_ms = self.config.undo_timeout_ms

        now = self.clock()
        ids = list(entity_ids)
        action = UndoableAction(
            id=generate_action_id(now),
            owner_id=owner_id,
            action_type=action_type,
            entity=entity,
            entity_ids=ids,
            previous_state=previous_state,
            created_at=now,
            expires_at=now + timedelta(milliseconds=timeout_ms),
            description=description or describe_action(action_type, entity, len(ids)),
        )

        self.cache.put(action)

        try:
            await self.storage.store(action)
        except Exception as e:
            # The cached copy still lets the toast undo it
            logger.warning(f"Failed to persist action {action.id}: {e}")

        grace_ms = self.config.undo_grace_ms
        self.cache.schedule_expiry(action.id, (timeout_ms + grace_ms) / 1000)
        self.cleanup_old_actions()

        logger.debug(f"Recorded action {action.id}: {action.description}")
        return action

    async def undo(self, action_id: str) -> UndoResult:
        """
        Reverse a recorded action.

        Args:
            action_id: ID of the action

        Returns:
            Result; on failure the action stays undoable if its window is open
        """
        try:
            action = self.cache.get(action_id)
            if action is None:
                action = await self.storage.get_by_id(action_id)
        except Exception as e:
            logger.error(f"Failed to load action {action_id}: {e}")
            return UndoResult(
                success=False,
                error=str(e) or "Gagal mengambil data aksi",
                action_id=action_id,
            )

        try:
            if action is None:
                raise ActionNotFoundError(action_id)
            if action.undone:
                raise AlreadyUndoneError(action_id)
            if action.is_expired(self.clock()):
                raise UndoExpiredError(action_id)

            result = await self._reverse(action)
        except UndoError as e:
            return UndoResult(success=False, error=str(e), action_id=action_id)
        except Exception as e:
            logger.exception(f"Failed to undo action {action_id}")
            return UndoResult(
                success=False,
                error=str(e) or "Gagal membatalkan aksi",
                action_id=action_id,
            )

        if not result.success:
            return UndoResult(success=False, error=result.error, action_id=action_id)

        action.undone = True
        self.cache.put(action)

        try:
            await self.storage.mark_undone(action_id)
        except Exception as e:
            logger.warning(f"Failed to mark action {action_id} as undone: {e}")

        logger.info(f"Undid action {action_id}: {action.description}")
        return UndoResult(success=True, action_id=action_id)

    async def _reverse(self, action: UndoableAction) -> OperationResult:
        """Dispatch the reversal of an action to the soft delete store."""
        ids = action.entity_ids
        owner = action.owner_id

        if action.action_type in (ActionType.DELETE, ActionType.BULK_DELETE):
            if len(ids) == 1:
                return await self.soft_delete.restore(action.entity, ids[0], owner)
            return await self.soft_delete.restore_bulk(action.entity, ids, owner)

        if action.action_type == ActionType.UPDATE:
            # Last write wins, snapshots are written back verbatim
            for entity_id, state in zip(ids, action.previous_state or []):
                if not state:
                    continue
                result = await self.soft_delete.apply_snapshot(
                    action.entity, entity_id, state, owner
                )
                if not result.success:
                    return result
            return OperationResult(success=True)

        if action.action_type == ActionType.CREATE:
            return await self.soft_delete.soft_delete_bulk(action.entity, ids, owner)

        raise SoftDeleteError(f"Unsupported action type: {action.action_type}")

    async def get_action_history(
        self,
        owner_id: str,
        limit: int = 20,
        offset: int = 0,
        filters: Optional[ActionHistoryFilters] = None,
    ) -> ActionHistoryPage:
        """
        Get one page of an owner's action history, newest first.

        Args:
            owner_id: Owner of the actions
            limit: Page size
            offset: Rows to skip
            filters: Optional filters

        Returns:
            Page of items plus the total, empty if the ledger could not be read
        """
        try:
            actions, total = await self.storage.query(
                owner_id, filters=filters, limit=limit, offset=offset
            )
        except Exception as e:
            logger.error(f"Failed to get action history for {owner_id}: {e}")
            return ActionHistoryPage()

        now = self.clock()
        items = [
            ActionHistoryItem(
                id=action.id,
                action_type=action.action_type,
                entity=action.entity,
                entity_ids=action.entity_ids,
                description=action.description
                or describe_action(
                    action.action_type, action.entity, len(action.entity_ids)
                ),
                created_at=action.created_at,
                expires_at=action.expires_at,
                can_undo=action.can_undo(now),
                previous_state=action.previous_state,
            )
            for action in actions
        ]
        return ActionHistoryPage(items=items, total=total)

    async def clear_history(self, owner_id: str) -> OperationResult:
        """Delete an owner's ledger rows and forget their cached actions."""
        try:
            deleted = await self.storage.delete_for_owner(owner_id)
        except Exception as e:
            logger.error(f"Failed to clear history for {owner_id}: {e}")
            return OperationResult(
                success=False, error=str(e) or "Gagal menghapus history"
            )

        self.cache.remove_owner(owner_id)
        logger.info(f"Cleared {deleted} history row(s) for {owner_id}")
        return OperationResult(success=True)

    async def cleanup_expired_actions(self) -> ActionPurgeResult:
        """
        Purge ledger rows whose undo window closed long ago.

        Rows stay in the ledger for history after they stop being undoable;
        they are removed once ``expires_at`` is older than the history
        retention (7 days by default).
        """
        try:
            cutoff = self.clock() - timedelta(days=self.config.history_retention_days)
            deleted = await self.storage.purge_expired_before(cutoff)
            return ActionPurgeResult(success=True, deleted=deleted)
        except Exception as e:
            logger.error(f"Failed to cleanup expired actions: {e}")
            return ActionPurgeResult(
                success=False, error=str(e) or "Gagal cleanup expired actions"
            )

    def can_undo(self, action_id: str) -> bool:
        """Whether a cached action can still be undone.

        Only the working set is consulted; an action that fell out of memory
        reports False even if the ledger still allows it.
        """
        action = self.cache.get(action_id)
        if action is None:
            return False
        return action.can_undo(self.clock())

    def get_undo_time_remaining(self, action_id: str) -> int:
        """Milliseconds left to undo a cached action, 0 if unknown."""
        action = self.cache.get(action_id)
        if action is None:
            return 0
        return action.time_remaining_ms(self.clock())

    def cleanup_old_actions(self) -> int:
        """Evict stale and surplus actions from the working set."""
        return self.cache.evict_stale(self.clock())
