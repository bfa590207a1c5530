"""
Cleanup sweep.

Purges trash records past their retention window and ledger rows past the
history retention, at most once per cleanup interval.
"""

import logging
from datetime import datetime, timedelta
from typing import Dict, Optional

from pydantic import BaseModel, Field

from ..clock import Clock
from ..config import UndoConfig
from ..soft_delete.models import EntityKind
from ..soft_delete.services import SoftDeleteService
from ..undo.manager import UndoManager
from .state import LastRunStore

logger = logging.getLogger(__name__)


def _zero_counts() -> Dict[str, int]:
    return {kind.value: 0 for kind in EntityKind}


class CleanupResult(BaseModel):
    """Outcome of one cleanup sweep."""

    success: bool
    deleted_records: Dict[str, int] = Field(
        default_factory=_zero_counts, description="Purged trash rows per entity kind"
    )
    deleted_actions: int = Field(0, description="Purged ledger rows")
    timestamp: datetime
    error: Optional[str] = None

    @property
    def total_deleted(self) -> int:
        return sum(self.deleted_records.values())


class LastCleanupInfo(BaseModel):
    timestamp: Optional[datetime] = None
    hours_ago: Optional[int] = None


class CleanupService:
    """Runs both purges and remembers when it last did."""

    def __init__(
        self,
        soft_delete_service: SoftDeleteService,
        undo_manager: UndoManager,
        state: Optional[LastRunStore] = None,
        config: Optional[UndoConfig] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize the cleanup service.

        Args:
            soft_delete_service: Store whose trash is purged
            undo_manager: Manager whose ledger is purged
            state: Last-run store, defaults to the configured state file
            config: Toolkit configuration, defaults to the service's
            clock: Time source, defaults to the service's
        """
        self.soft_delete = soft_delete_service
        self.undo_manager = undo_manager
        self.config = config or soft_delete_service.config
        self.clock = clock or soft_delete_service.clock
        self.state = state or LastRunStore(self.config.state_file)

    @property
    def interval(self) -> timedelta:
        return timedelta(hours=self.config.cleanup_interval_hours)

    def should_run_cleanup(self) -> bool:
        """True if the sweep never ran or the interval has fully elapsed."""
        last_run = self.state.load()
        if last_run is None:
            return True
        return self.clock() - last_run >= self.interval

    async def run_cleanup(self) -> CleanupResult:
        """
        Run both purges.

        The ledger purge runs even if the trash purge failed, and the run is
        recorded even after a partial failure.

        Returns:
            Combined result; ``error`` is the first error reported
        """
        timestamp = self.clock()

        try:
            logger.info("Starting cleanup sweep")

            records = await self.soft_delete.cleanup_expired()
            actions = await self.undo_manager.cleanup_expired_actions()

            self.state.save(timestamp)

            logger.info(
                f"Cleanup sweep completed: {records.total_deleted} record(s), "
                f"{actions.deleted} action(s) removed "
                f"(records ok={records.success}, actions ok={actions.success}, "
                f"breakdown={records.deleted_counts})"
            )

            return CleanupResult(
                success=records.success and actions.success,
                deleted_records=records.deleted_counts,
                deleted_actions=actions.deleted,
                timestamp=timestamp,
                error=records.error or actions.error,
            )
        except Exception as e:
            logger.exception("Cleanup sweep failed")
            return CleanupResult(
                success=False,
                timestamp=timestamp,
                error=str(e) or "Unknown error",
            )

    async def run_cleanup_if_needed(self) -> Optional[CleanupResult]:
        if not self.should_run_cleanup():
            logger.info(
                f"Skipping cleanup, already ran within "
                f"{self.config.cleanup_interval_hours} hours"
            )
            return None

        return await self.run_cleanup()

    def get_last_cleanup_info(self) -> LastCleanupInfo:
        """When the sweep last ran, and how many whole hours ago."""
        last_run = self.state.load()
        if last_run is None:
            return LastCleanupInfo()

        elapsed = self.clock() - last_run
        return LastCleanupInfo(
            timestamp=last_run,
            hours_ago=int(elapsed.total_seconds() // 3600),
        )
