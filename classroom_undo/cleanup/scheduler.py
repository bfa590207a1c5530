"""
Periodic cleanup scheduler.

Runs one guarded cleanup pass on start and then one per check interval. A
pass only does work when the cleanup interval has elapsed, so the check
interval can be much shorter than the cleanup interval.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .service import CleanupResult, CleanupService

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class CleanupScheduler:
    """Explicit handle for the background cleanup loop.

    Example:
        >>> scheduler = CleanupScheduler(cleanup_service)
        >>> scheduler.start()
        >>> ...
        >>> await scheduler.stop()
    """

    def __init__(
        self,
        service: CleanupService,
        check_seconds: Optional[float] = None,
        sleep: Optional[SleepFunc] = None,
    ):
        """
        Initialize the scheduler.

        Args:
            service: Cleanup service to drive
            check_seconds: Seconds between checks, defaults to the config
            sleep: Awaitable sleep, replaced in tests
        """
        self.service = service
        self.check_seconds = (
            check_seconds
            if check_seconds is not None
            else service.config.scheduler_check_seconds
        )
        self._sleep = sleep or asyncio.sleep
        self._task: Optional[asyncio.Task[None]] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """
        Start the loop on the running event loop. Starting twice is a no-op.

        Raises:
            RuntimeError: If no event loop is running
        """
        if self.running:
            logger.warning("Cleanup scheduler already running")
            return

        self._task = asyncio.get_running_loop().create_task(self._run())
        logger.info("Cleanup scheduler started")

    async def stop(self) -> None:
        """Stop the loop and wait for it to finish."""
        if self._task is None:
            return

        task, self._task = self._task, None
        if not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        logger.info("Cleanup scheduler stopped")

    async def tick(self) -> Optional[CleanupResult]:
        """Run one pass. Never raises."""
        try:
            return await self.service.run_cleanup_if_needed()
        except Exception as e:
            logger.warning(f"Scheduled cleanup failed (non-fatal): {e}")
            return None

    async def _wait(self) -> None:
        try:
            await self._sleep(self.check_seconds)
        except Exception as e:
            logger.error(f"Scheduler sleep failed, using asyncio.sleep: {e}")
            await asyncio.sleep(self.check_seconds)

    async def _run(self) -> None:
        await self.tick()
        while True:
            await self._wait()
            await self.tick()


def start_cleanup_scheduler(
    service: CleanupService, check_seconds: Optional[float] = None
) -> CleanupScheduler:
    """Create and start a scheduler for ``service``."""
    scheduler = CleanupScheduler(service, check_seconds=check_seconds)
    scheduler.start()
    return scheduler
