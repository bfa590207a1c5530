"""
In-memory working set of recent undoable actions.

The cache gives the undo toast an answer without a round trip to the ledger.
It is owned by one ``UndoManager``; create a fresh instance per test or per
process.
"""

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Dict, Iterator, List, Optional

from .models import UndoableAction

logger = logging.getLogger(__name__)


class ActionCache:
    """Bounded, age-limited map of action ID to action."""

    def __init__(self, max_size: int = 50, horizon: timedelta = timedelta(hours=1)):
        """
        Initialize the cache.

        Args:
            max_size: Maximum number of actions kept
            horizon: Actions created longer ago than this are evicted
        """
        if max_size < 1:
            raise ValueError("max_size must be at least 1")

        self.max_size = max_size
        self.horizon = horizon
        self._actions: Dict[str, UndoableAction] = {}
        self._timers: Dict[str, asyncio.TimerHandle] = {}

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._actions

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[UndoableAction]:
        return iter(list(self._actions.values()))

    def get(self, action_id: str) -> Optional[UndoableAction]:
        return self._actions.get(action_id)

    def put(self, action: UndoableAction) -> None:
        self._actions[action.id] = action

    def discard(self, action_id: str) -> None:
        """Drop an action and cancel its pending expiry timer."""
        self._actions.pop(action_id, None)
        timer = self._timers.pop(action_id, None)
        if timer is not None:
            timer.cancel()

    def schedule_expiry(self, action_id: str, delay_seconds: float) -> bool:
        """
        Drop a not-yet-undone action once ``delay_seconds`` have passed.

        Needs a running event loop; without one the age-based eviction is the
        only thing that removes the action.

        Returns:
            True if a timer was scheduled
        """
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return False

        previous = self._timers.pop(action_id, None)
        if previous is not None:
            previous.cancel()

        self._timers[action_id] = loop.call_later(
            max(0.0, delay_seconds), self._expire, action_id
        )
        return True

    def _expire(self, action_id: str) -> None:
        self._timers.pop(action_id, None)
        action = self._actions.get(action_id)
        if action is not None and not action.undone:
            del self._actions[action_id]
            logger.debug(f"Dropped expired action {action_id} from memory")

    def evict_stale(self, now: datetime) -> int:
        """
        Evict actions older than the horizon, then the oldest beyond capacity.

        Args:
            now: Reference time

        Returns:
            Number of evicted actions
        """
        threshold = now - self.horizon
        stale = [
            action_id
            for action_id, action in self._actions.items()
            if action.created_at < threshold
        ]

        if len(self._actions) - len(stale) > self.max_size:
            survivors = sorted(
                (a for a in self._actions.values() if a.id not in stale),
                key=lambda a: a.created_at,
                reverse=True,
            )
            stale.extend(a.id for a in survivors[self.max_size :])

        for action_id in stale:
            self.discard(action_id)

        return len(stale)

    def remove_owner(self, owner_id: str) -> List[str]:
        """Evict every action recorded by ``owner_id``."""
        removed = [a.id for a in self._actions.values() if a.owner_id == owner_id]
        for action_id in removed:
            self.discard(action_id)
        return removed

    def clear(self) -> None:
        """Evict everything and cancel pending timers."""
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._actions.clear()
