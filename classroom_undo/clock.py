"""Injectable clocks.

Every timestamp the toolkit stores is a naive UTC ``datetime``, which is what
the ``DateTime`` columns round-trip on every supported backend.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Return the current UTC time as a naive datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class FrozenClock:
    """
    Manually advanced clock for tests and simulations.

    Usage:
        clock = FrozenClock(datetime(2025, 2, 7, 8, 0))
        service = SoftDeleteService(session_factory, clock=clock)
        clock.advance(days=31)
    """

    def __init__(self, start: Optional[datetime] = None):
        self.current = start or utcnow()

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> datetime:
        """Move the clock forward by ``timedelta(**kwargs)``."""
        self.current = self.current + timedelta(**kwargs)
        return self.current

    def set(self, moment: datetime) -> None:
        self.current = moment
