"""
Cleanup Module - the periodic retention sweep.

Purges expired trash records and old action history at most once per
cleanup interval, and drives that sweep from a background scheduler.
"""

from .scheduler import CleanupScheduler, start_cleanup_scheduler
from .service import CleanupResult, CleanupService, LastCleanupInfo
from .state import LastRunStore

__all__ = [
    "CleanupService",
    "CleanupResult",
    "LastCleanupInfo",
    "LastRunStore",
    "CleanupScheduler",
    "start_cleanup_scheduler",
]
