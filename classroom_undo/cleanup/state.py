"""Persistence of the last cleanup timestamp."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

from dateutil.parser import isoparse

logger = logging.getLogger(__name__)


class LastRunStore:
    """
    Keeps the time of the last cleanup sweep in a small JSON file.

    A missing or unreadable file reads as "never run".
    """

    KEY = "last_cleanup_timestamp"

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> Optional[datetime]:
        """Return the last run as naive UTC, or None."""
        if not self.path.exists():
            return None

        try:
            with open(self.path, "r") as f:
                data = json.load(f)
            value = isoparse(data[self.KEY])
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Ignoring unreadable cleanup state {self.path}: {e}")
            return None

        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def save(self, timestamp: datetime) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w") as f:
            json.dump({self.KEY: timestamp.isoformat()}, f)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
