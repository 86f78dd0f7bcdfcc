"""
APCUPSD Exporter State

Managed global state, threading lock, errors and the current status snapshot.
"""

import datetime
import logging
import threading
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from constants import ErrorCategory

logger = logging.getLogger(__name__)

# ------------------------------------------------------------------------------------
# Models
# ------------------------------------------------------------------------------------


class StatusSnapshot(BaseModel):
    """One complete status report of the UPS. Replaced as a whole, never updated."""

    model_config = ConfigDict(frozen=True)

    values: dict[str, str] = Field(default_factory=dict)
    fetched_at: datetime.datetime | None = None

    @classmethod
    def empty(cls) -> "StatusSnapshot":
        return cls()

    @classmethod
    def from_status(cls, values: dict[str, str]) -> "StatusSnapshot":
        return cls(values=dict(values), fetched_at=datetime.datetime.now(datetime.timezone.utc))

    def get(self, key: str, default: str | None = None) -> str | None:
        return self.values.get(key, default)

    def __contains__(self, key: str) -> bool:
        return key in self.values

    def __len__(self) -> int:
        return len(self.values)


class AppContext:
    """
    Application context holding all shared state, the lock and error tracking.

    This class is intended to be passed to components, reducing reliance on global state.
    """

    def __init__(self):
        self.lock = threading.Lock()

        # Current snapshot, swapped under lock by publish()
        self._snapshot = StatusSnapshot.empty()

        # Configuration (To be populated as ConfigModel)
        self.config: Any = None

        # Error State
        self.lasterror_nis: str | None = None
        self.lasterror_http: str | None = None
        self.fetch_failures: int = 0
        self.last_success: datetime.datetime | None = None

        # Metadata
        self.startup_time: datetime.datetime = datetime.datetime.now(datetime.timezone.utc)
        self.version: str = "Unknown"

    @property
    def snapshot(self) -> StatusSnapshot:
        with self.lock:
            return self._snapshot

    @property
    def up(self) -> bool:
        """True when the latest poll succeeded."""
        with self.lock:
            return self.last_success is not None and self.lasterror_nis is None

    def publish(self, snapshot: StatusSnapshot) -> None:
        """Replace the current snapshot with a new, complete one."""
        with self.lock:
            self._snapshot = snapshot
            self.last_success = snapshot.fetched_at or datetime.datetime.now(datetime.timezone.utc)

    def record_failure(self) -> None:
        with self.lock:
            self.fetch_failures += 1

    def set_error(self, message: str | None, category: str = ErrorCategory.NIS, level: int | None = None) -> None:
        """Set or clear an error state. A message is logged only when it changes."""
        attr = "lasterror_http" if category == ErrorCategory.HTTP else "lasterror_nis"
        previous = getattr(self, attr)
        if message == previous:
            return

        with self.lock:
            setattr(self, attr, message)

        if message:
            log_level = level if level is not None else logging.ERROR
            logger.log(log_level, f"[{category.upper()}] {message}")
        elif previous:
            logger.info(f"[{category.upper()}] Recovered from: {previous}")

    def reset(self) -> None:
        """Reset state to defaults."""
        with self.lock:
            self._snapshot = StatusSnapshot.empty()
            self.lasterror_nis = None
            self.lasterror_http = None
            self.fetch_failures = 0
            self.last_success = None


# ------------------------------------------------------------------------------------
# Global Instance
# ------------------------------------------------------------------------------------
_context = AppContext()


def get_context() -> AppContext:
    return _context
