"""Utility functions for packlog: home directory, ids, dates, clock."""

import logging
import os
import time
import uuid
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def get_packlog_home() -> Path:
    """Directory holding the local database and logs.

    ``PACKLOG_DATA_DIR`` wins over the default ``~/.packlog``.
    """
    override = os.environ.get("PACKLOG_DATA_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".packlog"


def generate_id() -> str:
    """New opaque record id."""
    return str(uuid.uuid4())


def now_ms() -> int:
    """Wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def today_string() -> str:
    """Today's local date as ``YYYY-MM-DD`` (the default workday)."""
    return date.today().isoformat()


def validate_entry_date(value: str) -> str:
    """Check a ``YYYY-MM-DD`` workday string and return it unchanged."""
    try:
        datetime.strptime(value, "%Y-%m-%d")
    except (TypeError, ValueError):
        raise ValueError(f"Entry date must be YYYY-MM-DD, got {value!r}")
    return value


def shift_date(value: str, days: int) -> str:
    """Move a ``YYYY-MM-DD`` string by ``days``."""
    shifted = datetime.strptime(value, "%Y-%m-%d").date() + timedelta(days=days)
    return shifted.isoformat()


def format_timestamp(ms: Optional[int]) -> str:
    """Human-readable local time for an epoch-milliseconds value."""
    if ms is None:
        return ""
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M")


class MonotonicClock:
    """Millisecond stamps that strictly increase for this writer.

    Wall clocks can step backwards or hand out the same millisecond twice;
    ``updatedAt`` is the only merge tie-breaker, so each stamp is at least one
    past the previous one.
    """

    def __init__(self, now_fn: Callable[[], int] = now_ms):
        self._now_fn = now_fn
        self._last = 0

    def tick(self) -> int:
        stamp = self._now_fn()
        if stamp <= self._last:
            stamp = self._last + 1
        self._last = stamp
        return stamp

    def observe(self, stamp: int) -> None:
        """Never hand out a stamp at or below ``stamp`` again."""
        if stamp > self._last:
            self._last = stamp
