"""
Open-view bookkeeping for shared dashboards.

The barista dashboard and the simulation monitor each have one poller for
the whole process, but many browser sessions may have the view open. The
poller runs while at least one of them is still there:

    activate(key)    -> key added (poller starts if it was the first)
    touch(key)       -> key seen again (any dashboard request)
    deactivate(key)  -> key removed (poller stops if it was the last)

A key not seen for idle_timeout_seconds is dropped by evict_idle(), so a
closed tab cannot keep a poller alive.
"""

from __future__ import annotations

import threading
import time
from typing import Callable, Dict, List, Optional

from logging_config import get_logger


# Module logger
logger = get_logger(__name__)


class ViewerSet:
    """Thread-safe set of session keys with a last-seen time each."""

    def __init__(
        self,
        name: str,
        idle_timeout_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        self._name = name
        self._idle_timeout = idle_timeout_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._last_seen: Dict[str, float] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_seen)

    def __contains__(self, key: str) -> bool:
        with self._lock:
            return key in self._last_seen

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._last_seen)

    def add(self, key: str) -> None:
        with self._lock:
            self._last_seen[key] = self._clock()

    def discard(self, key: str) -> bool:
        with self._lock:
            return self._last_seen.pop(key, None) is not None

    def touch(self, key: str) -> bool:
        """Refresh a key's last-seen time. Returns False for unknown keys."""
        with self._lock:
            if key not in self._last_seen:
                return False
            self._last_seen[key] = self._clock()
            return True

    def clear(self) -> None:
        with self._lock:
            self._last_seen.clear()

    def evict_idle(self) -> List[str]:
        """Drop keys idle longer than the timeout and return them."""
        if self._idle_timeout is None:
            return []

        now = self._clock()
        with self._lock:
            expired = [
                key for key, seen in self._last_seen.items()
                if now - seen > self._idle_timeout
            ]
            for key in expired:
                del self._last_seen[key]

        if expired:
            logger.info(f"{self._name}: dropped {len(expired)} idle view(s)")
        return expired
