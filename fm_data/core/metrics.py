"""
fm_data.core.metrics - In-process operational counters
=======================================================
"""

from __future__ import annotations

import threading
from typing import Dict

COUNTERS = (
    "requests_total",
    "requests_succeeded",
    "requests_failed",
    "retries_total",
    "sessions_created",
    "sessions_closed",
)


class Metrics:
    """
    Thread-safe counters for one client.

    Examples
    --------
    >>> m = Metrics()
    >>> m.increment("requests_total")
    >>> m.snapshot()["requests_total"]
    1
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: Dict[str, int] = {name: 0 for name in COUNTERS}

    def increment(self, name: str, amount: int = 1) -> None:
        if name not in self._values:
            raise KeyError(f"unknown metric {name!r}")
        with self._lock:
            self._values[name] += amount

    def get(self, name: str) -> int:
        with self._lock:
            return self._values[name]

    def reset(self) -> None:
        with self._lock:
            for name in self._values:
                self._values[name] = 0

    def snapshot(self) -> Dict[str, int]:
        with self._lock:
            snap = dict(self._values)
        snap["active_sessions"] = snap["sessions_created"] - snap["sessions_closed"]
        return snap
