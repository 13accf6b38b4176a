"""Operational counters for a relay run."""

import time


class Metrics:
    def __init__(self):
        self._counters: dict[str, int] = {}
        self._start_time = time.monotonic()

    def increment(self, name: str, amount: int = 1) -> None:
        self._counters[name] = self._counters.get(name, 0) + amount

    def get(self, name: str) -> int:
        return self._counters.get(name, 0)

    def snapshot(self) -> dict:
        """Return a point-in-time snapshot of all counters."""
        return {
            "counters": dict(self._counters),
            "elapsed_seconds": round(time.monotonic() - self._start_time, 2),
        }
