"""Per-job step timing."""

import time
from contextlib import contextmanager
from typing import Dict, Any, Iterator, List
from collections import defaultdict


class MetricsCollector:
    """
    Times the steps of a single job.

    One collector belongs to one job, so no locking is needed even when
    several jobs run side by side.
    """

    def __init__(self):
        self._start_time = time.monotonic()
        self._timers: Dict[str, float] = {}
        self._durations: Dict[str, List[float]] = defaultdict(list)
        self._counters: Dict[str, int] = defaultdict(int)

    def start_timer(self, name: str) -> None:
        self._timers[name] = time.monotonic()

    def stop_timer(self, name: str) -> float:
        """
        Stop a named timer and return elapsed seconds.

        Raises:
            KeyError: If timer was not started
        """
        if name not in self._timers:
            raise KeyError(f"Timer '{name}' was not started")

        elapsed = time.monotonic() - self._timers.pop(name)
        self._durations[name].append(elapsed)
        return elapsed

    @contextmanager
    def timed(self, name: str) -> Iterator[None]:
        """Time a block; the timer stops even if the block raises."""
        self.start_timer(name)
        try:
            yield
        finally:
            self.stop_timer(name)

    def increment_counter(self, name: str, amount: int = 1) -> None:
        self._counters[name] += amount

    def get_counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def elapsed_time(self) -> float:
        """Seconds since the collector was created."""
        return time.monotonic() - self._start_time

    def get_summary(self) -> Dict[str, Any]:
        """Step durations (seconds, summed per step) plus counters."""
        return {
            "total_elapsed": self.elapsed_time(),
            "steps": {name: sum(values) for name, values in self._durations.items()},
            "counters": dict(self._counters),
        }
