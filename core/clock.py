"""Countdown clock driving session duration."""

import logging
import threading
from typing import Callable, Optional

import config
from core.periodic import PeriodicTask

logger = logging.getLogger(__name__)


class Clock:
    """
    Single countdown timer. Owns the remaining-time state.

    The clock only counts; deciding what happens at zero is the caller's job.
    Each tick carries the run generation it fired for; a tick whose
    generation is no longer current (see is_current) belongs to a run that
    was stopped and should be ignored.
    """

    def __init__(self, on_tick: Callable[[int], None], interval: Optional[float] = None) -> None:
        """
        Args:
            on_tick: Called with the run generation once per interval while
                the clock runs.
            interval: Seconds per tick (default from config).
        """
        self._lock = threading.Lock()
        self._total_seconds = 0
        self._remaining_seconds = 0
        self._task = PeriodicTask(
            "focusfy-clock",
            interval if interval is not None else config.TICK_INTERVAL_SECONDS,
            on_tick,
            pass_generation=True,
        )

    @property
    def total_seconds(self) -> int:
        with self._lock:
            return self._total_seconds

    @property
    def remaining_seconds(self) -> int:
        with self._lock:
            return self._remaining_seconds

    @property
    def elapsed_seconds(self) -> int:
        with self._lock:
            return self._total_seconds - self._remaining_seconds

    @property
    def is_ticking(self) -> bool:
        return self._task.is_running

    @property
    def generation(self) -> int:
        return self._task.generation

    def is_current(self, generation: int) -> bool:
        return self._task.is_current(generation)

    def reset(self, total_seconds: int) -> None:
        """Set the configured duration and refill remaining time."""
        with self._lock:
            self._total_seconds = int(total_seconds)
            self._remaining_seconds = int(total_seconds)

    def decrement(self) -> int:
        """Count down one second. Returns the new remaining time (never below 0)."""
        with self._lock:
            if self._remaining_seconds > 0:
                self._remaining_seconds -= 1
            return self._remaining_seconds

    def start(self) -> None:
        self._task.start()

    def stop(self) -> None:
        self._task.stop()

    def join(self, timeout: Optional[float] = None) -> None:
        self._task.join(timeout)
