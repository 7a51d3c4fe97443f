"""Cancellable periodic background task."""

import logging
import threading
from typing import Callable, Optional

import config

logger = logging.getLogger(__name__)


class PeriodicTask:
    """
    Runs a callback every ``interval`` seconds on a daemon thread.

    Every start() begins a new generation. A callback only fires while its
    generation is current, and stop() retires the generation before it
    returns, so no callback from a stopped run starts afterwards.
    """

    def __init__(
        self,
        name: str,
        interval: float,
        callback: Callable[..., None],
        run_immediately: bool = False,
        pass_generation: bool = False,
    ) -> None:
        """
        Args:
            name: Thread name (for logs).
            interval: Seconds between callbacks.
            callback: Called on the task thread.
            run_immediately: Fire once as soon as the task starts.
            pass_generation: Call the callback with the generation it fired
                for, so it can re-check is_current() after taking its own locks.
        """
        self.name = name
        self.interval = interval
        self.callback = callback
        self.run_immediately = run_immediately
        self.pass_generation = pass_generation
        self._lock = threading.Lock()
        self._generation = 0
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._stop_event is not None and not self._stop_event.is_set()

    @property
    def generation(self) -> int:
        with self._lock:
            return self._generation

    def start(self) -> None:
        """Start the task. Does nothing if it is already running."""
        with self._lock:
            if self._stop_event is not None and not self._stop_event.is_set():
                return
            self._generation += 1
            generation = self._generation
            stop_event = threading.Event()
            self._stop_event = stop_event
            self._thread = threading.Thread(
                target=self._run,
                args=(generation, stop_event),
                name=self.name,
                daemon=True,
            )
            self._thread.start()
        logger.debug(f"{self.name} started (generation {generation})")

    def stop(self) -> None:
        """Stop the task. Safe to call from the task's own callback."""
        with self._lock:
            if self._stop_event is None:
                return
            self._stop_event.set()
            self._stop_event = None
            self._generation += 1
        logger.debug(f"{self.name} stopped")

    def join(self, timeout: Optional[float] = None) -> None:
        """Wait for the last thread to exit (no-op from the task thread itself)."""
        thread = self._thread
        if thread is None or thread is threading.current_thread():
            return
        thread.join(timeout=timeout if timeout is not None else config.TASK_JOIN_TIMEOUT)
        if thread.is_alive():
            logger.warning(f"{self.name} thread did not stop within timeout")

    def is_current(self, generation: int) -> bool:
        """True while no stop() or start() has happened since that generation began."""
        with self._lock:
            return generation == self._generation

    def _run(self, generation: int, stop_event: threading.Event) -> None:
        """Thread body: wait, check generation, fire."""
        if self.run_immediately and not stop_event.is_set():
            self._fire(generation)

        while not stop_event.wait(self.interval):
            if not self._fire(generation):
                break

    def _fire(self, generation: int) -> bool:
        """Invoke the callback if still current. Returns False once retired."""
        if not self.is_current(generation):
            return False
        try:
            if self.pass_generation:
                self.callback(generation)
            else:
                self.callback()
        except Exception as e:
            logger.error(f"{self.name} callback error: {e}", exc_info=True)
        return True
