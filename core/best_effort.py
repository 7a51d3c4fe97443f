"""
Best-effort background calls.

Remote calls made on behalf of the session timer are fire-and-forget: they
run on a worker lane, any exception is logged and discarded, and the caller
never waits for them. Routing them through send_best_effort() keeps that
discard in one visible place.
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any, Callable, Optional, Set

logger = logging.getLogger(__name__)


def send_best_effort(label: str, func: Callable[..., Any], *args: Any, **kwargs: Any) -> Optional[Any]:
    """
    Call func and return its result, or None if it raised.

    Errors here never propagate to the caller.

    Args:
        label: Short name of the operation for logs.
        func: Callable to run.

    Returns:
        func's result, or None on any exception.
    """
    try:
        return func(*args, **kwargs)
    except Exception as e:
        logger.debug(f"Best-effort call '{label}' failed (ignored): {e}")
        return None


class BestEffortDispatcher:
    """
    A named worker lane for fire-and-forget calls.

    With max_workers=1 calls complete in submission order.
    """

    def __init__(self, name: str, max_workers: int = 1) -> None:
        self.name = name
        self.max_workers = max_workers
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=f"focusfy-{name}")
        self._pending: Set[Future] = set()
        self._lock = threading.Lock()
        self._closed = False

    @property
    def in_flight(self) -> int:
        """Number of submitted calls that have not finished."""
        with self._lock:
            return len(self._pending)

    def submit(
        self,
        label: str,
        func: Callable[..., Any],
        *args: Any,
        on_result: Optional[Callable[[Any], None]] = None,
    ) -> Optional[Future]:
        """
        Queue func(*args) on the lane and return immediately.

        Args:
            label: Short name of the operation for logs.
            func: Callable to run on a worker.
            on_result: Called on the worker with func's result when it is not
                       None. Its own errors are logged and discarded too.

        Returns:
            The Future, or None if the lane is shut down.
        """
        def _task() -> None:
            result = send_best_effort(label, func, *args)
            if result is not None and on_result is not None:
                send_best_effort(f"{label} result handler", on_result, result)

        with self._lock:
            if self._closed:
                logger.debug(f"{self.name} lane closed, dropping '{label}'")
                return None
            future = self._executor.submit(_task)
            self._pending.add(future)
        future.add_done_callback(self._discard)
        return future

    def _discard(self, future: Future) -> None:
        with self._lock:
            self._pending.discard(future)

    def drain(self, timeout: Optional[float] = None) -> bool:
        """
        Wait until everything submitted so far has finished.

        Result handlers may submit follow-up calls; those are waited for too.

        Returns:
            True if the lane went idle within the timeout.
        """
        while True:
            with self._lock:
                pending = set(self._pending)
            if not pending:
                return True
            _, not_done = wait(pending, timeout=timeout)
            if not_done:
                return False

    def shutdown(self, wait_for_pending: bool = False) -> None:
        """Stop accepting work and release the worker threads."""
        with self._lock:
            self._closed = True
        self._executor.shutdown(wait=wait_for_pending)
