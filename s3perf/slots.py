"""Slot limiter — bounds in-flight asynchronous requests per worker.

Usage::

    from s3perf.slots import SlotLimiter

    limiter = SlotLimiter(capacity=25)
    limiter.acquire()          # driver thread, before submitting
    limiter.release()          # completion thread, when done
    limiter.drain()            # driver thread, after the last submit

``acquire`` and ``drain`` run on the worker's driver thread while
``release`` runs on whatever thread delivers the completion, so all
state lives behind one ``threading.Condition``.
"""

from __future__ import annotations

import threading

from s3perf.errors import DrainTimeoutError, SlotInvariantError


class SlotLimiter:
    """Counting admission gate with a drain barrier.

    No fairness between waiters is guaranteed. Only the driver thread
    ever waits, and completions keep freeing slots, so progress is
    enough.
    """

    def __init__(self, capacity: int) -> None:
        if capacity <= 0:
            raise ValueError(
                f"Slot capacity must be positive, got {capacity}"
            )
        self.capacity = capacity
        self._outstanding = 0
        self._cond = threading.Condition()

    @property
    def outstanding(self) -> int:
        """Current number of acquired, unreleased slots."""
        with self._cond:
            return self._outstanding

    def acquire(self) -> None:
        """Block until a slot is free, then take it."""
        with self._cond:
            while self._outstanding >= self.capacity:
                self._cond.wait()
            self._outstanding += 1

    def release(self) -> None:
        """Return a slot and wake waiters.

        Raises:
            SlotInvariantError: If no slot is currently held.
        """
        with self._cond:
            if self._outstanding <= 0:
                raise SlotInvariantError(
                    "release() called with no outstanding requests"
                )
            self._outstanding -= 1
            # acquire() and drain() wait on different predicates
            self._cond.notify_all()

    def drain(self, timeout: float | None = None) -> None:
        """Block until every acquired slot has been released.

        Args:
            timeout: Seconds to wait. ``None`` waits forever.

        Raises:
            DrainTimeoutError: If requests are still outstanding when
                the timeout expires.
        """
        with self._cond:
            drained = self._cond.wait_for(
                lambda: self._outstanding == 0, timeout,
            )
            if not drained:
                raise DrainTimeoutError(
                    f"{self._outstanding} request(s) still outstanding "
                    f"after {timeout}s"
                )

    def __repr__(self) -> str:
        return (
            f"SlotLimiter(capacity={self.capacity}, "
            f"outstanding={self.outstanding})"
        )
