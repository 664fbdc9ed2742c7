"""Request driver — one worker's bounded stream of PUTs or GETs.

The driver thread takes a slot, submits a request and moves on; the
completion handler validates the outcome on a pool thread and gives
the slot back. The first failure seen by any worker trips the stage's
:class:`AbortSignal`: every driver stops submitting, waits for its
in-flight requests, and raises that error.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field

from s3perf.config import RunSettings
from s3perf.errors import (
    BenchmarkError,
    RequestError,
    SizeMismatchError,
    SlotInvariantError,
)
from s3perf.logging_setup import get_logger
from s3perf.s3_ops import OP_GET, AsyncS3Client, Outcome
from s3perf.slots import SlotLimiter
from s3perf.utils import error_code, object_key

UPLOAD = "upload"
DOWNLOAD = "download"


class AbortSignal:
    """One-shot fatal error cell shared by the workers of a stage."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._event = threading.Event()
        self._error: BaseException | None = None

    def trip(self, error: BaseException) -> bool:
        """Record ``error`` unless an earlier one is already recorded.

        Returns:
            True if this call set the signal.
        """
        with self._lock:
            if self._error is not None:
                return False
            self._error = error
            self._event.set()
            return True

    def is_set(self) -> bool:
        return self._event.is_set()

    @property
    def error(self) -> BaseException | None:
        with self._lock:
            return self._error

    def raise_if_set(self) -> None:
        """Re-raise the recorded error, if any."""
        error = self.error
        if error is not None:
            raise error


@dataclass
class WorkerResult:
    """Totals for one worker in one stage iteration."""

    worker_id: int
    objects: int = 0
    bytes: int = 0
    latencies: list[float] = field(default_factory=list)


class RequestDriver:
    """Issue ``num_objects`` requests for one worker.

    Args:
        worker_id: Worker index, part of every object key.
        settings: Run settings.
        client: Asynchronous client owned by this worker.
        abort: Stage-wide abort signal.
        payload: Upload body, shared read-only by all workers.
    """

    def __init__(
        self,
        worker_id: int,
        settings: RunSettings,
        client: AsyncS3Client,
        abort: AbortSignal,
        payload: bytes | None = None,
    ) -> None:
        self.worker_id = worker_id
        self.settings = settings
        self.client = client
        self.abort = abort
        self.payload = payload
        self.limiter = SlotLimiter(settings.max_outstanding)
        self.result = WorkerResult(worker_id)
        self._result_lock = threading.Lock()
        self.logger = get_logger(worker_id=worker_id)

    def run(self, mode: str) -> WorkerResult:
        """Submit every request, wait for all of them, return totals.

        Raises:
            BenchmarkError: The first error recorded by any worker of
                the stage.
        """
        if mode == UPLOAD:
            if self.payload is None:
                raise ValueError("Upload needs a payload")
            submit = self._submit_put
        elif mode == DOWNLOAD:
            submit = self._submit_get
        else:
            raise ValueError(f"Unknown mode '{mode}'")

        self.logger = get_logger(stage=mode, worker_id=self.worker_id)
        self.logger.debug(
            f"Starting {mode} of {self.settings.num_objects} objects "
            f"(max outstanding {self.limiter.capacity})"
        )

        for index in range(self.settings.num_objects):
            self.limiter.acquire()
            # Checked after acquire: a failure that freed this slot is seen
            if self.abort.is_set():
                self.limiter.release()
                break
            submit(object_key(self.settings.prefix, self.worker_id, index))

        self.limiter.drain(self.settings.drain_timeout)
        self.abort.raise_if_set()

        self.logger.debug(
            f"Finished {mode}: {self.result.objects} objects"
        )
        return self.result

    def _submit_put(self, key: str) -> None:
        self.client.put_object_async(key, self.payload, self._on_complete)

    def _submit_get(self, key: str) -> None:
        self.client.get_object_async(key, self._on_complete)

    def _check(self, outcome: Outcome) -> BenchmarkError | None:
        """Return the fatal error for ``outcome``, or None if it passed."""
        if outcome.error is not None:
            return RequestError(
                outcome.op, outcome.key, outcome.error,
                code=error_code(outcome.error),
            )
        expected = self.settings.obj_size_bytes
        if outcome.op == OP_GET and outcome.length != expected:
            return SizeMismatchError(outcome.key, outcome.length, expected)
        return None

    def _on_complete(self, outcome: Outcome) -> None:
        """Completion handler; runs on a pool thread and always frees the slot."""
        try:
            self._record(outcome)
        except Exception as exc:
            self.abort.trip(exc)
        finally:
            try:
                self.limiter.release()
            except SlotInvariantError as exc:
                self.abort.trip(exc)

    def _record(self, outcome: Outcome) -> None:
        error = self._check(outcome)
        if error is None:
            with self._result_lock:
                self.result.objects += 1
                self.result.bytes += outcome.length
                self.result.latencies.append(outcome.latency_ms)
        elif self.abort.trip(error):
            self.logger.debug(
                f"{type(error).__name__}: {error}",
                extra={
                    "op": outcome.op,
                    "key": outcome.key,
                    "latency_ms": outcome.latency_ms,
                    "code": getattr(error, "code", ""),
                },
            )
