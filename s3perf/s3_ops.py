"""Asynchronous S3 operations with completion callbacks.

The S3 backends are blocking, so each worker wraps its backend in an
``AsyncS3Client`` that runs requests on a private thread pool sized to
the worker's connection pool. Submitting never blocks; the callback
receives an :class:`Outcome` on the pool thread that ran the request.

Usage::

    from s3perf.s3_ops import AsyncS3Client

    with AsyncS3Client(backend, max_workers=25) as client:
        client.put_object_async(key, data, on_done)
        client.get_object_async(key, on_done)
"""

from __future__ import annotations

import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable

from s3perf.logging_setup import get_logger

__all__ = [
    "AsyncS3Client",
    "Outcome",
    "OP_GET",
    "OP_PUT",
]

OP_PUT = "PUT"
OP_GET = "GET"


@dataclass(frozen=True)
class Outcome:
    """Result of one asynchronous request.

    ``length`` is the uploaded body size for PUT and the received body
    size for GET. ``error`` is set instead when the request raised.
    """

    op: str
    key: str
    length: int = 0
    error: BaseException | None = None
    latency_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


Callback = Callable[[Outcome], None]


class AsyncS3Client:
    """Thread-pool backed asynchronous front end for a blocking backend.

    Requests queue on the pool when more are submitted than there are
    pool threads. Exceptions raised by the backend are delivered in
    ``Outcome.error``, never raised on the submitting thread. A callback
    that raises is logged; its future still completes normally.
    """

    def __init__(
        self,
        backend: Any,
        *,
        max_workers: int,
        thread_name_prefix: str = "s3perf-io",
    ) -> None:
        self.backend = backend
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix=thread_name_prefix,
        )

    def put_object_async(
        self,
        key: str,
        data: bytes,
        callback: Callback,
    ) -> Future:
        """Submit a PUT of ``data`` to ``key``."""

        def call() -> int:
            self.backend.put_object(key, data)
            return len(data)

        return self._submit(OP_PUT, key, call, callback)

    def get_object_async(self, key: str, callback: Callback) -> Future:
        """Submit a GET of ``key``."""

        def call() -> int:
            return len(self.backend.get_object(key))

        return self._submit(OP_GET, key, call, callback)

    def _submit(
        self,
        op: str,
        key: str,
        call: Callable[[], int],
        callback: Callback,
    ) -> Future:

        def run() -> None:
            start = time.perf_counter()
            try:
                length = call()
            except Exception as exc:
                outcome = Outcome(
                    op, key,
                    error=exc,
                    latency_ms=(time.perf_counter() - start) * 1000,
                )
            else:
                outcome = Outcome(
                    op, key,
                    length=length,
                    latency_ms=(time.perf_counter() - start) * 1000,
                )
            try:
                callback(outcome)
            except Exception:
                get_logger().exception(
                    "Completion callback failed",
                    extra={"op": op, "key": key},
                )

        return self._executor.submit(run)

    def close(self, *, wait: bool = True) -> None:
        """Shut the pool down and close the backend.

        Args:
            wait: Wait for running requests. When False, queued
                requests are cancelled and running ones are left to
                finish in the background. The backend is closed
                either way.
        """
        self._executor.shutdown(wait=wait, cancel_futures=not wait)
        close = getattr(self.backend, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> AsyncS3Client:
        return self

    def __exit__(self, exc_type: type | None, *exc_info: object) -> None:
        self.close(wait=exc_type is None)
