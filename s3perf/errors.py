"""Benchmark error types.

Every error that ends a stage derives from :class:`BenchmarkError`.
The CLI reports the class name as the error kind and exits non-zero.
"""

from __future__ import annotations


class BenchmarkError(Exception):
    """Base class for fatal benchmark errors."""


class RequestError(BenchmarkError):
    """A PUT or GET failed with a transport or service error."""

    def __init__(
        self,
        op: str,
        key: str,
        cause: BaseException,
        *,
        code: str = "",
    ) -> None:
        self.op = op
        self.key = key
        self.cause = cause
        self.code = code
        kind = code or type(cause).__name__
        super().__init__(f"{op} {key} failed: {kind}: {cause}")


class SizeMismatchError(BenchmarkError):
    """A downloaded object does not have the configured size."""

    def __init__(self, key: str, actual: int, expected: int) -> None:
        self.key = key
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"invalid object size {actual} for {key}, "
            f"expected {expected} bytes"
        )


class DrainTimeoutError(BenchmarkError):
    """Outstanding requests did not finish within the drain timeout."""


class SlotInvariantError(BenchmarkError):
    """A slot was released without a matching acquire."""
