"""Stage timing and throughput reports.

Usage::

    from s3perf.report import StageReport

    with StageReport("UPLOAD stage", num_threads, num_objects, 1024) as report:
        run_the_stage()
    print(report.result.mb_per_sec)
"""

from __future__ import annotations

import sys
import time
from dataclasses import dataclass
from typing import Iterable, TextIO


@dataclass(frozen=True)
class StageResult:
    """Throughput summary of one timed stage or iteration."""

    label: str
    elapsed: float
    objects: int
    total_mb: float
    mb_per_sec: float
    objects_per_sec: float


def latency_percentiles(values: Iterable[float]) -> dict[str, float]:
    """Get p50/p95/p99/max of latency samples in milliseconds.

    Returns:
        Dict like ``{"p50": 2.1, "p95": 15.3, ..., "count": 100}``,
        empty if there are no samples.
    """
    vals = sorted(values)
    n = len(vals)
    if not n:
        return {}
    return {
        "p50": vals[int(n * 0.50)],
        "p95": vals[int(min(n * 0.95, n - 1))],
        "p99": vals[int(min(n * 0.99, n - 1))],
        "max": vals[-1],
        "count": n,
    }


class StageReport:
    """Time a block and print its throughput on successful exit.

    Object count is ``num_threads * obj_per_thread``. The elapsed time
    covers everything inside the ``with`` block, worker start-up and
    join included. If the block raises, nothing is printed.
    """

    def __init__(
        self,
        label: str,
        num_threads: int,
        obj_per_thread: int,
        obj_size_kb: int,
        *,
        out: TextIO | None = None,
    ) -> None:
        self.label = label
        self.num_threads = num_threads
        self.obj_per_thread = obj_per_thread
        self.obj_size_kb = obj_size_kb
        self.out = out
        self.result: StageResult | None = None
        self._latencies: list[float] = []
        self._t0 = 0.0

    def add_latencies(self, values: Iterable[float]) -> None:
        """Add per-request latency samples (ms) to the summary."""
        self._latencies.extend(values)

    def _print(self, line: str = "") -> None:
        print(line, file=self.out or sys.stdout, flush=True)

    def __enter__(self) -> StageReport:
        self._print(f"{self.label} starting")
        self._t0 = time.perf_counter()
        return self

    def __exit__(self, exc_type: type | None, *exc_info: object) -> None:
        if exc_type is not None:
            return
        elapsed = time.perf_counter() - self._t0
        self.result = self.summarize(elapsed)

        r = self.result
        self._print(
            f"{self.label} completed in {r.elapsed:.3f} seconds "
            f"(total: {r.objects} objects, {r.total_mb:g} MB)"
        )
        self._print(
            f"{self.label} throughput: {r.mb_per_sec:.2f} MB/sec, "
            f"{r.objects_per_sec:.2f} obj/sec"
        )
        lat = latency_percentiles(self._latencies)
        if lat:
            self._print(
                f"{self.label} latency: p50={lat['p50']:.1f}ms "
                f"p95={lat['p95']:.1f}ms p99={lat['p99']:.1f}ms "
                f"max={lat['max']:.1f}ms"
            )
        self._print()

    def summarize(self, elapsed: float) -> StageResult:
        """Compute the throughput summary for ``elapsed`` seconds."""
        num_obj = self.num_threads * self.obj_per_thread
        total_size_mb = self.obj_size_kb * num_obj / 1024
        return StageResult(
            label=self.label,
            elapsed=elapsed,
            objects=num_obj,
            total_mb=total_size_mb,
            mb_per_sec=total_size_mb / elapsed if elapsed > 0 else 0,
            objects_per_sec=num_obj / elapsed if elapsed > 0 else 0,
        )
