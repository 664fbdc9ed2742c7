"""Stage orchestration — run every worker of a stage and time it.

Usage::

    from s3perf.stage import run_benchmark

    results = run_benchmark(settings)
    results["upload"].mb_per_sec
"""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, TextIO

from s3perf.config import RunSettings
from s3perf.driver import (
    DOWNLOAD,
    UPLOAD,
    AbortSignal,
    RequestDriver,
    WorkerResult,
)
from s3perf.logging_setup import get_logger
from s3perf.report import StageReport, StageResult
from s3perf.s3_client import S3Client
from s3perf.s3_ops import AsyncS3Client
from s3perf.utils import format_bytes, generate_payload

ClientFactory = Callable[[RunSettings], Any]


def _run_worker(
    worker_id: int,
    mode: str,
    settings: RunSettings,
    client_factory: ClientFactory,
    abort: AbortSignal,
    payload: bytes | None,
) -> WorkerResult:
    """Body of one worker thread: own client, own driver."""
    backend = client_factory(settings)
    with AsyncS3Client(
        backend,
        max_workers=settings.num_connections,
        thread_name_prefix=f"s3perf-w{worker_id}",
    ) as client:
        driver = RequestDriver(
            worker_id, settings, client, abort, payload=payload,
        )
        return driver.run(mode)


def run_stage(
    mode: str,
    iteration: int,
    settings: RunSettings,
    client_factory: ClientFactory | None = None,
    payload: bytes | None = None,
    *,
    out: TextIO | None = None,
) -> list[WorkerResult]:
    """Run one iteration of a stage across ``settings.num_threads`` workers.

    Worker ``w`` handles keys ``<prefix><w>_0`` to
    ``<prefix><w>_<num_objects - 1>``. All workers are joined before
    this returns or raises.

    Args:
        mode: ``upload`` or ``download``.
        iteration: 1-based iteration number, used in the report label.
        settings: Run settings.
        client_factory: Builds one blocking backend per worker.
        payload: Upload body, required for ``upload``.
        out: Report stream (default stdout).

    Returns:
        Per-worker results ordered by worker id.

    Raises:
        BenchmarkError: The first fatal error seen by any worker.
        KeyboardInterrupt: Interrupted while waiting; the workers stop
            submitting and drain before this propagates.
    """
    client_factory = client_factory or S3Client
    logger = get_logger(stage=mode)
    abort = AbortSignal()
    label = f"  [{iteration}] {mode.upper()}"

    with StageReport(
        label,
        settings.num_threads,
        settings.num_objects,
        settings.obj_size_kb,
        out=out,
    ) as report:
        results: list[WorkerResult] = []
        with ThreadPoolExecutor(
            max_workers=settings.num_threads,
            thread_name_prefix=f"s3perf-{mode}",
        ) as executor:
            futures = {
                executor.submit(
                    _run_worker, worker_id, mode, settings,
                    client_factory, abort, payload,
                ): worker_id
                for worker_id in range(settings.num_threads)
            }
            try:
                for future in as_completed(futures):
                    try:
                        results.append(future.result())
                    except Exception as exc:
                        # Peers see the signal and stop submitting
                        abort.trip(exc)
            except BaseException as exc:
                # Ctrl-C: stop the workers before the executor joins them
                abort.trip(exc)
                raise

        if abort.is_set():
            logger.debug(f"Iteration {iteration} aborted")
        abort.raise_if_set()

        results.sort(key=lambda r: r.worker_id)
        for result in results:
            report.add_latencies(result.latencies)

    return results


def print_settings(settings: RunSettings, out: TextIO | None = None) -> None:
    """Print the effective test configuration."""
    values = [
        ("bucket_name", settings.bucket),
        ("region", settings.region),
        ("prefix", settings.prefix),
        ("obj_size_kb", settings.obj_size_kb),
        ("num_threads", settings.num_threads),
        ("num_objects", settings.num_objects),
        ("num_connections", settings.num_connections),
        ("num_outstanding_req", settings.max_outstanding),
        ("stage", settings.stage),
        ("count", settings.count),
        ("backend", settings.backend),
        ("endpoint_url", settings.endpoint_url or "-"),
        ("drain_timeout", settings.drain_timeout or "-"),
    ]
    print("Test configuration:", file=out, flush=True)
    for name, value in values:
        print(f"  {name} = {value}", file=out)
    print(file=out, flush=True)


def run_benchmark(
    settings: RunSettings,
    client_factory: ClientFactory | None = None,
    *,
    out: TextIO | None = None,
) -> dict[str, StageResult]:
    """Run the selected stages, ``settings.count`` iterations each.

    A fresh payload is generated before every upload iteration. Each
    stage also gets one aggregate report covering all its iterations.

    Returns:
        Aggregate result per stage that ran, keyed ``upload`` /
        ``download``.
    """
    client_factory = client_factory or S3Client
    logger = get_logger()
    print_settings(settings, out)
    results: dict[str, StageResult] = {}

    if settings.stage != DOWNLOAD:
        logger.info(
            f"Uploading {settings.num_threads}x{settings.num_objects} "
            f"objects of {format_bytes(settings.obj_size_bytes)}, "
            f"{settings.count} iteration(s)"
        )
        with StageReport(
            "UPLOAD stage",
            settings.num_threads,
            settings.num_objects * settings.count,
            settings.obj_size_kb,
            out=out,
        ) as report:
            for iteration in range(1, settings.count + 1):
                payload = generate_payload(settings.obj_size_kb)
                for result in run_stage(
                    UPLOAD, iteration, settings, client_factory,
                    payload, out=out,
                ):
                    report.add_latencies(result.latencies)
        results[UPLOAD] = report.result

    if settings.stage != UPLOAD:
        logger.info(
            f"Downloading {settings.num_threads}x{settings.num_objects} "
            f"objects, {settings.count} iteration(s)"
        )
        with StageReport(
            "DOWNLOAD stage",
            settings.num_threads,
            settings.num_objects * settings.count,
            settings.obj_size_kb,
            out=out,
        ) as report:
            for iteration in range(1, settings.count + 1):
                for result in run_stage(
                    DOWNLOAD, iteration, settings, client_factory,
                    out=out,
                ):
                    report.add_latencies(result.latencies)
        results[DOWNLOAD] = report.result

    return results


def run_sweep(
    settings: RunSettings,
    connections: list[int],
    client_factory: ClientFactory | None = None,
    *,
    out: TextIO | None = None,
) -> list[dict[str, StageResult]]:
    """Run the whole benchmark once per connection pool size."""
    runs: list[dict[str, StageResult]] = []
    for num_connections in connections:
        runs.append(
            run_benchmark(
                settings.with_connections(num_connections),
                client_factory,
                out=out,
            )
        )
        print("-" * 40, file=out, flush=True)
    return runs
