"""Run command — Execute the benchmark.

Prints the test configuration, then one report per iteration and one
aggregate report per stage on stdout. The first request failure or
size mismatch ends the run with exit code 1.
"""

from __future__ import annotations

from s3perf.config import DEFAULT_SWEEP_CONNECTIONS, RunSettings
from s3perf.errors import BenchmarkError
from s3perf.logging_setup import get_logger, setup_logging
from s3perf.s3_client import get_client_backend_name
from s3perf.stage import run_benchmark, run_sweep
from s3perf.utils import parse_int_list


def cmd_run(args: object) -> int:
    """Run the upload/download benchmark.

    Args:
        args: Parsed CLI arguments (see ``s3perf run --help``).

    Returns:
        Exit code: 0 on success, 1 on a fatal benchmark error, 2 on
        invalid settings.
    """
    setup_logging(level=getattr(args, "log_level", None))
    logger = get_logger()

    sweep = getattr(args, "sweep_connections", None)
    try:
        settings = RunSettings.from_args(args)
        get_client_backend_name(settings.backend)
        connections: list[int] | None = None
        if sweep == "default":
            connections = DEFAULT_SWEEP_CONNECTIONS
        elif sweep:
            connections = parse_int_list(sweep)
    except ValueError as exc:
        logger.error(f"Invalid settings: {exc}")
        return 2

    try:
        if connections:
            logger.info(
                "Sweeping connections: "
                + ", ".join(str(n) for n in connections)
            )
            run_sweep(settings, connections)
        else:
            run_benchmark(settings)
    except BenchmarkError as exc:
        logger.error(f"ERROR: {type(exc).__name__}: {exc}")
        return 1
    except (ImportError, ValueError) as exc:
        logger.error(f"Cannot create S3 client: {exc}")
        return 2

    return 0
