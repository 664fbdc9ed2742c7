"""Logging for the benchmark.

Records carry benchmark fields passed through ``extra`` (or bound by
:func:`get_logger`): the stage and worker, and for request events the
operation, key, latency and S3 error code. Both formatters render
those fields; the text one appends them as ``name=value`` pairs.

Usage::

    from s3perf.logging_setup import setup_logging, get_logger

    setup_logging(level="DEBUG")
    logger = get_logger(stage="upload", worker_id=0)
    logger.debug("PUT failed", extra={"op": "PUT", "key": "obj/0_7"})

Environment: ``S3PERF_LOG_LEVEL``, ``S3PERF_LOG_JSON=1``,
``S3PERF_LOG_FILE``.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from typing import Any

from s3perf.config import DEFAULT_LOG_LEVEL

LOGGER_NAME = "s3perf"

# Request fields, in output order; stage and worker form the prefix
REQUEST_FIELDS = ("op", "key", "latency_ms", "code")


def record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Benchmark fields present on ``record``, latency rounded to 0.1 ms."""
    fields: dict[str, Any] = {}
    for name in ("stage", "worker_id") + REQUEST_FIELDS:
        value = getattr(record, name, None)
        if value is None or value == "":
            continue
        if name == "latency_ms":
            value = round(float(value), 1)
        fields[name] = value
    return fields


class BenchFormatter(logging.Formatter):
    """``HH:MM:SS.mmm LEVEL [upload:W3] message op=PUT key=obj/3_7``"""

    def __init__(self) -> None:
        super().__init__(datefmt="%H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        fields = record_fields(record)
        stage = fields.pop("stage", None)
        worker_id = fields.pop("worker_id", None)

        parts = [
            f"{self.formatTime(record, self.datefmt)}.{int(record.msecs):03d}",
            f"{record.levelname:8s}",
        ]
        if stage is not None or worker_id is not None:
            worker = "" if worker_id is None else f":W{worker_id}"
            parts.append(f"[{stage or '-'}{worker}]")
        parts.append(record.getMessage())
        parts.extend(f"{name}={value}" for name, value in fields.items())

        line = " ".join(parts)
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class JsonFormatter(logging.Formatter):
    """One JSON object per line for machine parsing."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "ts": round(record.created, 3),
            "level": record.levelname,
            "msg": record.getMessage(),
        }
        data.update(record_fields(record))
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data)


class ContextLogger(logging.LoggerAdapter):
    """Adapter that binds stage and worker to every record."""

    def process(
        self,
        msg: str,
        kwargs: dict[str, Any],
    ) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **(kwargs.get("extra") or {})}
        return msg, kwargs


def setup_logging(
    *,
    level: str | None = None,
    log_file: str | None = None,
) -> logging.Logger:
    """Configure the ``s3perf`` logger.

    Logs go to stderr so that stdout holds only the benchmark report.

    Args:
        level: Log level name; defaults to ``S3PERF_LOG_LEVEL`` or INFO.
        log_file: Extra log file; defaults to ``S3PERF_LOG_FILE``.

    Returns:
        The configured logger.
    """
    level = (
        level or os.environ.get("S3PERF_LOG_LEVEL") or DEFAULT_LOG_LEVEL
    ).upper()
    if os.environ.get("S3PERF_LOG_JSON", "0") == "1":
        formatter: logging.Formatter = JsonFormatter()
    else:
        formatter = BenchFormatter()

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    log_file = log_file or os.environ.get("S3PERF_LOG_FILE")
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(getattr(logging, level, logging.INFO))
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.propagate = False
    return logger


def get_logger(
    *,
    stage: str | None = None,
    worker_id: int | None = None,
) -> ContextLogger:
    """Logger bound to a stage and/or worker; configures logging once."""
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        setup_logging()

    extra: dict[str, Any] = {}
    if stage is not None:
        extra["stage"] = stage
    if worker_id is not None:
        extra["worker_id"] = worker_id
    return ContextLogger(logger, extra)
