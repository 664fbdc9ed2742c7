"""CLI commands for s3perf."""

from __future__ import annotations

from s3perf.cli.cleanup import cmd_cleanup
from s3perf.cli.run import cmd_run

__all__ = [
    "cmd_cleanup",
    "cmd_run",
]
