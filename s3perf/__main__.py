#!/usr/bin/env python3
"""Entry point for s3perf package.

Usage::

    s3perf run --bucket-name ltsstest --num-threads 8 --num-objects 100
    s3perf run --stage download --count 3
    s3perf run --sweep-connections 16,32,64
    s3perf cleanup --prefix obj/
"""

from __future__ import annotations

import argparse
import sys

from s3perf import __version__
from s3perf.config import (
    DEFAULT_COUNT,
    DEFAULT_NUM_CONNECTIONS,
    DEFAULT_NUM_OBJECTS,
    DEFAULT_NUM_OUTSTANDING_REQ,
    DEFAULT_NUM_THREADS,
    DEFAULT_OBJ_SIZE_KB,
    DEFAULT_PREFIX,
    DEFAULT_STAGE,
    S3_BACKEND,
    S3_BUCKET,
    S3_REGION,
    STAGES,
)


def build_parser() -> argparse.ArgumentParser:
    """Build the command line parser."""
    parser = argparse.ArgumentParser(
        prog="s3perf",
        description="S3 upload/download throughput benchmark",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Commands:
  run       Upload and/or download objects and report throughput
  cleanup   Delete benchmark objects under --prefix

Objects are named <prefix><thread_num>_<obj_num>.

Examples:
  s3perf run --bucket-name ltsstest --num-threads 8 --obj-size-kb 1024
  s3perf run --stage upload --count 1 --num-outstanding-req 64
  s3perf run --sweep-connections 16,24,32,40,48,64,80,96,128
  s3perf cleanup --prefix obj/
""",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "command",
        nargs="?",
        choices=["run", "cleanup"],
        help="Command to execute",
    )
    parser.add_argument(
        "--bucket-name",
        type=str,
        default=S3_BUCKET,
        help=f"S3 bucket name (default: {S3_BUCKET})",
    )
    parser.add_argument(
        "--region",
        type=str,
        default=S3_REGION,
        help=f"S3 bucket region (default: {S3_REGION})",
    )
    parser.add_argument(
        "--prefix",
        type=str,
        default=DEFAULT_PREFIX,
        help=(
            "Object name prefix. The final name is "
            f"<prefix><thread_num>_<obj_num> (default: {DEFAULT_PREFIX})"
        ),
    )
    parser.add_argument(
        "--obj-size-kb",
        type=int,
        default=DEFAULT_OBJ_SIZE_KB,
        help="Object size in kilobytes",
    )
    parser.add_argument(
        "--num-threads",
        type=int,
        default=DEFAULT_NUM_THREADS,
        help="Number of worker threads",
    )
    parser.add_argument(
        "--num-objects",
        type=int,
        default=DEFAULT_NUM_OBJECTS,
        help="Number of objects per thread",
    )
    parser.add_argument(
        "--num-connections",
        type=int,
        default=DEFAULT_NUM_CONNECTIONS,
        help="Number of connections per thread",
    )
    parser.add_argument(
        "--num-outstanding-req",
        type=int,
        default=DEFAULT_NUM_OUTSTANDING_REQ,
        help=(
            "Number of outstanding requests per thread. "
            "0 makes it equal to --num-connections"
        ),
    )
    parser.add_argument(
        "--stage",
        type=str,
        default=DEFAULT_STAGE,
        choices=STAGES,
        help="Stages to run: upload, download, or all",
    )
    parser.add_argument(
        "--count",
        type=int,
        default=DEFAULT_COUNT,
        help="Number of times each stage is executed",
    )
    parser.add_argument(
        "--drain-timeout",
        type=float,
        default=None,
        help=(
            "Seconds to wait for a worker's outstanding requests "
            "before failing (default: wait forever)"
        ),
    )
    parser.add_argument(
        "--sweep-connections",
        nargs="?",
        const="default",
        default=None,
        metavar="LIST",
        help=(
            "Repeat the run for each connection count in LIST "
            "(comma separated; default 16,24,32,40,48,64,80,96,128)"
        ),
    )
    parser.add_argument(
        "--backend",
        type=str,
        default=S3_BACKEND,
        help="S3 client backend: boto3 or minio",
    )
    parser.add_argument(
        "--endpoint-url",
        type=str,
        default=None,
        help="S3-compatible endpoint URL (default: S3_ENDPOINT or AWS)",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse CLI arguments and dispatch to the appropriate command."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    from s3perf.cli import cmd_cleanup, cmd_run

    commands = {
        "run": cmd_run,
        "cleanup": cmd_cleanup,
    }

    try:
        return commands[args.command](args) or 0
    except KeyboardInterrupt:
        print("\nInterrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
