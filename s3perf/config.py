"""Configuration — All tunables in one place.

Configuration is loaded from these sources (in priority order):
    1. Command line options (``s3perf run --help``)
    2. Environment variables
    3. ``.env`` file in current working directory
    4. ``.env`` file in ``~/.s3perf/``
    5. Built-in defaults
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any


# ---------------------------------------------------------------------------
# Stdlib .env file loader (no external dependency)
# ---------------------------------------------------------------------------

def _load_dotenv() -> None:
    """Load KEY=VALUE pairs from a .env file into ``os.environ``.

    Searches the current working directory first, then
    ``~/.s3perf/``. Only sets variables that are not already
    present in the environment (env vars take priority).
    """
    candidates = [
        Path.cwd() / ".env",
        Path.home() / ".s3perf" / ".env",
    ]
    for env_path in candidates:
        if env_path.is_file():
            _parse_env_file(env_path)
            return


def _parse_env_file(path: Path) -> None:
    """Parse a .env file and inject into ``os.environ``."""
    try:
        with open(path) as f:
            for line in f:
                line = line.strip()
                if not line or line.startswith("#"):
                    continue
                if "=" not in line:
                    continue
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                if (
                    len(value) >= 2
                    and value[0] == value[-1]
                    and value[0] in ('"', "'")
                ):
                    value = value[1:-1]
                if key not in os.environ:
                    os.environ[key] = value
    except OSError:
        pass


_load_dotenv()


# ---------------------------------------------------------------------------
# Logging Configuration
# ---------------------------------------------------------------------------
DEFAULT_LOG_LEVEL = "INFO"

# ---------------------------------------------------------------------------
# S3 Connection
# ---------------------------------------------------------------------------
_s3_endpoints_str = os.environ.get("S3_ENDPOINT") or os.environ.get(
    "S3_ENDPOINTS", ""
)
S3_ENDPOINTS: list[str] = [
    ep.strip() for ep in _s3_endpoints_str.split(",") if ep.strip()
]

S3_ACCESS_KEY_ID = os.environ.get("AWS_ACCESS_KEY_ID", "")
S3_SECRET_ACCESS_KEY = os.environ.get("AWS_SECRET_ACCESS_KEY", "")
S3_BUCKET = os.environ.get("S3_BUCKET", "ltsstest")
S3_REGION = os.environ.get("AWS_REGION", "us-west-1")

# ---------------------------------------------------------------------------
# S3 Client Backend
# ---------------------------------------------------------------------------
S3_BACKEND = os.environ.get("S3PERF_BACKEND", "boto3")

# Timeouts for a single request, in seconds
S3_CONNECT_TIMEOUT = 10
S3_READ_TIMEOUT = 300

# ---------------------------------------------------------------------------
# Benchmark Defaults
# ---------------------------------------------------------------------------
DEFAULT_PREFIX = "obj/"
DEFAULT_OBJ_SIZE_KB = 1024
DEFAULT_NUM_THREADS = 1
DEFAULT_NUM_OBJECTS = 100
DEFAULT_NUM_CONNECTIONS = 25
DEFAULT_NUM_OUTSTANDING_REQ = 0
DEFAULT_STAGE = "all"
DEFAULT_COUNT = 5

STAGES: tuple[str, ...] = ("upload", "download", "all")

# Connection counts tried by ``--sweep-connections`` without a list
DEFAULT_SWEEP_CONNECTIONS: list[int] = [16, 24, 32, 40, 48, 64, 80, 96, 128]

# Batch size for DeleteObjects during cleanup
DELETE_BATCH_SIZE = 1000


@dataclass(frozen=True)
class RunSettings:
    """Validated settings for one benchmark run.

    ``max_outstanding`` is already normalized: a configured value
    of zero or less is replaced by ``num_connections`` when the
    settings are built.
    """

    bucket: str = S3_BUCKET
    region: str = S3_REGION
    prefix: str = DEFAULT_PREFIX
    obj_size_kb: int = DEFAULT_OBJ_SIZE_KB
    num_threads: int = DEFAULT_NUM_THREADS
    num_objects: int = DEFAULT_NUM_OBJECTS
    num_connections: int = DEFAULT_NUM_CONNECTIONS
    max_outstanding: int = DEFAULT_NUM_CONNECTIONS
    stage: str = DEFAULT_STAGE
    count: int = DEFAULT_COUNT
    backend: str = S3_BACKEND
    endpoint_url: str | None = None
    drain_timeout: float | None = None
    requested_outstanding: int = DEFAULT_NUM_OUTSTANDING_REQ

    @property
    def obj_size_bytes(self) -> int:
        return self.obj_size_kb * 1024

    @classmethod
    def build(cls, **values: Any) -> RunSettings:
        """Validate raw values and normalize ``max_outstanding``.

        Raises:
            ValueError: If any count or size is not positive, or the
                stage is unknown.
        """
        for name in (
            "obj_size_kb", "num_threads", "num_objects",
            "num_connections", "count",
        ):
            if name in values and values[name] <= 0:
                raise ValueError(
                    f"{name} must be positive, got {values[name]}"
                )

        stage = values.get("stage", DEFAULT_STAGE)
        if stage not in STAGES:
            raise ValueError(
                f"Unknown stage '{stage}'. "
                f"Available: {', '.join(STAGES)}"
            )

        timeout = values.get("drain_timeout")
        if timeout is not None and timeout <= 0:
            raise ValueError(
                f"drain_timeout must be positive, got {timeout}"
            )

        connections = values.get(
            "num_connections", DEFAULT_NUM_CONNECTIONS,
        )
        outstanding = values.get("max_outstanding") or 0
        values["requested_outstanding"] = outstanding
        if outstanding <= 0:
            values["max_outstanding"] = connections

        return cls(**values)

    def with_connections(self, num_connections: int) -> RunSettings:
        """Return a copy using another connection pool size.

        A ``max_outstanding`` that was derived from the old pool size
        follows the new one.
        """
        values = asdict(self)
        values["num_connections"] = num_connections
        values["max_outstanding"] = values.pop("requested_outstanding")
        return RunSettings.build(**values)

    @classmethod
    def from_args(cls, args: object) -> RunSettings:
        """Build settings from parsed ``run`` command arguments."""
        values: dict[str, Any] = {
            "bucket": getattr(args, "bucket_name", None) or S3_BUCKET,
            "region": getattr(args, "region", None) or S3_REGION,
            "prefix": getattr(args, "prefix", DEFAULT_PREFIX),
            "obj_size_kb": getattr(
                args, "obj_size_kb", DEFAULT_OBJ_SIZE_KB,
            ),
            "num_threads": getattr(
                args, "num_threads", DEFAULT_NUM_THREADS,
            ),
            "num_objects": getattr(
                args, "num_objects", DEFAULT_NUM_OBJECTS,
            ),
            "num_connections": getattr(
                args, "num_connections", DEFAULT_NUM_CONNECTIONS,
            ),
            "max_outstanding": getattr(
                args, "num_outstanding_req", DEFAULT_NUM_OUTSTANDING_REQ,
            ),
            "stage": getattr(args, "stage", DEFAULT_STAGE),
            "count": getattr(args, "count", DEFAULT_COUNT),
            "backend": getattr(args, "backend", None) or S3_BACKEND,
            "endpoint_url": getattr(args, "endpoint_url", None),
            "drain_timeout": getattr(args, "drain_timeout", None),
        }
        return cls.build(**values)
