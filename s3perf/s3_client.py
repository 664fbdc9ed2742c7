"""S3 Client Factory — Creates S3 clients from run settings.

Usage::

    from s3perf.s3_client import S3Client

    client = S3Client(settings)                    # settings.backend
    client = S3Client(settings, backend="minio")   # Use minio-py
"""

from __future__ import annotations

from typing import Any

from s3perf.config import (
    RunSettings,
    S3_ACCESS_KEY_ID,
    S3_ENDPOINTS,
    S3_SECRET_ACCESS_KEY,
)

_BACKEND_CACHE: dict[str, type] = {}


def _get_backend_class(backend_name: str) -> type:
    """Resolve backend name to class (cached).

    Args:
        backend_name: Backend identifier.

    Returns:
        The S3 client class for the requested backend.

    Raises:
        ValueError: If the backend name is not recognized.
    """
    name = backend_name.lower()
    if name in _BACKEND_CACHE:
        return _BACKEND_CACHE[name]

    from s3perf.backends import S3ClientBoto3, S3ClientMinio

    mapping: dict[str, type] = {
        "boto3": S3ClientBoto3,
        "minio": S3ClientMinio,
    }

    cls = mapping.get(name)
    if cls is None:
        available = ", ".join(mapping.keys())
        raise ValueError(
            f"Unknown S3 backend '{name}'. "
            f"Available: {available}"
        )

    _BACKEND_CACHE[name] = cls
    return cls


def S3Client(
    settings: RunSettings,
    *,
    backend: str | None = None,
) -> Any:
    """Create a blocking S3 client for one worker.

    Args:
        settings: Run settings (bucket, region, pool size, endpoint).
        backend: Override backend (``boto3``, ``minio``).

    Returns:
        S3 client instance for the selected backend.
    """
    cls = _get_backend_class(backend or settings.backend)
    endpoints = (
        [settings.endpoint_url] if settings.endpoint_url
        else S3_ENDPOINTS
    )
    return cls(
        bucket=settings.bucket,
        endpoints=endpoints,
        access_key_id=S3_ACCESS_KEY_ID,
        secret_access_key=S3_SECRET_ACCESS_KEY,
        region=settings.region,
        max_connections=settings.num_connections,
    )


def get_client_backend_name(backend: str) -> str:
    """Get the class name of the selected S3 client backend."""
    return _get_backend_class(backend).__name__
