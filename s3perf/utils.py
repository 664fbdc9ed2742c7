"""Utility functions — payload generation, key naming, formatting."""

from __future__ import annotations

import os

from botocore.exceptions import ClientError


def error_code(exc: BaseException) -> str:
    """Extract the S3 error code from an exception, if it has one.

    Args:
        exc: Exception raised by an S3 backend.

    Returns:
        The service error code (e.g. ``NoSuchBucket``) for botocore
        ``ClientError`` and minio ``S3Error``, otherwise ``""``.
    """
    if isinstance(exc, ClientError):
        return exc.response.get("Error", {}).get("Code", "")
    code = getattr(exc, "code", None)
    return str(code) if code else ""


def generate_payload(size_kb: int) -> bytes:
    """Generate the random upload body shared by all workers.

    Args:
        size_kb: Payload size in kilobytes.

    Returns:
        ``size_kb * 1024`` random bytes.
    """
    return os.urandom(size_kb * 1024)


def object_key(prefix: str, worker_id: int, index: int) -> str:
    """Build the key for object ``index`` of worker ``worker_id``.

    The same key is used by the upload and the download stage.
    """
    return f"{prefix}{worker_id}_{index}"


def parse_int_list(value: str) -> list[int]:
    """Parse a comma separated list of positive integers.

    Args:
        value: String like ``"16,24,32"``.

    Returns:
        List of integers in the given order.

    Raises:
        ValueError: If an item is not a positive integer or the list
            is empty.
    """
    items: list[int] = []
    for part in value.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            number = int(part)
        except ValueError:
            raise ValueError(f"Invalid integer in list: {part!r}")
        if number <= 0:
            raise ValueError(f"List values must be positive: {number}")
        items.append(number)
    if not items:
        raise ValueError("List cannot be empty")
    return items


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string.

    Args:
        size: Size in bytes.

    Returns:
        Human-readable size string.
    """
    if size < 1024:
        return f"{size}B"
    elif size < 1024**2:
        return f"{size / 1024:.1f}KB"
    elif size < 1024**3:
        return f"{size / 1024**2:.1f}MB"
    else:
        return f"{size / 1024**3:.1f}GB"
