"""Cleanup command — Delete benchmark objects from S3."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from s3perf.config import DELETE_BATCH_SIZE, RunSettings
from s3perf.logging_setup import get_logger, setup_logging
from s3perf.s3_client import S3Client

_MAX_PENDING_BATCHES = 30


def delete_prefix(client: object, prefix: str) -> tuple[int, int]:
    """List and delete all objects with given prefix.

    Listing and deletion overlap: each listed page is handed to a
    thread pool while the next page is fetched.

    Args:
        client: Blocking S3 backend.
        prefix: S3 key prefix to clean up.

    Returns:
        Tuple of (objects deleted, objects that failed to delete).
    """
    deleted = 0
    failed = 0
    continuation_token = None

    with ThreadPoolExecutor(max_workers=_MAX_PENDING_BATCHES) as executor:
        futures = []

        while True:
            result = client.list_objects(
                prefix=prefix,
                max_keys=DELETE_BATCH_SIZE,
                continuation_token=continuation_token,
            )
            keys = [obj["Key"] for obj in result.get("Contents", [])]
            if keys:
                futures.append(executor.submit(client.delete_objects, keys))

            if not result.get("IsTruncated"):
                break
            continuation_token = result.get("NextContinuationToken")

        for future in futures:
            response = future.result()
            deleted += len(response.get("Deleted", []))
            failed += len(response.get("Errors", []))

    return deleted, failed


def cmd_cleanup(args: object) -> int:
    """Delete every object under ``--prefix`` in the bucket.

    Args:
        args: Parsed CLI arguments with ``prefix``, ``bucket_name``,
            ``region``, ``backend`` and ``endpoint_url`` attributes.

    Returns:
        Exit code (0 for success, 1 if any object could not be
        deleted, 2 on invalid settings).
    """
    setup_logging(level=getattr(args, "log_level", None))
    logger = get_logger()

    try:
        settings = RunSettings.from_args(args)
        client = S3Client(settings)
    except (ImportError, ValueError) as exc:
        logger.error(f"Invalid settings: {exc}")
        return 2

    print(f"Cleaning up objects under {settings.prefix!r}")
    print(f"Bucket: {settings.bucket}")
    print("=" * 60)

    try:
        deleted, failed = delete_prefix(client, settings.prefix)
    finally:
        client.close()

    print(f"Total objects deleted: {deleted}")
    if failed:
        logger.error(f"{failed} object(s) could not be deleted")
        return 1
    return 0
