"""S3 client backends for benchmarking.

Available clients:
    S3ClientBoto3  - Pure boto3 (default, works everywhere)
    S3ClientMinio  - MinIO Python SDK (optional, requires minio package)

Both are blocking and thread-safe; ``s3perf.s3_ops`` runs them on a
thread pool to get asynchronous completions. Every backend is bound to
one bucket and sized for one worker's connection pool.
"""

from __future__ import annotations

import itertools
import os
import threading
import urllib.parse
from io import BytesIO
from typing import Any

import boto3
import urllib3
from botocore.config import Config

from s3perf.config import S3_CONNECT_TIMEOUT, S3_READ_TIMEOUT

# Suppress SSL warnings for self-signed certificates
urllib3.disable_warnings(urllib3.exceptions.InsecureRequestWarning)

_VERIFY_SSL = os.environ.get("S3_VERIFY_SSL", "true").lower() in (
    "true",
    "1",
    "yes",
)


class S3ClientBoto3:
    """Pure boto3 S3 client with endpoint rotation.

    With no endpoints configured the regional AWS endpoint is used.
    With several, operations rotate across them. One botocore client
    is built per endpoint up front, from a private session, because
    the default boto3 session is not safe to share between threads.
    """

    def __init__(
        self,
        *,
        bucket: str,
        endpoints: list[str],
        access_key_id: str,
        secret_access_key: str,
        region: str,
        max_connections: int,
    ) -> None:
        self.bucket = bucket
        self.endpoints = endpoints
        self.region = region
        self._counter = itertools.count()
        self._counter_lock = threading.Lock()

        session = boto3.session.Session(
            aws_access_key_id=access_key_id or None,
            aws_secret_access_key=secret_access_key or None,
            region_name=region,
        )
        config = Config(
            max_pool_connections=max_connections,
            retries={"total_max_attempts": 1},
            connect_timeout=S3_CONNECT_TIMEOUT,
            read_timeout=S3_READ_TIMEOUT,
        )
        self._clients: list[Any] = [
            session.client(
                "s3",
                endpoint_url=endpoint,
                verify=_VERIFY_SSL,
                config=config,
            )
            for endpoint in (endpoints or [None])
        ]

    def _get_client(self) -> Any:
        """Get boto3 client, rotating across endpoints."""
        if len(self._clients) == 1:
            return self._clients[0]
        with self._counter_lock:
            idx = next(self._counter) % len(self._clients)
        return self._clients[idx]

    def put_object(self, key: str, data: bytes) -> dict:
        """Upload object."""
        client = self._get_client()
        return client.put_object(
            Bucket=self.bucket, Key=key, Body=data
        )

    def get_object(self, key: str) -> bytes:
        """Download object."""
        client = self._get_client()
        response = client.get_object(Bucket=self.bucket, Key=key)
        return response["Body"].read()

    def delete_objects(self, keys: list[str]) -> dict:
        """Batch delete up to 1000 objects.

        Args:
            keys: List of object keys to delete.

        Returns:
            Dict with 'Deleted' and 'Errors' lists.
        """
        client = self._get_client()
        objects = [{"Key": k} for k in keys]
        response = client.delete_objects(
            Bucket=self.bucket,
            Delete={"Objects": objects},
        )
        return {
            "Deleted": response.get("Deleted", []),
            "Errors": response.get("Errors", []),
        }

    def list_objects(
        self,
        prefix: str = "",
        max_keys: int = 1000,
        continuation_token: str | None = None,
    ) -> dict:
        """List objects using ListObjectsV2."""
        client = self._get_client()
        params: dict[str, Any] = {
            "Bucket": self.bucket,
            "Prefix": prefix,
            "MaxKeys": max_keys,
        }
        if continuation_token:
            params["ContinuationToken"] = continuation_token
        return client.list_objects_v2(**params)

    def close(self) -> None:
        """Close pooled connections."""
        for client in self._clients:
            client.close()


class S3ClientMinio:
    """MinIO Python SDK client.

    Requires the ``minio`` package to be installed. Uses minio-py
    for all operations; works with any S3-compatible endpoint.
    """

    def __init__(
        self,
        *,
        bucket: str,
        endpoints: list[str],
        access_key_id: str,
        secret_access_key: str,
        region: str,
        max_connections: int,
    ) -> None:
        """Initialize minio-py client.

        Args:
            bucket: S3 bucket name.
            endpoints: List of S3 endpoint URLs (uses first one).
            access_key_id: AWS access key ID.
            secret_access_key: AWS secret access key.
            region: AWS region.
            max_connections: Size of the urllib3 connection pool.
        """
        try:
            from minio import Minio
        except ImportError as exc:
            raise ImportError(
                "minio package not installed. "
                "Run: pip install 's3perf[minio]'"
            ) from exc

        if not endpoints:
            raise ValueError(
                "The minio backend needs an endpoint "
                "(--endpoint-url or S3_ENDPOINT)"
            )

        self.bucket = bucket
        self.region = region

        parsed = urllib.parse.urlparse(endpoints[0])
        endpoint_host = parsed.netloc
        use_secure = parsed.scheme == "https"

        self._http = urllib3.PoolManager(
            timeout=urllib3.Timeout(
                connect=S3_CONNECT_TIMEOUT, read=S3_READ_TIMEOUT,
            ),
            maxsize=max_connections,
            cert_reqs="CERT_REQUIRED" if _VERIFY_SSL else "CERT_NONE",
            retries=False,
        )

        self.client = Minio(
            endpoint_host,
            access_key=access_key_id,
            secret_key=secret_access_key,
            region=region,
            secure=use_secure,
            http_client=self._http,
        )

    def put_object(self, key: str, data: bytes) -> Any:
        """Upload object."""
        return self.client.put_object(
            self.bucket, key, BytesIO(data), len(data)
        )

    def get_object(self, key: str) -> bytes:
        """Download object."""
        response = self.client.get_object(self.bucket, key)
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    def delete_objects(self, keys: list[str]) -> dict:
        """Batch delete objects.

        Args:
            keys: List of object keys to delete.

        Returns:
            Dict with 'Deleted' and 'Errors' lists (boto3-style).
        """
        from minio.deleteobjects import DeleteObject

        delete_list = [DeleteObject(key) for key in keys]
        errors = list(
            self.client.remove_objects(self.bucket, delete_list)
        )
        failed = {e.name for e in errors}
        deleted = [{"Key": key} for key in keys if key not in failed]
        error_list = [
            {
                "Key": e.name,
                "Code": e.code,
                "Message": e.message,
            }
            for e in errors
        ]
        return {"Deleted": deleted, "Errors": error_list}

    def list_objects(
        self,
        prefix: str = "",
        max_keys: int = 1000,
        continuation_token: str | None = None,
    ) -> dict:
        """List objects, returning boto3-style response dict."""
        start_after = continuation_token if continuation_token else None
        object_iter = self.client.list_objects(
            self.bucket,
            prefix=prefix,
            recursive=True,
            start_after=start_after,
        )

        objects: list[dict] = []
        is_truncated = False
        next_token: str | None = None

        for i, obj in enumerate(object_iter):
            if i >= max_keys:
                is_truncated = True
                next_token = objects[-1]["Key"]
                break
            objects.append({
                "Key": obj.object_name,
                "Size": obj.size,
            })

        response: dict[str, Any] = {
            "Contents": objects,
            "IsTruncated": is_truncated,
            "KeyCount": len(objects),
        }
        if next_token:
            response["NextContinuationToken"] = next_token
        return response

    def close(self) -> None:
        """Close pooled connections."""
        self._http.clear()
