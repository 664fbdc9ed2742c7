"""
Pytest configuration and fixtures for s3perf tests

The fixtures replace the S3 backend with an in-memory fake so the
benchmark machinery can be exercised without a real object store.
"""

import threading
import time

import pytest
from botocore.exceptions import ClientError

from s3perf.config import RunSettings


def client_error(code, message, operation):
    """Build a botocore ClientError like the S3 API returns."""
    return ClientError(
        {
            "Error": {"Code": code, "Message": message},
            "ResponseMetadata": {"HTTPStatusCode": 400},
        },
        operation,
    )


class FakeStore:
    """Bucket contents shared by every fake backend of a test."""

    def __init__(self):
        self.objects = {}
        self.puts = []
        self.gets = []
        self.lock = threading.Lock()


class FakeS3Backend:
    """Blocking in-memory backend with the S3ClientBoto3 interface.

    Tracks how many requests are inside the backend at once so tests
    can check the outstanding-request bound.
    """

    def __init__(self, store, *, delay=0.0, fail_keys=(), truncate_to=None):
        self.store = store
        self.delay = delay
        self.fail_keys = set(fail_keys)
        self.truncate_to = truncate_to
        self.in_flight = 0
        self.peak_in_flight = 0
        self.closed = False
        self._lock = threading.Lock()

    def _enter(self):
        with self._lock:
            self.in_flight += 1
            self.peak_in_flight = max(self.peak_in_flight, self.in_flight)

    def _exit(self):
        with self._lock:
            self.in_flight -= 1

    def put_object(self, key, data):
        self._enter()
        try:
            if self.delay:
                time.sleep(self.delay)
            if key in self.fail_keys:
                raise client_error("AccessDenied", "Access Denied", "PutObject")
            with self.store.lock:
                self.store.objects[key] = bytes(data)
                self.store.puts.append(key)
            return {"ETag": '"fake"'}
        finally:
            self._exit()

    def get_object(self, key):
        self._enter()
        try:
            if self.delay:
                time.sleep(self.delay)
            if key in self.fail_keys:
                raise client_error("InternalError", "We encountered an internal error", "GetObject")
            with self.store.lock:
                self.store.gets.append(key)
                if key not in self.store.objects:
                    raise client_error("NoSuchKey", "The specified key does not exist.", "GetObject")
                data = self.store.objects[key]
            if self.truncate_to is not None:
                return data[: self.truncate_to]
            return data
        finally:
            self._exit()

    def list_objects(self, prefix="", max_keys=1000, continuation_token=None):
        with self.store.lock:
            sizes = {k: len(v) for k, v in self.store.objects.items() if k.startswith(prefix)}
        keys = sorted(sizes)
        if continuation_token:
            keys = [k for k in keys if k > continuation_token]
        page = keys[:max_keys]
        response = {
            "Contents": [{"Key": k, "Size": sizes[k]} for k in page],
            "IsTruncated": len(keys) > max_keys,
            "KeyCount": len(page),
        }
        if response["IsTruncated"]:
            response["NextContinuationToken"] = page[-1]
        return response

    def delete_objects(self, keys):
        with self.store.lock:
            for key in keys:
                self.store.objects.pop(key, None)
        return {"Deleted": [{"Key": k} for k in keys], "Errors": []}

    def close(self):
        self.closed = True


class FakeClientFactory:
    """Callable handed to run_stage/run_benchmark in place of S3Client."""

    def __init__(self, store, **backend_kwargs):
        self.store = store
        self.backend_kwargs = backend_kwargs
        self.backends = []
        self._lock = threading.Lock()

    def __call__(self, settings):
        backend = FakeS3Backend(self.store, **self.backend_kwargs)
        with self._lock:
            self.backends.append(backend)
        return backend

    @property
    def peak_in_flight(self):
        return max((b.peak_in_flight for b in self.backends), default=0)


@pytest.fixture
def store():
    """Empty in-memory bucket"""
    return FakeStore()


@pytest.fixture
def make_factory(store):
    """Factory builder: make_factory(delay=..., fail_keys=..., truncate_to=...)"""

    def _make(**backend_kwargs):
        return FakeClientFactory(store, **backend_kwargs)

    return _make


@pytest.fixture
def make_settings():
    """Small, fast RunSettings; keyword arguments override the defaults"""

    def _make(**overrides):
        values = {
            "bucket": "bench-bucket",
            "region": "us-west-1",
            "prefix": "prefix",
            "obj_size_kb": 1,
            "num_threads": 1,
            "num_objects": 3,
            "num_connections": 4,
            "max_outstanding": 0,
            "stage": "all",
            "count": 1,
            "backend": "boto3",
        }
        values.update(overrides)
        return RunSettings.build(**values)

    return _make
