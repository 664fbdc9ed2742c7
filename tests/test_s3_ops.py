#!/usr/bin/env python3
"""
AsyncS3Client Tests

Tests completion callbacks and error capture.
"""

import threading

import pytest

from s3perf.s3_ops import OP_GET, OP_PUT, AsyncS3Client


def test_put_callback_runs_on_pool_thread(make_settings, make_factory, store):
    backend = make_factory()(make_settings())
    done = threading.Event()
    outcomes = []

    def on_done(outcome):
        outcomes.append((outcome, threading.current_thread().name))
        done.set()

    with AsyncS3Client(backend, max_workers=2, thread_name_prefix="io") as client:
        client.put_object_async("k1", b"abc", on_done)
        assert done.wait(5)

    outcome, thread_name = outcomes[0]
    assert outcome.ok
    assert outcome.op == OP_PUT
    assert outcome.key == "k1"
    assert outcome.length == 3
    assert outcome.latency_ms >= 0
    assert thread_name.startswith("io")
    assert store.objects["k1"] == b"abc"
    assert backend.closed


def test_get_error_delivered_in_outcome(make_settings, make_factory):
    backend = make_factory()(make_settings())
    outcomes = []

    with AsyncS3Client(backend, max_workers=1) as client:
        future = client.get_object_async("missing", outcomes.append)
        future.result(timeout=5)

    assert len(outcomes) == 1
    assert not outcomes[0].ok
    assert outcomes[0].op == OP_GET
    assert outcomes[0].error.response["Error"]["Code"] == "NoSuchKey"


def test_raising_callback_does_not_break_pool(make_settings, make_factory):
    backend = make_factory()(make_settings())
    outcomes = []

    def broken(outcome):
        raise RuntimeError("callback bug")

    with AsyncS3Client(backend, max_workers=1) as client:
        first = client.put_object_async("k1", b"abc", broken)
        second = client.put_object_async("k2", b"abc", outcomes.append)
        assert first.result(timeout=5) is None
        second.result(timeout=5)

    assert [o.key for o in outcomes] == ["k2"]


def test_backend_closed_on_error_exit(make_settings, make_factory):
    backend = make_factory()(make_settings())

    with pytest.raises(RuntimeError):
        with AsyncS3Client(backend, max_workers=1):
            raise RuntimeError("worker failed")

    assert backend.closed
