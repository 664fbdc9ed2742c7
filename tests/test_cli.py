#!/usr/bin/env python3
"""
CLI Tests

Tests the run and cleanup commands end to end with the in-memory
backend patched in place of the real S3 client factory.
"""

import pytest

import s3perf.stage
from s3perf.__main__ import main
from s3perf.cli import cleanup


@pytest.fixture
def fake_s3(monkeypatch, make_factory):
    """Route every S3Client() call in the benchmark to the fake store"""

    def _install(**backend_kwargs):
        factory = make_factory(**backend_kwargs)
        monkeypatch.setattr(s3perf.stage, "S3Client", factory)
        monkeypatch.setattr(cleanup, "S3Client", factory)
        return factory

    return _install


RUN_ARGS = [
    "run",
    "--bucket-name", "bench-bucket",
    "--prefix", "cli/",
    "--obj-size-kb", "1",
    "--num-threads", "2",
    "--num-objects", "3",
    "--num-connections", "2",
    "--count", "2",
]


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "usage: s3perf" in capsys.readouterr().out


def test_run_success(fake_s3, store, capsys):
    fake_s3()

    assert main(RUN_ARGS) == 0

    out = capsys.readouterr().out
    assert "Test configuration:" in out
    assert "  bucket_name = bench-bucket" in out
    assert "  num_outstanding_req = 2" in out
    assert "UPLOAD stage completed in" in out
    assert "DOWNLOAD stage completed in" in out
    assert "(total: 12 objects," in out
    assert len(store.puts) == 12
    assert len(store.gets) == 12


def test_run_request_failure_exits_nonzero(fake_s3, store, capsys):
    fake_s3(fail_keys={"cli/0_1"})

    assert main(RUN_ARGS) == 1

    captured = capsys.readouterr()
    assert "RequestError" in captured.err
    assert "cli/0_1" in captured.err
    assert "UPLOAD stage completed" not in captured.out
    assert store.gets == []


def test_run_size_mismatch_exits_nonzero(fake_s3, capsys):
    fake_s3(truncate_to=1000)

    assert main(RUN_ARGS) == 1

    captured = capsys.readouterr()
    assert "SizeMismatchError" in captured.err
    assert "UPLOAD stage completed" in captured.out
    assert "DOWNLOAD stage completed" not in captured.out


def test_run_interrupted_exits_130(fake_s3, monkeypatch, capsys):
    fake_s3()

    def interrupted(futures):
        raise KeyboardInterrupt

    monkeypatch.setattr(s3perf.stage, "as_completed", interrupted)

    assert main(RUN_ARGS) == 130

    out = capsys.readouterr().out
    assert "Interrupted" in out
    assert "UPLOAD stage completed" not in out


def test_run_invalid_settings(capsys):
    assert main(["run", "--num-threads", "0"]) == 2
    assert "num_threads" in capsys.readouterr().err


def test_run_unknown_backend(capsys):
    assert main(["run", "--backend", "azure"]) == 2
    assert "Unknown S3 backend" in capsys.readouterr().err


def test_run_sweep(fake_s3, capsys):
    fake_s3()

    args = RUN_ARGS + ["--stage", "upload", "--sweep-connections", "1,3"]
    assert main(args) == 0

    out = capsys.readouterr().out
    assert "  num_connections = 1" in out
    assert "  num_connections = 3" in out
    assert out.count("-" * 40) == 2


def test_run_bad_sweep_list(capsys):
    assert main(["run", "--sweep-connections", "8,x"]) == 2


def test_cleanup_deletes_prefix(fake_s3, store, monkeypatch, capsys):
    fake_s3()
    monkeypatch.setattr(cleanup, "DELETE_BATCH_SIZE", 2)
    store.objects.update({f"cli/0_{i}": b"x" for i in range(5)})
    store.objects["other/keep"] = b"y"

    assert main(["cleanup", "--prefix", "cli/"]) == 0

    assert list(store.objects) == ["other/keep"]
    assert "Total objects deleted: 5" in capsys.readouterr().out
