"""Tests for hashing, copying and stat helpers."""

from __future__ import annotations

import hashlib
import os
from typing import TYPE_CHECKING

import pytest

from source_linked import AbsolutePath, Fail, FailureKind, compute_sha256_hex, copy_file, snapshot
from source_linked.fileops import UNIX_EPOCH_TICKS, ns_to_ticks, ticks_to_ns


if TYPE_CHECKING:
    from pathlib import Path


def abs_path(path: Path) -> AbsolutePath:
    return AbsolutePath.create(path).unwrap()


def test_sha256_is_lowercase_hex(tmp_path: Path):
    """Test digest format and value."""
    file = tmp_path / "f.bin"
    file.write_bytes(b"hello")
    digest = compute_sha256_hex(abs_path(file)).unwrap()
    assert digest == hashlib.sha256(b"hello").hexdigest()
    assert digest == digest.lower()
    assert len(digest) == 64  # noqa: PLR2004


def test_sha256_of_missing_file_fails(tmp_path: Path):
    """Test that unreadable files report a hash failure."""
    result = compute_sha256_hex(abs_path(tmp_path / "missing"))
    assert isinstance(result, Fail)
    assert result.kind is FailureKind.HASH_COMPUTATION_FAILED


def test_snapshot_reads_size_and_ticks(tmp_path: Path):
    """Test stat conversion to ticks."""
    file = tmp_path / "f.bin"
    file.write_bytes(b"12345")
    os.utime(file, ns=(0, 1_000_000_000))
    snap = snapshot(abs_path(file)).unwrap()
    assert snap.size_bytes == 5  # noqa: PLR2004
    assert snap.last_write_utc_ticks == UNIX_EPOCH_TICKS + 10_000_000


def test_ticks_conversion():
    """Test conversion between nanoseconds and ticks."""
    assert ns_to_ticks(0) == UNIX_EPOCH_TICKS
    assert ticks_to_ns(ns_to_ticks(1_234_500)) == 1_234_500


def test_copy_creates_destination_directory(tmp_path: Path):
    """Test copying into a folder that does not exist yet."""
    source = tmp_path / "src.bin"
    source.write_bytes(b"data")
    dest = tmp_path / "out" / "nested" / "dst.bin"
    assert copy_file(abs_path(source), abs_path(dest)).is_ok
    assert dest.read_bytes() == b"data"


def test_copy_overwrites_existing_file(tmp_path: Path):
    """Test that the destination content is replaced."""
    source = tmp_path / "src.bin"
    source.write_bytes(b"new")
    dest = tmp_path / "dst.bin"
    dest.write_bytes(b"old content")
    assert copy_file(abs_path(source), abs_path(dest)).is_ok
    assert dest.read_bytes() == b"new"


def test_copy_failures(tmp_path: Path):
    """Test missing source and unwritable destination."""
    missing = copy_file(abs_path(tmp_path / "missing"), abs_path(tmp_path / "dst"))
    assert isinstance(missing, Fail)
    assert missing.kind is FailureKind.SOURCE_FILE_NOT_FOUND

    source = tmp_path / "src.bin"
    source.write_bytes(b"x")
    blocker = tmp_path / "blocker"
    blocker.write_bytes(b"")
    failed = copy_file(abs_path(source), abs_path(blocker / "dst.bin"))
    assert isinstance(failed, Fail)
    assert failed.kind is FailureKind.COPY_FAILED
    assert "File copy failed" in failed.reason


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
