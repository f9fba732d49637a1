"""Hashing, copying and stat helpers that report I/O errors as results."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
import os
import shutil
from typing import TYPE_CHECKING, Final

from source_linked.log import get_logger
from source_linked.result import Fail, FailureKind, Ok, Result


if TYPE_CHECKING:
    from source_linked.paths import AbsolutePath


logger = get_logger(__name__)

CHUNK_SIZE: Final = 1024 * 1024

TICKS_PER_SECOND: Final = 10_000_000
UNIX_EPOCH_TICKS: Final = 621_355_968_000_000_000
"""Ticks (100ns units since 0001-01-01 UTC) at 1970-01-01 UTC."""


def ns_to_ticks(timestamp_ns: int) -> int:
    """Convert a POSIX timestamp in nanoseconds to UTC ticks."""
    return UNIX_EPOCH_TICKS + timestamp_ns // 100


def ticks_to_ns(ticks: int) -> int:
    """Convert UTC ticks back to a POSIX timestamp in nanoseconds."""
    return (ticks - UNIX_EPOCH_TICKS) * 100


@dataclass(frozen=True)
class FileSnapshot:
    """Write time and size of a file at one point in time."""

    last_write_utc_ticks: int
    """Last modification time in UTC ticks."""

    size_bytes: int
    """File size in bytes."""


def compute_sha256_hex(path: AbsolutePath) -> Result[str]:
    """Compute the lowercase hex SHA-256 digest of a file's content.

    Used for change detection only, not as a security boundary.
    """
    digest = hashlib.sha256()
    try:
        with open(path.native, "rb") as f:
            while chunk := f.read(CHUNK_SIZE):
                digest.update(chunk)
    except OSError as e:
        reason = f"Failed to compute SHA-256.\nPath: {path}\n{e}"
        return Fail(reason, FailureKind.HASH_COMPUTATION_FAILED)
    return Ok(digest.hexdigest())


def snapshot(path: AbsolutePath) -> Result[FileSnapshot]:
    """Read write time and size of a file."""
    try:
        st = os.stat(path.native)
    except OSError as e:
        return Fail(f"Failed to stat file.\nPath: {path}\n{e}", FailureKind.SOURCE_FILE_NOT_FOUND)
    return Ok(FileSnapshot(last_write_utc_ticks=ns_to_ticks(st.st_mtime_ns), size_bytes=st.st_size))


def copy_file(source: AbsolutePath, dest: AbsolutePath) -> Result[None]:
    """Copy `source` over `dest`, creating the destination directory."""
    if not source.exists_as_file():
        return Fail(f"Source file not found: {source}", FailureKind.SOURCE_FILE_NOT_FOUND)
    try:
        os.makedirs(dest.parent.native, exist_ok=True)
        shutil.copyfile(source.native, dest.native)
    except OSError as e:
        reason = f"File copy failed.\nSource: {source}\nDest: {dest}\n{e}"
        return Fail(reason, FailureKind.COPY_FAILED)
    logger.debug("Copied file", source=source.display, dest=dest.display)
    return Ok(None)
