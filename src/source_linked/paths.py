"""Path value types for external files and managed-tree locations."""

from __future__ import annotations

import os
import posixpath
import sys
from typing import Final

from source_linked.result import Fail, FailureKind, Ok, Result


DEFAULT_TREE_MARKER: Final = "Assets"
"""Name of the managed tree's root directory."""

CASE_INSENSITIVE_FS: bool = os.name == "nt" or sys.platform == "darwin"
"""Whether path comparisons ignore case on this platform."""

# Characters Windows refuses in path components (":" is allowed as drive separator)
_WINDOWS_INVALID_CHARS: Final = frozenset('<>"|?*')


def comparison_key(canonical: str) -> str:
    """Key used to compare canonical (slash-separated) paths on this platform."""
    return canonical.casefold() if CASE_INSENSITIVE_FS else canonical


def to_slashes(path: str) -> str:
    """Replace backslashes with forward slashes."""
    return path.replace("\\", "/")


def _invalid_path_reason(raw: str) -> str | None:
    if "\0" in raw:
        return f"Invalid path (embedded null byte): {raw!r}"
    if os.name == "nt":
        _drive, rest = os.path.splitdrive(raw)
        bad = sorted({c for c in rest if c in _WINDOWS_INVALID_CHARS or ord(c) < 32})  # noqa: PLR2004
        if bad or ":" in rest:
            return f"Invalid path (illegal characters {bad or [':']}): {raw}"
    return None


class AbsolutePath:
    """Normalized, OS-rooted filesystem path.

    Instances are only produced by `AbsolutePath.create`, which makes the raw
    string absolute and collapses `.`/`..` segments. Symlinks are not
    resolved. Equality ignores case on case-insensitive filesystems.
    """

    __slots__ = ("_native",)

    def __init__(self, native: str, *, _token: object = None):
        if _token is not _CREATE_TOKEN:
            msg = "Use AbsolutePath.create() to construct absolute paths"
            raise TypeError(msg)
        self._native = native

    @classmethod
    def create(cls, raw: str | os.PathLike[str] | None) -> Result[AbsolutePath]:
        """Canonicalize a raw path string.

        Fails with `invalid_path` if the string is empty or cannot be
        canonicalized on this OS.
        """
        if raw is None:
            return Fail("Path is empty.", FailureKind.INVALID_PATH)
        try:
            text = os.fspath(raw)
        except TypeError as e:
            return Fail(f"Invalid path: {e}", FailureKind.INVALID_PATH)
        if not text:
            return Fail("Path is empty.", FailureKind.INVALID_PATH)
        if reason := _invalid_path_reason(text):
            return Fail(reason, FailureKind.INVALID_PATH)
        try:
            native = os.path.abspath(text)
        except (OSError, ValueError) as e:
            return Fail(f"Invalid path: {e}", FailureKind.INVALID_PATH)
        return Ok(cls(native, _token=_CREATE_TOKEN))

    @property
    def native(self) -> str:
        """OS-native form, for passing to filesystem APIs."""
        return self._native

    @property
    def canonical(self) -> str:
        """Forward-slash form, for comparison and prefix checks."""
        return to_slashes(self._native)

    @property
    def stored(self) -> str:
        """Form written into persisted link records."""
        return self.canonical

    @property
    def display(self) -> str:
        """Form shown to users."""
        return self.canonical

    @property
    def name(self) -> str:
        """Final path component."""
        return os.path.basename(self._native)

    @property
    def parent(self) -> AbsolutePath:
        """Containing directory (the path itself for filesystem roots)."""
        return AbsolutePath(os.path.dirname(self._native), _token=_CREATE_TOKEN)

    def exists_as_file(self) -> bool:
        """Point-in-time check whether this path is an existing file."""
        return os.path.isfile(self._native)

    def exists_as_directory(self) -> bool:
        """Point-in-time check whether this path is an existing directory."""
        return os.path.isdir(self._native)

    def joinpath(self, relative: str) -> Result[AbsolutePath]:
        """Append a relative path and canonicalize the result."""
        return AbsolutePath.create(os.path.join(self._native, relative))

    def relative_to(self, root: AbsolutePath) -> str:
        """Path of self relative to `root`, always with forward slashes."""
        return to_slashes(os.path.relpath(self._native, root.native))

    def is_under(self, directory: AbsolutePath) -> bool:
        """Whether this path lies strictly below `directory`."""
        prefix = directory.canonical.rstrip("/") + "/"
        return comparison_key(self.canonical).startswith(comparison_key(prefix))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AbsolutePath):
            return NotImplemented
        return comparison_key(self.canonical) == comparison_key(other.canonical)

    def __hash__(self) -> int:
        return hash(comparison_key(self.canonical))

    def __fspath__(self) -> str:
        return self._native

    def __str__(self) -> str:
        return self.stored

    def __repr__(self) -> str:
        return f"AbsolutePath({self.canonical!r})"


class ManagedRelativePath:
    """Location inside the managed tree, e.g. `Assets/Models/x.fbx`.

    Always either the tree marker itself or a path starting with `<marker>/`,
    with forward slashes and no trailing slash. Comparison is ordinal.
    """

    __slots__ = ("_marker", "_value")

    def __init__(self, value: str, marker: str, *, _token: object = None):
        if _token is not _CREATE_TOKEN:
            msg = "Use ManagedRelativePath.create() to construct managed paths"
            raise TypeError(msg)
        self._value = value
        self._marker = marker

    @classmethod
    def create(
        cls,
        raw: str | None,
        marker: str = DEFAULT_TREE_MARKER,
    ) -> Result[ManagedRelativePath]:
        """Normalize and validate a managed-tree path.

        `.` and `..` segments are collapsed first, so a path cannot step out
        of the tree.
        """
        if not raw:
            return Fail("Path is empty.", FailureKind.NOT_IN_MANAGED_TREE)
        value = posixpath.normpath(to_slashes(raw))
        if value != marker and not value.startswith(f"{marker}/"):
            return Fail(f"Not a managed path: {value}", FailureKind.NOT_IN_MANAGED_TREE)
        return Ok(cls(value, marker, _token=_CREATE_TOKEN))

    @property
    def value(self) -> str:
        """Normalized path string."""
        return self._value

    @property
    def marker(self) -> str:
        return self._marker

    @property
    def is_root(self) -> bool:
        """Whether this is the tree root itself."""
        return self._value == self._marker

    @property
    def name(self) -> str:
        """Final path component."""
        return posixpath.basename(self._value)

    @property
    def parent(self) -> ManagedRelativePath:
        """Containing directory, the tree root stays the tree root."""
        if self.is_root:
            return self
        return ManagedRelativePath(
            posixpath.dirname(self._value), self._marker, _token=_CREATE_TOKEN
        )

    def joinpath(self, name: str) -> ManagedRelativePath:
        """Append a file or folder name."""
        if not name:
            msg = "name must not be empty"
            raise ValueError(msg)
        joined = f"{self._value}/{to_slashes(name).strip('/')}"
        return ManagedRelativePath(joined, self._marker, _token=_CREATE_TOKEN)

    def to_absolute(self, project_root: AbsolutePath) -> Result[AbsolutePath]:
        """Resolve against the directory containing the managed tree."""
        return project_root.joinpath(self._value).with_context(
            f"Project root could not be resolved for {self._value}"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ManagedRelativePath):
            return NotImplemented
        return self._value == other._value

    def __hash__(self) -> int:
        return hash(self._value)

    def __str__(self) -> str:
        return self._value

    def __repr__(self) -> str:
        return f"ManagedRelativePath({self._value!r})"


_CREATE_TOKEN: Final = object()
