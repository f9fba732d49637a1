"""Source root registry and longest-prefix root matching.

A root is split into a shared identity (`RootDefinition`, checked into the
project) and a per-machine location (`RootBinding`, kept in user settings).
Link records store the root id plus a path relative to the root, so the
same record resolves on machines that bind the root to different
directories.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from source_linked.paths import AbsolutePath, comparison_key
from source_linked.result import Fail, FailureKind, Ok, Result


if TYPE_CHECKING:
    from collections.abc import Iterable


RESERVED_ID_CHARS: Final = frozenset('<>:"/\\|?*')


class RootDefinition(BaseModel):
    """Shared, project-level definition of a source root."""

    model_config = ConfigDict(frozen=True)

    id: str
    """Stable key, unique across all roots."""

    display_name: str = ""
    """Human readable name (defaults to the id when empty)."""

    @property
    def label(self) -> str:
        return self.display_name or self.id

    @field_validator("id")
    @classmethod
    def _check_id(cls, value: str) -> str:
        result = validate_root_id(value)
        if isinstance(result, Fail):
            raise ValueError(result.reason)
        return result.unwrap()


class RootBinding(BaseModel):
    """Per-user mapping of a root id to a directory on this machine."""

    model_config = ConfigDict(frozen=True)

    id: str
    """Id of the `RootDefinition` this binding belongs to."""

    directory: str = Field(min_length=1)
    """Directory the root resolves to on this machine."""


def validate_root_id(raw: str | None) -> Result[str]:
    """Validate a root id for use as a key.

    Leading/trailing whitespace is stripped. Empty ids and ids containing
    filesystem-reserved or control characters are rejected.
    """
    root_id = (raw or "").strip()
    if not root_id:
        return Fail("Root id is empty.", FailureKind.INVALID_ROOT_ID)
    bad = sorted({c for c in root_id if c in RESERVED_ID_CHARS or ord(c) < 32})  # noqa: PLR2004
    if bad:
        return Fail(
            f"Root id {root_id!r} contains invalid characters: {' '.join(map(repr, bad))}",
            FailureKind.INVALID_ROOT_ID,
        )
    return Ok(root_id)


def normalize_dir(directory: AbsolutePath) -> str:
    """Canonical directory form with exactly one trailing slash.

    The trailing slash keeps `/foo/bar` from matching `/foo/barbaz`.
    """
    return directory.canonical.rstrip("/") + "/"


def make_relative_path(root_dir: AbsolutePath, file: AbsolutePath) -> str:
    """Path of `file` relative to `root_dir`, with forward slashes."""
    return file.relative_to(root_dir)


@dataclass(frozen=True)
class RootMatch:
    """Root selected for an external file."""

    root_id: str
    """Id of the matched root."""

    directory: AbsolutePath
    """Normalized directory the root is bound to."""

    relative_path: str
    """The file's path relative to `directory`, with forward slashes."""


@dataclass(frozen=True)
class RootRegistry:
    """Immutable snapshot of root definitions and this machine's bindings."""

    definitions: dict[str, RootDefinition] = field(default_factory=dict)
    """Mapping of root id -> shared definition."""

    bindings: dict[str, RootBinding] = field(default_factory=dict)
    """Mapping of root id -> local binding."""

    @classmethod
    def from_entries(
        cls,
        definitions: Iterable[RootDefinition],
        bindings: Iterable[RootBinding],
    ) -> RootRegistry:
        """Build a registry from plain lists (later entries win on duplicate ids)."""
        return cls(
            definitions={d.id: d for d in definitions},
            bindings={b.id: b for b in bindings},
        )

    def bound_ids(self) -> list[str]:
        """Ids that have both a definition and a non-empty binding, sorted."""
        return sorted(
            root_id
            for root_id, binding in self.bindings.items()
            if root_id in self.definitions and binding.directory
        )

    def find_best_root(self, file: AbsolutePath) -> Result[RootMatch]:
        """Find the most specific bound root containing `file`.

        Only roots with both a definition and a binding are candidates.
        Among roots whose normalized directory is a prefix of the file's
        canonical path, the longest one wins. Roots bound to the same
        directory tie-break on the smallest id. A bound directory that
        cannot be normalized fails the whole lookup.
        """
        best: tuple[str, AbsolutePath, str] | None = None
        file_key = comparison_key(file.canonical)
        for root_id in self.bound_ids():
            binding = self.bindings[root_id]
            created = AbsolutePath.create(binding.directory)
            if isinstance(created, Fail):
                msg = f"Source root {root_id!r} has an invalid directory: {created.reason}"
                return Fail(msg, FailureKind.NO_ROOT_MATCH)
            directory = created.unwrap()
            prefix = normalize_dir(directory)
            if not file_key.startswith(comparison_key(prefix)):
                continue
            # bound_ids() is sorted, so equal lengths keep the smallest id
            if best is None or len(prefix) > len(best[2]):
                best = (root_id, directory, prefix)

        if best is None:
            return Fail(f"No source root matched: {file}", FailureKind.NO_ROOT_MATCH)
        root_id, directory, _ = best
        return Ok(RootMatch(root_id, directory, make_relative_path(directory, file)))

    def resolve_by_root_id(self, root_id: str, relative: str) -> Result[AbsolutePath] | None:
        """Combine a root's bound directory with a relative path.

        Returns None when the root id is empty, undefined or unbound (so the
        caller can fall back), otherwise the canonicalized result.
        """
        if not root_id or not relative:
            return None
        if root_id not in self.definitions:
            return None
        binding = self.bindings.get(root_id)
        if binding is None or not binding.directory:
            return None
        return AbsolutePath.create(binding.directory).bind(lambda d: d.joinpath(relative))

    def find_conflicts(self) -> dict[str, list[str]]:
        """Bound roots that share one normalized directory.

        Returns:
            Mapping of normalized directory -> root ids (only groups of 2+)
        """
        groups: dict[str, list[str]] = defaultdict(list)
        for root_id in self.bound_ids():
            match AbsolutePath.create(self.bindings[root_id].directory):
                case Ok(value=directory):
                    groups[comparison_key(normalize_dir(directory))].append(root_id)
                case _:
                    continue
        return {key: ids for key, ids in groups.items() if len(ids) > 1}
