"""Resolve a link record to the external file it currently points at."""

from __future__ import annotations

from typing import TYPE_CHECKING

from source_linked.paths import AbsolutePath
from source_linked.result import Fail, FailureKind, Result


if TYPE_CHECKING:
    from source_linked.link import LinkRecord
    from source_linked.registry import RootRegistry


ROOTS_HINT = "Hint: check the source roots (source-linked roots list)."


def resolve_external_path(registry: RootRegistry, link: LinkRecord | None) -> Result[AbsolutePath]:
    """Turn a link record into an absolute external path.

    Root id + relative path take precedence over the stored absolute path,
    which is only a machine-specific cache. The root branch applies only if
    the root is both defined and bound on this machine. File existence is
    not checked here.
    """
    if link is None:
        return Fail("Link record is missing.", FailureKind.UNRESOLVABLE_LINK)

    if link.has_root_location:
        resolved = registry.resolve_by_root_id(link.root_id, link.relative_from_root)
        if resolved is not None:
            return resolved

    if link.external_absolute_path:
        return AbsolutePath.create(link.external_absolute_path)

    return Fail(
        "Missing source info (root id/relative path and absolute path are empty).",
        FailureKind.UNRESOLVABLE_LINK,
    )


def resolve_existing_source(
    registry: RootRegistry,
    link: LinkRecord | None,
) -> Result[AbsolutePath]:
    """Resolve a link record and require the external file to exist."""
    return resolve_external_path(registry, link).ensure(
        lambda path: path.exists_as_file(),
        lambda path: f"Source file not found: {path}\n{ROOTS_HINT}",
        FailureKind.SOURCE_FILE_NOT_FOUND,
    )
