"""Decide and apply how a managed file follows its external source.

Content hashes are the only signal for "has the source changed"; write
times are recorded but never compared, since copies, clones and checkouts
do not preserve them reliably.

Outcomes per invocation:

- refresh (`is_relink=False`): hash matches -> `skipped`, else `reimported`
- relink (`is_relink=True`): location fields always move to the new source;
  hash matches -> `relinked_only`, else `reimported`
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from source_linked.fileops import compute_sha256_hex, copy_file, snapshot
from source_linked.log import get_logger
from source_linked.result import Fail, FailureKind, Ok, Result


if TYPE_CHECKING:
    from source_linked.host import ManagedFileHost
    from source_linked.link import LinkRecord
    from source_linked.paths import AbsolutePath, ManagedRelativePath
    from source_linked.registry import RootRegistry


logger = get_logger(__name__)


class SyncOutcome(StrEnum):
    """Terminal state of one synchronization."""

    SKIPPED = "skipped"
    """Content unchanged, nothing done."""

    RELINKED_ONLY = "relinked_only"
    """Link location updated, content unchanged."""

    REIMPORTED = "reimported"
    """Content copied over the managed file and link metadata updated."""


@dataclass(frozen=True)
class SyncPlan:
    """Decision for one managed file plus the link record it results in."""

    outcome: SyncOutcome
    """What has to happen."""

    source: AbsolutePath
    """External file the managed file is synced from."""

    managed_path: ManagedRelativePath
    """Managed file being synced."""

    previous_link: LinkRecord
    """Link record before synchronization."""

    link: LinkRecord
    """Link record after synchronization."""

    current_hash: str
    """Hash of the external file at decision time."""

    @property
    def link_changed(self) -> bool:
        """Whether the link record has to be persisted."""
        return self.link != self.previous_link


def locate_source(
    source: AbsolutePath,
    registry: RootRegistry,
    link: LinkRecord,
    *,
    save_absolute_path: bool = True,
) -> LinkRecord:
    """Copy of `link` whose location fields point at `source`.

    Root fields are cleared when no bound root contains the source.
    """
    found = registry.find_best_root(source)
    if isinstance(found, Fail):
        logger.warning("Source is not below any bound root", source=source.display, reason=found.reason)
        root_id, relative = "", ""
    else:
        root_id, relative = found.value.root_id, found.value.relative_path
    return link.with_location(
        external_absolute_path=source.stored if save_absolute_path else "",
        root_id=root_id,
        relative_from_root=relative,
    )


def plan_sync(
    source: AbsolutePath,
    link: LinkRecord,
    *,
    managed_path: ManagedRelativePath,
    registry: RootRegistry,
    is_relink: bool,
    save_absolute_path: bool = True,
) -> Result[SyncPlan]:
    """Hash the external file and decide the outcome.

    Args:
        source: Resolved external file (must exist)
        link: Current link record of the managed file
        managed_path: Managed file being synced
        registry: Root registry used to relocate the source when relinking
        is_relink: Whether the link is deliberately being repointed
        save_absolute_path: Whether relinking stores the absolute source path

    Returns:
        The plan, or a failure if the source is missing or cannot be read
    """
    if not source.exists_as_file():
        return Fail(f"Source file not found: {source}", FailureKind.SOURCE_FILE_NOT_FOUND)

    hashed = compute_sha256_hex(source)
    if isinstance(hashed, Fail):
        return hashed
    current_hash = hashed.value
    matches = link.hash_matches(current_hash)

    new_link = link
    if is_relink:
        new_link = locate_source(
            source, registry, link, save_absolute_path=save_absolute_path
        )

    if matches and not is_relink:
        outcome = SyncOutcome.SKIPPED
        return Ok(SyncPlan(outcome, source, managed_path, link, link, current_hash))

    outcome = SyncOutcome.RELINKED_ONLY if matches else SyncOutcome.REIMPORTED
    # Unchanged content keeps the recorded hash as-is
    recorded_hash = link.content_hash_hex if matches else current_hash
    return snapshot(source).map(
        lambda snap: SyncPlan(
            outcome,
            source,
            managed_path,
            link,
            new_link.with_sync_info(snap, recorded_hash, managed_path),
            current_hash,
        )
    )


def apply_sync(plan: SyncPlan, host: ManagedFileHost) -> Result[SyncPlan]:
    """Carry out a plan against the host.

    For `reimported` the content is copied first. If the copy fails, the
    link record is not written, so it keeps describing the content that
    was actually synced last.
    """
    managed = plan.managed_path
    match plan.outcome:
        case SyncOutcome.SKIPPED:
            logger.info("Source is up to date, skipped", managed=managed.value, source=plan.source.display)
            return Ok(plan)
        case SyncOutcome.RELINKED_ONLY:
            written = host.write_link(managed, plan.link)
            if isinstance(written, Fail):
                return written
            logger.info("Relinked (no content changes)", managed=managed.value, source=plan.source.display)
            return Ok(plan)
        case SyncOutcome.REIMPORTED:
            copied = host.to_absolute(managed).bind(lambda dest: copy_file(plan.source, dest))
            if isinstance(copied, Fail):
                return copied
            written = host.write_link(managed, plan.link)
            if isinstance(written, Fail):
                return written
            host.reprocess(managed)
            logger.info("Reimported from source", managed=managed.value, source=plan.source.display)
            return Ok(plan)
