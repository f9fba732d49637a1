"""Import, reimport and relink workflows on top of the sync engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from source_linked.fileops import compute_sha256_hex, copy_file, snapshot
from source_linked.link import CURRENT_VERSION, LinkRecord
from source_linked.log import get_logger
from source_linked.paths import AbsolutePath
from source_linked.resolver import resolve_existing_source, resolve_external_path
from source_linked.result import Fail, FailureKind, Ok, Result
from source_linked.sync import SyncOutcome, SyncPlan, apply_sync, locate_source, plan_sync


if TYPE_CHECKING:
    from collections.abc import Iterable
    import os

    from source_linked.host import FileSystemHost
    from source_linked.paths import ManagedRelativePath
    from source_linked.settings import Settings


logger = get_logger(__name__)


@dataclass(frozen=True)
class ImportReport:
    """Result of bringing an external file into the managed tree."""

    source: AbsolutePath
    """Imported external file."""

    managed_path: ManagedRelativePath
    """Where the copy was placed."""

    link: LinkRecord
    """Link record written for the copy."""


@dataclass
class ReimportSummary:
    """Counts of a batch reimport."""

    reimported: int = 0
    skipped: int = 0
    relinked: int = 0
    failed: int = 0
    failures: list[str] = field(default_factory=list)
    """Failure reasons, one per failed file."""

    def add(self, result: Result[SyncPlan]) -> None:
        match result:
            case Ok(value=plan):
                match plan.outcome:
                    case SyncOutcome.REIMPORTED:
                        self.reimported += 1
                    case SyncOutcome.SKIPPED:
                        self.skipped += 1
                    case SyncOutcome.RELINKED_ONLY:
                        self.relinked += 1
            case Fail(reason=reason):
                self.failed += 1
                self.failures.append(reason)

    def __str__(self) -> str:
        return (
            f"reimported={self.reimported}, skipped={self.skipped}, "
            f"relinked={self.relinked}, failed={self.failed}"
        )


@dataclass(frozen=True)
class LinkStatus:
    """Read-only view of where a managed file's source is and whether it changed."""

    managed_path: ManagedRelativePath
    link: LinkRecord
    source: AbsolutePath
    source_exists: bool
    up_to_date: bool | None
    """Whether the recorded hash matches, None if the source is missing."""


class SourceLinkService:
    """Workflows for linked files of one project.

    Settings are a snapshot passed in by the caller. Updated link records
    are persisted through the host.
    """

    def __init__(self, settings: Settings, host: FileSystemHost):
        """Initialize the service.

        Args:
            settings: Project and user settings snapshot
            host: Host owning the managed tree and link records
        """
        self.settings = settings
        self.host = host
        self.registry = settings.registry()

    @property
    def save_absolute_path(self) -> bool:
        return self.settings.user.save_absolute_path

    def import_file(
        self,
        source: str | os.PathLike[str],
        dest_dir: ManagedRelativePath,
        *,
        overwrite: bool = False,
    ) -> Result[ImportReport]:
        """Copy an external file into `dest_dir` and link it.

        Without `overwrite`, an existing file at the destination is kept and
        the copy goes to a free `name N.ext` path instead.
        """
        source_res = AbsolutePath.create(source).ensure(
            lambda p: p.exists_as_file(),
            lambda p: f"Source file not found: {p}",
            FailureKind.SOURCE_FILE_NOT_FOUND,
        )
        if isinstance(source_res, Fail):
            return source_res.with_context(f"import({source!s}) failed")
        src = source_res.value

        dest = dest_dir.joinpath(src.name)
        if not overwrite:
            dest = self.host.unique_path(dest)

        def copy_and_link(dest_abs: AbsolutePath) -> Result[ImportReport]:
            hashed = compute_sha256_hex(src)
            if isinstance(hashed, Fail):
                return hashed
            copied = copy_file(src, dest_abs)
            if isinstance(copied, Fail):
                return copied
            located = locate_source(
                src, self.registry, LinkRecord(), save_absolute_path=self.save_absolute_path
            )
            return (
                snapshot(src)
                .map(lambda snap: located.with_sync_info(snap, hashed.value, dest))
                .bind(lambda link: self.host.write_link(dest, link).map(lambda _: link))
                .map(lambda link: ImportReport(src, dest, link))
            )

        result = self.host.to_absolute(dest).bind(copy_and_link)
        if isinstance(result, Fail):
            logger.debug("Import failed", source=src.display, reason=result.reason)
            return result.with_context(f"import({src}) failed")
        self.host.reprocess(dest)
        logger.info("Imported source-linked file", managed=dest.value, source=src.display)
        return result

    def reimport(self, managed: ManagedRelativePath) -> Result[SyncPlan]:
        """Refresh a managed file from the source its link points at."""
        result = self.host.read_link(managed).bind(
            lambda link: resolve_existing_source(self.registry, link).bind(
                lambda source: plan_sync(
                    source,
                    link,
                    managed_path=managed,
                    registry=self.registry,
                    is_relink=False,
                    save_absolute_path=self.save_absolute_path,
                )
            )
        )
        return (
            result.bind(lambda plan: apply_sync(plan, self.host))
            .tap_fail(lambda reason: logger.debug("Reimport failed", managed=managed.value, reason=reason))
            .with_context(f"reimport('{managed}') failed")
        )

    def relink(
        self,
        managed: ManagedRelativePath,
        new_source: str | os.PathLike[str],
    ) -> Result[SyncPlan]:
        """Point a managed file at a (possibly different) external file.

        The managed file must exist. Files without a readable link record
        (none yet, or a malformed sidecar) get a fresh one.
        """

        def read_or_create(_: AbsolutePath) -> Result[LinkRecord]:
            existing = self.host.read_link(managed)
            if isinstance(existing, Fail):
                if existing.kind is not FailureKind.LINK_NOT_FOUND:
                    logger.warning(
                        "Unreadable link record replaced",
                        managed=managed.value,
                        reason=existing.reason,
                    )
                return Ok(LinkRecord(version=CURRENT_VERSION))
            return existing

        if not self.host.exists(managed):
            msg = f"Managed file not found: {managed}"
            return Fail(msg, FailureKind.NOT_IN_MANAGED_TREE).with_context(
                f"relink('{managed}') failed"
            )

        source_res = AbsolutePath.create(new_source).ensure(
            lambda p: p.exists_as_file(),
            lambda p: f"Source file not found: {p}",
            FailureKind.SOURCE_FILE_NOT_FOUND,
        )
        result = source_res.bind(read_or_create).bind(
            lambda link: plan_sync(
                source_res.unwrap(),
                link,
                managed_path=managed,
                registry=self.registry,
                is_relink=True,
                save_absolute_path=self.save_absolute_path,
            )
        )
        return (
            result.bind(lambda plan: apply_sync(plan, self.host))
            .tap_fail(lambda reason: logger.debug("Relink failed", managed=managed.value, reason=reason))
            .with_context(f"relink('{managed}') failed")
        )

    def reimport_many(self, paths: Iterable[ManagedRelativePath]) -> ReimportSummary:
        """Reimport several managed files, collecting per-file outcomes."""
        summary = ReimportSummary()
        for managed in paths:
            summary.add(self.reimport(managed))
        logger.info("Source linked reimport done", summary=str(summary))
        return summary

    def status(self, managed: ManagedRelativePath) -> Result[LinkStatus]:
        """Inspect a managed file's link without changing anything."""

        def describe(link: LinkRecord, source: AbsolutePath) -> Result[LinkStatus]:
            if not source.exists_as_file():
                return Ok(LinkStatus(managed, link, source, source_exists=False, up_to_date=None))
            return compute_sha256_hex(source).map(
                lambda current: LinkStatus(
                    managed, link, source, source_exists=True, up_to_date=link.hash_matches(current)
                )
            )

        return (
            self.host.read_link(managed)
            .bind(
                lambda link: resolve_external_path(self.registry, link).bind(
                    lambda source: describe(link, source)
                )
            )
            .with_context(f"status('{managed}') failed")
        )
