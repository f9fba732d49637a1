"""Link files from an external source tree to managed copies and keep them in sync.

This package provides:
- Path value types for external files and managed-tree locations
- Source roots split into shared definitions and per-user directories
- Longest-prefix matching of external files to roots
- Link records and their resolution to external files
- Hash-based decisions whether to skip, relink or reimport a managed file
"""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from source_linked.exceptions import ResultUnwrapError, UninitializedResultError
from source_linked.fileops import FileSnapshot, compute_sha256_hex, copy_file, snapshot
from source_linked.host import FileSystemHost, ManagedFileHost
from source_linked.link import CURRENT_VERSION, LinkRecord
from source_linked.paths import DEFAULT_TREE_MARKER, AbsolutePath, ManagedRelativePath
from source_linked.registry import (
    RootBinding,
    RootDefinition,
    RootMatch,
    RootRegistry,
    make_relative_path,
    validate_root_id,
)
from source_linked.resolver import resolve_existing_source, resolve_external_path
from source_linked.result import Fail, FailureKind, Ok, Result, ensure_result
from source_linked.service import ImportReport, LinkStatus, ReimportSummary, SourceLinkService
from source_linked.settings import ProjectSettings, Settings, SettingsStore, UserSettings
from source_linked.sync import SyncOutcome, SyncPlan, apply_sync, locate_source, plan_sync

try:
    __version__ = version("source-linked")
except PackageNotFoundError:
    __version__ = "0.0.0"

__all__ = [
    "CURRENT_VERSION",
    "DEFAULT_TREE_MARKER",
    "AbsolutePath",
    "Fail",
    "FailureKind",
    "FileSnapshot",
    "FileSystemHost",
    "ImportReport",
    "LinkRecord",
    "LinkStatus",
    "ManagedFileHost",
    "ManagedRelativePath",
    "Ok",
    "ProjectSettings",
    "ReimportSummary",
    "Result",
    "ResultUnwrapError",
    "RootBinding",
    "RootDefinition",
    "RootMatch",
    "RootRegistry",
    "Settings",
    "SettingsStore",
    "SourceLinkService",
    "SyncOutcome",
    "SyncPlan",
    "UninitializedResultError",
    "UserSettings",
    "__version__",
    "apply_sync",
    "compute_sha256_hex",
    "copy_file",
    "ensure_result",
    "locate_source",
    "make_relative_path",
    "plan_sync",
    "resolve_existing_source",
    "resolve_external_path",
    "snapshot",
    "validate_root_id",
]
