"""Managed-file host: where managed files and their link records live."""

from __future__ import annotations

import os
import posixpath
from typing import TYPE_CHECKING, Any, Final, Protocol

import yaml

from source_linked.link import LinkRecord
from source_linked.log import get_logger
from source_linked.paths import DEFAULT_TREE_MARKER, AbsolutePath, ManagedRelativePath
from source_linked.result import Fail, FailureKind, Ok, Result


if TYPE_CHECKING:
    from collections.abc import Callable

    ReprocessHandler = Callable[[ManagedRelativePath, AbsolutePath], None]


logger = get_logger(__name__)

NAMESPACE_KEY: Final = "source_linked"
"""Top-level key of the link namespace inside a sidecar file."""

LINK_KEY: Final = "link"
"""Key of the link record inside the namespace."""

SIDECAR_SUFFIX: Final = ".link.yml"


class ManagedFileHost(Protocol):
    """Collaborator owning the managed tree."""

    def to_absolute(self, managed: ManagedRelativePath) -> Result[AbsolutePath]:
        """Map a managed path to its location on disk."""
        ...

    def exists(self, managed: ManagedRelativePath) -> bool:
        """Whether a managed file exists."""
        ...

    def read_link(self, managed: ManagedRelativePath) -> Result[LinkRecord]:
        """Load the link record attached to a managed file."""
        ...

    def write_link(self, managed: ManagedRelativePath, link: LinkRecord) -> Result[None]:
        """Persist the link record attached to a managed file."""
        ...

    def reprocess(self, managed: ManagedRelativePath) -> None:
        """Re-register a managed file after its content was overwritten."""
        ...


class FileSystemHost:
    """Host storing managed files below a project directory.

    Link records are kept in a YAML sidecar next to each managed file
    (`<file>.link.yml`), namespaced so other tools can share the file.
    Reprocessing dispatches to registered handlers.
    """

    def __init__(self, project_root: AbsolutePath, marker: str = DEFAULT_TREE_MARKER):
        """Initialize the host.

        Args:
            project_root: Directory that contains the managed tree
            marker: Name of the managed tree's root directory
        """
        self.project_root = project_root
        self.marker = marker
        self._handlers: list[ReprocessHandler] = []

    def register_reprocess_handler(self, handler: ReprocessHandler) -> None:
        """Register a callback run after a managed file was overwritten."""
        self._handlers.append(handler)

    def managed_path(self, raw: str) -> Result[ManagedRelativePath]:
        """Parse a managed path using this host's tree marker."""
        return ManagedRelativePath.create(raw, self.marker)

    def to_absolute(self, managed: ManagedRelativePath) -> Result[AbsolutePath]:
        return managed.to_absolute(self.project_root)

    def exists(self, managed: ManagedRelativePath) -> bool:
        return self.to_absolute(managed).match(lambda p: p.exists_as_file(), lambda _: False)

    def sidecar_path(self, managed: ManagedRelativePath) -> Result[AbsolutePath]:
        """Location of the sidecar file holding the link record."""
        return self.to_absolute(managed).bind(
            lambda p: AbsolutePath.create(p.native + SIDECAR_SUFFIX)
        )

    def _load_sidecar(self, sidecar: AbsolutePath) -> Result[dict[str, Any]]:
        if not sidecar.exists_as_file():
            return Ok({})
        try:
            with open(sidecar.native, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            return Fail(f"Failed to parse link sidecar {sidecar}: {e}", FailureKind.SETTINGS_ERROR)
        if not isinstance(data, dict):
            return Fail(f"Link sidecar is not a mapping: {sidecar}", FailureKind.SETTINGS_ERROR)
        return Ok(data)

    def read_link(self, managed: ManagedRelativePath) -> Result[LinkRecord]:
        sidecar_res = self.sidecar_path(managed)
        if isinstance(sidecar_res, Fail):
            return sidecar_res
        sidecar = sidecar_res.unwrap()
        if not sidecar.exists_as_file():
            return Fail(f"No link record: {managed}", FailureKind.LINK_NOT_FOUND)

        def extract(data: dict[str, Any]) -> Result[LinkRecord]:
            namespace = data.get(NAMESPACE_KEY)
            if namespace is None:
                return Fail(f"Missing root key: {NAMESPACE_KEY}", FailureKind.LINK_NOT_FOUND)
            if not isinstance(namespace, dict):
                msg = f"Invalid root object type: {NAMESPACE_KEY}"
                return Fail(msg, FailureKind.SETTINGS_ERROR)
            if LINK_KEY not in namespace:
                msg = f"Missing link key: {NAMESPACE_KEY}.{LINK_KEY}"
                return Fail(msg, FailureKind.LINK_NOT_FOUND)
            return LinkRecord.from_dict(namespace[LINK_KEY])

        return self._load_sidecar(sidecar).bind(extract).with_context(f"Reading link of {managed}")

    def write_link(self, managed: ManagedRelativePath, link: LinkRecord) -> Result[None]:
        sidecar_res = self.sidecar_path(managed)
        if isinstance(sidecar_res, Fail):
            return sidecar_res
        sidecar = sidecar_res.unwrap()
        # Start from scratch if the existing sidecar is unreadable
        data = self._load_sidecar(sidecar).unwrap_or({})
        namespace = data.get(NAMESPACE_KEY)
        if not isinstance(namespace, dict):
            namespace = {}
        namespace[LINK_KEY] = link.to_dict()
        data[NAMESPACE_KEY] = namespace
        try:
            os.makedirs(sidecar.parent.native, exist_ok=True)
            with open(sidecar.native, "w", encoding="utf-8") as f:
                yaml.dump(data, f, default_flow_style=False, sort_keys=False)
        except OSError as e:
            return Fail(f"Failed to write link sidecar {sidecar}: {e}", FailureKind.ERROR)
        logger.debug("Wrote link record", managed=managed.value, sidecar=sidecar.display)
        return Ok(None)

    def reprocess(self, managed: ManagedRelativePath) -> None:
        path = self.to_absolute(managed).unwrap()
        for handler in self._handlers:
            handler(managed, path)

    def unique_path(self, managed: ManagedRelativePath) -> ManagedRelativePath:
        """Return `managed` or the first free `name N.ext` variant of it."""
        if not self.exists(managed):
            return managed
        stem, ext = posixpath.splitext(managed.name)
        index = 1
        while True:
            candidate = managed.parent.joinpath(f"{stem} {index}{ext}")
            if not self.exists(candidate):
                return candidate
            index += 1
