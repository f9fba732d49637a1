"""Link records tying a managed file to the external file it came from."""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import TYPE_CHECKING, Any, Final

from source_linked.result import Fail, FailureKind, Ok, Result


if TYPE_CHECKING:
    from source_linked.fileops import FileSnapshot
    from source_linked.paths import ManagedRelativePath


CURRENT_VERSION: Final = 1


@dataclass(frozen=True)
class LinkRecord:
    """Durable fact attached to one managed file.

    The sync fields describe the external file as of the last successful
    synchronization, not its current state.
    """

    version: int = CURRENT_VERSION
    """Schema version of the record."""

    external_absolute_path: str = ""
    """Machine-specific absolute path of the external file (may be empty)."""

    root_id: str = ""
    """Id of the source root the external file lives under (may be empty)."""

    relative_from_root: str = ""
    """Path below the root, with forward slashes (may be empty)."""

    last_write_utc_ticks: int = 0
    """External file's modification time at last sync, in UTC ticks."""

    size_bytes: int = 0
    """External file's size at last sync."""

    content_hash_hex: str = ""
    """Lowercase hex SHA-256 of the external file at last sync."""

    managed_path_at_last_sync: str = ""
    """Managed path the content was last synced into."""

    @property
    def has_root_location(self) -> bool:
        """Whether root id and relative path are both present."""
        return bool(self.root_id and self.relative_from_root)

    @property
    def is_resolvable(self) -> bool:
        """Whether the record carries any location information."""
        return self.has_root_location or bool(self.external_absolute_path)

    def hash_matches(self, current_hash: str) -> bool:
        """Whether the recorded hash is present and equals `current_hash`."""
        return bool(self.content_hash_hex) and (
            self.content_hash_hex.casefold() == current_hash.casefold()
        )

    def with_location(
        self,
        *,
        external_absolute_path: str,
        root_id: str,
        relative_from_root: str,
    ) -> LinkRecord:
        """Copy of this record pointing at a new external location."""
        return replace(
            self,
            external_absolute_path=external_absolute_path,
            root_id=root_id,
            relative_from_root=relative_from_root,
        )

    def with_sync_info(
        self,
        snapshot: FileSnapshot,
        content_hash_hex: str,
        managed_path: ManagedRelativePath,
    ) -> LinkRecord:
        """Copy of this record describing freshly synced content."""
        return replace(
            self,
            last_write_utc_ticks=snapshot.last_write_utc_ticks,
            size_bytes=snapshot.size_bytes,
            content_hash_hex=content_hash_hex,
            managed_path_at_last_sync=managed_path.value,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for YAML storage."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Result[LinkRecord]:
        """Deserialize from dict, ignoring unknown keys.

        Records stored with a version <= 0 are upgraded to the current version.
        """
        if not isinstance(data, dict):
            msg = f"Link data must be a mapping, got {type(data).__name__}"
            return Fail(msg, FailureKind.SETTINGS_ERROR)
        known = {f.name for f in fields(cls)}
        try:
            record = cls(**{k: v for k, v in data.items() if k in known})
            record = replace(
                record,
                version=int(record.version),
                last_write_utc_ticks=int(record.last_write_utc_ticks),
                size_bytes=int(record.size_bytes),
                external_absolute_path=str(record.external_absolute_path or ""),
                root_id=str(record.root_id or ""),
                relative_from_root=str(record.relative_from_root or ""),
                content_hash_hex=str(record.content_hash_hex or ""),
                managed_path_at_last_sync=str(record.managed_path_at_last_sync or ""),
            )
        except (TypeError, ValueError) as e:
            return Fail(f"Failed to deserialize link: {e}", FailureKind.SETTINGS_ERROR)
        if record.version <= 0:
            record = replace(record, version=CURRENT_VERSION)
        return Ok(record)
