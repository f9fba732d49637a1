"""Tests for import, reimport, relink and status workflows."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from source_linked import (
    Fail,
    FailureKind,
    ManagedRelativePath,
    ProjectSettings,
    Settings,
    SourceLinkService,
    SyncOutcome,
    UserSettings,
)


if TYPE_CHECKING:
    from pathlib import Path

    from source_linked import FileSystemHost


def managed(raw: str) -> ManagedRelativePath:
    return ManagedRelativePath.create(raw).unwrap()


MODELS = managed("Assets/Models")
X_FBX = managed("Assets/Models/x.fbx")


def test_import_copies_and_links(service: SourceLinkService, source_file: Path, project_dir: Path):
    """Test importing an external file below a bound root."""
    report = service.import_file(source_file, MODELS).unwrap()
    assert report.managed_path == X_FBX
    assert (project_dir / "Assets" / "Models" / "x.fbx").read_bytes() == b"model v1"
    assert report.link.root_id == "art"
    assert report.link.relative_from_root == "models/x.fbx"
    assert report.link.managed_path_at_last_sync == "Assets/Models/x.fbx"
    assert service.host.read_link(X_FBX).unwrap() == report.link


def test_import_does_not_overwrite_by_default(service: SourceLinkService, source_file: Path):
    """Test that a second import goes to a numbered path unless overwriting."""
    service.import_file(source_file, MODELS).unwrap()
    second = service.import_file(source_file, MODELS).unwrap()
    assert second.managed_path == managed("Assets/Models/x 1.fbx")
    third = service.import_file(source_file, MODELS, overwrite=True).unwrap()
    assert third.managed_path == X_FBX


def test_import_outside_roots_stores_absolute_path_only(
    service: SourceLinkService, tmp_path: Path
):
    """Test importing a file that no root contains."""
    loose = tmp_path / "loose.png"
    loose.write_bytes(b"png")
    report = service.import_file(loose, managed("Assets")).unwrap()
    assert report.link.root_id == ""
    assert report.link.external_absolute_path.endswith("/loose.png")


def test_import_missing_source(service: SourceLinkService, tmp_path: Path):
    """Test the failure for a missing source."""
    result = service.import_file(tmp_path / "nope.fbx", MODELS)
    assert isinstance(result, Fail)
    assert result.kind is FailureKind.SOURCE_FILE_NOT_FOUND
    assert result.reason.startswith("import(")


def test_reimport_cycle(service: SourceLinkService, source_file: Path, project_dir: Path):
    """Test unchanged -> skipped, edited -> reimported, rerun -> skipped."""
    service.import_file(source_file, MODELS).unwrap()
    assert service.reimport(X_FBX).unwrap().outcome is SyncOutcome.SKIPPED

    source_file.write_bytes(b"model v2")
    assert service.reimport(X_FBX).unwrap().outcome is SyncOutcome.REIMPORTED
    assert (project_dir / "Assets" / "Models" / "x.fbx").read_bytes() == b"model v2"
    assert service.reimport(X_FBX).unwrap().outcome is SyncOutcome.SKIPPED


def test_reimport_resolves_through_rebound_root(
    service: SourceLinkService,
    host: FileSystemHost,
    source_file: Path,
    tmp_path: Path,
    project_dir: Path,
):
    """Test that a link follows its root to another machine's directory."""
    service.import_file(source_file, MODELS).unwrap()
    other_art = tmp_path / "other_machine" / "art"
    (other_art / "models").mkdir(parents=True)
    (other_art / "models" / "x.fbx").write_bytes(b"model from other machine")

    rebound = service.settings.bind_root("art", str(other_art)).unwrap()
    plan = SourceLinkService(rebound, host).reimport(X_FBX).unwrap()
    assert plan.outcome is SyncOutcome.REIMPORTED
    assert (project_dir / "Assets" / "Models" / "x.fbx").read_bytes() == b"model from other machine"


def test_reimport_with_missing_source(service: SourceLinkService, source_file: Path):
    """Test that a vanished source fails with context."""
    service.import_file(source_file, MODELS).unwrap()
    source_file.unlink()
    result = service.reimport(X_FBX)
    assert isinstance(result, Fail)
    assert result.kind is FailureKind.SOURCE_FILE_NOT_FOUND
    assert result.reason.startswith("reimport('Assets/Models/x.fbx') failed: ")


def test_reimport_without_link(service: SourceLinkService):
    """Test reimporting a file that was never linked."""
    result = service.reimport(X_FBX)
    assert isinstance(result, Fail)
    assert result.kind is FailureKind.LINK_NOT_FOUND


def test_relink(service: SourceLinkService, source_file: Path, art_dir: Path):
    """Test relinking to a copy and then to different content."""
    service.import_file(source_file, MODELS).unwrap()
    copy = art_dir / "copy.fbx"
    copy.write_bytes(source_file.read_bytes())
    plan = service.relink(X_FBX, copy).unwrap()
    assert plan.outcome is SyncOutcome.RELINKED_ONLY
    assert service.host.read_link(X_FBX).unwrap().relative_from_root == "copy.fbx"

    changed = art_dir / "changed.fbx"
    changed.write_bytes(b"changed")
    assert service.relink(X_FBX, changed).unwrap().outcome is SyncOutcome.REIMPORTED


def test_relink_unlinked_file_creates_link(
    service: SourceLinkService, source_file: Path, project_dir: Path
):
    """Test that relinking a plain managed file creates its link record."""
    (project_dir / "Assets" / "plain.fbx").write_bytes(b"plain")
    target = managed("Assets/plain.fbx")
    plan = service.relink(target, source_file).unwrap()
    assert plan.outcome is SyncOutcome.REIMPORTED
    assert service.host.read_link(target).unwrap().root_id == "art"


@pytest.mark.parametrize(
    "sidecar",
    ["source_linked: [1, 2]\n", "source_linked:\n  link:\n    size_bytes: many\n"],
)
def test_relink_replaces_unreadable_link(
    service: SourceLinkService, source_file: Path, project_dir: Path, sidecar: str
):
    """Test that relinking repairs a malformed link sidecar."""
    (project_dir / "Assets" / "broken.fbx").write_bytes(b"model v1")
    (project_dir / "Assets" / "broken.fbx.link.yml").write_text(sidecar)
    target = managed("Assets/broken.fbx")
    assert service.host.read_link(target).is_fail

    plan = service.relink(target, source_file).unwrap()
    assert plan.outcome is SyncOutcome.REIMPORTED
    link = service.host.read_link(target).unwrap()
    assert link.root_id == "art"
    assert link.relative_from_root == "models/x.fbx"


def test_relink_requires_existing_managed_file(
    service: SourceLinkService, source_file: Path, project_dir: Path
):
    """Test that a mistyped managed path fails and creates nothing."""
    result = service.relink(managed("Assets/Modles/typo.fbx"), source_file)
    assert isinstance(result, Fail)
    assert result.kind is FailureKind.NOT_IN_MANAGED_TREE
    assert "Managed file not found" in result.reason
    assert not (project_dir / "Assets" / "Modles").exists()


def test_relink_does_not_store_absolute_path_when_disabled(
    host: FileSystemHost, settings: Settings, source_file: Path, project_dir: Path
):
    """Test the save_absolute_path preference."""
    (project_dir / "Assets" / "Models").mkdir()
    (project_dir / "Assets" / "Models" / "x.fbx").write_bytes(b"old")
    user = settings.user.model_copy(update={"save_absolute_path": False})
    service = SourceLinkService(Settings(settings.project, user), host)
    plan = service.relink(X_FBX, source_file).unwrap()
    assert plan.link.external_absolute_path == ""
    assert plan.link.root_id == "art"


def test_reimport_many_counts_outcomes(
    service: SourceLinkService, source_file: Path, art_dir: Path
):
    """Test the batch summary."""
    service.import_file(source_file, MODELS).unwrap()
    other = art_dir / "models" / "y.fbx"
    other.write_bytes(b"y v1")
    service.import_file(other, MODELS).unwrap()
    other.write_bytes(b"y v2")

    summary = service.reimport_many([X_FBX, managed("Assets/Models/y.fbx"), managed("Assets/z")])
    assert (summary.skipped, summary.reimported, summary.failed) == (1, 1, 1)
    assert len(summary.failures) == 1
    assert str(summary) == "reimported=1, skipped=1, relinked=0, failed=1"


def test_status(service: SourceLinkService, source_file: Path):
    """Test reporting up-to-date, changed and missing sources."""
    service.import_file(source_file, MODELS).unwrap()
    assert service.status(X_FBX).unwrap().up_to_date is True
    source_file.write_bytes(b"edited")
    assert service.status(X_FBX).unwrap().up_to_date is False
    source_file.unlink()
    info = service.status(X_FBX).unwrap()
    assert not info.source_exists
    assert info.up_to_date is None


def test_service_without_roots_uses_absolute_path(host: FileSystemHost, source_file: Path):
    """Test that links still resolve without any roots configured."""
    service = SourceLinkService(Settings(ProjectSettings(), UserSettings()), host)
    service.import_file(source_file, MODELS).unwrap()
    source_file.write_bytes(b"v2")
    assert service.reimport(X_FBX).unwrap().outcome is SyncOutcome.REIMPORTED


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
