"""Test configuration and shared fixtures."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from source_linked import (
    AbsolutePath,
    FileSystemHost,
    ProjectSettings,
    RootDefinition,
    Settings,
    SourceLinkService,
    UserSettings,
)


if TYPE_CHECKING:
    from pathlib import Path


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Project directory with an empty managed tree."""
    project = tmp_path / "project"
    (project / "Assets").mkdir(parents=True)
    return project


@pytest.fixture
def art_dir(tmp_path: Path) -> Path:
    """External source directory bound to the 'art' root."""
    art = tmp_path / "home" / "u" / "art"
    (art / "models").mkdir(parents=True)
    return art


@pytest.fixture
def source_file(art_dir: Path) -> Path:
    """External file below the 'art' root."""
    path = art_dir / "models" / "x.fbx"
    path.write_bytes(b"model v1")
    return path


@pytest.fixture
def settings(art_dir: Path) -> Settings:
    """Settings with the 'art' root defined and bound."""
    project = ProjectSettings(roots=[RootDefinition(id="art", display_name="Art")])
    user = UserSettings(roots={"art": str(art_dir)})
    return Settings(project, user)


@pytest.fixture
def host(project_dir: Path) -> FileSystemHost:
    return FileSystemHost(AbsolutePath.create(project_dir).unwrap())


@pytest.fixture
def service(settings: Settings, host: FileSystemHost) -> SourceLinkService:
    return SourceLinkService(settings, host)
