"""Tests for path value types."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest

from source_linked import AbsolutePath, Fail, FailureKind, ManagedRelativePath
from source_linked import paths


if TYPE_CHECKING:
    from pathlib import Path


def test_create_normalizes_dot_segments(tmp_path: Path):
    """Test that '.' and '..' are collapsed."""
    raw = os.path.join(str(tmp_path), "a", ".", "b", "..", "c.txt")
    path = AbsolutePath.create(raw).unwrap()
    assert path.native == os.path.join(str(tmp_path), "a", "c.txt")
    assert path.canonical.endswith("/a/c.txt")
    assert "\\" not in path.canonical


def test_create_makes_relative_paths_absolute(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Test relative input is resolved against the working directory."""
    monkeypatch.chdir(tmp_path)
    path = AbsolutePath.create("file.txt").unwrap()
    assert path == AbsolutePath.create(tmp_path / "file.txt").unwrap()


@pytest.mark.parametrize("raw", ["", None, "bad\0path"])
def test_create_rejects_invalid_input(raw: str | None):
    """Test empty and non-canonicalizable paths fail with invalid_path."""
    result = AbsolutePath.create(raw)
    assert isinstance(result, Fail)
    assert result.kind is FailureKind.INVALID_PATH


def test_constructor_is_private():
    """Test that paths cannot bypass canonicalization."""
    with pytest.raises(TypeError):
        AbsolutePath("/tmp/x")
    with pytest.raises(TypeError):
        ManagedRelativePath("Assets/x", "Assets")


def test_equality_respects_case_sensitivity(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    """Test case handling follows the filesystem setting."""
    lower = AbsolutePath.create(tmp_path / "dir" / "file.txt").unwrap()
    upper = AbsolutePath.create(tmp_path / "DIR" / "FILE.TXT").unwrap()

    monkeypatch.setattr(paths, "CASE_INSENSITIVE_FS", False)
    assert lower != upper

    monkeypatch.setattr(paths, "CASE_INSENSITIVE_FS", True)
    assert lower == upper
    assert hash(lower) == hash(upper)


def test_existence_queries(tmp_path: Path):
    """Test file and directory checks."""
    file = tmp_path / "f.txt"
    file.write_text("x")
    file_path = AbsolutePath.create(file).unwrap()
    dir_path = AbsolutePath.create(tmp_path).unwrap()
    missing = AbsolutePath.create(tmp_path / "missing").unwrap()

    assert file_path.exists_as_file()
    assert not file_path.exists_as_directory()
    assert dir_path.exists_as_directory()
    assert not dir_path.exists_as_file()
    assert not missing.exists_as_file()
    assert not missing.exists_as_directory()


def test_joinpath_and_relative_to(tmp_path: Path):
    """Test combining and splitting paths."""
    root = AbsolutePath.create(tmp_path).unwrap()
    file = root.joinpath("models/sub/x.fbx").unwrap()
    assert file.name == "x.fbx"
    assert file.relative_to(root) == "models/sub/x.fbx"
    assert file.parent.parent == root.joinpath("models").unwrap()


def test_is_under_requires_separator_boundary(tmp_path: Path):
    """Test that a sibling with a common prefix is not considered below."""
    base = AbsolutePath.create(tmp_path / "a" / "b").unwrap()
    inside = AbsolutePath.create(tmp_path / "a" / "b" / "c.txt").unwrap()
    sibling = AbsolutePath.create(tmp_path / "a" / "bc" / "d.txt").unwrap()
    assert inside.is_under(base)
    assert not sibling.is_under(base)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Assets", "Assets"),
        ("Assets/", "Assets"),
        ("Assets\\Models\\x.fbx", "Assets/Models/x.fbx"),
        ("Assets/Models/", "Assets/Models"),
        ("Assets/./Models/../x.fbx", "Assets/x.fbx"),
    ],
)
def test_managed_path_normalization(raw: str, expected: str):
    """Test managed paths are slash-normalized without trailing slash."""
    assert ManagedRelativePath.create(raw).unwrap().value == expected


@pytest.mark.parametrize(
    "raw",
    ["", "Other/x.fbx", "AssetsX/y", "/Assets/x", "assets/x", "Assets/../../etc/x", "Assets/.."],
)
def test_managed_path_rejects_outside_tree(raw: str):
    """Test that paths outside the managed tree fail."""
    result = ManagedRelativePath.create(raw)
    assert isinstance(result, Fail)
    assert result.kind is FailureKind.NOT_IN_MANAGED_TREE


def test_managed_path_custom_marker():
    """Test a tree marker other than the default."""
    assert ManagedRelativePath.create("Content/a.png", marker="Content").is_ok
    assert ManagedRelativePath.create("Assets/a.png", marker="Content").is_fail


def test_managed_path_helpers(tmp_path: Path):
    """Test join, parent, name and absolute conversion."""
    folder = ManagedRelativePath.create("Assets/Models").unwrap()
    file = folder.joinpath("x.fbx")
    assert file.value == "Assets/Models/x.fbx"
    assert file.name == "x.fbx"
    assert file.parent == folder
    root = ManagedRelativePath.create("Assets").unwrap()
    assert root.is_root
    assert root.parent == root

    project = AbsolutePath.create(tmp_path).unwrap()
    absolute = file.to_absolute(project).unwrap()
    assert absolute == AbsolutePath.create(tmp_path / "Assets" / "Models" / "x.fbx").unwrap()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
