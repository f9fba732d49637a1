"""Shared project settings and per-user settings for source roots.

Project settings (root definitions) are meant to be committed with the
project, user settings (root directories, preferences) stay on one
machine:

    <project>/ProjectSettings/source_linked.yml
    <project>/UserSettings/source_linked.yml

Settings are plain values handed to each operation; nothing here caches
them process-wide. Callers decide when to load and save.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Final, Self

from pydantic import BaseModel, Field, ValidationError, model_validator
import yaml

from source_linked.log import get_logger
from source_linked.paths import AbsolutePath
from source_linked.registry import RootBinding, RootDefinition, RootRegistry, validate_root_id
from source_linked.result import Fail, FailureKind, Ok, Result


if TYPE_CHECKING:
    import os


logger = get_logger(__name__)

FILE_NAME: Final = "source_linked.yml"
PROJECT_SETTINGS_DIR: Final = "ProjectSettings"
USER_SETTINGS_DIR: Final = "UserSettings"


class ProjectSettings(BaseModel):
    """Shared settings: which source roots exist."""

    version: int = 1
    """Settings schema version."""

    roots: list[RootDefinition] = Field(default_factory=list)
    """Root definitions, ids are unique."""

    @model_validator(mode="after")
    def _check_unique_ids(self) -> Self:
        seen: set[str] = set()
        for root in self.roots:
            if root.id in seen:
                msg = f"Duplicate root id: {root.id!r}"
                raise ValueError(msg)
            seen.add(root.id)
        return self

    def get_root(self, root_id: str) -> RootDefinition | None:
        return next((r for r in self.roots if r.id == root_id), None)


class UserSettings(BaseModel):
    """Per-user settings: where the roots live on this machine."""

    version: int = 1
    """Settings schema version."""

    save_absolute_path: bool = True
    """Whether link records also store the machine-specific absolute path."""

    roots: dict[str, str] = Field(default_factory=dict)
    """Mapping of root id -> directory."""

    def bindings(self) -> list[RootBinding]:
        """Bindings for all roots with a non-empty directory."""
        return [RootBinding(id=k, directory=v) for k, v in self.roots.items() if v]


@dataclass(frozen=True)
class Settings:
    """Snapshot of project and user settings.

    Editing methods validate their input and return an updated snapshot;
    the snapshot itself is never modified.
    """

    project: ProjectSettings
    user: UserSettings

    def registry(self) -> RootRegistry:
        """Root registry for matching and resolution."""
        return RootRegistry.from_entries(self.project.roots, self.user.bindings())

    def add_root(
        self,
        root_id: str,
        display_name: str = "",
        directory: str | None = None,
    ) -> Result[Settings]:
        """Define a new root, optionally binding it right away."""
        validated = validate_root_id(root_id)
        if isinstance(validated, Fail):
            return validated
        new_id = validated.value
        if self.project.get_root(new_id):
            return Fail(f"Root id already exists: {new_id}", FailureKind.INVALID_ROOT_ID)
        definition = RootDefinition(id=new_id, display_name=display_name.strip() or new_id)
        project = self.project.model_copy(update={"roots": [*self.project.roots, definition]})
        updated = Settings(project, self.user)
        if directory:
            return updated.bind_root(new_id, directory)
        return Ok(updated)

    def rename_root(self, root_id: str, display_name: str) -> Result[Settings]:
        """Change a root's display name. The id stays stable."""
        if not self.project.get_root(root_id):
            return Fail(f"Unknown root id: {root_id}", FailureKind.INVALID_ROOT_ID)
        roots = [
            r.model_copy(update={"display_name": display_name.strip() or r.id})
            if r.id == root_id
            else r
            for r in self.project.roots
        ]
        return Ok(Settings(self.project.model_copy(update={"roots": roots}), self.user))

    def remove_root(self, root_id: str) -> Result[Settings]:
        """Delete a root definition together with its local binding."""
        if not self.project.get_root(root_id):
            return Fail(f"Unknown root id: {root_id}", FailureKind.INVALID_ROOT_ID)
        roots = [r for r in self.project.roots if r.id != root_id]
        user_roots = {k: v for k, v in self.user.roots.items() if k != root_id}
        return Ok(
            Settings(
                self.project.model_copy(update={"roots": roots}),
                self.user.model_copy(update={"roots": user_roots}),
            )
        )

    def bind_root(self, root_id: str, directory: str) -> Result[Settings]:
        """Bind a defined root to an existing directory on this machine."""
        if not self.project.get_root(root_id):
            return Fail(f"Unknown root id: {root_id}", FailureKind.INVALID_ROOT_ID)
        created = AbsolutePath.create(directory).ensure(
            lambda p: p.exists_as_directory(),
            lambda p: f"Directory not found: {p}",
            FailureKind.INVALID_PATH,
        )
        if isinstance(created, Fail):
            return created
        user_roots = {**self.user.roots, root_id: created.value.native}
        return Ok(Settings(self.project, self.user.model_copy(update={"roots": user_roots})))

    def unbind_root(self, root_id: str) -> Result[Settings]:
        """Remove this machine's directory for a root, keeping its definition."""
        if root_id not in self.user.roots:
            return Fail(f"Root is not bound: {root_id}", FailureKind.INVALID_ROOT_ID)
        user_roots = {k: v for k, v in self.user.roots.items() if k != root_id}
        return Ok(Settings(self.project, self.user.model_copy(update={"roots": user_roots})))


def prune_unknown_bindings(project: ProjectSettings, user: UserSettings) -> UserSettings:
    """Drop user bindings whose root id is not defined in the project."""
    known = {r.id for r in project.roots}
    unknown = [k for k in user.roots if k not in known]
    if not unknown:
        return user
    logger.debug("Pruning bindings of unknown roots", root_ids=unknown)
    return user.model_copy(update={"roots": {k: v for k, v in user.roots.items() if k in known}})


class SettingsStore:
    """Loads and saves settings below a project directory."""

    def __init__(self, project_root: str | os.PathLike[str]):
        """Initialize the store.

        Args:
            project_root: Directory containing ProjectSettings/ and UserSettings/
        """
        self.project_root = Path(project_root)
        self.project_file = self.project_root / PROJECT_SETTINGS_DIR / FILE_NAME
        self.user_file = self.project_root / USER_SETTINGS_DIR / FILE_NAME

    def _read(self, path: Path) -> dict[str, Any] | None:
        if not path.exists():
            return None
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        if not isinstance(data, dict):
            msg = f"Expected a mapping, got {type(data).__name__}"
            raise TypeError(msg)
        return data

    def load_project(self) -> ProjectSettings:
        """Load project settings, falling back to defaults on any error."""
        try:
            data = self._read(self.project_file)
            return ProjectSettings.model_validate(data) if data is not None else ProjectSettings()
        except (OSError, yaml.YAMLError, TypeError, ValidationError) as e:
            logger.warning("Failed to load project settings", path=str(self.project_file), error=str(e))
            return ProjectSettings()

    def load_user(self, project: ProjectSettings) -> UserSettings:
        """Load user settings, dropping bindings for roots the project does not define."""
        try:
            data = self._read(self.user_file)
            user = UserSettings.model_validate(data) if data is not None else UserSettings()
        except (OSError, yaml.YAMLError, TypeError, ValidationError) as e:
            logger.warning("Failed to load user settings", path=str(self.user_file), error=str(e))
            return UserSettings()
        return prune_unknown_bindings(project, user)

    def load(self) -> Settings:
        """Load a snapshot of both settings files."""
        project = self.load_project()
        return Settings(project, self.load_user(project))

    def _write(self, path: Path, model: BaseModel) -> Result[None]:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(
                yaml.dump(model.model_dump(mode="json"), default_flow_style=False, sort_keys=False),
                encoding="utf-8",
            )
        except OSError as e:
            return Fail(f"Failed to save settings: {path}\n{e}", FailureKind.SETTINGS_ERROR)
        logger.info("Settings saved", path=str(path))
        return Ok(None)

    def save_project(self, settings: ProjectSettings) -> Result[None]:
        return self._write(self.project_file, settings)

    def save_user(self, settings: UserSettings) -> Result[None]:
        return self._write(self.user_file, settings)

    def save(self, settings: Settings) -> Result[None]:
        """Save both settings files, stopping at the first failure."""
        return self.save_project(settings.project).bind(lambda _: self.save_user(settings.user))
