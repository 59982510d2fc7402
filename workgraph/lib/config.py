"""
Workspace settings.

Loads workgraph.yaml from the workspace root. If no config file exists,
returns defaults. Values in the file override defaults key by key; the
merged result is validated against the settings schema.

Example workgraph.yaml:

    root_folder: Planning
    folders:
      task: Work Items
    delete_mode: archive
    bottleneck_threshold: 4
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import Optional

import yaml

from . import validate
from .constants import DEFAULT_BOTTLENECK_THRESHOLD, ENTITY_TYPES

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "workgraph.yaml"

DEFAULT_FOLDERS = {
    "goal": "Goals",
    "portfolio": "Portfolios",
    "project": "Projects",
    "task": "Tasks",
}


@dataclass
class Settings:
    """Workspace settings from workgraph.yaml."""
    root_folder: str = "Timeline Viewer"
    folders: dict[str, str] = field(default_factory=lambda: DEFAULT_FOLDERS.copy())
    archive_folder: str = "Archive"
    delete_mode: str = "delete"  # "delete" or "archive"
    bottleneck_threshold: int = DEFAULT_BOTTLENECK_THRESHOLD
    show_completed: bool = True
    debounce_seconds: float = 0.3
    lock_timeout: int = 30

    def folder_for_type(self, entity_type: str) -> str:
        """Store-relative folder where documents of a type live."""
        if entity_type not in ENTITY_TYPES:
            raise ValueError(f"Unknown entity type: {entity_type}")
        return _join(self.root_folder, self.folders[entity_type])

    def archive_path(self) -> str:
        """Store-relative folder that receives archived documents."""
        return _join(self.root_folder, self.archive_folder)

    def scan_scopes(self) -> list[tuple[str, str]]:
        """(folder, expected type) pairs scanned by a rebuild, hierarchy order."""
        return [(self.folder_for_type(t), t) for t in ENTITY_TYPES]


def _join(root: str, folder: str) -> str:
    root = root.strip().strip("/")
    folder = folder.strip().strip("/")
    if not root:
        return folder
    return str(PurePosixPath(root) / folder)


def load_settings(workspace_dir: Optional[Path]) -> Settings:
    """Load workgraph.yaml and return Settings.

    If workspace_dir is None or the file doesn't exist, returns defaults.
    Unparsable YAML logs a warning and falls back to defaults.

    Raises:
        ValidationError: If the file parses but violates the settings schema
    """
    if workspace_dir is None:
        return Settings()

    config_path = workspace_dir / CONFIG_FILENAME
    if not config_path.exists():
        return Settings()

    try:
        data = yaml.safe_load(config_path.read_text())
    except yaml.YAMLError as e:
        logger.warning(f"Failed to parse {config_path}: {e}")
        return Settings()

    if not data:
        return Settings()
    if not isinstance(data, dict):
        raise validate.ValidationError("settings", f"Expected a mapping in {config_path}")

    validate.validate(data, "settings")

    folders = DEFAULT_FOLDERS.copy()
    folders.update(data.get("folders") or {})

    defaults = Settings()
    return Settings(
        root_folder=data.get("root_folder", defaults.root_folder),
        folders=folders,
        archive_folder=data.get("archive_folder", defaults.archive_folder),
        delete_mode=data.get("delete_mode", defaults.delete_mode),
        bottleneck_threshold=data.get("bottleneck_threshold", defaults.bottleneck_threshold),
        show_completed=data.get("show_completed", defaults.show_completed),
        debounce_seconds=float(data.get("debounce_seconds", defaults.debounce_seconds)),
        lock_timeout=data.get("lock_timeout", defaults.lock_timeout),
    )
