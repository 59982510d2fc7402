"""
Workspace handle.

A workspace is a directory holding the Markdown documents (under the
configured root folder) and an optional workgraph.yaml. Opening one wires
the store, settings and index together and runs the first rebuild.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from workgraph.index.entity_index import EntityIndex
from workgraph.index.service import EntityService
from workgraph.lib.config import Settings, load_settings
from workgraph.store.documents import MarkdownDocumentStore

ROOT_ENV_VAR = "WORKGRAPH_ROOT"


@dataclass
class Workspace:
    root: Path
    settings: Settings
    store: MarkdownDocumentStore
    index: EntityIndex

    @property
    def service(self) -> EntityService:
        return EntityService(self.index)


def resolve_root(root: Optional[str] = None) -> Path:
    """--root, then $WORKGRAPH_ROOT, then the current directory."""
    if root:
        return Path(root).expanduser()
    env_root = os.environ.get(ROOT_ENV_VAR)
    if env_root:
        return Path(env_root).expanduser()
    return Path.cwd()


def open_workspace(root: Path, rebuild: bool = True) -> Workspace:
    """Load settings and build the index for a workspace directory.

    Raises:
        FileNotFoundError: If root is not a directory
        ValidationError: If workgraph.yaml violates the settings schema
    """
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Workspace not found: {root}")

    settings = load_settings(root)
    store = MarkdownDocumentStore(root)
    index = EntityIndex(store, settings)
    if rebuild:
        index.rebuild()
    return Workspace(root=root, settings=settings, store=store, index=index)
