"""
Markdown document store.

The store is the system of record: every entity is a Markdown file with
a YAML frontmatter block somewhere under the store root. Document ids are
POSIX paths relative to the root, e.g. "Timeline Viewer/Tasks/Draft copy.md".
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Any, Optional

from workgraph.lib.constants import DOCUMENT_SUFFIX
from workgraph.store.frontmatter import split_frontmatter

logger = logging.getLogger(__name__)


class DocumentStoreError(OSError):
    """A document or folder could not be created, written, or removed."""
    pass


@dataclass
class Document:
    """A raw document as read from the store."""
    id: str
    raw_text: str
    attributes: Optional[dict[str, Any]]  # None when there is no usable frontmatter
    created_at: Optional[datetime] = None
    modified_at: Optional[datetime] = None
    body: str = field(default="", repr=False)

    @property
    def stem(self) -> str:
        """File name without the .md suffix."""
        return PurePosixPath(self.id).stem


class MarkdownDocumentStore:
    """Filesystem-backed document store rooted at a directory."""

    def __init__(self, root: Path):
        self.root = Path(root).resolve()

    def _resolve(self, doc_id: str) -> Path:
        path = (self.root / doc_id).resolve()
        if path != self.root and self.root not in path.parents:
            raise DocumentStoreError(f"Path escapes store root: {doc_id}")
        return path

    def _doc_id(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    def list_documents(self, scope: str = "") -> list[Document]:
        """List every Markdown document directly inside a folder.

        Missing folders yield an empty list. Unreadable files are skipped
        with a warning.
        """
        folder = self._resolve(scope) if scope else self.root
        if not folder.is_dir():
            return []

        documents = []
        for path in sorted(folder.iterdir()):
            if not path.is_file() or path.suffix != DOCUMENT_SUFFIX:
                continue
            try:
                documents.append(self._load(path))
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Skipping unreadable document {path}: {e}")
        return documents

    def read_document(self, doc_id: str) -> Optional[Document]:
        """Read one document, or None if it doesn't exist."""
        path = self._resolve(doc_id)
        if not path.is_file():
            return None
        try:
            return self._load(path)
        except (OSError, UnicodeDecodeError) as e:
            raise DocumentStoreError(f"Failed to read {doc_id}: {e}") from e

    def _load(self, path: Path) -> Document:
        text = path.read_text(encoding="utf-8")
        stat = path.stat()
        attributes, body = split_frontmatter(text)
        return Document(
            id=self._doc_id(path),
            raw_text=text,
            attributes=attributes,
            created_at=datetime.fromtimestamp(stat.st_ctime, tz=timezone.utc),
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
            body=body,
        )

    def create_document(self, doc_path: str, content: str) -> str:
        """Create a new document. Fails if one already exists at that path.

        Returns:
            The new document's id
        """
        path = self._resolve(doc_path)
        if not path.parent.is_dir():
            raise DocumentStoreError(f"Folder does not exist: {path.parent}")
        try:
            with open(path, "x", encoding="utf-8") as f:
                f.write(content)
        except FileExistsError as e:
            raise DocumentStoreError(f"Document already exists: {doc_path}") from e
        except OSError as e:
            raise DocumentStoreError(f"Failed to create {doc_path}: {e}") from e
        logger.debug(f"Created document {doc_path}")
        return self._doc_id(path)

    def write_document(self, doc_id: str, content: str) -> None:
        """Replace an existing document's content."""
        path = self._resolve(doc_id)
        if not path.is_file():
            raise DocumentStoreError(f"Document not found: {doc_id}")
        try:
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise DocumentStoreError(f"Failed to write {doc_id}: {e}") from e

    def delete_document(self, doc_id: str) -> bool:
        """Delete a document. Returns False if it didn't exist."""
        path = self._resolve(doc_id)
        if not path.is_file():
            return False
        try:
            path.unlink()
        except OSError as e:
            raise DocumentStoreError(f"Failed to delete {doc_id}: {e}") from e
        logger.debug(f"Deleted document {doc_id}")
        return True

    def folder_exists(self, folder: str) -> bool:
        return self._resolve(folder).is_dir()

    def create_folder(self, folder: str) -> None:
        try:
            self._resolve(folder).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise DocumentStoreError(f"Failed to create folder {folder}: {e}") from e

    def fingerprint(self) -> dict[str, float]:
        """Map of document id -> mtime for every Markdown file under the root.

        Cheap enough to poll; two equal fingerprints mean nothing changed.
        """
        if not self.root.is_dir():
            return {}
        result = {}
        for path in self.root.rglob(f"*{DOCUMENT_SUFFIX}"):
            try:
                result[self._doc_id(path)] = path.stat().st_mtime
            except OSError:
                continue  # removed between listing and stat
        return result
