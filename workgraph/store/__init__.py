"""
Document store for workgraph.

Markdown files with YAML frontmatter, addressed by root-relative path.
"""

from workgraph.store.documents import (
    Document,
    DocumentStoreError,
    MarkdownDocumentStore,
)
from workgraph.store.frontmatter import (
    split_frontmatter,
    render_document,
    update_frontmatter,
)
from workgraph.store.locking import LockTimeout, store_write_lock

__all__ = [
    "Document",
    "DocumentStoreError",
    "MarkdownDocumentStore",
    "split_frontmatter",
    "render_document",
    "update_frontmatter",
    "LockTimeout",
    "store_write_lock",
]
