"""Tests for workgraph.store.documents module."""

import pytest

from workgraph.store.documents import DocumentStoreError, MarkdownDocumentStore


class TestListDocuments:
    """Test MarkdownDocumentStore.list_documents."""

    @pytest.fixture
    def store(self, tmp_path):
        folder = tmp_path / "Tasks"
        folder.mkdir()
        (folder / "b.md").write_text("---\ntype: task\n---\n\n# b\n")
        (folder / "a.md").write_text("---\ntype: task\n---\n\n# a\n")
        (folder / "notes.txt").write_text("not a document")
        (folder / "sub").mkdir()
        (folder / "sub" / "c.md").write_text("---\ntype: task\n---\n")
        return MarkdownDocumentStore(tmp_path)

    def test_sorted_markdown_only(self, store):
        docs = store.list_documents("Tasks")
        assert [d.id for d in docs] == ["Tasks/a.md", "Tasks/b.md"]

    def test_document_fields(self, store):
        doc = store.list_documents("Tasks")[0]
        assert doc.stem == "a"
        assert doc.attributes == {"type": "task"}
        assert doc.body == "# a\n"
        assert doc.modified_at is not None

    def test_missing_folder_is_empty(self, store):
        assert store.list_documents("Nope") == []

    def test_scope_cannot_escape_root(self, store):
        with pytest.raises(DocumentStoreError):
            store.list_documents("../elsewhere")


class TestWrites:
    """Test create/write/delete on MarkdownDocumentStore."""

    def test_create_and_read(self, tmp_path):
        store = MarkdownDocumentStore(tmp_path)
        store.create_folder("Goals")
        doc_id = store.create_document("Goals/Launch.md", "---\ntype: goal\n---\n")
        assert doc_id == "Goals/Launch.md"
        assert store.read_document(doc_id).attributes == {"type": "goal"}

    def test_create_requires_folder(self, tmp_path):
        store = MarkdownDocumentStore(tmp_path)
        with pytest.raises(DocumentStoreError, match="Folder does not exist"):
            store.create_document("Goals/Launch.md", "")

    def test_create_refuses_overwrite(self, tmp_path):
        store = MarkdownDocumentStore(tmp_path)
        store.create_folder("Goals")
        store.create_document("Goals/Launch.md", "first")
        with pytest.raises(DocumentStoreError, match="already exists"):
            store.create_document("Goals/Launch.md", "second")
        assert (tmp_path / "Goals" / "Launch.md").read_text() == "first"

    def test_write_requires_existing(self, tmp_path):
        store = MarkdownDocumentStore(tmp_path)
        with pytest.raises(DocumentStoreError, match="not found"):
            store.write_document("Goals/Missing.md", "x")

    def test_store_error_is_oserror(self):
        assert issubclass(DocumentStoreError, OSError)

    def test_delete(self, tmp_path):
        store = MarkdownDocumentStore(tmp_path)
        (tmp_path / "x.md").write_text("x")
        assert store.delete_document("x.md") is True
        assert store.delete_document("x.md") is False
        assert store.read_document("x.md") is None

    def test_folder_exists(self, tmp_path):
        store = MarkdownDocumentStore(tmp_path)
        assert not store.folder_exists("A/B")
        store.create_folder("A/B")
        assert store.folder_exists("A/B")


class TestFingerprint:
    """Test MarkdownDocumentStore.fingerprint."""

    def test_tracks_nested_documents(self, tmp_path):
        (tmp_path / "A").mkdir()
        (tmp_path / "A" / "one.md").write_text("1")
        (tmp_path / "two.md").write_text("2")
        (tmp_path / "skip.txt").write_text("3")
        store = MarkdownDocumentStore(tmp_path)
        assert set(store.fingerprint()) == {"A/one.md", "two.md"}

    def test_missing_root(self, tmp_path):
        store = MarkdownDocumentStore(tmp_path / "nope")
        assert store.fingerprint() == {}
