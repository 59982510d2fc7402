"""Tests for workgraph.index.entity_index module."""

import logging
from datetime import date
from unittest.mock import patch

import pytest
import yaml

from workgraph.index.entity_index import EntityIndex
from workgraph.index.models import Goal, Portfolio, Project, Task
from workgraph.lib.config import Settings
from workgraph.store.documents import MarkdownDocumentStore


def write_doc(root, folder, name, attrs):
    path = root / "Timeline Viewer" / folder / f"{name}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"---\n{yaml.safe_dump(attrs, sort_keys=False)}---\n\n# {name}\n")
    return path


def make_index(root, settings=None):
    index = EntityIndex(MarkdownDocumentStore(root), settings or Settings())
    index.rebuild()
    return index


class TestRebuild:
    """Test EntityIndex.rebuild and lookups."""

    @pytest.fixture
    def workspace(self, tmp_path):
        write_doc(tmp_path, "Goals", "Grow", {"id": "g1"})
        write_doc(tmp_path, "Portfolios", "Web", {"id": "pf1", "parent": "[[g1]]"})
        write_doc(tmp_path, "Projects", "Site", {"id": "p1", "parent": "[[pf1]]"})
        write_doc(tmp_path, "Tasks", "Copy", {"id": "t1", "parent": "[[p1]]"})
        write_doc(tmp_path, "Tasks", "Design", {"id": "t2", "parent": "[[p1]]", "dependencies": ["[[t1]]"]})
        return tmp_path

    def test_indexes_every_type(self, workspace):
        index = make_index(workspace)
        assert len(index) == 5
        assert isinstance(index.get_entity("g1"), Goal)
        assert isinstance(index.get_entity("pf1"), Portfolio)
        assert isinstance(index.get_entity("p1"), Project)
        assert isinstance(index.get_entity("t1"), Task)

    def test_child_sets_derived(self, workspace):
        index = make_index(workspace)
        assert index.get_entity("g1").portfolio_ids == frozenset({"pf1"})
        assert index.get_entity("pf1").project_ids == frozenset({"p1"})
        assert index.get_entity("p1").task_ids == frozenset({"t1", "t2"})

    def test_get_entities_by_type(self, workspace):
        index = make_index(workspace)
        assert {t.id for t in index.get_entities_by_type("task")} == {"t1", "t2"}
        with pytest.raises(ValueError):
            index.get_entities_by_type("epic")

    def test_unknown_id_is_none(self, workspace):
        index = make_index(workspace)
        assert index.get_entity("nope") is None
        assert index.get_entity(None) is None

    def test_generation_increments(self, workspace):
        index = make_index(workspace)
        assert index.generation == 1
        assert index.rebuild() is True
        assert index.generation == 2

    def test_rebuild_sees_deletions(self, workspace):
        index = make_index(workspace)
        (workspace / "Timeline Viewer" / "Tasks" / "Copy.md").unlink()
        index.rebuild()
        assert index.get_entity("t1") is None
        assert index.get_entity("p1").task_ids == frozenset({"t2"})

    def test_old_snapshot_unchanged(self, workspace):
        index = make_index(workspace)
        before = index.snapshot
        (workspace / "Timeline Viewer" / "Tasks" / "Copy.md").unlink()
        index.rebuild()
        assert "t1" in before.entities
        assert "t1" not in index.snapshot.entities

    def test_documents_outside_folders_ignored(self, workspace):
        (workspace / "Timeline Viewer" / "Readme.md").write_text("---\ntype: task\n---\n")
        index = make_index(workspace)
        assert index.get_entity("Readme") is None

    def test_non_entity_documents_skipped(self, workspace):
        (workspace / "Timeline Viewer" / "Tasks" / "Notes.md").write_text("# no frontmatter\n")
        index = make_index(workspace)
        assert len(index) == 5
        assert index.snapshot.documents_skipped == 1

    def test_listener_called_after_publish(self, workspace):
        index = EntityIndex(MarkdownDocumentStore(workspace), Settings())
        seen = []
        index.add_listener(lambda snapshot: seen.append(len(snapshot.entities)))
        index.rebuild()
        assert seen == [5]


class TestUniqueness:
    """Ids are unique after every rebuild."""

    def test_first_document_wins(self, tmp_path, caplog):
        caplog.set_level(logging.WARNING)
        write_doc(tmp_path, "Tasks", "A", {"id": "dup", "status": "in-progress"})
        write_doc(tmp_path, "Tasks", "B", {"id": "dup", "status": "completed"})
        index = make_index(tmp_path)
        assert len(index.get_all_tasks()) == 1
        assert index.get_entity("dup").status == "in-progress"
        assert "Duplicate id 'dup'" in caplog.text

    def test_ids_unique_across_types(self, tmp_path):
        write_doc(tmp_path, "Goals", "Same", {})
        write_doc(tmp_path, "Tasks", "Same", {})
        index = make_index(tmp_path)
        ids = [e.id for e in index.all_entities()]
        assert len(ids) == len(set(ids)) == 1
        assert isinstance(index.get_entity("Same"), Goal)


class TestDanglingReferences:
    """Relationship fields may reference missing entities."""

    def test_project_with_missing_portfolio(self, tmp_path):
        write_doc(tmp_path, "Projects", "Orphan", {"id": "p1", "parent": "[[ghost]]"})
        index = make_index(tmp_path)
        project = index.get_entity("p1")
        assert project is not None
        assert project.portfolio_id == "ghost"
        assert index.get_entity(project.portfolio_id) is None

    def test_parent_of_wrong_type_not_linked(self, tmp_path):
        write_doc(tmp_path, "Goals", "G", {"id": "g1"})
        write_doc(tmp_path, "Tasks", "T", {"id": "t1", "parent": "[[g1]]"})
        index = make_index(tmp_path)
        assert index.get_entity("t1").project_id == "g1"
        assert index.get_entity("g1").portfolio_ids == frozenset()


class TestSupersededRebuild:
    """An older rebuild never overwrites a newer one."""

    def test_stale_rebuild_discarded(self, tmp_path):
        write_doc(tmp_path, "Tasks", "T", {"id": "t1"})
        index = EntityIndex(MarkdownDocumentStore(tmp_path), Settings())
        real_scan = index._scan
        published = []
        index.add_listener(lambda snapshot: published.append(snapshot.generation))
        calls = []

        def scan():
            calls.append(1)
            if len(calls) == 1:
                # A newer rebuild starts and finishes while this one scans
                assert index.rebuild() is True
                return {}, 0, 0
            return real_scan()

        with patch.object(index, "_scan", side_effect=scan):
            assert index.rebuild() is False

        assert index.generation == 2
        assert index.get_entity("t1") is not None
        assert published == [2]


class TestTaskQueries:
    """Test task query helpers."""

    @pytest.fixture
    def index(self, tmp_path):
        write_doc(tmp_path, "Projects", "P", {"id": "p1"})
        write_doc(tmp_path, "Tasks", "Late", {"id": "late", "parent": "[[p1]]", "dueDate": "2024-01-01", "assignee": "sam"})
        write_doc(tmp_path, "Tasks", "Done late", {"id": "done", "status": "completed", "dueDate": "2024-01-01"})
        write_doc(tmp_path, "Tasks", "Today", {"id": "today", "dueDate": "2024-02-01", "parentTask": "[[late]]"})
        write_doc(tmp_path, "Tasks", "Waiting", {"id": "wait", "dependencies": ["[[late]]", "[[done]]", "[[ghost]]"]})
        write_doc(tmp_path, "Tasks", "Free", {"id": "free", "dependencies": ["[[done]]"], "status": "in-progress"})
        return make_index(tmp_path)

    def test_overdue(self, index):
        assert [t.id for t in index.get_overdue_tasks(date(2024, 2, 1))] == ["late"]

    def test_due_today(self, index):
        assert [t.id for t in index.get_tasks_due_today(date(2024, 2, 1))] == ["today"]

    def test_blocked(self, index):
        assert [t.id for t in index.get_blocked_tasks()] == ["wait"]

    def test_blockers(self, index):
        assert [t.id for t in index.get_blocker_tasks()] == ["late"]

    def test_by_status_project_assignee(self, index):
        assert [t.id for t in index.get_tasks_by_status("in-progress")] == ["free"]
        assert [t.id for t in index.get_tasks_by_project("p1")] == ["late"]
        assert [t.id for t in index.get_tasks_by_assignee("sam")] == ["late"]

    def test_subtasks(self, index):
        assert [t.id for t in index.get_subtasks("late")] == ["today"]
