"""Tests for workgraph.index.projections module."""

from datetime import date

import pytest
import yaml

from workgraph.index.entity_index import EntityIndex
from workgraph.index.projections import aggregate_progress, get_timeline_items, get_wbs_tree
from workgraph.lib.config import Settings
from workgraph.store.documents import MarkdownDocumentStore


def write_doc(root, folder, name, attrs):
    path = root / "Timeline Viewer" / folder / f"{name}.md"
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"---\n{yaml.safe_dump(attrs, sort_keys=False)}---\n")


def make_index(root):
    index = EntityIndex(MarkdownDocumentStore(root), Settings())
    index.rebuild()
    return index


class TestAggregateProgress:
    """Test aggregate_progress function."""

    def test_mean_of_children(self):
        assert aggregate_progress(0, [20, 40, 60]) == 40

    def test_rounds_half_up(self):
        assert aggregate_progress(0, [0, 1]) == 1
        assert aggregate_progress(0, [10, 20, 20]) == 17

    def test_no_children_uses_stored(self):
        assert aggregate_progress(75, []) == 75
        assert aggregate_progress(None, []) == 0


class TestWBSTree:
    """Test get_wbs_tree function."""

    @pytest.fixture
    def index(self, tmp_path):
        write_doc(tmp_path, "Goals", "Grow", {"id": "g1"})
        write_doc(tmp_path, "Goals", "Empty goal", {"id": "g2"})
        write_doc(tmp_path, "Portfolios", "Web", {"id": "pf1", "parent": "[[g1]]"})
        write_doc(tmp_path, "Projects", "Site", {"id": "p1", "parent": "[[pf1]]", "progress": 90})
        write_doc(tmp_path, "Projects", "Blog", {"id": "p2", "parent": "[[pf1]]", "progress": 10})
        write_doc(tmp_path, "Projects", "Orphan", {"id": "p3", "parent": "[[ghost]]"})
        write_doc(tmp_path, "Tasks", "A", {"id": "a", "parent": "[[p1]]", "progress": 20})
        write_doc(tmp_path, "Tasks", "B", {"id": "b", "parent": "[[p1]]", "progress": 40})
        write_doc(tmp_path, "Tasks", "C", {"id": "c", "parent": "[[p1]]", "progress": 60})
        return make_index(tmp_path)

    def test_roots_are_goals(self, index):
        roots = get_wbs_tree(index)
        assert [r.id for r in roots] == ["g2", "g1"]
        assert all(r.type == "goal" for r in roots)

    def test_rollup(self, index):
        g1 = next(r for r in get_wbs_tree(index) if r.id == "g1")
        portfolio = g1.children[0]
        site = next(p for p in portfolio.children if p.id == "p1")
        blog = next(p for p in portfolio.children if p.id == "p2")
        assert site.progress == 40           # mean of 20/40/60, not the stored 90
        assert blog.progress == 10           # no tasks: stored value
        assert portfolio.progress == 25      # mean of 40 and 10
        assert g1.progress == 25

    def test_leaf_goal_progress_zero(self, index):
        g2 = next(r for r in get_wbs_tree(index) if r.id == "g2")
        assert g2.children == []
        assert g2.progress == 0

    def test_expanded_defaults_false(self, index):
        assert all(not r.expanded for r in get_wbs_tree(index))

    def test_dangling_project_not_in_tree(self, index):
        def ids(nodes):
            for n in nodes:
                yield n.id
                yield from ids(n.children)
        assert "p3" not in set(ids(get_wbs_tree(index)))


class TestTimelineItems:
    """Test get_timeline_items function."""

    @pytest.fixture
    def index(self, tmp_path):
        write_doc(tmp_path, "Projects", "Site", {"id": "p1", "startDate": "2024-02-01", "endDate": "2024-03-01"})
        write_doc(tmp_path, "Projects", "Undated", {"id": "p2"})
        write_doc(tmp_path, "Tasks", "In site", {"id": "t1", "parent": "[[p1]]", "startDate": "2024-02-05", "dueDate": "2024-02-09"})
        write_doc(tmp_path, "Tasks", "Half dated", {"id": "t2", "parent": "[[p1]]", "startDate": "2024-02-05"})
        write_doc(tmp_path, "Tasks", "Solo", {"id": "t3", "startDate": "2024-01-10", "dueDate": "2024-01-12"})
        write_doc(tmp_path, "Tasks", "Solo done", {"id": "t4", "status": "completed", "startDate": "2024-04-01", "dueDate": "2024-04-02"})
        write_doc(tmp_path, "Tasks", "Lost", {"id": "t5", "parent": "[[ghost]]", "startDate": "2024-01-01", "dueDate": "2024-01-02"})
        return make_index(tmp_path)

    def test_sorted_by_start(self, index):
        items = get_timeline_items(index)
        assert [i.id for i in items] == ["t3", "p1", "t4"]
        assert items[0].start_date == date(2024, 1, 10)

    def test_project_children(self, index):
        project = next(i for i in get_timeline_items(index) if i.id == "p1")
        assert [c.id for c in project.children] == ["t1"]
        assert project.children[0].end_date == date(2024, 2, 9)
        assert project.children[0].project_id == "p1"

    def test_hide_completed(self, index):
        items = get_timeline_items(index, include_completed=False)
        assert "t4" not in [i.id for i in items]
