"""Tests for workgraph.commands.watch module."""

from unittest.mock import patch

from workgraph.commands.watch import diff_fingerprints, watch_loop
from workgraph.index.triggers import RebuildTrigger
from workgraph.lib.workspace import open_workspace


class TestDiffFingerprints:
    """Test diff_fingerprints function."""

    def test_no_change(self):
        assert diff_fingerprints({"a.md": 1.0}, {"a.md": 1.0}) == []

    def test_created_deleted_modified(self):
        before = {"a.md": 1.0, "b.md": 1.0}
        after = {"b.md": 2.0, "c.md": 1.0}
        assert diff_fingerprints(before, after) == [
            "created c.md",
            "deleted a.md",
            "modified b.md",
        ]


class TestWatchLoop:
    """Test watch_loop polling."""

    def test_change_feeds_trigger(self, tmp_path):
        tasks = tmp_path / "Timeline Viewer" / "Tasks"
        tasks.mkdir(parents=True)
        workspace = open_workspace(tmp_path)
        trigger = RebuildTrigger(workspace.index, delay=30)

        def sleep(_interval):
            if not (tasks / "New.md").exists():
                (tasks / "New.md").write_text("---\nid: n1\n---\n")

        with patch("workgraph.commands.watch.time.sleep", side_effect=sleep):
            changes = watch_loop(workspace, trigger, interval=1, max_polls=2)

        assert changes == 1
        assert trigger.pending
        assert workspace.index.get_entity("n1") is None
        trigger.flush()
        assert workspace.index.get_entity("n1") is not None

    def test_quiet_store_no_rebuild(self, tmp_path):
        workspace = open_workspace(tmp_path)
        trigger = RebuildTrigger(workspace.index, delay=30)
        with patch("workgraph.commands.watch.time.sleep"):
            assert watch_loop(workspace, trigger, interval=1, max_polls=3) == 0
        assert not trigger.pending
