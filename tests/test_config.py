"""Tests for workgraph.lib.config module."""

import logging

import pytest

from workgraph.lib.config import CONFIG_FILENAME, DEFAULT_FOLDERS, Settings, load_settings
from workgraph.lib.validate import ValidationError


class TestLoadSettings:
    """Test load_settings function."""

    def test_no_workspace_returns_defaults(self):
        settings = load_settings(None)
        assert settings == Settings()

    def test_missing_file_returns_defaults(self, tmp_path):
        settings = load_settings(tmp_path)
        assert settings.root_folder == "Timeline Viewer"
        assert settings.folders == DEFAULT_FOLDERS
        assert settings.delete_mode == "delete"
        assert settings.bottleneck_threshold == 3

    def test_overrides_merge_over_defaults(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text(
            "root_folder: Planning\n"
            "folders:\n"
            "  task: Work Items\n"
            "delete_mode: archive\n"
            "bottleneck_threshold: 4\n"
        )
        settings = load_settings(tmp_path)
        assert settings.root_folder == "Planning"
        assert settings.folders["task"] == "Work Items"
        assert settings.folders["goal"] == "Goals"
        assert settings.delete_mode == "archive"
        assert settings.bottleneck_threshold == 4
        assert settings.show_completed is True

    def test_empty_file_returns_defaults(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("")
        assert load_settings(tmp_path) == Settings()

    def test_invalid_yaml_warns_and_uses_defaults(self, tmp_path, caplog):
        caplog.set_level(logging.WARNING)
        (tmp_path / CONFIG_FILENAME).write_text("folders: [unclosed\n")
        settings = load_settings(tmp_path)
        assert settings == Settings()
        assert "Failed to parse" in caplog.text

    def test_schema_violation_raises(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("delete_mode: shred\n")
        with pytest.raises(ValidationError) as exc:
            load_settings(tmp_path)
        assert "delete_mode" in str(exc.value)

    def test_unknown_key_raises(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("colour: blue\n")
        with pytest.raises(ValidationError):
            load_settings(tmp_path)

    def test_non_mapping_raises(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("- a\n- b\n")
        with pytest.raises(ValidationError, match="Expected a mapping"):
            load_settings(tmp_path)


class TestSettingsPaths:
    """Test Settings folder helpers."""

    def test_folder_for_type(self):
        settings = Settings()
        assert settings.folder_for_type("task") == "Timeline Viewer/Tasks"
        assert settings.folder_for_type("goal") == "Timeline Viewer/Goals"

    def test_empty_root_folder(self):
        settings = Settings(root_folder="")
        assert settings.folder_for_type("project") == "Projects"

    def test_unknown_type_raises(self):
        with pytest.raises(ValueError):
            Settings().folder_for_type("epic")

    def test_archive_path(self):
        assert Settings(archive_folder="Old").archive_path() == "Timeline Viewer/Old"

    def test_scan_scopes_in_hierarchy_order(self):
        scopes = Settings().scan_scopes()
        assert [t for _, t in scopes] == ["goal", "portfolio", "project", "task"]
        assert scopes[0] == ("Timeline Viewer/Goals", "goal")
