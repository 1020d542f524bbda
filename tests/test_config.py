"""
Tests for configuration loading.
"""

import json

import pytest

from mindcanvas.config import (
    EditorSettings,
    get_editor_settings,
    load_config,
    save_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Strip MINDCANVAS_* variables a developer shell may export."""
    import os
    for key in list(os.environ):
        if key.startswith("MINDCANVAS_"):
            monkeypatch.delenv(key)


class TestLoadConfig:

    def test_missing_file_is_empty(self, tmp_path):
        assert load_config(tmp_path / "config.json") == {}

    def test_invalid_file_is_empty(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{oops", encoding="utf-8")
        assert load_config(path) == {}

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "config.json"
        save_config({"document_id": "notes"}, path)
        assert load_config(path) == {"document_id": "notes"}


class TestEditorSettings:
    """Test the defaults < config.json < environment layering."""

    def test_defaults(self, tmp_path):
        settings = get_editor_settings(tmp_path / "none.json")
        assert settings == EditorSettings()
        assert settings.undo_limit is None
        assert settings.snap_threshold == 5.0

    def test_config_file_overrides_defaults(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"document_id": "plans", "undo_limit": 20, "unknown": 1}),
                        encoding="utf-8")

        settings = get_editor_settings(path)

        assert settings.document_id == "plans"
        assert settings.undo_limit == 20

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"storage_backend": "file"}), encoding="utf-8")
        monkeypatch.setenv("MINDCANVAS_STORAGE_BACKEND", "http")
        monkeypatch.setenv("MINDCANVAS_SNAP_THRESHOLD", "8")
        monkeypatch.setenv("MINDCANVAS_AUTOSAVE_DEBOUNCE_MS", "250")

        settings = get_editor_settings(path)

        assert settings.storage_backend == "http"
        assert settings.snap_threshold == 8.0
        assert settings.autosave_debounce_ms == 250

    def test_invalid_environment_value_is_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MINDCANVAS_REQUEST_TIMEOUT", "soon")
        assert get_editor_settings(tmp_path / "none.json").request_timeout == 10.0

    @pytest.mark.parametrize("raw", ["0", "-3", "none"])
    def test_non_positive_undo_limit_means_unbounded(self, tmp_path, monkeypatch, raw):
        monkeypatch.setenv("MINDCANVAS_UNDO_LIMIT", raw)
        assert get_editor_settings(tmp_path / "none.json").undo_limit is None

    def test_documents_dir_resolution(self, tmp_path):
        settings = EditorSettings(documents_dir=str(tmp_path / "docs"))
        assert settings.resolved_documents_dir == tmp_path / "docs"
        assert EditorSettings().resolved_documents_dir.name == "documents"
