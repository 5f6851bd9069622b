"""Tests for settings persistence and vault discovery."""

from pathlib import Path

import pytest
import yaml

from clipcat.config import ConfigurationError, get_vault_root
from clipcat.models import Settings
from clipcat.settings import SettingsStore


class TestSettingsStore:
    def test_defaults_without_file(self, tmp_path):
        store = SettingsStore(tmp_path)
        assert store.settings == Settings()
        assert store.settings.source_property_name == "source"
        assert store.settings.read_property_name == ""
        assert not store.path.exists()

    def test_partial_file_fills_defaults(self, tmp_path):
        (tmp_path / ".clipcat.yaml").write_text("read_property_name: read\n")
        settings = SettingsStore(tmp_path).settings
        assert settings.read_property_name == "read"
        assert settings.include_frontmatter_tags is True

    def test_update_persists(self, tmp_path):
        store = SettingsStore(tmp_path)
        store.update(source_property_name="source, url", include_frontmatter_tags=False)

        data = yaml.safe_load(store.path.read_text())
        assert data["source_property_name"] == "source, url"
        assert data["include_frontmatter_tags"] is False
        assert SettingsStore(tmp_path).settings.source_property_name == "source, url"

    def test_update_coerces_strings(self, tmp_path):
        store = SettingsStore(tmp_path)
        assert store.update(include_frontmatter_tags="false").include_frontmatter_tags is False

    def test_update_unknown_key(self, tmp_path):
        with pytest.raises(ValueError, match="Unknown setting"):
            SettingsStore(tmp_path).update(colour="blue")

    def test_update_invalid_value(self, tmp_path):
        with pytest.raises(ValueError):
            SettingsStore(tmp_path).update(include_frontmatter_tags="maybe")

    def test_on_change_receives_new_settings(self, tmp_path):
        changes = []
        store = SettingsStore(tmp_path, on_change=changes.append)
        store.update(read_property_name="done")
        assert [s.read_property_name for s in changes] == ["done"]

    def test_wrong_type_in_file(self, tmp_path):
        (tmp_path / ".clipcat.yaml").write_text("ignored_directories: 5\n")
        with pytest.raises(ConfigurationError, match="ignored_directories"):
            SettingsStore(tmp_path).load()

    def test_malformed_yaml_raises(self, tmp_path):
        (tmp_path / ".clipcat.yaml").write_text("source_property_name: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            SettingsStore(tmp_path).load()

    def test_update_leaves_malformed_file_untouched(self, tmp_path):
        path = tmp_path / ".clipcat.yaml"
        original = "read_property_name: read\nignored_directories: [templates\n"
        path.write_text(original)

        with pytest.raises(ConfigurationError):
            SettingsStore(tmp_path).add_ignored_directories("archive")

        assert path.read_text() == original

    def test_non_mapping_file_raises(self, tmp_path):
        (tmp_path / ".clipcat.yaml").write_text("- templates\n")
        with pytest.raises(ConfigurationError, match="mapping"):
            SettingsStore(tmp_path).load()

    def test_unreadable_file_raises(self, tmp_path):
        (tmp_path / ".clipcat.yaml").mkdir()
        with pytest.raises(ConfigurationError, match="Cannot read"):
            SettingsStore(tmp_path).load()

    def test_empty_file(self, tmp_path):
        (tmp_path / ".clipcat.yaml").write_text("")
        assert SettingsStore(tmp_path).load() == Settings()

    def test_ignored_directories(self, tmp_path):
        store = SettingsStore(tmp_path)
        store.add_ignored_directories("templates, Work/Expenses")
        store.add_ignored_directories("work/expenses, archive")
        assert store.settings.ignored_directories == ["templates", "Work/Expenses", "archive"]

        store.remove_ignored_directory("templates")
        assert store.settings.ignored_directories == ["Work/Expenses", "archive"]

        store.clear_ignored_directories()
        assert SettingsStore(tmp_path).settings.ignored_directories == []


class TestReload:
    def test_outside_edit_notifies(self, tmp_path):
        changes = []
        store = SettingsStore(tmp_path, on_change=changes.append)
        assert store.settings.ignored_directories == []

        SettingsStore(tmp_path).add_ignored_directories("work")

        assert store.reload() is True
        assert store.settings.ignored_directories == ["work"]
        assert [s.ignored_directories for s in changes] == [["work"]]

    def test_unchanged_file_does_not_notify(self, tmp_path):
        (tmp_path / ".clipcat.yaml").write_text("read_property_name: read\n")
        changes = []
        store = SettingsStore(tmp_path, on_change=changes.append)
        store.load()

        assert store.reload() is False
        assert changes == []

    def test_invalid_edit_keeps_previous_settings(self, tmp_path):
        path = tmp_path / ".clipcat.yaml"
        path.write_text("read_property_name: read\n")
        changes = []
        store = SettingsStore(tmp_path, on_change=changes.append)
        store.load()

        path.write_text("read_property_name: [oops\n")

        with pytest.raises(ConfigurationError):
            store.reload()
        assert store.settings.read_property_name == "read"
        assert changes == []


class TestCatalogConfig:
    def test_from_settings(self):
        settings = Settings(
            source_property_name="source, url,, link",
            ignored_directories=["templates"],
            read_property_name="  read ",
            include_frontmatter_tags=False,
        )
        config = settings.to_catalog_config()
        assert config.source_property_names == ["source", "url", "link"]
        assert config.ignored_directories == ["templates"]
        assert config.read_property_name == "read"
        assert config.read_tracking_enabled
        assert config.include_frontmatter_tags is False

    def test_read_tracking_off_by_default(self):
        assert not Settings().to_catalog_config().read_tracking_enabled


class TestGetVaultRoot:
    def test_env_var(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CLIPCAT_VAULT_ROOT", str(tmp_path))
        assert get_vault_root() == tmp_path

    def test_env_var_must_be_directory(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CLIPCAT_VAULT_ROOT", str(tmp_path / "missing"))
        with pytest.raises(ConfigurationError):
            get_vault_root()

    def test_walks_up_to_settings_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("CLIPCAT_VAULT_ROOT", raising=False)
        (tmp_path / ".clipcat.yaml").write_text("")
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert get_vault_root(start_dir=nested) == tmp_path.resolve()

    def test_not_found(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("CLIPCAT_VAULT_ROOT", raising=False)
        with pytest.raises(ConfigurationError, match="No vault found"):
            get_vault_root(start_dir=tmp_path, max_depth=1)
