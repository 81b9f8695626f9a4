"""Tests for the settings store."""

import json

import pytest

from autorotate.settings.store import AppSetting, SettingsStore


LANGUAGE = AppSetting.AUTO_ROTATE_LANGUAGE


class TestSettingsStore:
    """Tests for in-memory behaviour."""

    def test_defaults(self):
        store = SettingsStore()
        assert store.get(LANGUAGE) == ""
        assert store.get("missing", "fallback") == "fallback"

    def test_enum_and_string_keys(self):
        """Test AppSetting members and their values address the same key."""
        store = SettingsStore()
        store.set(LANGUAGE, "de-DE")
        assert store.get("auto_rotate_language") == "de-DE"

    def test_set_reports_change(self):
        store = SettingsStore()
        assert store.set(LANGUAGE, "en-US")
        assert not store.set(LANGUAGE, "en-US")

    def test_listener_called_on_change(self):
        store = SettingsStore()
        changes = []
        store.subscribe(changes.append)

        store.set(LANGUAGE, "en-US")
        store.set(LANGUAGE, "en-US")
        store.set(LANGUAGE, "fr-FR")

        assert changes == ["auto_rotate_language", "auto_rotate_language"]

    def test_subscription_close(self):
        store = SettingsStore()
        changes = []

        with store.subscribe(changes.append) as subscription:
            store.set(LANGUAGE, "en-US")

        store.set(LANGUAGE, "de-DE")

        assert changes == ["auto_rotate_language"]
        assert not subscription.active

    def test_listener_may_write(self):
        """Test a listener can set values without deadlocking."""
        store = SettingsStore()

        def normalise(key):
            if store.get(LANGUAGE) == "EN-us":
                store.set(LANGUAGE, "en-US")

        store.subscribe(normalise)
        store.set(LANGUAGE, "EN-us")

        assert store.get(LANGUAGE) == "en-US"

    def test_custom_defaults(self):
        store = SettingsStore(defaults={"auto_rotate_language": "de-DE"})
        assert store.get(LANGUAGE) == "de-DE"

    def test_to_dict_is_copy(self):
        store = SettingsStore()
        values = store.to_dict()
        values["auto_rotate_language"] = "xx"
        assert store.get(LANGUAGE) == ""


class TestSettingsPersistence:
    """Tests for JSON persistence."""

    def test_persist_and_reload(self, tmp_path):
        path = tmp_path / "settings.json"

        SettingsStore(path).set(LANGUAGE, "de-DE")

        assert json.loads(path.read_text())["auto_rotate_language"] == "de-DE"
        assert SettingsStore(path).get(LANGUAGE) == "de-DE"

    def test_creates_parent_directory(self, tmp_path):
        path = tmp_path / "nested" / "dir" / "settings.json"
        SettingsStore(path).set(LANGUAGE, "en-US")
        assert path.exists()

    def test_no_temp_files_left(self, tmp_path):
        path = tmp_path / "settings.json"
        store = SettingsStore(path)
        store.set(LANGUAGE, "en-US")
        store.set(LANGUAGE, "fr-FR")
        assert [p.name for p in tmp_path.iterdir()] == ["settings.json"]

    def test_unchanged_value_not_saved(self, tmp_path):
        path = tmp_path / "settings.json"
        store = SettingsStore(path)
        store.set(LANGUAGE, "")
        assert not path.exists()

    @pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]"])
    def test_unreadable_file_ignored(self, tmp_path, content):
        """Test corrupt files fall back to defaults."""
        path = tmp_path / "settings.json"
        path.write_text(content)

        store = SettingsStore(path)

        assert store.get(LANGUAGE) == ""

    def test_failed_save_leaves_value(self, tmp_path):
        """Test a save error changes nothing and notifies no one."""
        parent = tmp_path / "blocked"
        parent.write_text("")
        store = SettingsStore(parent / "settings.json")
        changes = []
        store.subscribe(changes.append)

        with pytest.raises(OSError):
            store.set(LANGUAGE, "en-US")

        assert store.get(LANGUAGE) == ""
        assert changes == []

    def test_unknown_keys_preserved(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"theme": "dark"}))

        SettingsStore(path).set(LANGUAGE, "en-US")

        data = json.loads(path.read_text())
        assert data == {"auto_rotate_language": "en-US", "theme": "dark"}
