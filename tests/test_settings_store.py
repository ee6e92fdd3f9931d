"""Tests for SettingsStore."""

import json

import pytest

from bacilint.errors import (
    InvalidSchemaVersionError,
    InvalidSettingsError,
    SettingsExistsError,
    SettingsNotFoundError,
)
from bacilint.models import FormatOptions, Settings
from bacilint.settings_store import SCHEMA_VERSION, SettingsStore


class TestSettingsStore:
    def test_init_creates_settings(self, temp_dir):
        store = SettingsStore(temp_dir / "cfg")

        assert not store.exists()
        settings = store.init()

        assert store.exists()
        assert settings == Settings()
        data = json.loads(store.config_path.read_text())
        assert data["schema_version"] == SCHEMA_VERSION
        assert data["settings"]["defaultStringLength"] == 20

    def test_init_twice_fails(self, temp_dir):
        store = SettingsStore(temp_dir)
        store.init()

        with pytest.raises(SettingsExistsError):
            store.init()

    def test_init_force_resets(self, temp_dir):
        store = SettingsStore(temp_dir)
        store.save(Settings(default_string_length=64))

        store.init(force=True)

        assert store.load().default_string_length == 20

    def test_load_missing(self, temp_dir):
        with pytest.raises(SettingsNotFoundError):
            SettingsStore(temp_dir).load()

    def test_load_or_default_missing(self, temp_dir):
        assert SettingsStore(temp_dir).load_or_default() == Settings()

    def test_save_load_round_trip(self, temp_dir):
        store = SettingsStore(temp_dir)
        settings = Settings(
            default_string_length=32,
            format=FormatOptions(space_around_operators=False, indent_size=4),
        )

        store.save(settings)

        assert store.load() == settings
        assert not list(temp_dir.glob(".settings_*.tmp"))

    def test_unsupported_schema_version(self, temp_dir):
        store = SettingsStore(temp_dir)
        store.config_path.write_text(json.dumps({"schema_version": 99, "settings": {}}))

        with pytest.raises(InvalidSchemaVersionError) as exc_info:
            store.load()
        assert exc_info.value.found == 99

    def test_save_rejects_invalid(self, temp_dir):
        store = SettingsStore(temp_dir)

        with pytest.raises(InvalidSettingsError):
            store.save(Settings(default_string_length=0))
        assert not store.exists()

    def test_env_override(self, data_dir):
        store = SettingsStore()

        assert store.config_dir == data_dir


class TestSettingsUpdate:
    def test_update_merges(self, temp_dir):
        store = SettingsStore(temp_dir)
        store.init()

        settings = store.update({"format.indentSize": 4})

        assert settings.format.indent_size == 4
        assert settings.default_string_length == 20
        assert store.load().format.indent_size == 4

    def test_update_without_file(self, temp_dir):
        store = SettingsStore(temp_dir)

        store.update({"defaultStringLength": 8})

        assert store.load().default_string_length == 8

    def test_update_unknown_key(self, temp_dir):
        store = SettingsStore(temp_dir)

        with pytest.raises(InvalidSettingsError) as exc_info:
            store.update({"tabWidth": 4})
        assert exc_info.value.key == "tabWidth"
        assert not store.exists()

    def test_update_invalid_value_keeps_file(self, temp_dir):
        store = SettingsStore(temp_dir)
        store.init()

        with pytest.raises(InvalidSettingsError):
            store.update({"format.indentSize": 99})
        assert store.load().format.indent_size == 2
