"""Tests for the configuration store."""

from __future__ import annotations

import pytest
import toml

from branchvault.backup.errors import ConfigurationError
from branchvault.config import DEFAULT_API_URL, BackupSettings, ConfigStore


@pytest.fixture
def store(tmp_path) -> ConfigStore:
    return ConfigStore(tmp_path / "config.toml")


class TestBackupSettings:
    def test_defaults(self):
        settings = BackupSettings()
        assert settings.destination_url is None
        assert settings.interval_minutes == 10
        assert settings.notifications is True
        assert settings.auto_start is False
        assert settings.batch_size == 50
        assert settings.exclude_paths == []
        assert settings.api_url == DEFAULT_API_URL

    def test_from_dict_ignores_wrong_types(self):
        settings = BackupSettings.from_dict(
            {
                "destination_url": "  acme/vault ",
                "interval_minutes": "often",
                "notifications": "yes",
                "batch_size": 0,
                "exclude_paths": ["*.log", " "],
                "api_url": "https://ghe.example.com/api/v3/",
            }
        )
        assert settings.destination_url == "acme/vault"
        assert settings.interval_minutes == 10
        assert settings.notifications is True
        assert settings.batch_size == 50
        assert settings.exclude_paths == ["*.log"]
        assert settings.api_url == "https://ghe.example.com/api/v3"

    def test_interval_may_be_zero_or_negative(self):
        assert BackupSettings.from_dict({"interval_minutes": 0}).interval_minutes == 0
        assert BackupSettings.from_dict({"interval_minutes": -5}).interval_minutes == -5

    def test_to_dict_omits_unset_destination(self):
        assert "destination_url" not in BackupSettings().to_dict()


class TestConfigStore:
    def test_default_location_under_home(self, isolated_environment):
        assert ConfigStore().config_file == isolated_environment / ".branchvault" / "config.toml"

    def test_missing_file_yields_defaults(self, store):
        assert store.load() == BackupSettings()

    def test_round_trip(self, store):
        store.save(BackupSettings(destination_url="acme/vault", interval_minutes=5, exclude_paths=["dist"]))

        loaded = store.load()

        assert loaded.destination_url == "acme/vault"
        assert loaded.interval_minutes == 5
        assert loaded.exclude_paths == ["dist"]

    def test_other_tables_are_preserved(self, store):
        store.config_file.write_text('[ui]\ntheme = "dark"\n', encoding="utf-8")

        store.update(interval_minutes=20)

        data = toml.load(store.config_file)
        assert data["ui"] == {"theme": "dark"}
        assert data["backup"]["interval_minutes"] == 20

    def test_invalid_file_is_a_configuration_error(self, store):
        store.config_file.write_text("[backup\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            store.load()

    def test_update_rejects_unknown_keys(self, store):
        with pytest.raises(ConfigurationError):
            store.update(colour="blue")
