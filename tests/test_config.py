"""Tests for configuration loading and feature flags."""

import pytest
import yaml

from cmdbot.config import ConfigManager, Feature
from cmdbot.errors import ConfigError


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ["DISCORD_TOKEN", "GUILD_ID", "FEATURES", "AUTOCOMPLETE_TIMEOUT", "LOG_DIR"]:
        monkeypatch.delenv(key, raising=False)


def _write(path, data):
    path.write_text(yaml.safe_dump(data), encoding="utf-8")


class TestLoad:

    def test_defaults_then_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        _write(path, {"DISCORD_TOKEN": "abc", "FEATURES": ["read:user"], "GUILD_ID": 99})

        config = ConfigManager.load(str(path))

        assert config.get("DISCORD_TOKEN") == "abc"
        assert config.get("GUILD_ID") == 99
        assert config.get("LOG_DIR") == "logs"
        assert config.is_feature_enabled("read:user")

    def test_env_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "config.yaml"
        _write(path, {"DISCORD_TOKEN": "abc", "FEATURES": ["read:user"]})
        monkeypatch.setenv("DISCORD_TOKEN", "from-env")
        monkeypatch.setenv("GUILD_ID", "123")
        monkeypatch.setenv("FEATURES", "read:config, update:config")
        monkeypatch.setenv("AUTOCOMPLETE_TIMEOUT", "1.5")

        config = ConfigManager.load(str(path))

        assert config.get("DISCORD_TOKEN") == "from-env"
        assert config.get("GUILD_ID") == 123
        assert config.get("AUTOCOMPLETE_TIMEOUT") == 1.5
        assert config.enabled_features() == frozenset({"read:config", "update:config"})

    def test_missing_file_uses_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "tok")
        config = ConfigManager.load(str(tmp_path / "absent.yaml"))
        assert config.enabled_features() == frozenset()

    def test_missing_token_raises(self, tmp_path):
        with pytest.raises(ConfigError, match="DISCORD_TOKEN"):
            ConfigManager.load(str(tmp_path / "absent.yaml"))

    def test_non_numeric_guild_id_rejected(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "tok")
        monkeypatch.setenv("GUILD_ID", "abc")
        with pytest.raises(ConfigError, match="GUILD_ID"):
            ConfigManager.load(str(tmp_path / "absent.yaml"))

    def test_guild_id_string_in_file_coerced(self, tmp_path):
        path = tmp_path / "config.yaml"
        _write(path, {"DISCORD_TOKEN": "abc", "GUILD_ID": "4242"})
        assert ConfigManager.load(str(path)).get("GUILD_ID") == 4242

    def test_empty_token_treated_as_missing(self, tmp_path):
        path = tmp_path / "config.yaml"
        _write(path, {"DISCORD_TOKEN": ""})
        with pytest.raises(ConfigError, match="DISCORD_TOKEN"):
            ConfigManager.load(str(path))


class TestFeatures:

    def test_accepts_enum_members(self, make_config):
        config = make_config("read:config")
        assert config.is_feature_enabled(Feature.READ_CONFIG)
        assert not config.is_feature_enabled(Feature.UPDATE_CONFIG)

    def test_enable_and_disable(self, make_config):
        config = make_config()
        assert config.enable_feature("update:config") is True
        assert config.enable_feature("update:config") is False
        assert config.is_feature_enabled("update:config")
        assert config.disable_feature(Feature.UPDATE_CONFIG) is True
        assert config.disable_feature(Feature.UPDATE_CONFIG) is False
        assert not config.is_feature_enabled("update:config")

    def test_snapshot_is_not_affected_by_later_writes(self, make_config):
        config = make_config("read:user")
        snapshot = config.enabled_features()
        config.enable_feature("read:config")
        assert snapshot == frozenset({"read:user"})
        assert config.enabled_features() == frozenset({"read:user", "read:config"})

    def test_changes_are_written_back(self, tmp_path, make_config):
        path = tmp_path / "config.yaml"
        _write(path, {"GUILD_ID": 5, "FEATURES": ["read:user"]})
        config = make_config("read:user", config_path=str(path))

        config.enable_feature("update:config")

        saved = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert saved["GUILD_ID"] == 5
        assert saved["FEATURES"] == ["read:user", "update:config"]
        assert "DISCORD_TOKEN" not in saved

    def test_failed_write_keeps_previous_state(self, tmp_path, make_config):
        config = make_config("read:user", config_path=str(tmp_path / "missing-dir" / "config.yaml"))

        with pytest.raises(ConfigError):
            config.enable_feature("update:config")
        assert config.enabled_features() == frozenset({"read:user"})


class TestFeatureConfig:

    def test_section_without_entry_is_empty(self, make_config):
        config = make_config()
        assert config.get_feature_config("read:user") == {}

    def test_update_merges_shallowly(self, make_config):
        config = make_config()
        config.update_feature_config(Feature.READ_USER, {"show_roles": True, "limit": 5})

        merged = config.update_feature_config("read:user", {"limit": 10})

        assert merged == {"show_roles": True, "limit": 10}
        assert config.get_feature_config(Feature.READ_USER) == {"show_roles": True, "limit": 10}

    def test_returned_section_is_a_copy(self, make_config):
        config = make_config()
        config.update_feature_config("read:user", {"limit": 5})
        config.get_feature_config("read:user")["limit"] = 99
        assert config.get_feature_config("read:user") == {"limit": 5}

    def test_update_is_written_back(self, tmp_path, make_config):
        path = tmp_path / "config.yaml"
        _write(path, {"GUILD_ID": 5, "FEATURES": ["read:user"], "read:config": {"verbose": False}})
        config = make_config("read:user", config_path=str(path))

        config.update_feature_config("read:user", {"limit": 3})

        saved = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert saved["read:user"] == {"limit": 3}
        assert saved["read:config"] == {"verbose": False}
        assert saved["GUILD_ID"] == 5
        assert saved["FEATURES"] == ["read:user"]

    def test_loaded_section_is_readable(self, tmp_path):
        path = tmp_path / "config.yaml"
        _write(path, {"DISCORD_TOKEN": "abc", "read:config": {"verbose": True}})
        config = ConfigManager.load(str(path))
        assert config.get_feature_config(Feature.READ_CONFIG) == {"verbose": True}

    def test_failed_write_keeps_previous_section(self, tmp_path, make_config):
        config = make_config(config_path=str(tmp_path / "missing-dir" / "config.yaml"))

        with pytest.raises(ConfigError):
            config.update_feature_config("read:user", {"limit": 3})
        assert config.get_feature_config("read:user") == {}
