"""Tests for user settings and config."""

import json
from pathlib import Path

import pytest

from devtrack.config import Config
from devtrack.errors import ConfigError
from devtrack.settings import UserSettings, load_user_settings


class TestUserSettings:
    def test_defaults(self):
        settings = UserSettings()

        assert settings.scan.enabled is True
        assert settings.scan.interval_minutes == 30
        assert settings.scan.scan_on_startup is True
        assert settings.scan.auto_classify is True
        assert settings.scan.auto_summarize is True
        assert settings.version.auto_refresh is True
        assert settings.version.auto_milestones_from_tags is True
        assert settings.theme == "dark"
        assert settings.language == "en"

    def test_json_round_trip(self):
        settings = UserSettings().with_value("scan.auto_classify", "false").with_value("theme", "light")

        assert UserSettings.from_json(settings.to_json()) == settings

    def test_missing_fields_take_defaults(self):
        settings = UserSettings.from_json(json.dumps({"scan": {"interval_minutes": 5}}))

        assert settings.scan.interval_minutes == 5
        assert settings.scan.enabled is True
        assert settings.version == UserSettings().version

    def test_wrongly_typed_fields_take_defaults(self):
        data = {"scan": {"enabled": "yes", "interval_minutes": True}, "version": [], "theme": 3}

        settings = UserSettings.from_dict(data)

        assert settings.scan.enabled is True
        assert settings.scan.interval_minutes == 30
        assert settings.version == UserSettings().version
        assert settings.theme == "dark"

    def test_interval_is_clamped_to_one_minute(self):
        settings = UserSettings.from_dict({"scan": {"interval_minutes": 0}})

        assert settings.scan.interval_minutes == 1

    def test_invalid_json_raises(self):
        with pytest.raises(ConfigError):
            UserSettings.from_json("{broken")

    def test_non_object_raises(self):
        with pytest.raises(ConfigError):
            UserSettings.from_json("[1, 2]")

    def test_version_fields_survive_round_trip(self):
        blob = {
            "version": {
                "auto_refresh": True,
                "refresh_minutes": 30,
                "auto_milestones_from_tags": True,
                "auto_major_updates": False,
                "major_update_threshold": {"files_changed": 5, "additions": 100, "deletions": 50},
                "ai_create_mode": "auto",
            }
        }

        settings = UserSettings.from_dict(blob).with_value("scan.interval_minutes", "15")
        stored = json.loads(settings.to_json())

        assert stored["version"] == blob["version"]

    def test_unknown_ai_create_mode_falls_back(self):
        settings = UserSettings.from_dict({"version": {"ai_create_mode": "yolo"}})

        assert settings.version.ai_create_mode == "suggest"


class TestWithValue:
    @pytest.mark.parametrize("raw,expected", [("false", False), ("no", False), ("0", False), ("On", True)])
    def test_parses_booleans(self, raw: str, expected: bool):
        assert UserSettings().with_value("scan.enabled", raw).scan.enabled is expected

    def test_parses_integers(self):
        assert UserSettings().with_value("version.refresh_minutes", "10").version.refresh_minutes == 10

    def test_unknown_key(self):
        with pytest.raises(ConfigError, match="Unknown setting"):
            UserSettings().with_value("scan.bogus", "1")

    def test_nested_key(self):
        settings = UserSettings().with_value("version.major_update_threshold.additions", "250")

        assert settings.version.major_update_threshold.additions == 250
        assert settings.version.major_update_threshold.deletions == 500

    def test_section_is_not_settable(self):
        with pytest.raises(ConfigError, match="Unknown setting"):
            UserSettings().with_value("version.major_update_threshold", "1")

    def test_unknown_top_level_key(self):
        with pytest.raises(ConfigError, match="Unknown setting"):
            UserSettings().with_value("bogus", "1")

    def test_bad_integer(self):
        with pytest.raises(ConfigError, match="expects an integer"):
            UserSettings().with_value("scan.interval_minutes", "soon")

    def test_bad_boolean(self):
        with pytest.raises(ConfigError, match="expects true/false"):
            UserSettings().with_value("scan.enabled", "maybe")


class TestLoadUserSettings:
    def test_none_gives_defaults(self):
        assert load_user_settings(None) == UserSettings()

    def test_malformed_gives_defaults(self):
        assert load_user_settings("not json at all") == UserSettings()

    def test_valid_blob(self):
        assert load_user_settings('{"language": "de"}').language == "de"


class TestConfig:
    def test_database_path(self, tmp_path: Path):
        config = Config(data_dir=tmp_path)

        assert config.database_path == tmp_path / "devtrack.db"

    def test_from_env(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("DEVTRACK_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("DEVTRACK_AI_API_KEY", "secret")
        monkeypatch.setenv("DEVTRACK_AI_MODEL", "other-model")
        monkeypatch.delenv("DEVTRACK_AI_BASE_URL", raising=False)

        config = Config.from_env()

        assert config.data_dir == tmp_path
        assert config.ai.api_key == "secret"
        assert config.ai.model == "other-model"
        assert config.ai.base_url == "https://api.x.ai/v1"

    def test_from_env_without_key(self, monkeypatch):
        monkeypatch.delenv("DEVTRACK_AI_API_KEY", raising=False)

        assert Config.from_env().ai.api_key is None
