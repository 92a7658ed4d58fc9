"""Tests for configuration loading and validation."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from gameshelf.config import Config, load_config
from gameshelf.core.errors import ConfigurationMissingError

STEAM_ID = "76561198000000001"


@pytest.fixture
def base_values(tmp_path) -> dict[str, str]:
    return {
        "STEAM_API_KEY": "key",
        "STEAM_PROFILE_ID": STEAM_ID,
        "TWITCH_CLIENT_ID": "cid",
        "TWITCH_CLIENT_SECRET": "secret",
        "DATA_DIR": str(tmp_path / "data"),
        "STEAM_PATH": str(tmp_path / "steam"),
    }


class TestFromMapping:
    """Validation of raw values."""

    def test_defaults(self, base_values, tmp_path) -> None:
        config = Config.from_mapping(base_values)
        assert config.FUZZY_THRESHOLD == 0.3
        assert config.METADATA_BATCH_SIZE == 500
        assert config.RATE_LIMIT_RETRIES == 3
        assert config.ASSUME_INSTALLED_WITHOUT_PROGRESS is True
        assert config.DB_PATH == tmp_path / "data" / "gameshelf.db"
        assert config.ASSETS_DIR == tmp_path / "data" / "assets"
        assert config.STEAM_PATH == tmp_path / "steam"

    @pytest.mark.parametrize(
        "field", ["STEAM_API_KEY", "STEAM_PROFILE_ID", "TWITCH_CLIENT_ID", "TWITCH_CLIENT_SECRET"]
    )
    def test_missing_required_field_named(self, base_values, field) -> None:
        del base_values[field]
        with pytest.raises(ConfigurationMissingError) as exc_info:
            Config.from_mapping(base_values)
        assert exc_info.value.field == field
        assert field in exc_info.value.message

    def test_blank_required_field_rejected(self, base_values) -> None:
        base_values["TWITCH_CLIENT_SECRET"] = "   "
        with pytest.raises(ConfigurationMissingError, match="TWITCH_CLIENT_SECRET"):
            Config.from_mapping(base_values)

    @pytest.mark.parametrize("value", ["12345", "7656119800000000X", "765611980000000011"])
    def test_invalid_profile_id(self, base_values, value) -> None:
        base_values["STEAM_PROFILE_ID"] = value
        with pytest.raises(ConfigurationMissingError, match="17-digit"):
            Config.from_mapping(base_values)

    def test_values_are_stripped(self, base_values) -> None:
        base_values["STEAM_API_KEY"] = "  key  "
        assert Config.from_mapping(base_values).STEAM_API_KEY == "key"

    def test_optional_overrides(self, base_values) -> None:
        base_values.update(
            {
                "FUZZY_THRESHOLD": "0.5",
                "METADATA_BATCH_SIZE": "100",
                "RATE_LIMIT_RETRIES": "0",
                "ASSUME_INSTALLED_WITHOUT_PROGRESS": "false",
                "DB_PATH": "/tmp/other.db",
            }
        )
        config = Config.from_mapping(base_values)
        assert config.FUZZY_THRESHOLD == 0.5
        assert config.METADATA_BATCH_SIZE == 100
        assert config.RATE_LIMIT_RETRIES == 0
        assert config.ASSUME_INSTALLED_WITHOUT_PROGRESS is False
        assert config.DB_PATH == Path("/tmp/other.db")

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("FUZZY_THRESHOLD", "1.5"),
            ("FUZZY_THRESHOLD", "abc"),
            ("METADATA_BATCH_SIZE", "501"),
            ("METADATA_BATCH_SIZE", "0"),
            ("RATE_LIMIT_RETRIES", "-1"),
            ("ASSUME_INSTALLED_WITHOUT_PROGRESS", "maybe"),
        ],
    )
    def test_invalid_optional_values(self, base_values, field, value) -> None:
        base_values[field] = value
        with pytest.raises(ConfigurationMissingError) as exc_info:
            Config.from_mapping(base_values)
        assert exc_info.value.field == field

    def test_config_is_frozen(self, base_values) -> None:
        config = Config.from_mapping(base_values)
        with pytest.raises(AttributeError):
            config.STEAM_API_KEY = "changed"  # type: ignore[misc]


class TestLoadConfig:
    """Merging settings.json, .env and the environment."""

    def test_environment_only(self, base_values, tmp_path) -> None:
        config = load_config(
            settings_file=tmp_path / "missing.json",
            env_file=str(tmp_path / "missing.env"),
            environ=base_values,
        )
        assert config.STEAM_API_KEY == "key"

    def test_precedence(self, base_values, tmp_path) -> None:
        settings = tmp_path / "settings.json"
        settings.write_text(
            json.dumps({"steam_api_key": "from-settings", "fuzzy_threshold": 0.4, "rate_limit_retries": 5}),
            encoding="utf-8",
        )
        env_file = tmp_path / ".env"
        env_file.write_text("STEAM_API_KEY=from-dotenv\nFUZZY_THRESHOLD=0.45\n", encoding="utf-8")

        environ = dict(base_values)
        environ["STEAM_API_KEY"] = "from-environ"
        environ["UNRELATED"] = "ignored"

        config = load_config(settings_file=settings, env_file=str(env_file), environ=environ)
        assert config.STEAM_API_KEY == "from-environ"
        assert config.FUZZY_THRESHOLD == 0.45
        assert config.RATE_LIMIT_RETRIES == 5

    def test_dotenv_supplies_credentials(self, base_values, tmp_path) -> None:
        env_file = tmp_path / ".env"
        env_file.write_text(
            "\n".join(f"{k}={v}" for k, v in base_values.items() if k.startswith(("STEAM_", "TWITCH_"))),
            encoding="utf-8",
        )
        config = load_config(
            settings_file=tmp_path / "missing.json",
            env_file=str(env_file),
            environ={"DATA_DIR": base_values["DATA_DIR"]},
        )
        assert config.TWITCH_CLIENT_ID == "cid"

    def test_broken_settings_file_ignored(self, base_values, tmp_path) -> None:
        settings = tmp_path / "settings.json"
        settings.write_text("{not json", encoding="utf-8")
        config = load_config(settings_file=settings, env_file=str(tmp_path / "missing.env"), environ=base_values)
        assert config.STEAM_API_KEY == "key"

    def test_missing_credentials_fail_fast(self, tmp_path) -> None:
        with pytest.raises(ConfigurationMissingError, match="STEAM_API_KEY"):
            load_config(settings_file=tmp_path / "missing.json", env_file=str(tmp_path / "missing.env"), environ={})
