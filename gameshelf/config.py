"""
Configuration - validated settings for the sync core.
Reads defaults, settings.json, a .env file and the process environment,
in that order of precedence, and fails fast on missing credentials.
"""

from __future__ import annotations

import json
import logging
import os
import platform
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import dotenv_values, find_dotenv

from gameshelf.core.errors import ConfigurationMissingError

logger = logging.getLogger("gameshelf.config")

__all__ = ["Config", "load_config", "find_steam_path"]

_REQUIRED = ("STEAM_API_KEY", "STEAM_PROFILE_ID", "TWITCH_CLIENT_ID", "TWITCH_CLIENT_SECRET")
_MAX_METADATA_BATCH = 500
_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _default_data_dir() -> Path:
    return Path.home() / ".local" / "share" / "gameshelf"


@dataclass(frozen=True)
class Config:
    """
    Central configuration for the application.
    Holds credentials, paths and sync tuning. Built once by load_config().
    """

    STEAM_API_KEY: str
    STEAM_PROFILE_ID: str
    TWITCH_CLIENT_ID: str
    TWITCH_CLIENT_SECRET: str

    DATA_DIR: Path
    DB_PATH: Path
    STEAM_PATH: Path | None = None

    FUZZY_THRESHOLD: float = 0.3
    METADATA_BATCH_SIZE: int = _MAX_METADATA_BATCH
    RATE_LIMIT_RETRIES: int = 3

    # Open policy: manifest present but no download markers -> installed?
    ASSUME_INSTALLED_WITHOUT_PROGRESS: bool = True

    @property
    def ASSETS_DIR(self) -> Path:
        return self.DATA_DIR / "assets"

    @property
    def LOG_FILE(self) -> Path:
        return self.DATA_DIR / "gameshelf.log"

    @classmethod
    def from_mapping(cls, values: Mapping[str, str | None]) -> Config:
        """Builds a validated Config from a flat string mapping.

        Args:
            values: Setting name to raw value (environment-variable style).

        Returns:
            The validated configuration.

        Raises:
            ConfigurationMissingError: Naming the first missing or invalid setting.
        """
        for name in _REQUIRED:
            raw = values.get(name)
            if raw is None or not str(raw).strip():
                raise ConfigurationMissingError(name)

        profile_id = str(values["STEAM_PROFILE_ID"]).strip()
        if not (profile_id.isdigit() and len(profile_id) == 17):
            raise ConfigurationMissingError("STEAM_PROFILE_ID", "must be a 17-digit SteamID64")

        data_dir = Path(values["DATA_DIR"]).expanduser() if values.get("DATA_DIR") else _default_data_dir()
        db_path = Path(values["DB_PATH"]).expanduser() if values.get("DB_PATH") else data_dir / "gameshelf.db"

        steam_path = Path(values["STEAM_PATH"]).expanduser() if values.get("STEAM_PATH") else find_steam_path()

        threshold = _parse_float(values, "FUZZY_THRESHOLD", 0.3)
        if not 0.0 <= threshold <= 1.0:
            raise ConfigurationMissingError("FUZZY_THRESHOLD", "must be between 0 and 1")

        batch_size = _parse_int(values, "METADATA_BATCH_SIZE", _MAX_METADATA_BATCH)
        if not 1 <= batch_size <= _MAX_METADATA_BATCH:
            raise ConfigurationMissingError("METADATA_BATCH_SIZE", f"must be between 1 and {_MAX_METADATA_BATCH}")

        retries = _parse_int(values, "RATE_LIMIT_RETRIES", 3)
        if retries < 0:
            raise ConfigurationMissingError("RATE_LIMIT_RETRIES", "must not be negative")

        return cls(
            STEAM_API_KEY=str(values["STEAM_API_KEY"]).strip(),
            STEAM_PROFILE_ID=profile_id,
            TWITCH_CLIENT_ID=str(values["TWITCH_CLIENT_ID"]).strip(),
            TWITCH_CLIENT_SECRET=str(values["TWITCH_CLIENT_SECRET"]).strip(),
            DATA_DIR=data_dir,
            DB_PATH=db_path,
            STEAM_PATH=steam_path,
            FUZZY_THRESHOLD=threshold,
            METADATA_BATCH_SIZE=batch_size,
            RATE_LIMIT_RETRIES=retries,
            ASSUME_INSTALLED_WITHOUT_PROGRESS=_parse_bool(values, "ASSUME_INSTALLED_WITHOUT_PROGRESS", True),
        )


def load_config(
    settings_file: Path | None = None,
    env_file: str | os.PathLike[str] | None = None,
    environ: Mapping[str, str] | None = None,
) -> Config:
    """Loads configuration from all sources and validates it.

    Args:
        settings_file: Optional settings.json path. Defaults to the one in
            the default data directory.
        env_file: Optional .env path. Defaults to the nearest .env found
            from the working directory upwards.
        environ: Process environment override (defaults to os.environ).

    Returns:
        The validated configuration.

    Raises:
        ConfigurationMissingError: If a required setting is missing or invalid.
    """
    values: dict[str, str | None] = {}

    settings_path = settings_file or _default_data_dir() / "settings.json"
    values.update(_read_settings(settings_path))

    dotenv_path = env_file if env_file is not None else find_dotenv(usecwd=True)
    if dotenv_path:
        values.update({k: v for k, v in dotenv_values(dotenv_path).items() if v is not None})

    source = os.environ if environ is None else environ
    for key in source:
        if key in Config.__dataclass_fields__:
            values[key] = source[key]

    return Config.from_mapping(values)


def _read_settings(path: Path) -> dict[str, str]:
    """Load settings.json, tolerating a missing or broken file."""
    if not path.exists():
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error("Could not read settings file %s: %s", path, e)
        return {}

    if not isinstance(data, dict):
        logger.error("Settings file %s does not contain an object", path)
        return {}

    return {str(k).upper(): str(v) for k, v in data.items() if v is not None}


def _parse_int(values: Mapping[str, str | None], name: str, default: int) -> int:
    raw = values.get(name)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return int(str(raw).strip())
    except ValueError:
        raise ConfigurationMissingError(name, "must be an integer") from None


def _parse_float(values: Mapping[str, str | None], name: str, default: float) -> float:
    raw = values.get(name)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        return float(str(raw).strip())
    except ValueError:
        raise ConfigurationMissingError(name, "must be a number") from None


def _parse_bool(values: Mapping[str, str | None], name: str, default: bool) -> bool:
    raw = values.get(name)
    if raw is None or str(raw).strip() == "":
        return default
    lowered = str(raw).strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise ConfigurationMissingError(name, "must be true or false")


def find_steam_path() -> Path | None:
    """Auto-detect the Steam installation on Linux and Windows."""
    system = platform.system()

    if system == "Windows":
        try:
            import winreg

            key = winreg.OpenKey(winreg.HKEY_CURRENT_USER, r"Software\Valve\Steam")
            path_str, _ = winreg.QueryValueEx(key, "SteamPath")
            path = Path(path_str)
            if path.exists():
                return path
        except OSError:
            # Fallback to standard paths if registry fails
            common_paths = [Path(r"C:\Program Files (x86)\Steam"), Path(r"C:\Program Files\Steam")]
            for p in common_paths:
                if p.exists():
                    return p

    else:
        paths = [
            Path.home() / ".steam" / "steam",
            Path.home() / ".local" / "share" / "Steam",
        ]
        for p in paths:
            if p.exists():
                return p.resolve() if p.is_symlink() else p

    return None
