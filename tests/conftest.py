# tests/conftest.py
import os
from pathlib import Path
from typing import Any, Callable
from unittest.mock import MagicMock

# Ensure Qt can run headless (CI runners have no display server)
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PyQt6.QtWidgets import QApplication

from gameshelf.config import Config
from gameshelf.core.db import CompanyRecord, Database, GameRecord

STEAM_ID = "76561198000000001"


@pytest.fixture(scope="session")
def qapp():
    """QApplication instance for all Qt tests."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture
def db_path(tmp_path) -> Path:
    """Path of a not yet created library database."""
    return tmp_path / "data" / "gameshelf.db"


@pytest.fixture
def database(db_path):
    """Freshly migrated Database on a temp file."""
    db = Database(db_path)
    yield db
    db.close()


@pytest.fixture
def config(tmp_path) -> Config:
    """Valid Config that never reads the real environment."""
    return Config.from_mapping(
        {
            "STEAM_API_KEY": "steam-key",
            "STEAM_PROFILE_ID": STEAM_ID,
            "TWITCH_CLIENT_ID": "twitch-id",
            "TWITCH_CLIENT_SECRET": "twitch-secret",
            "DATA_DIR": str(tmp_path / "data"),
            "STEAM_PATH": str(tmp_path / "steam"),
        }
    )


@pytest.fixture
def make_record() -> Callable[..., GameRecord]:
    """Factory for GameRecord objects with sensible defaults."""

    def _make(external_id: int, name: str | None = None, **kwargs: Any) -> GameRecord:
        return GameRecord(external_id=external_id, name=name or f"Game {external_id}", **kwargs)

    return _make


@pytest.fixture
def sample_records() -> list[GameRecord]:
    """Three records: fully populated, partially populated and bare."""
    valve = CompanyRecord(external_id=56, name="Valve", developer=True, publisher=True)
    return [
        GameRecord(
            external_id=1905,
            name="Portal 2",
            summary="Sequel to Portal.",
            storyline="GLaDOS wakes up.",
            release_date=1303171200,
            cover="co1rs4",
            artworks=("ar5v1", "ar5v2"),
            genres=("Puzzle", "Platform"),
            companies=(valve,),
            store_id="620",
        ),
        GameRecord(
            external_id=1020,
            name="Grand Theft Auto V",
            release_date=1379376000,
            cover="co2lbd",
            genres=("Shooter", "Racing", "Adventure"),
            companies=(
                CompanyRecord(external_id=29, name="Rockstar North", developer=True),
                CompanyRecord(external_id=28, name="Rockstar Games", publisher=True),
            ),
            store_id="271590",
        ),
        GameRecord(external_id=7346, name="Untitled Prototype", store_id="1234560"),
    ]


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Factory for fake requests.Response objects."""

    def _make(status_code: int = 200, json_data: Any = None, headers: dict | None = None) -> MagicMock:
        response = MagicMock()
        response.status_code = status_code
        response.headers = headers or {}
        if isinstance(json_data, Exception):
            response.json.side_effect = json_data
        else:
            response.json.return_value = json_data
        response.content = b""
        return response

    return _make


@pytest.fixture
def steam_install(tmp_path) -> Path:
    """Fake Steam installation with a second library folder.

    Library 1 (Steam root): app 620 fully downloaded, app 271590 mid-download.
    Library 2: app 1234560 whose manifest has no download markers.
    """
    steam_path = tmp_path / "steam"
    second_library = tmp_path / "games"
    (steam_path / "steamapps").mkdir(parents=True)
    (second_library / "steamapps").mkdir(parents=True)

    (steam_path / "steamapps" / "libraryfolders.vdf").write_text(
        f"""
"libraryfolders"
{{
    "0"
    {{
        "path"      "{steam_path}"
    }}
    "1"
    {{
        "path"      "{second_library}"
    }}
    "2"
    {{
        "path"      "{tmp_path / 'missing'}"
    }}
}}
""",
        encoding="utf-8",
    )

    def manifest(folder: Path, app_id: int, extra: str) -> None:
        (folder / "steamapps" / f"appmanifest_{app_id}.acf").write_text(
            f"""
"AppState"
{{
    "appid"     "{app_id}"
    "name"      "App {app_id}"
    "installdir"    "App{app_id}"
{extra}
}}
""",
            encoding="utf-8",
        )

    manifest(steam_path, 620, '    "BytesToDownload"   "1000"\n    "BytesDownloaded"   "1000"')
    manifest(steam_path, 271590, '    "BytesToDownload"   "5000"\n    "BytesDownloaded"   "1200"')
    manifest(second_library, 1234560, "")
    return steam_path
