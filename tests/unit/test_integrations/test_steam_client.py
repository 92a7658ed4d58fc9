"""Tests for the local Steam client integration."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from gameshelf.core.errors import ConfigurationMissingError, ConnectivityError
from gameshelf.integrations.steam_client import SteamClient

OPEN_URL = "gameshelf.integrations.steam_client.open_url"


class TestLibraryFolders:
    """Discovery of library folders through libraryfolders.vdf."""

    def test_all_existing_folders_found(self, steam_install, tmp_path) -> None:
        folders = SteamClient(steam_install).get_library_folders()
        assert folders == [steam_install, tmp_path / "games"]

    def test_without_vdf_only_root(self, tmp_path) -> None:
        steam_path = tmp_path / "steam"
        (steam_path / "steamapps").mkdir(parents=True)
        assert SteamClient(steam_path).get_library_folders() == [steam_path]

    def test_no_steam_path(self) -> None:
        client = SteamClient(None)
        assert client.get_library_folders() == []
        assert client.is_installed("620") is False

    def test_broken_vdf_falls_back_to_root(self, tmp_path) -> None:
        steam_path = tmp_path / "steam"
        (steam_path / "steamapps").mkdir(parents=True)
        (steam_path / "steamapps" / "libraryfolders.vdf").write_text('"libraryfolders"\n{\n  "0"\n', encoding="utf-8")
        assert SteamClient(steam_path).get_library_folders() == [steam_path]


class TestIsInstalled:
    """Install state from appmanifest files."""

    def test_completed_download_installed(self, steam_install) -> None:
        assert SteamClient(steam_install).is_installed("620") is True

    def test_partial_download_not_installed(self, steam_install) -> None:
        assert SteamClient(steam_install).is_installed(271590) is False

    def test_no_manifest_not_installed(self, steam_install) -> None:
        assert SteamClient(steam_install).is_installed("440") is False

    def test_manifest_in_second_library_found(self, steam_install, tmp_path) -> None:
        manifest = SteamClient(steam_install).find_manifest("1234560")
        assert manifest == tmp_path / "games" / "steamapps" / "appmanifest_1234560.acf"

    @pytest.mark.parametrize("assume", [True, False])
    def test_missing_markers_follow_policy(self, steam_install, assume) -> None:
        client = SteamClient(steam_install, assume_installed_without_progress=assume)
        assert client.is_installed("1234560") is assume

    def test_unreadable_manifest_follows_policy(self, steam_install) -> None:
        (steam_install / "steamapps" / "appmanifest_99.acf").write_text('"AppState"\n{\n', encoding="utf-8")
        assert SteamClient(steam_install, assume_installed_without_progress=False).is_installed("99") is False
        assert SteamClient(steam_install, assume_installed_without_progress=True).is_installed("99") is True


class TestInstallRequests:
    """install / uninstall hand steam:// URLs to the OS."""

    @patch(OPEN_URL, return_value=True)
    def test_install_url(self, mock_open: MagicMock) -> None:
        SteamClient(None).install("620")
        mock_open.assert_called_once_with("steam://install/620")

    @patch(OPEN_URL, return_value=True)
    def test_uninstall_url(self, mock_open: MagicMock) -> None:
        SteamClient(None).uninstall(620)
        mock_open.assert_called_once_with("steam://uninstall/620")

    @patch(OPEN_URL, return_value=True)
    def test_non_numeric_store_id_rejected(self, mock_open: MagicMock) -> None:
        with pytest.raises(ConfigurationMissingError):
            SteamClient(None).install("620; rm -rf /")
        mock_open.assert_not_called()

    @patch(OPEN_URL, return_value=False)
    def test_opener_failure(self, mock_open: MagicMock) -> None:
        with pytest.raises(ConnectivityError):
            SteamClient(None).install("620")


class TestOpenUrl:
    """The platform fallback of open_url."""

    @patch("gameshelf.utils.open_url._has_gui_application", return_value=False)
    @patch("gameshelf.utils.open_url.platform.system", return_value="Linux")
    @patch("gameshelf.utils.open_url.subprocess.Popen")
    def test_xdg_open_with_clean_env(self, mock_popen: MagicMock, _system, _gui, monkeypatch) -> None:
        from gameshelf.utils.open_url import open_url

        monkeypatch.setenv("LD_LIBRARY_PATH", "/bundle/lib")
        monkeypatch.setenv("LD_LIBRARY_PATH_ORIG", "/usr/lib")
        monkeypatch.setenv("LD_PRELOAD", "/bundle/preload.so")

        assert open_url("steam://install/620") is True
        args, kwargs = mock_popen.call_args
        assert args[0] == ["xdg-open", "steam://install/620"]
        assert kwargs["env"]["LD_LIBRARY_PATH"] == "/usr/lib"
        assert "LD_PRELOAD" not in kwargs["env"]

    @patch("gameshelf.utils.open_url._has_gui_application", return_value=False)
    @patch("gameshelf.utils.open_url.platform.system", return_value="Linux")
    @patch("gameshelf.utils.open_url.subprocess.Popen", side_effect=FileNotFoundError("xdg-open"))
    def test_missing_opener_returns_false(self, _popen, _system, _gui) -> None:
        from gameshelf.utils.open_url import open_url

        assert open_url("steam://install/620") is False
