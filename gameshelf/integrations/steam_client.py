"""Local Steam client integration.

Reads appmanifest_*.acf files across all configured library folders to
answer "is this app installed?" and hands install/uninstall requests to
the running Steam client through steam:// URLs.
"""

from __future__ import annotations

import logging
from pathlib import Path

import vdf

from gameshelf.core.errors import ConfigurationMissingError, ConnectivityError
from gameshelf.utils.open_url import open_url

logger = logging.getLogger("gameshelf.steam_client")

__all__ = ["SteamClient"]


class SteamClient:
    """Install state and install/uninstall hand-off for the local Steam client.

    Attributes:
        steam_path: Root of the Steam installation, or None if not found.
        assume_installed_without_progress: Result reported for a manifest
            that carries no download progress markers.
    """

    def __init__(self, steam_path: Path | None, assume_installed_without_progress: bool = True) -> None:
        self.steam_path = steam_path
        self.assume_installed_without_progress = assume_installed_without_progress

    @property
    def steamapps_path(self) -> Path | None:
        return self.steam_path / "steamapps" if self.steam_path else None

    def get_library_folders(self) -> list[Path]:
        """Finds all Steam library folders based on libraryfolders.vdf.

        Returns:
            Library roots, Steam's own directory first. Empty if no Steam
            installation is known.
        """
        if self.steam_path is None:
            return []

        folders = [self.steam_path]
        candidates = [self.steam_path / "steamapps" / "libraryfolders.vdf", self.steam_path / "config" / "libraryfolders.vdf"]
        libraryfolders_vdf = next((p for p in candidates if p.exists()), None)
        if libraryfolders_vdf is None:
            logger.info("No libraryfolders.vdf found, using %s only", self.steam_path)
            return folders

        try:
            with open(libraryfolders_vdf, "r", encoding="utf-8") as f:
                data = vdf.load(f)
        except (OSError, ValueError, SyntaxError) as e:
            logger.error("Failed to read %s: %s", libraryfolders_vdf, e)
            return folders

        for value in data.get("libraryfolders", data).values():
            if not isinstance(value, dict) or not value.get("path"):
                continue
            path = Path(value["path"])
            if not path.exists():
                logger.info("Library folder %s does not exist", path)
            elif path not in folders:
                folders.append(path)
        return folders

    def find_manifest(self, store_id: str | int) -> Path | None:
        """Returns the appmanifest for an app ID, searching every library folder."""
        name = f"appmanifest_{store_id}.acf"
        for folder in self.get_library_folders():
            manifest = folder / "steamapps" / name
            if manifest.is_file():
                return manifest
        return None

    def is_installed(self, store_id: str | int) -> bool:
        """Reports whether Steam considers the app installed.

        No manifest means not installed. A manifest whose BytesToDownload
        equals BytesDownloaded means a finished download. A manifest without
        those markers (or one that cannot be parsed) is reported according
        to assume_installed_without_progress.

        Args:
            store_id: Steam app ID.

        Returns:
            True if installed.
        """
        manifest = self.find_manifest(store_id)
        if manifest is None:
            return False

        try:
            with open(manifest, "r", encoding="utf-8") as f:
                app_state = vdf.load(f).get("AppState", {})
        except (OSError, ValueError, SyntaxError) as e:
            logger.warning("Unreadable manifest %s: %s", manifest, e)
            return self.assume_installed_without_progress

        to_download = app_state.get("BytesToDownload")
        downloaded = app_state.get("BytesDownloaded")
        if to_download is None or downloaded is None:
            return self.assume_installed_without_progress

        try:
            return int(to_download) == int(downloaded)
        except ValueError:
            return self.assume_installed_without_progress

    def install(self, store_id: str | int) -> None:
        """Asks the Steam client to install an app."""
        self._open_steam_url("install", store_id)

    def uninstall(self, store_id: str | int) -> None:
        """Asks the Steam client to uninstall an app."""
        self._open_steam_url("uninstall", store_id)

    def _open_steam_url(self, action: str, store_id: str | int) -> None:
        """Dispatches a steam:// action URL.

        Raises:
            ConfigurationMissingError: If the store id is not a Steam app ID.
            ConnectivityError: If no handler accepted the URL.
        """
        app_id = str(store_id).strip()
        if not app_id.isdigit():
            raise ConfigurationMissingError("store_id", f"must be a numeric Steam app ID, got {store_id!r}")

        url = f"steam://{action}/{app_id}"
        logger.info("Requesting Steam %s for app %s", action, app_id)
        if not open_url(url):
            raise ConnectivityError(f"Could not hand {url} to the Steam client")
