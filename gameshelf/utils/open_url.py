"""Cross-environment URL opener.

Used for steam:// URLs. Prefers Qt's desktop services when a GUI
application is running, otherwise launches the platform opener with the
PyInstaller/AppImage library overrides removed.
"""

from __future__ import annotations

import logging
import os
import platform
import subprocess
import sys

logger = logging.getLogger("gameshelf.open_url")

__all__ = ["open_url"]


def open_url(url: str) -> bool:
    """Opens a URL with the system's registered handler.

    Args:
        url: The URL to open.

    Returns:
        True if a handler was launched, False otherwise.
    """
    frozen = getattr(sys, "frozen", False) or os.environ.get("APPIMAGE")
    if not frozen and _has_gui_application():
        from PyQt6.QtCore import QUrl
        from PyQt6.QtGui import QDesktopServices

        if QDesktopServices.openUrl(QUrl(url)):
            return True
        logger.warning("Qt could not open %s, trying the system opener", url)

    return _open_url_clean_env(url)


def _has_gui_application() -> bool:
    from PyQt6.QtGui import QGuiApplication

    return QGuiApplication.instance() is not None


def _open_url_clean_env(url: str) -> bool:
    """Opens a URL through the platform opener with a cleaned environment.

    Args:
        url: The URL to open.

    Returns:
        True if the subprocess was launched, False on error.
    """
    system = platform.system()
    if system == "Windows":
        try:
            os.startfile(url)  # type: ignore[attr-defined]
            return True
        except OSError as e:
            logger.error("Failed to open URL %s: %s", url, e)
            return False

    env = os.environ.copy()
    # PyInstaller saves originals as *_ORIG
    for key in ("LD_LIBRARY_PATH", "LD_PRELOAD"):
        orig_key = f"{key}_ORIG"
        if orig_key in env:
            env[key] = env[orig_key]
        elif key in env:
            del env[key]

    opener = "open" if system == "Darwin" else "xdg-open"
    try:
        subprocess.Popen(
            [opener, url],
            env=env,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        return True
    except OSError as e:
        logger.error("%s failed for %s: %s", opener, url, e)
        return False
