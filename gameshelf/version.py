"""
Central version management for Game Shelf.
"""

from __future__ import annotations

__all__ = ["__app_name__", "__version__", "__release_date__", "__license__"]

__app_name__ = "Game Shelf"
__version__ = "1.0.0"
__release_date__ = "2026-10-18"
__license__ = "MIT"
