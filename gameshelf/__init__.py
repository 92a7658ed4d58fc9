"""Game Shelf - local game library synced from Steam and IGDB."""

from gameshelf.version import __app_name__, __version__

__all__ = ["__app_name__", "__version__"]
