"""Service for caching game images locally.

Covers and artworks are downloaded from the IGDB image CDN into
``<assets_dir>/covers`` and ``<assets_dir>/artworks``, one JPEG per image id.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

from gameshelf.core.errors import ConnectivityError, GameShelfError, StorageError
from gameshelf.integrations.http_utils import send_request

if TYPE_CHECKING:
    from gameshelf.core.game import Game

logger = logging.getLogger("gameshelf.asset_service")

__all__ = ["AssetService", "CachedImages"]

_IMAGE_URL = "https://images.igdb.com/igdb/image/upload/{size}/{image_id}.jpg"
_COVER_SIZE = "t_cover_small"
_ARTWORK_SIZE = "t_1080p"
_MAX_ATTEMPTS = 3


@dataclass
class CachedImages:
    """Local paths of the images cached for one game.

    Attributes:
        cover: Local cover path, None if the game has none or it failed.
        artworks: Local artwork paths that are available.
        failed: Image ids that could not be downloaded.
    """

    cover: Path | None = None
    artworks: list[Path] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "cover": str(self.cover) if self.cover else None,
            "artworks": [str(p) for p in self.artworks],
            "failed": list(self.failed),
        }


class AssetService:
    """Downloads and locates cached game images.

    Attributes:
        assets_dir: Root directory of the image cache.
    """

    def __init__(self, assets_dir: Path) -> None:
        self.assets_dir = Path(assets_dir)

    @staticmethod
    def cover_url(image_id: str) -> str:
        return _IMAGE_URL.format(size=_COVER_SIZE, image_id=image_id)

    @staticmethod
    def artwork_url(image_id: str) -> str:
        return _IMAGE_URL.format(size=_ARTWORK_SIZE, image_id=image_id)

    def cover_path(self, image_id: str) -> Path:
        return self.assets_dir / "covers" / f"{image_id}.jpg"

    def artwork_path(self, image_id: str) -> Path:
        return self.assets_dir / "artworks" / f"{image_id}.jpg"

    def cache_game_images(self, game: Game) -> CachedImages:
        """Makes sure the cover and all artworks of a game are cached.

        Images already on disk are not downloaded again. A failed image is
        recorded and the remaining images are still attempted.

        Args:
            game: The game whose images to cache.

        Returns:
            Local paths of available images plus the ids that failed.
        """
        result = CachedImages()
        if game.cover:
            path = self._cache(self.cover_url(game.cover), self.cover_path(game.cover), game.cover, result)
            result.cover = path

        for image_id in game.artworks:
            path = self._cache(self.artwork_url(image_id), self.artwork_path(image_id), image_id, result)
            if path is not None:
                result.artworks.append(path)

        logger.info(
            "Cached images for game %d: cover=%s, %d artworks, %d failed",
            game.id,
            result.cover is not None,
            len(result.artworks),
            len(result.failed),
        )
        return result

    def _cache(self, url: str, target: Path, image_id: str, result: CachedImages) -> Path | None:
        try:
            return self.download(url, target)
        except GameShelfError as exc:
            logger.warning("Could not cache image %s: %s", image_id, exc.message)
            result.failed.append(image_id)
            return None

    def download(self, url: str, target: Path) -> Path:
        """Downloads one image unless it is already cached.

        Tries up to three times, waiting 1s and then 2s between attempts. The
        body is written to a ``.tmp`` sibling first and renamed into place,
        so a partial download never looks like a cached image.

        Args:
            url: Image URL.
            target: Final local path.

        Returns:
            The local path.

        Raises:
            ConnectivityError: If every attempt failed.
            StorageError: If the file cannot be written.
        """
        if target.exists():
            return target

        last_error: GameShelfError | None = None
        for attempt in range(_MAX_ATTEMPTS):
            try:
                response = send_request("GET", url, "IGDB images")
                if response.status_code != 200:
                    raise ConnectivityError(f"Image download failed with HTTP {response.status_code}")
                content = response.content
                break
            except GameShelfError as exc:
                last_error = exc
            if attempt < _MAX_ATTEMPTS - 1:
                time.sleep(2**attempt)
        else:
            raise ConnectivityError(f"Failed to download {url} after {_MAX_ATTEMPTS} attempts") from last_error

        tmp_path = target.with_suffix(target.suffix + ".tmp")
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(content)
            tmp_path.replace(target)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            raise StorageError(f"Could not write {target}: {exc}") from exc
        return target
