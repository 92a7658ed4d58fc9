"""Tests for the AssetService."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
import requests

from gameshelf.core.errors import ConnectivityError
from gameshelf.core.game import Game
from gameshelf.services.asset_service import AssetService

REQUEST = "gameshelf.integrations.http_utils.requests.request"
SLEEP = "gameshelf.services.asset_service.time.sleep"


@pytest.fixture
def assets(tmp_path) -> AssetService:
    return AssetService(tmp_path / "assets")


def _image(make_response, status_code: int = 200, body: bytes = b"\xff\xd8jpeg"):
    response = make_response(status_code)
    response.content = body
    return response


class TestUrlsAndPaths:
    """IGDB CDN URLs and cache locations."""

    def test_cover_url(self) -> None:
        assert AssetService.cover_url("co1rs4") == "https://images.igdb.com/igdb/image/upload/t_cover_small/co1rs4.jpg"

    def test_artwork_url(self) -> None:
        assert AssetService.artwork_url("ar5v1") == "https://images.igdb.com/igdb/image/upload/t_1080p/ar5v1.jpg"

    def test_paths(self, assets, tmp_path) -> None:
        assert assets.cover_path("co1") == tmp_path / "assets" / "covers" / "co1.jpg"
        assert assets.artwork_path("ar1") == tmp_path / "assets" / "artworks" / "ar1.jpg"


class TestDownload:
    """download() retries and writes atomically."""

    @patch(SLEEP)
    def test_written(self, mock_sleep: MagicMock, assets, make_response) -> None:
        target = assets.cover_path("co1")
        with patch(REQUEST, return_value=_image(make_response)):
            assert assets.download("https://x.invalid/co1.jpg", target) == target
        assert target.read_bytes() == b"\xff\xd8jpeg"
        assert not target.with_suffix(".jpg.tmp").exists()
        mock_sleep.assert_not_called()

    def test_existing_file_not_downloaded(self, assets) -> None:
        target = assets.cover_path("co1")
        target.parent.mkdir(parents=True)
        target.write_bytes(b"cached")
        with patch(REQUEST) as mock_request:
            assets.download("https://x.invalid/co1.jpg", target)
        mock_request.assert_not_called()

    @patch(SLEEP)
    def test_retried_then_succeeds(self, mock_sleep: MagicMock, assets, make_response) -> None:
        responses = [_image(make_response, 503), _image(make_response)]
        with patch(REQUEST, side_effect=responses):
            assets.download("https://x.invalid/co1.jpg", assets.cover_path("co1"))
        mock_sleep.assert_called_once_with(1)

    @patch(SLEEP)
    def test_gives_up_after_three_attempts(self, mock_sleep: MagicMock, assets) -> None:
        target = assets.cover_path("co1")
        with patch(REQUEST, side_effect=requests.exceptions.ConnectionError("down")) as mock_request:
            with pytest.raises(ConnectivityError, match="after 3 attempts"):
                assets.download("https://x.invalid/co1.jpg", target)
        assert mock_request.call_count == 3
        assert [c.args[0] for c in mock_sleep.call_args_list] == [1, 2]
        assert not target.exists()


class TestCacheGameImages:
    """cache_game_images collects paths and failures."""

    @patch(SLEEP)
    def test_cover_and_artworks(self, _sleep, assets, make_response) -> None:
        game = Game(id=1, external_id=1905, name="Portal 2", cover="co1rs4", artworks=["ar5v1", "ar5v2"])
        with patch(REQUEST, return_value=_image(make_response)):
            cached = assets.cache_game_images(game)
        assert cached.cover == assets.cover_path("co1rs4")
        assert cached.artworks == [assets.artwork_path("ar5v1"), assets.artwork_path("ar5v2")]
        assert cached.failed == []

    @patch(SLEEP)
    def test_failed_image_does_not_stop_others(self, _sleep, assets, make_response) -> None:
        game = Game(id=1, external_id=1905, name="Portal 2", cover="co1rs4", artworks=["ar5v1"])
        responses = [_image(make_response, 404)] * 3 + [_image(make_response)]
        with patch(REQUEST, side_effect=responses):
            cached = assets.cache_game_images(game)
        assert cached.cover is None
        assert cached.failed == ["co1rs4"]
        assert cached.to_dict()["artworks"] == [str(assets.artwork_path("ar5v1"))]

    def test_game_without_images(self, assets) -> None:
        with patch(REQUEST) as mock_request:
            cached = assets.cache_game_images(Game(id=3, external_id=7346, name="Untitled Prototype"))
        mock_request.assert_not_called()
        assert cached.to_dict() == {"cover": None, "artworks": [], "failed": []}
