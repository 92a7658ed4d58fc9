"""IGDB API client for batched game metadata retrieval.

Resolves Steam app IDs to IGDB games through the external_games endpoint,
then fetches full game records (cover, artworks, genres, involved
companies) in chunks of at most 500 ids, the per-request cap IGDB
enforces. A record that cannot be parsed is skipped; the rest of its
batch is kept.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Iterable, Iterator

from gameshelf.core.db.models import CompanyRecord, GameRecord
from gameshelf.core.errors import ConnectivityError, MalformedRecordError
from gameshelf.integrations.http_utils import send_request
from gameshelf.integrations.twitch_auth import TwitchTokenProvider

logger = logging.getLogger("gameshelf.igdb")

__all__ = ["IGDBClient", "MetadataBatch", "MAX_BATCH_SIZE", "parse_game"]

MAX_BATCH_SIZE = 500
STEAM_SOURCE = 1

_API_URL = "https://api.igdb.com/v4"
_GAME_FIELDS = (
    "name, summary, storyline, first_release_date, cover.image_id, artworks.image_id, genres.name, "
    "involved_companies.developer, involved_companies.publisher, "
    "involved_companies.company.id, involved_companies.company.name"
)


@dataclass
class MetadataBatch:
    """Result of one upstream batch.

    Attributes:
        records: Successfully parsed records.
        failures: One MalformedRecordError per skipped record.
    """

    records: list[GameRecord] = field(default_factory=list)
    failures: list[MalformedRecordError] = field(default_factory=list)


class IGDBClient:
    """Batched IGDB client.

    Requests carry the Twitch client ID and a bearer token; a 401 refreshes
    the token and retries the request once.

    Attributes:
        tokens: Token provider used for authentication.
        batch_size: Ids per upstream request (1..500).
    """

    def __init__(self, tokens: TwitchTokenProvider, batch_size: int = MAX_BATCH_SIZE) -> None:
        """Initializes the IGDB client.

        Args:
            tokens: Twitch token provider.
            batch_size: Ids per request, capped at 500.

        Raises:
            ValueError: If batch_size is outside 1..500.
        """
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}")
        self.tokens = tokens
        self.batch_size = batch_size

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk_ids(self, ids: Iterable[Any]) -> list[list[str]]:
        """Deduplicates ids (keeping first-seen order) and splits them into batches.

        Args:
            ids: Steam app IDs or IGDB game IDs.

        Returns:
            Lists of at most batch_size ids, as strings.
        """
        unique = list(dict.fromkeys(str(i).strip() for i in ids if str(i).strip()))
        return [unique[i : i + self.batch_size] for i in range(0, len(unique), self.batch_size)]

    def fetch_metadata(self, store_ids: Iterable[Any]) -> Iterator[GameRecord]:
        """Lazily yields metadata for Steam app IDs, batch by batch.

        Convenience API for callers that just want every record and do not
        need to stop between batches. The sync orchestrator pages with
        chunk_ids() and fetch_store_batch() itself so it can cancel, back off
        and report per-record failures.

        Ids unknown to IGDB are simply absent from the output; malformed
        records are logged and skipped.

        Args:
            store_ids: Steam app IDs.

        Yields:
            One GameRecord per matched game, store_id set.

        Raises:
            ConnectivityError: On network failure, timeout or server error.
            RateLimitedError: If IGDB rate limits a request.
        """
        chunks = self.chunk_ids(store_ids)
        for idx, chunk in enumerate(chunks):
            logger.info("Fetching IGDB batch %d/%d (%d ids)", idx + 1, len(chunks), len(chunk))
            batch = self.fetch_store_batch(chunk)
            for failure in batch.failures:
                logger.warning("Skipping malformed IGDB record %s: %s", failure.record_id, failure.message)
            yield from batch.records

    def fetch_metadata_by_catalog_ids(self, igdb_ids: Iterable[Any]) -> Iterator[GameRecord]:
        """Lazily yields metadata for IGDB game IDs, batch by batch.

        Same convenience API as fetch_metadata(), for catalog ids.

        Args:
            igdb_ids: IGDB game IDs.

        Yields:
            One GameRecord per found game (store_id unset).
        """
        for chunk in self.chunk_ids(igdb_ids):
            batch = self.fetch_catalog_batch(chunk)
            for failure in batch.failures:
                logger.warning("Skipping malformed IGDB record %s: %s", failure.record_id, failure.message)
            yield from batch.records

    def fetch_store_batch(self, store_ids: list[str]) -> MetadataBatch:
        """Fetches one batch of metadata for at most batch_size Steam app IDs.

        Args:
            store_ids: Steam app IDs (already deduplicated).

        Returns:
            Parsed records plus per-record failures.
        """
        self._check_batch(store_ids)
        store_by_game = self._resolve_store_ids(store_ids)
        if not store_by_game:
            return MetadataBatch()

        raw_games = self._query_games(list(store_by_game))
        return self._parse_batch(raw_games, store_by_game)

    def fetch_catalog_batch(self, igdb_ids: list[str]) -> MetadataBatch:
        """Fetches one batch of metadata for at most batch_size IGDB game IDs."""
        self._check_batch(igdb_ids)
        try:
            game_ids = [int(i) for i in igdb_ids]
        except ValueError as exc:
            raise ValueError(f"IGDB game ids must be integers: {exc}") from exc
        if not game_ids:
            return MetadataBatch()
        return self._parse_batch(self._query_games(game_ids), {})

    # ------------------------------------------------------------------
    # Upstream requests
    # ------------------------------------------------------------------

    def _resolve_store_ids(self, store_ids: list[str]) -> dict[int, str]:
        """Maps IGDB game IDs to the Steam app IDs they were found by.

        Each Steam app ID maps to at most one IGDB game and each game keeps
        the first Steam app ID that matched it.
        """
        uids = ",".join(f'"{uid}"' for uid in store_ids)
        query = f"fields game, uid; where external_game_source = {STEAM_SOURCE} & uid = ({uids}); limit {len(store_ids)};"
        rows = self._post("external_games", query)

        store_by_game: dict[int, str] = {}
        seen_uids: set[str] = set()
        for row in rows:
            if not isinstance(row, dict):
                continue
            game_id = row.get("game")
            uid = row.get("uid")
            if not isinstance(game_id, int) or uid is None:
                continue
            uid = str(uid)
            if uid in seen_uids or game_id in store_by_game:
                continue
            seen_uids.add(uid)
            store_by_game[game_id] = uid

        logger.debug("Resolved %d of %d Steam ids to IGDB games", len(store_by_game), len(store_ids))
        return store_by_game

    def _query_games(self, game_ids: list[int]) -> list[Any]:
        ids = ",".join(str(i) for i in game_ids)
        query = f"fields {_GAME_FIELDS}; where id = ({ids}); limit {len(game_ids)};"
        return self._post("games", query)

    def _post(self, endpoint: str, query: str) -> list[Any]:
        """Sends an Apicalypse query and returns the decoded JSON list.

        Raises:
            ConnectivityError: On transport failure, non-200 status or a non-list body.
            RateLimitedError: On HTTP 429.
        """
        url = f"{_API_URL}/{endpoint}"
        response = send_request("POST", url, "IGDB", headers=self._headers(self.tokens.get_token()), data=query)

        if response.status_code == 401:
            logger.info("IGDB token rejected, refreshing")
            token = self.tokens.refresh_token()
            response = send_request("POST", url, "IGDB", headers=self._headers(token), data=query)

        if response.status_code != 200:
            raise ConnectivityError(f"IGDB {endpoint} request failed with HTTP {response.status_code}")

        try:
            data = response.json()
        except ValueError as exc:
            raise ConnectivityError(f"IGDB {endpoint} returned invalid JSON") from exc

        if not isinstance(data, list):
            raise ConnectivityError(f"IGDB {endpoint} returned an unexpected payload")
        return data

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Client-ID": self.tokens.client_id,
            "Authorization": f"Bearer {token}",
            "Accept": "application/json",
        }

    def _check_batch(self, ids: list[str]) -> None:
        if len(ids) > self.batch_size:
            raise ValueError(f"Batch of {len(ids)} ids exceeds the limit of {self.batch_size}")

    @staticmethod
    def _parse_batch(raw_games: list[Any], store_by_game: dict[int, str]) -> MetadataBatch:
        batch = MetadataBatch()
        seen: set[int] = set()
        for raw in raw_games:
            try:
                record = parse_game(raw)
            except MalformedRecordError as exc:
                batch.failures.append(exc)
                continue
            if record.external_id in seen:
                continue
            seen.add(record.external_id)
            store_id = store_by_game.get(record.external_id)
            if store_id is not None:
                record = replace(record, store_id=store_id)
            batch.records.append(record)
        return batch


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------


def parse_game(raw: Any) -> GameRecord:
    """Parses a raw IGDB game dict into a GameRecord.

    Only ``id`` and ``name`` are required. Every other field may be
    missing or of an unexpected shape, in which case it is left empty.
    Developer and publisher roles come from the per-involvement flags.

    Args:
        raw: Single game object from the IGDB response.

    Returns:
        The normalized record.

    Raises:
        MalformedRecordError: If the record has no usable id or name.
    """
    if not isinstance(raw, dict):
        raise MalformedRecordError(f"Expected an object, got {type(raw).__name__}")

    game_id = raw.get("id")
    if not isinstance(game_id, int) or isinstance(game_id, bool):
        raise MalformedRecordError("Record has no integer id", record_id=game_id)

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise MalformedRecordError("Record has no name", record_id=game_id)

    cover = raw.get("cover")
    cover_id = cover.get("image_id") if isinstance(cover, dict) else None

    return GameRecord(
        external_id=game_id,
        name=name.strip(),
        summary=_optional_str(raw.get("summary")),
        storyline=_optional_str(raw.get("storyline")),
        release_date=_optional_int(raw.get("first_release_date")),
        cover=cover_id if isinstance(cover_id, str) and cover_id else None,
        artworks=_image_ids(raw.get("artworks")),
        genres=_genre_names(raw.get("genres")),
        companies=_companies(raw.get("involved_companies")),
    )


def _optional_str(value: Any) -> str | None:
    return value if isinstance(value, str) and value.strip() else None


def _optional_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return None


def _image_ids(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    ids = [item.get("image_id") for item in value if isinstance(item, dict)]
    return tuple(dict.fromkeys(i for i in ids if isinstance(i, str) and i))


def _genre_names(value: Any) -> tuple[str, ...]:
    if not isinstance(value, list):
        return ()
    names = [item.get("name") for item in value if isinstance(item, dict)]
    return tuple(dict.fromkeys(n.strip() for n in names if isinstance(n, str) and n.strip()))


def _companies(value: Any) -> tuple[CompanyRecord, ...]:
    """Collects involved companies with their role flags for this game."""
    if not isinstance(value, list):
        return ()

    companies: list[CompanyRecord] = []
    for involvement in value:
        if not isinstance(involvement, dict):
            continue
        company = involvement.get("company")
        if not isinstance(company, dict):
            continue
        company_id = company.get("id")
        company_name = company.get("name")
        if not isinstance(company_id, int) or not isinstance(company_name, str) or not company_name.strip():
            logger.debug("Ignoring incomplete involved company: %r", involvement)
            continue
        companies.append(
            CompanyRecord(
                external_id=company_id,
                name=company_name.strip(),
                developer=involvement.get("developer") is True,
                publisher=involvement.get("publisher") is True,
            )
        )
    return tuple(companies)
