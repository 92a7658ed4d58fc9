"""Database write-side data models.

Contains the normalized metadata record handed to the repository's upsert,
and the small result types the write path reports back.
"""

from __future__ import annotations

from dataclasses import dataclass

__all__ = [
    "CompanyRecord",
    "GameRecord",
    "UpsertResult",
]


@dataclass(frozen=True)
class CompanyRecord:
    """A company involved in a game, with its role flags for that game.

    Attributes:
        external_id: Catalog company ID (upsert key).
        name: Company display name.
        developer: True if the company developed this game.
        publisher: True if the company published this game.
    """

    external_id: int
    name: str
    developer: bool = False
    publisher: bool = False


@dataclass(frozen=True)
class GameRecord:
    """Normalized metadata for one game, as delivered by the metadata adapter.

    Every field except ``external_id`` and ``name`` is optional; absent
    relations are empty tuples.

    Attributes:
        external_id: Catalog game ID (upsert key).
        name: Display name.
        summary: Short description.
        storyline: Long-form story text.
        release_date: First release as Unix timestamp.
        cover: Catalog image ID of the cover.
        artworks: Catalog image IDs of artworks.
        genres: Genre names.
        companies: Involved companies with role flags.
        store_id: Storefront app ID the record was matched from.
    """

    external_id: int
    name: str
    summary: str | None = None
    storyline: str | None = None
    release_date: int | None = None
    cover: str | None = None
    artworks: tuple[str, ...] = ()
    genres: tuple[str, ...] = ()
    companies: tuple[CompanyRecord, ...] = ()
    store_id: str | None = None

    @property
    def developers(self) -> tuple[CompanyRecord, ...]:
        return tuple(c for c in self.companies if c.developer)

    @property
    def publishers(self) -> tuple[CompanyRecord, ...]:
        return tuple(c for c in self.companies if c.publisher)


@dataclass(frozen=True)
class UpsertResult:
    """Outcome of a single upsert_complete_game call."""

    game_id: int
    inserted: bool
