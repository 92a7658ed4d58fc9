"""Game read model returned by list/get queries.

One Game instance per games row, with each relation already aggregated.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any

__all__ = ["Game"]


@dataclass
class Game:
    """A fully resolved game, ready to hand to the UI.

    Relation lists are empty (never None) when the game has no rows for
    them. ``is_installed`` is not stored; it stays None until a caller
    checks the local storefront client.
    """

    id: int
    external_id: int
    name: str
    summary: str | None = None
    storyline: str | None = None
    release_date: int | None = None  # Unix timestamp
    cover: str | None = None
    artworks: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    developers: list[str] = field(default_factory=list)
    publishers: list[str] = field(default_factory=list)
    store_id: str | None = None
    is_installed: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        """Returns a JSON-serializable dict of this game."""
        return asdict(self)
