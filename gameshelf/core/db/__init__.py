"""Database module.

All mixins compose into the Database class via multiple inheritance.
The MRO (Method Resolution Order) ensures ConnectionBase.__init__
runs first, then SchemaMixin._ensure_schema() creates/migrates
the schema.
"""

from __future__ import annotations

from gameshelf.core.db.connection import ConnectionBase
from gameshelf.core.db.game_queries import GameQueryMixin
from gameshelf.core.db.game_writes import GameWriteMixin
from gameshelf.core.db.models import CompanyRecord, GameRecord, UpsertResult
from gameshelf.core.db.schema import SCHEMA_VERSION, SchemaMixin

__all__ = [
    "CompanyRecord",
    "Database",
    "GameRecord",
    "SCHEMA_VERSION",
    "UpsertResult",
]


class Database(
    SchemaMixin,
    GameQueryMixin,
    GameWriteMixin,
    ConnectionBase,
):
    """Main database class composing all query mixins.

    Inherits connection management from ConnectionBase,
    schema handling from SchemaMixin, and reads and writes
    from the remaining mixins.
    """

    pass
