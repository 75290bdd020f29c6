"""
Entities Package — SQLAlchemy 2.0 ORM Models (UUID + UTC)
=========================================================

The `entities` package defines the ORM models of the engine, mapping
database tables to Python classes using SQLAlchemy 2.0-typed mappings.
These classes are consumed by DAOs (`daos` package).

Conventions
-----------
- Generic `Uuid` columns (native UUID on PostgreSQL, CHAR(32) elsewhere)
- Timezone-aware timestamps (UTC)
- SQLAlchemy 2.0 style `Mapped[...]` + `mapped_column(...)`

Contents
--------
- Board        read-mostly board record: state, quotas, columns, admins
- Card         feedback/action card with reaction counters and parent link
- card_link    association table: action card -> linked feedback cards
- Reaction     one reaction per (card, user)
- UserSession  alias of a hashed identity on a board

Importing this package registers every table on the shared `metadata`.
"""

from retroboard.database.entities.board import Board
from retroboard.database.entities.card import Card, card_link
from retroboard.database.entities.reaction import Reaction
from retroboard.database.entities.user_session import UserSession

__all__ = ["Board", "Card", "card_link", "Reaction", "UserSession"]
