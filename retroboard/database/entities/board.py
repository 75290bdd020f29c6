"""
Board ORM Model
===============

The ``Board`` ORM model is the engine's read-mostly view of a retrospective
board stored in the ``board`` table. The engine reads its state, limits,
columns and admins; it only writes to reopen a board during a reset or to
remove it at the end of a cascade delete.

Key features
~~~~~~~~~~~~
- UUID primary key (``id``)
- ``state`` is ``"active"`` or ``"closed"``
- Nullable per-user quotas (``card_limit_per_user``, ``reaction_limit_per_user``);
  ``None`` means unlimited
- ``columns`` holds ``[{"id": ..., "name": ...}]`` and ``admins`` the hashed
  identities allowed to moderate
"""

from retroboard.database.config.connection_engine import declarativeBase
from sqlalchemy import DateTime, Integer, JSON, TEXT, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from uuid import UUID
import uuid
from datetime import datetime, timezone

BOARD_ACTIVE = "active"
BOARD_CLOSED = "closed"


class Board(declarativeBase):
    """
    ORM model for the `board` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    name : str
        Display name of the board.
    state : str
        ``"active"`` or ``"closed"``.
    columns : list[dict]
        Column definitions, each ``{"id": str, "name": str}``.
    card_limit_per_user : int | None
        Max feedback cards per user, or None for unlimited.
    reaction_limit_per_user : int | None
        Max reactions per user, or None for unlimited.
    created_by_hash : str
        Hashed identity of the board creator.
    admins : list[str]
        Hashed identities with admin rights on the board.
    created_at : datetime
        Creation timestamp (UTC).
    closed_at : datetime | None
        When the board was closed, if it is.
    """

    __tablename__ = "board"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    name: Mapped[str] = mapped_column(TEXT, nullable=False)
    state: Mapped[str] = mapped_column(TEXT, nullable=False, default=BOARD_ACTIVE)
    columns: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    card_limit_per_user: Mapped[int | None] = mapped_column(Integer, nullable=True)
    reaction_limit_per_user: Mapped[int | None] = mapped_column(Integer, nullable=True)
    created_by_hash: Mapped[str] = mapped_column(TEXT, nullable=False)
    admins: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def __init__(
        self,
        name: str,
        columns: list,
        created_by_hash: str,
        card_limit_per_user: int | None = None,
        reaction_limit_per_user: int | None = None,
        board_id: UUID | None = None,
    ):
        self.id = board_id or uuid.uuid4()
        self.name = name
        self.columns = list(columns)
        self.created_by_hash = created_by_hash
        self.admins = [created_by_hash]
        self.card_limit_per_user = card_limit_per_user
        self.reaction_limit_per_user = reaction_limit_per_user
        self.state = BOARD_ACTIVE
        self.created_at = datetime.now(timezone.utc)
        self.closed_at = None

    @property
    def is_closed(self) -> bool:
        return self.state == BOARD_CLOSED

    @property
    def column_ids(self) -> set[str]:
        return {column["id"] for column in self.columns}

    def is_admin(self, user_hash: str) -> bool:
        return user_hash in self.admins

    def __str__(self) -> str:
        return f"Board: id:{self.id}, name: {self.name}, state: {self.state}"
