"""
Card ORM Model
==============

The ``Card`` ORM model represents a feedback or action card posted to a
board. It maps to the ``card`` table; the set of feedback cards an action card
links to lives in the ``card_link`` association table.

Key features
~~~~~~~~~~~~
- UUID primary key (``id``) and foreign key to ``board.id``
- ``card_type`` is ``"feedback"`` or ``"action"``
- Reaction counters: ``direct_reaction_count`` (reactions on this card) and
  ``aggregated_reaction_count`` (own reactions plus reactions on children
  made while they were linked)
- ``parent_card_id``: nullable self reference, feedback cards only, one
  level deep
- ``card_link``: (action card, feedback card) pairs; the composite primary
  key makes adding an existing link a no-op

Integrity
~~~~~~~~~
Check constraints keep both counters non-negative at the storage layer.
"""

from retroboard.database.config.connection_engine import declarativeBase, metadata
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Table,
    TEXT,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column
from uuid import UUID
import uuid
from datetime import datetime, timezone

CARD_TYPE_FEEDBACK = "feedback"
CARD_TYPE_ACTION = "action"
CARD_TYPES = (CARD_TYPE_FEEDBACK, CARD_TYPE_ACTION)


card_link = Table(
    "card_link",
    metadata,
    Column("action_card_id", Uuid, ForeignKey("card.id", ondelete="CASCADE"), primary_key=True),
    Column("feedback_card_id", Uuid, ForeignKey("card.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Index("ix_card_link_feedback_card_id", "feedback_card_id"),
)
"""Association table holding the `linked_feedback_ids` set of each action card."""


class Card(declarativeBase):
    """
    ORM model for the `card` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    board_id : UUID
        Foreign key to `board.id`.
    column_id : str
        Column the card sits in; must be one of the board's column ids.
    content : str
        Card text.
    card_type : str
        ``"feedback"`` or ``"action"``.
    is_anonymous : bool
        Whether the creator alias is hidden.
    created_by_hash : str
        Opaque hashed identity of the creator.
    created_by_alias : str | None
        Display alias of the creator; always None for anonymous cards.
    created_at : datetime
        Creation timestamp (UTC).
    updated_at : datetime | None
        Last content/column/relationship change.
    direct_reaction_count : int
        Number of reactions placed on this card.
    aggregated_reaction_count : int
        Direct count plus reactions on children made since they were linked.
    parent_card_id : UUID | None
        Parent card for a child feedback card.
    """

    __tablename__ = "card"
    __table_args__ = (
        CheckConstraint("direct_reaction_count >= 0", name="ck_card_direct_reaction_count"),
        CheckConstraint("aggregated_reaction_count >= 0", name="ck_card_aggregated_reaction_count"),
        Index("ix_card_board_created", "board_id", "created_at"),
        Index("ix_card_board_creator_type", "board_id", "created_by_hash", "card_type"),
        Index("ix_card_parent_card_id", "parent_card_id"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    board_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("board.id"), nullable=False)
    column_id: Mapped[str] = mapped_column(TEXT, nullable=False)
    content: Mapped[str] = mapped_column(TEXT, nullable=False)
    card_type: Mapped[str] = mapped_column(TEXT, nullable=False)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_by_hash: Mapped[str] = mapped_column(TEXT, nullable=False)
    created_by_alias: Mapped[str | None] = mapped_column(TEXT, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    direct_reaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    aggregated_reaction_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    parent_card_id: Mapped[UUID | None] = mapped_column(
        Uuid, ForeignKey("card.id", ondelete="SET NULL"), nullable=True
    )

    def __init__(
        self,
        board_id: UUID,
        column_id: str,
        content: str,
        card_type: str,
        created_by_hash: str,
        created_by_alias: str | None = None,
        is_anonymous: bool = False,
        card_id: UUID | None = None,
        created_at=None,
    ):
        """
        Initialize a new Card with zero counts and no relationships.

        Parameters
        ----------
        created_at : datetime | str | None
            Creation timestamp; accepts a datetime or ISO8601 string, defaults to now (UTC).
        """
        self.id = card_id or uuid.uuid4()
        self.board_id = board_id
        self.column_id = column_id
        self.content = content
        self.card_type = card_type
        self.is_anonymous = is_anonymous
        self.created_by_hash = created_by_hash
        self.created_by_alias = None if is_anonymous else created_by_alias
        self.direct_reaction_count = 0
        self.aggregated_reaction_count = 0
        self.parent_card_id = None
        self.updated_at = None
        if created_at is None:
            self.created_at = datetime.now(timezone.utc)
        elif isinstance(created_at, str):
            self.created_at = datetime.fromisoformat(created_at)
        else:
            self.created_at = created_at

    @property
    def is_feedback(self) -> bool:
        return self.card_type == CARD_TYPE_FEEDBACK

    @property
    def is_action(self) -> bool:
        return self.card_type == CARD_TYPE_ACTION

    def __str__(self) -> str:
        return (
            f"Card: id:{self.id}, board: {self.board_id}, type: {self.card_type}, "
            f"direct: {self.direct_reaction_count}, aggregated: {self.aggregated_reaction_count}"
        )
