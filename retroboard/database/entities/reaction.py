"""
Reaction ORM Model
==================

The ``Reaction`` ORM model records one user's reaction to one card in the
``reaction`` table. A unique constraint on (``card_id``, ``user_hash``)
enforces at most one reaction per user per card; re-reacting updates the
existing row instead of inserting a second one.
"""

from retroboard.database.config.connection_engine import declarativeBase
from sqlalchemy import DateTime, ForeignKey, Index, TEXT, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from uuid import UUID
import uuid
from datetime import datetime, timezone

REACTION_THUMBS_UP = "thumbs_up"
REACTION_TYPES = (REACTION_THUMBS_UP,)


class Reaction(declarativeBase):
    """
    ORM model for the `reaction` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    card_id : UUID
        Foreign key to `card.id`.
    user_hash : str
        Opaque hashed identity of the reacting user.
    user_alias : str | None
        Alias of the user at the time of the (last) reaction.
    reaction_type : str
        Reaction kind; currently only ``"thumbs_up"``.
    created_at : datetime
        When the reaction was first placed (UTC).
    """

    __tablename__ = "reaction"
    __table_args__ = (
        UniqueConstraint("card_id", "user_hash", name="uq_reaction_card_user"),
        Index("ix_reaction_user_hash", "user_hash"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    card_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("card.id", ondelete="CASCADE"), nullable=False)
    user_hash: Mapped[str] = mapped_column(TEXT, nullable=False)
    user_alias: Mapped[str | None] = mapped_column(TEXT, nullable=True)
    reaction_type: Mapped[str] = mapped_column(TEXT, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __init__(self, card_id: UUID, user_hash: str, user_alias: str | None, reaction_type: str):
        self.id = uuid.uuid4()
        self.card_id = card_id
        self.user_hash = user_hash
        self.user_alias = user_alias
        self.reaction_type = reaction_type
        self.created_at = datetime.now(timezone.utc)

    def __str__(self) -> str:
        return f"Reaction: card:{self.card_id}, type: {self.reaction_type}, alias: {self.user_alias}"
