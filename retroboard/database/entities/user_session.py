"""
UserSession ORM Model
=====================

A ``UserSession`` ties a hashed identity to the alias it uses on one board.
The engine reads it to stamp aliases on cards and reactions, and deletes all
sessions of a board as the last step of a board cascade.
"""

from retroboard.database.config.connection_engine import declarativeBase
from sqlalchemy import DateTime, ForeignKey, TEXT, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column
from uuid import UUID
import uuid
from datetime import datetime, timezone


class UserSession(declarativeBase):
    """
    ORM model for the `user_session` table.

    Attributes
    ----------
    id : UUID
        Primary key.
    board_id : UUID
        Board the session belongs to.
    cookie_hash : str
        Opaque hashed identity.
    alias : str
        Display alias chosen on this board.
    last_active_at : datetime
        Last heartbeat/join (UTC).
    created_at : datetime
        When the user first joined the board (UTC).
    """

    __tablename__ = "user_session"
    __table_args__ = (
        UniqueConstraint("board_id", "cookie_hash", name="uq_user_session_board_user"),
    )

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True)
    board_id: Mapped[UUID] = mapped_column(Uuid, ForeignKey("board.id"), nullable=False)
    cookie_hash: Mapped[str] = mapped_column(TEXT, nullable=False)
    alias: Mapped[str] = mapped_column(TEXT, nullable=False)
    last_active_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    def __init__(self, board_id: UUID, cookie_hash: str, alias: str):
        now = datetime.now(timezone.utc)
        self.id = uuid.uuid4()
        self.board_id = board_id
        self.cookie_hash = cookie_hash
        self.alias = alias
        self.last_active_at = now
        self.created_at = now

    def __str__(self) -> str:
        return f"UserSession: board:{self.board_id}, alias: {self.alias}"
