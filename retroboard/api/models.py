"""
Pydantic models used as the engine's data contracts.

Inputs are validated on construction; outputs are built from ORM entities so
callers never hold live SQLAlchemy objects once a transaction has closed.
Event payloads carry enough denormalized data (ids, counts, parent id) for a
listener to update its view without re-querying.
"""

from datetime import datetime
from enum import Enum
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

CardType = Literal["feedback", "action"]
LinkType = Literal["parent_of", "linked_to"]
ReactionType = Literal["thumbs_up"]


# --------------------------------------------------------------------
# Caller identity and capabilities
# --------------------------------------------------------------------

class Capability(str, Enum):
    """Privileges a caller can hold beyond its own identity."""

    ADMIN_OVERRIDE = "admin_override"
    """Bypasses creator/admin ownership checks (operator tooling)."""


class Caller(BaseModel):
    """
    The identity performing an operation, plus any explicit capabilities.
    """
    model_config = ConfigDict(frozen=True)

    user_hash: str = Field(..., min_length=1, description="Opaque hashed identity of the caller.")
    capabilities: frozenset[Capability] = Field(default_factory=frozenset, description="Granted capabilities.")

    def has(self, capability: Capability) -> bool:
        return capability in self.capabilities

    @property
    def short_hash(self) -> str:
        """Truncated identity, safe to log."""
        return self.user_hash[:8] + "..."


# --------------------------------------------------------------------
# Inputs
# --------------------------------------------------------------------

class CreateCardInput(BaseModel):
    """Details needed to post a new card."""
    column_id: str = Field(..., min_length=1, description="Target column id on the board.", examples=["col-went-well"])
    content: str = Field(..., min_length=1, max_length=5000, description="Card text.")
    card_type: CardType = Field(..., description="`feedback` or `action`.")
    is_anonymous: bool = Field(False, description="Hide the creator alias.")


class UpdateCardInput(BaseModel):
    """New content for an existing card."""
    content: str = Field(..., min_length=1, max_length=5000)


class MoveCardInput(BaseModel):
    """Target column for a move."""
    column_id: str = Field(..., min_length=1)


class LinkCardsInput(BaseModel):
    """
    Relationship to create or remove, seen from the source card.

    `parent_of` makes the target a child of the source; `linked_to` links an
    action source to a feedback target.
    """
    target_card_id: UUID
    link_type: LinkType


class AddReactionInput(BaseModel):
    """Reaction to place on a card."""
    reaction_type: ReactionType = "thumbs_up"


# --------------------------------------------------------------------
# Outputs
# --------------------------------------------------------------------

class CardSummary(BaseModel):
    """A card as returned to callers."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    board_id: UUID
    column_id: str
    content: str
    card_type: CardType
    is_anonymous: bool
    created_by_hash: str
    created_by_alias: Optional[str]
    created_at: datetime
    updated_at: Optional[datetime]
    direct_reaction_count: int
    aggregated_reaction_count: int
    parent_card_id: Optional[UUID]
    linked_feedback_ids: List[UUID] = Field(default_factory=list)

    @classmethod
    def from_entity(cls, card, linked_feedback_ids=()) -> "CardSummary":
        summary = cls.model_validate(card)
        summary.linked_feedback_ids = list(linked_feedback_ids)
        return summary


class ChildCard(BaseModel):
    """Child card embedded in its parent."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    content: str
    is_anonymous: bool
    created_by_alias: Optional[str]
    created_at: datetime
    direct_reaction_count: int
    aggregated_reaction_count: int


class LinkedFeedbackCard(BaseModel):
    """Feedback card embedded in the action card that links to it."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    content: str
    created_by_alias: Optional[str]
    created_at: datetime


class CardWithRelationships(CardSummary):
    """A card with its children and linked feedback cards embedded."""
    children: List[ChildCard] = Field(default_factory=list)
    linked_feedback_cards: List[LinkedFeedbackCard] = Field(default_factory=list)


class CardsResponse(BaseModel):
    """Top-level cards of a board plus summary statistics."""
    cards: List[CardWithRelationships]
    total_count: int
    cards_by_column: dict[str, int]


class ReactionSummary(BaseModel):
    """A reaction as returned to callers."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    card_id: UUID
    user_hash: str
    user_alias: Optional[str]
    reaction_type: ReactionType
    created_at: datetime


class QuotaStatus(BaseModel):
    """Per-user usage against a board limit. `limit=None` means unlimited."""
    current_count: int
    limit: Optional[int]
    can_create: bool
    limit_enabled: bool


class ClearBoardResult(BaseModel):
    cards_deleted: int = 0
    reactions_deleted: int = 0
    sessions_deleted: int = 0


class ResetBoardResult(ClearBoardResult):
    board_reopened: bool = False


class DeleteBoardResult(ClearBoardResult):
    board_deleted: bool = False


class DeleteCardResult(BaseModel):
    orphaned_child_ids: List[UUID] = Field(default_factory=list)
    reactions_deleted: int = 0
    parent_aggregated_count: Optional[int] = None


# --------------------------------------------------------------------
# Event payloads
# --------------------------------------------------------------------

class CardCreatedEvent(BaseModel):
    card_id: UUID
    board_id: UUID
    column_id: str
    content: str
    card_type: CardType
    is_anonymous: bool
    created_by_alias: Optional[str]
    created_at: datetime
    direct_reaction_count: int
    aggregated_reaction_count: int
    parent_card_id: Optional[UUID]
    linked_feedback_ids: List[UUID] = Field(default_factory=list)


class CardUpdatedEvent(BaseModel):
    card_id: UUID
    board_id: UUID
    content: str
    updated_at: datetime


class CardDeletedEvent(BaseModel):
    card_id: UUID
    board_id: UUID
    parent_card_id: Optional[UUID] = None
    orphaned_child_ids: List[UUID] = Field(default_factory=list)
    parent_aggregated_count: Optional[int] = None


class CardMovedEvent(BaseModel):
    card_id: UUID
    board_id: UUID
    column_id: str


class CardLinkEvent(BaseModel):
    """Payload for both `card_linked` and `card_unlinked`."""
    source_id: UUID
    target_id: UUID
    board_id: UUID
    link_type: LinkType
    source_aggregated_count: int


class ReactionEvent(BaseModel):
    """Payload for both `reaction_added` and `reaction_removed`."""
    card_id: UUID
    board_id: UUID
    user_alias: Optional[str]
    reaction_type: Optional[ReactionType] = None
    direct_count: int
    aggregated_count: int
    parent_card_id: Optional[UUID]
    parent_aggregated_count: Optional[int] = None
