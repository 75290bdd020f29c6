"""
Relationship rules for linking two cards.

Pure functions: no session, no I/O. Callers pass the cards involved plus a
mapping of the board's cards (used to walk parent chains), and get back a
`LinkCheck` telling them whether the link is allowed and, if not, which
typed error to raise.

Link types
----------
- ``parent_of``: source becomes the parent of target. Both must be feedback
  cards; the hierarchy is exactly one level deep.
- ``linked_to``: an action source links to a feedback target. No hierarchy
  rules apply.

Checks run in a fixed order and stop at the first failure:

1. source and target are the same card
2. either card is missing
3. the cards belong to different boards
4. card types do not fit the link type
5. (``parent_of``) the prospective child already has a parent
6. (``parent_of``) the prospective parent is itself a child
7. (``parent_of``) the prospective child already has children
8. (``parent_of``) one card is already an ancestor of the other

A swap (A parent of B, then B parent of A) is stopped by step 6. Step 8 is
the general ancestry check; on one-level data it agrees with steps 5-7.
"""

from dataclasses import dataclass
from typing import Mapping, Optional
from uuid import UUID

from retroboard.errors import (
    CircularRelationship,
    ErrorCodes,
    NotFound,
    RetroboardError,
    ValidationError,
)

PARENT_OF = "parent_of"
LINKED_TO = "linked_to"
LINK_TYPES = (PARENT_OF, LINKED_TO)


@dataclass(frozen=True)
class LinkCheck:
    """Outcome of a relationship check."""

    error: Optional[RetroboardError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


ALLOWED = LinkCheck()


def _fail(error: RetroboardError) -> LinkCheck:
    return LinkCheck(error=error)


def _ancestors(card, all_cards: Mapping[UUID, object]):
    """Yield the ids above `card` in its parent chain, stopping on a repeat."""
    seen = {card.id}
    parent_id = card.parent_card_id
    while parent_id is not None and parent_id not in seen:
        yield parent_id
        seen.add(parent_id)
        parent = all_cards.get(parent_id)
        parent_id = parent.parent_card_id if parent is not None else None


def _has_children(card, all_cards: Mapping[UUID, object]) -> bool:
    return any(other.parent_card_id == card.id for other in all_cards.values())


def validate_link(link_type: str, source_card, target_card, all_cards: Mapping[UUID, object]) -> LinkCheck:
    """
    Check whether `source_card` may be linked to `target_card`.

    Parameters
    ----------
    link_type : str
        ``"parent_of"`` or ``"linked_to"``.
    source_card, target_card : Card | None
        Cards to link; None stands for a card that does not exist.
    all_cards : Mapping[UUID, Card]
        Cards of the board keyed by id, used for hierarchy and cycle checks.

    Returns
    -------
    LinkCheck
        ``ALLOWED`` or a check carrying the error to raise.
    """
    if source_card is not None and target_card is not None and source_card.id == target_card.id:
        return _fail(CircularRelationship("A card cannot be linked to itself"))

    if source_card is None:
        return _fail(NotFound("Source card not found", ErrorCodes.CARD_NOT_FOUND))
    if target_card is None:
        return _fail(NotFound("Target card not found", ErrorCodes.CARD_NOT_FOUND))

    if link_type not in LINK_TYPES:
        return _fail(ValidationError(f"Unknown link type: {link_type}"))

    if source_card.board_id != target_card.board_id:
        return _fail(ValidationError("Cards must be on the same board"))

    if link_type == LINKED_TO:
        if not source_card.is_action:
            return _fail(ValidationError("Source card must be an action card"))
        if not target_card.is_feedback:
            return _fail(ValidationError("Target card must be a feedback card"))
        return ALLOWED

    parent, child = source_card, target_card
    if not (parent.is_feedback and child.is_feedback):
        return _fail(ValidationError("Both cards must be feedback cards for parent-child linking"))

    if child.parent_card_id is not None:
        return _fail(CircularRelationship("Target card already has a parent"))

    if parent.parent_card_id is not None:
        return _fail(CircularRelationship(
            "A child card cannot become a parent (1-level hierarchy limit)",
            ErrorCodes.CHILD_CANNOT_BE_PARENT,
        ))

    if _has_children(child, all_cards):
        return _fail(CircularRelationship(
            "A parent card cannot become a child (1-level hierarchy limit)",
            ErrorCodes.PARENT_CANNOT_BE_CHILD,
        ))

    if parent.id in _ancestors(child, all_cards) or child.id in _ancestors(parent, all_cards):
        return _fail(CircularRelationship("Cannot create circular parent-child relationship"))

    return ALLOWED


def validate_unlink(link_type: str, source_card, target_card, linked_feedback_ids=()) -> LinkCheck:
    """
    Check that the link being removed currently exists.

    `linked_feedback_ids` is the source action card's current link set; it is
    only consulted for ``linked_to``.
    """
    if source_card is None:
        return _fail(NotFound("Source card not found", ErrorCodes.CARD_NOT_FOUND))
    if target_card is None:
        return _fail(NotFound("Target card not found", ErrorCodes.CARD_NOT_FOUND))

    if link_type == PARENT_OF:
        if target_card.parent_card_id != source_card.id:
            return _fail(ValidationError("Target card is not a child of source card"))
        return ALLOWED

    if link_type == LINKED_TO:
        if target_card.id not in set(linked_feedback_ids):
            return _fail(ValidationError("Target card is not linked to source card"))
        return ALLOWED

    return _fail(ValidationError(f"Unknown link type: {link_type}"))
