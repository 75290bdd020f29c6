"""
Reaction-count propagation.

A reaction on a card moves that card's direct and aggregated counts; if the
card is a child, the same delta lands on the parent's aggregated count.

Aggregation is incremental: linking or unlinking a child never moves counts
already accumulated. Deleting a child is the exception: the card cascade
takes the child's direct count back out of the parent. `reconcile_aggregate`
is the explicit way to rebuild a parent's aggregate from the current
children and is never called implicitly.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from retroboard.database.daos.card_dao import CardDao
from retroboard.database.helpers.transactionManagement import transactional
from retroboard.errors import ErrorCodes, NotFound

logger = logging.getLogger(__name__)


class CountChange:
    """Counts after a propagated delta."""

    def __init__(self, card, parent=None):
        self.card = card
        self.parent = parent

    @property
    def parent_aggregated_count(self) -> int | None:
        return self.parent.aggregated_reaction_count if self.parent is not None else None


def _apply(session: Session, card, delta: int) -> CountChange:
    card_dao = CardDao()
    updated = card_dao.incrementDirectReactionCount(session, card.id, delta)
    parent = None
    if updated.parent_card_id is not None:
        parent = card_dao.incrementAggregatedReactionCount(session, updated.parent_card_id, delta)
    logger.debug(
        f"Reaction delta {delta:+d} on card {card.id}: direct={updated.direct_reaction_count} "
        f"aggregated={updated.aggregated_reaction_count} parent={updated.parent_card_id}"
    )
    return CountChange(updated, parent)


@transactional
def on_reaction_added(card, *, session: Session = None) -> CountChange:
    """+1 on the card's direct and aggregated counts, and on its parent's aggregate."""
    return _apply(session, card, 1)


@transactional
def on_reaction_removed(card, *, session: Session = None) -> CountChange:
    """-1 on the card and its parent, floored at zero."""
    return _apply(session, card, -1)


@transactional
def reconcile_aggregate(card_id: UUID, *, session: Session = None):
    """
    Recompute a card's aggregated count from current data.

    The new value is the card's direct count plus the direct counts of its
    current children. Use it to repair drift after links changed; ordinary
    operations never call it.

    Returns
    -------
    Card
        The refreshed card.

    Raises
    ------
    NotFound
        If the card does not exist.
    """
    card_dao = CardDao()
    card = card_dao.fetchCardById(session, card_id)
    if card is None:
        raise NotFound("Card not found", ErrorCodes.CARD_NOT_FOUND)

    total = card.direct_reaction_count + sum(
        child.direct_reaction_count for child in card_dao.fetchChildren(session, card_id)
    )
    if total != card.aggregated_reaction_count:
        logger.info(f"Reconciled aggregate of card {card_id}: {card.aggregated_reaction_count} -> {total}")
    return card_dao.setAggregatedReactionCount(session, card_id, total)
