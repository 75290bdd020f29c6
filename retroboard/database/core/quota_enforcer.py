"""
Per-user, per-board quotas.

Boards may cap how many feedback cards and how many reactions each user
creates. A limit of None disables the cap. Action cards never count and are
never blocked; updating an existing reaction never consumes quota, so
callers only enforce before creating something new.

The check runs before the insert inside the caller's transaction. Two
concurrent creations by the same user can both pass it and overshoot the
limit by one.
"""

import logging

from sqlalchemy.orm import Session

from retroboard.api.models import QuotaStatus
from retroboard.database.daos.card_dao import CardDao
from retroboard.database.daos.reaction_dao import ReactionDao
from retroboard.database.entities.card import CARD_TYPE_FEEDBACK
from retroboard.database.helpers.transactionManagement import transactional
from retroboard.errors import ErrorCodes, LimitReached

logger = logging.getLogger(__name__)


def _status(current_count: int, limit: int | None) -> QuotaStatus:
    limit_enabled = limit is not None
    return QuotaStatus(
        current_count=current_count,
        limit=limit,
        can_create=not limit_enabled or current_count < limit,
        limit_enabled=limit_enabled,
    )


@transactional
def check_card_quota(board, user_hash: str, *, session: Session = None) -> QuotaStatus:
    """Feedback cards `user_hash` has created on `board` against its card limit."""
    current = CardDao().countUserCards(session, board.id, user_hash, CARD_TYPE_FEEDBACK)
    return _status(current, board.card_limit_per_user)


@transactional
def check_reaction_quota(board, user_hash: str, *, session: Session = None) -> QuotaStatus:
    """Reactions `user_hash` has placed on `board`'s cards against its reaction limit."""
    current = ReactionDao().countUserReactionsOnBoard(session, board.id, user_hash)
    return _status(current, board.reaction_limit_per_user)


@transactional
def enforce_card_quota(board, user_hash: str, card_type: str = CARD_TYPE_FEEDBACK, *, session: Session = None):
    """
    Raise `LimitReached` if `user_hash` may not create another card of `card_type`.

    Action cards always pass.
    """
    if card_type != CARD_TYPE_FEEDBACK:
        return None
    status = check_card_quota(board, user_hash)
    if not status.can_create:
        logger.warning(f"Card limit reached on board {board.id} for user {user_hash[:8]}...")
        raise LimitReached(
            f"Card limit reached ({status.current_count}/{status.limit})", ErrorCodes.CARD_LIMIT_REACHED
        )
    return status


@transactional
def enforce_reaction_quota(board, user_hash: str, *, session: Session = None) -> QuotaStatus:
    """Raise `LimitReached` if `user_hash` may not place another reaction on `board`."""
    status = check_reaction_quota(board, user_hash)
    if not status.can_create:
        logger.warning(f"Reaction limit reached on board {board.id} for user {user_hash[:8]}...")
        raise LimitReached(
            f"Reaction limit reached ({status.current_count}/{status.limit})",
            ErrorCodes.REACTION_LIMIT_REACHED,
        )
    return status
