"""
Ordered multi-entity deletes.

Every cascade runs inside one transaction and deletes in a fixed order so no
row is left pointing at something already gone:

    reactions -> cards (with their links) -> sessions -> board

Cascades converge: running one again on an already cleared or deleted board
removes nothing and raises nothing, except that `clear_board` and
`reset_board` need the board itself to exist.
"""

import logging
from uuid import UUID

from sqlalchemy.orm import Session

from retroboard.api.models import ClearBoardResult, DeleteBoardResult, DeleteCardResult, ResetBoardResult
from retroboard.database.daos.board_dao import BoardDao
from retroboard.database.daos.card_dao import CardDao
from retroboard.database.daos.reaction_dao import ReactionDao
from retroboard.database.daos.user_session_dao import UserSessionDao
from retroboard.database.helpers.transactionManagement import transactional
from retroboard.errors import ErrorCodes, NotFound

logger = logging.getLogger(__name__)


def _clear(session: Session, board_id: UUID) -> ClearBoardResult:
    card_ids = CardDao().fetchCardIdsByBoard(session, board_id)
    reactions_deleted = ReactionDao().deleteByCards(session, card_ids)
    cards_deleted = CardDao().deleteByBoard(session, board_id)
    sessions_deleted = UserSessionDao().deleteByBoard(session, board_id)
    return ClearBoardResult(
        cards_deleted=cards_deleted,
        reactions_deleted=reactions_deleted,
        sessions_deleted=sessions_deleted,
    )


def _require_board(session: Session, board_id: UUID):
    board = BoardDao().fetchBoardById(session, board_id)
    if board is None:
        raise NotFound("Board not found", ErrorCodes.BOARD_NOT_FOUND)
    return board


@transactional
def clear_board(board_id: UUID, *, session: Session = None) -> ClearBoardResult:
    """
    Delete every reaction, card and session of a board, keeping the board.

    Raises
    ------
    NotFound
        If the board does not exist.
    """
    _require_board(session, board_id)
    result = _clear(session, board_id)
    logger.info(
        f"Cleared board {board_id}: {result.cards_deleted} cards, "
        f"{result.reactions_deleted} reactions, {result.sessions_deleted} sessions"
    )
    return result


@transactional
def reset_board(board_id: UUID, *, session: Session = None) -> ResetBoardResult:
    """Clear a board and reopen it if it was closed."""
    board = _require_board(session, board_id)
    cleared = _clear(session, board_id)
    reopened = BoardDao().reopenBoard(session, board.id)
    logger.info(f"Reset board {board_id} (reopened: {reopened})")
    return ResetBoardResult(**cleared.model_dump(), board_reopened=reopened)


@transactional
def delete_board(board_id: UUID, *, session: Session = None) -> DeleteBoardResult:
    """
    Delete a board and everything on it.

    A board that does not exist is a no-op reporting zero counts.
    """
    cleared = _clear(session, board_id)
    deleted = BoardDao().deleteBoard(session, board_id)
    if deleted:
        logger.info(f"Deleted board {board_id} with {cleared.cards_deleted} cards")
    return DeleteBoardResult(**cleared.model_dump(), board_deleted=deleted)


@transactional
def delete_card_cascade(card, *, session: Session = None) -> DeleteCardResult:
    """
    Delete one card and what hangs off it.

    A child's direct reactions leave its parent's aggregate first. Children
    are orphaned, not deleted. The card is removed from every action card's
    linked feedback set (and its own links go with it), its reactions are
    deleted, then the row.

    Returns
    -------
    DeleteCardResult
        Orphaned child ids, the number of reactions deleted and, for a
        child, the parent's aggregate after the subtraction.
    """
    card_dao = CardDao()
    parent_aggregated_count = None
    if card.parent_card_id is not None:
        current = card_dao.fetchCardById(session, card.id)
        parent = card_dao.incrementAggregatedReactionCount(
            session, card.parent_card_id, -current.direct_reaction_count
        )
        if parent is not None:
            parent_aggregated_count = parent.aggregated_reaction_count

    orphaned = card_dao.orphanChildren(session, card.id)
    card_dao.scrubLinkedFeedback(session, card.id)
    reactions_deleted = ReactionDao().deleteByCard(session, card.id)
    card_dao.deleteCard(session, card.id)
    logger.debug(f"Deleted card {card.id}: {len(orphaned)} children orphaned, {reactions_deleted} reactions")
    return DeleteCardResult(
        orphaned_child_ids=orphaned,
        reactions_deleted=reactions_deleted,
        parent_aggregated_count=parent_aggregated_count,
    )
