"""
Board DAO

Purpose
-------
Data access for the `Board` entity. The engine treats boards as read-mostly:
it looks them up to check state, columns, admins and quotas, reopens them
during a reset, and removes the row at the end of a board cascade.
`createBoard` and `closeBoard` exist for seeding and tests.

Design
------
- Requires an active SQLAlchemy `Session` supplied by the caller; transaction
  boundaries stay in the service layer.
- Methods catch generic `Exception`, log it, and re-raise.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import delete, update
from sqlalchemy.orm import Session

from retroboard.database.entities.board import BOARD_ACTIVE, BOARD_CLOSED, Board

logger = logging.getLogger(__name__)


class BoardDao:
    """
    Data Access Object (DAO) for `Board` entities.
    """

    def createBoard(self, session: Session, board: Board) -> Board:
        try:
            session.add(board)
            session.flush()
            return board
        except Exception as e:
            logger.error(f"Error in BoardDao.createBoard. Error Message: {e}")
            raise e

    def fetchBoardById(self, session: Session, board_id: UUID) -> Board | None:
        """
        Fetch a board by id, refreshing any copy already held by the session.

        Returns
        -------
        Board | None
            The board, or None when it does not exist.
        """
        try:
            return (
                session.query(Board)
                .populate_existing()
                .filter(Board.id == board_id)
                .one_or_none()
            )
        except Exception as e:
            logger.error(f"Error in BoardDao.fetchBoardById. Error Message: {e}")
            raise e

    def closeBoard(self, session: Session, board_id: UUID) -> bool:
        try:
            result = session.execute(
                update(Board)
                .where(Board.id == board_id, Board.state == BOARD_ACTIVE)
                .values(state=BOARD_CLOSED, closed_at=datetime.now(timezone.utc))
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0
        except Exception as e:
            logger.error(f"Error in BoardDao.closeBoard. Error Message: {e}")
            raise e

    def reopenBoard(self, session: Session, board_id: UUID) -> bool:
        """
        Set a closed board back to active.

        Returns
        -------
        bool
            True if the board was closed and is now active, False if it was
            already active or does not exist.
        """
        try:
            result = session.execute(
                update(Board)
                .where(Board.id == board_id, Board.state == BOARD_CLOSED)
                .values(state=BOARD_ACTIVE, closed_at=None)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount > 0
        except Exception as e:
            logger.error(f"Error in BoardDao.reopenBoard. Error Message: {e}")
            raise e

    def deleteBoard(self, session: Session, board_id: UUID) -> bool:
        try:
            result = session.execute(
                delete(Board)
                .where(Board.id == board_id)
                .execution_options(synchronize_session="fetch")
            )
            return result.rowcount > 0
        except Exception as e:
            logger.error(f"Error in BoardDao.deleteBoard. Error Message: {e}")
            raise e
