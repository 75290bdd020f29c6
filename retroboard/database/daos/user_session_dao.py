"""
UserSession DAO

Resolves a hashed identity to the alias it uses on a board, and removes a
board's sessions as the last step of a board cascade.
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from retroboard.database.entities.user_session import UserSession

logger = logging.getLogger(__name__)


class UserSessionDao:
    """
    Data Access Object (DAO) for `UserSession` entities.
    """

    def upsertSession(self, session: Session, board_id: UUID, cookie_hash: str, alias: str) -> UserSession:
        """
        Join a board, or refresh the alias and activity time of an existing session.
        """
        try:
            user_session = self.fetchSession(session, board_id, cookie_hash)
            if user_session is None:
                user_session = UserSession(board_id=board_id, cookie_hash=cookie_hash, alias=alias)
                session.add(user_session)
            else:
                user_session.alias = alias
                user_session.last_active_at = datetime.now(timezone.utc)
            session.flush()
            return user_session
        except Exception as e:
            logger.error(f"Error in UserSessionDao.upsertSession. Error Message: {e}")
            raise e

    def fetchSession(self, session: Session, board_id: UUID, cookie_hash: str) -> UserSession | None:
        try:
            return (
                session.query(UserSession)
                .filter(UserSession.board_id == board_id)
                .filter(UserSession.cookie_hash == cookie_hash)
                .one_or_none()
            )
        except Exception as e:
            logger.error(f"Error in UserSessionDao.fetchSession. Error Message: {e}")
            raise e

    def countByBoard(self, session: Session, board_id: UUID) -> int:
        try:
            return session.scalar(
                select(func.count()).select_from(UserSession).where(UserSession.board_id == board_id)
            )
        except Exception as e:
            logger.error(f"Error in UserSessionDao.countByBoard. Error Message: {e}")
            raise e

    def deleteByBoard(self, session: Session, board_id: UUID) -> int:
        """Delete every session of a board. Returns the number of rows removed."""
        try:
            result = session.execute(
                delete(UserSession)
                .where(UserSession.board_id == board_id)
                .execution_options(synchronize_session="fetch")
            )
            return result.rowcount
        except Exception as e:
            logger.error(f"Error in UserSessionDao.deleteByBoard. Error Message: {e}")
            raise e
