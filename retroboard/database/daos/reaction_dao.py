"""
Reaction DAO

Purpose
-------
The reaction ledger: one reaction per (card, user), stored in the `reaction`
table.

Upsert
------
`upsertReaction` returns an explicit tag telling the caller whether a new
row was stored (`Inserted`) or an existing one was updated (`Updated`).
Only an insert consumes quota and moves counters.

The insert runs under a SAVEPOINT. If it trips the
``uq_reaction_card_user`` unique constraint, a concurrent request inserted
the same (card, user) first; the savepoint is rolled back and the existing
row is updated instead, so the surrounding transaction stays usable.
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from retroboard.database.entities.card import Card
from retroboard.database.entities.reaction import Reaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Inserted:
    """A new reaction row was stored."""
    record: Reaction


@dataclass(frozen=True)
class Updated:
    """An existing reaction row was updated in place."""
    record: Reaction


UpsertResult = Inserted | Updated


class ReactionDao:
    """
    Data Access Object (DAO) for managing Reaction entities.
    """

    def upsertReaction(
        self, session: Session, card_id: UUID, user_hash: str, user_alias: str | None, reaction_type: str
    ) -> UpsertResult:
        """
        Store a user's reaction on a card, or update the one already there.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        card_id : UUID
            Card being reacted to.
        user_hash : str
            Hashed identity of the reacting user.
        user_alias : str | None
            Alias recorded with the reaction.
        reaction_type : str
            Reaction kind.

        Returns
        -------
        Inserted | Updated
            Tagged result carrying the stored row.
        """
        try:
            existing = self.fetchReaction(session, card_id, user_hash)
            if existing is None:
                reaction = Reaction(
                    card_id=card_id, user_hash=user_hash, user_alias=user_alias, reaction_type=reaction_type
                )
                try:
                    with session.begin_nested():
                        session.add(reaction)
                    return Inserted(reaction)
                except IntegrityError:
                    logger.debug(f"Concurrent reaction insert on card {card_id}, updating instead")
                    existing = self.fetchReaction(session, card_id, user_hash)

            existing.user_alias = user_alias
            existing.reaction_type = reaction_type
            session.flush()
            return Updated(existing)
        except Exception as e:
            logger.error(f"Error in ReactionDao.upsertReaction. Error Message: {e}")
            raise e

    def fetchReaction(self, session: Session, card_id: UUID, user_hash: str) -> Reaction | None:
        try:
            return (
                session.query(Reaction)
                .filter(Reaction.card_id == card_id)
                .filter(Reaction.user_hash == user_hash)
                .one_or_none()
            )
        except Exception as e:
            logger.error(f"Error in ReactionDao.fetchReaction. Error Message: {e}")
            raise e

    def fetchReactionsByCard(self, session: Session, card_id: UUID) -> list[Reaction]:
        """Reactions on a card, oldest first."""
        try:
            return (
                session.query(Reaction)
                .filter(Reaction.card_id == card_id)
                .order_by(Reaction.created_at.asc())
                .all()
            )
        except Exception as e:
            logger.error(f"Error in ReactionDao.fetchReactionsByCard. Error Message: {e}")
            raise e

    def hasUserReacted(self, session: Session, card_id: UUID, user_hash: str) -> bool:
        try:
            return self.fetchReaction(session, card_id, user_hash) is not None
        except Exception as e:
            logger.error(f"Error in ReactionDao.hasUserReacted. Error Message: {e}")
            raise e

    def countByCard(self, session: Session, card_id: UUID) -> int:
        try:
            return session.scalar(
                select(func.count()).select_from(Reaction).where(Reaction.card_id == card_id)
            )
        except Exception as e:
            logger.error(f"Error in ReactionDao.countByCard. Error Message: {e}")
            raise e

    def countUserReactionsOnBoard(self, session: Session, board_id: UUID, user_hash: str) -> int:
        """
        Count a user's reactions across every card of a board.

        Reactions do not store the board; the count joins `reaction` to
        `card` and filters on ``card.board_id``.
        """
        try:
            return session.scalar(
                select(func.count(Reaction.id))
                .join(Card, Card.id == Reaction.card_id)
                .where(Card.board_id == board_id)
                .where(Reaction.user_hash == user_hash)
            )
        except Exception as e:
            logger.error(f"Error in ReactionDao.countUserReactionsOnBoard. Error Message: {e}")
            raise e

    def deleteReaction(self, session: Session, card_id: UUID, user_hash: str) -> bool:
        """
        Delete a user's reaction on a card.

        Returns
        -------
        bool
            True if a row was removed.
        """
        try:
            result = session.execute(
                delete(Reaction)
                .where(Reaction.card_id == card_id, Reaction.user_hash == user_hash)
                .execution_options(synchronize_session="fetch")
            )
            return result.rowcount > 0
        except Exception as e:
            logger.error(f"Error in ReactionDao.deleteReaction. Error Message: {e}")
            raise e

    def deleteByCard(self, session: Session, card_id: UUID) -> int:
        try:
            return self.deleteByCards(session, [card_id])
        except Exception as e:
            logger.error(f"Error in ReactionDao.deleteByCard. Error Message: {e}")
            raise e

    def deleteByCards(self, session: Session, card_ids) -> int:
        """Delete every reaction on the given cards. Returns the number removed."""
        try:
            card_ids = list(card_ids)
            if not card_ids:
                return 0
            result = session.execute(
                delete(Reaction)
                .where(Reaction.card_id.in_(card_ids))
                .execution_options(synchronize_session="fetch")
            )
            return result.rowcount
        except Exception as e:
            logger.error(f"Error in ReactionDao.deleteByCards. Error Message: {e}")
            raise e
