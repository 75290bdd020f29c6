"""
Card DAO

Purpose
-------
Data-access layer for the `Card` entity and its `card_link` association
table:
- Create cards and read them alone, per board, or with their relationships
  (children and linked feedback cards) embedded
- Creator-guarded content edits and column moves
- Relationship mutation: set/clear a parent, add/remove linked feedback,
  orphan children, scrub links
- Atomic reaction-counter primitives
- Single and bulk deletes

Design
------
- Requires an active SQLAlchemy `Session` supplied by the caller (no session
  creation inside the DAO). Transaction boundaries live in the service layer
  (`@transactional`).
- Counter changes are single ``UPDATE card SET col = col + :delta`` statements,
  floored at zero with ``CASE``. They never read the current value in Python.
- Creator-guarded mutations are conditional single-row updates
  (``WHERE id = :id AND created_by_hash = :hash``); a non-matching filter
  returns None instead of raising.
- Reads use ``populate_existing`` so a card already held by the session is
  refreshed after a Core ``UPDATE`` ran behind the identity map's back.
- Link rules are checked by `relationship_validator` before any parent or
  link is written.

Error Handling
--------------
- Methods catch generic `Exception`, log it, and re-raise.
- Rule violations surface as the typed errors of `retroboard.errors`.

Usage
-----
.. code-block:: python

    from retroboard.database.daos.card_dao import CardDao
    from retroboard.database.entities.card import Card

    dao = CardDao()
    card = dao.createCard(session, Card(board_id, "col-1", "Great sprint", "feedback", user_hash))
    dao.incrementDirectReactionCount(session, card.id, 1)
    dao.setParentCard(session, child_id=other.id, parent_id=card.id)
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import case, delete, func, insert, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from retroboard.api.models import CardWithRelationships, ChildCard, LinkedFeedbackCard
from retroboard.database.core.relationship_validator import LINKED_TO, PARENT_OF, validate_link
from retroboard.database.entities.card import CARD_TYPE_FEEDBACK, Card, card_link

logger = logging.getLogger(__name__)


def _shifted(column, delta: int):
    """`column + delta`, never below zero."""
    return case((column + delta < 0, 0), else_=column + delta)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class CardDao:
    """
    Data Access Object (DAO) for managing Card entities.
    """

    # ----------------------------------------------------------------
    # Create / read
    # ----------------------------------------------------------------

    def createCard(self, session: Session, card: Card) -> Card:
        """
        Persist a new card.

        Parameters
        ----------
        session : Session
            Active SQLAlchemy session.
        card : Card
            Card entity to add.

        Returns
        -------
        Card
            The flushed card.
        """
        try:
            session.add(card)
            session.flush()
            logger.debug(f"Card created: {card.id} on board {card.board_id}")
            return card
        except Exception as e:
            logger.error(f"Error in CardDao.createCard. Error Message: {e}")
            raise e

    def fetchCardById(self, session: Session, card_id: UUID) -> Card | None:
        try:
            return (
                session.query(Card)
                .populate_existing()
                .filter(Card.id == card_id)
                .one_or_none()
            )
        except Exception as e:
            logger.error(f"Error in CardDao.fetchCardById. Error Message: {e}")
            raise e

    def fetchCardsByBoard(
        self,
        session: Session,
        board_id: UUID,
        column_id: str | None = None,
        created_by: str | None = None,
    ) -> list[Card]:
        """
        Fetch every card of a board, newest first.

        Parameters
        ----------
        board_id : UUID
            Board to read.
        column_id : str, optional
            Only cards in this column.
        created_by : str, optional
            Only cards created by this hashed identity.
        """
        try:
            query = session.query(Card).populate_existing().filter(Card.board_id == board_id)
            if column_id is not None:
                query = query.filter(Card.column_id == column_id)
            if created_by is not None:
                query = query.filter(Card.created_by_hash == created_by)
            return query.order_by(Card.created_at.desc()).all()
        except Exception as e:
            logger.error(f"Error in CardDao.fetchCardsByBoard. Error Message: {e}")
            raise e

    def fetchCardIdsByBoard(self, session: Session, board_id: UUID) -> list[UUID]:
        try:
            return list(session.scalars(select(Card.id).where(Card.board_id == board_id)))
        except Exception as e:
            logger.error(f"Error in CardDao.fetchCardIdsByBoard. Error Message: {e}")
            raise e

    def fetchChildren(self, session: Session, parent_id: UUID) -> list[Card]:
        """Children of a card, oldest first."""
        try:
            return (
                session.query(Card)
                .populate_existing()
                .filter(Card.parent_card_id == parent_id)
                .order_by(Card.created_at.asc())
                .all()
            )
        except Exception as e:
            logger.error(f"Error in CardDao.fetchChildren. Error Message: {e}")
            raise e

    def hasChildren(self, session: Session, card_id: UUID) -> bool:
        try:
            return session.scalar(
                select(func.count()).select_from(Card).where(Card.parent_card_id == card_id)
            ) > 0
        except Exception as e:
            logger.error(f"Error in CardDao.hasChildren. Error Message: {e}")
            raise e

    def fetchLinkedFeedbackIds(self, session: Session, card_ids) -> dict[UUID, list[UUID]]:
        """
        Map each action card id to the feedback card ids it links to.

        Cards without links are absent from the result.
        """
        try:
            card_ids = list(card_ids)
            links = defaultdict(list)
            if not card_ids:
                return links
            rows = session.execute(
                select(card_link.c.action_card_id, card_link.c.feedback_card_id)
                .where(card_link.c.action_card_id.in_(card_ids))
                .order_by(card_link.c.created_at.asc())
            )
            for action_id, feedback_id in rows:
                links[action_id].append(feedback_id)
            return links
        except Exception as e:
            logger.error(f"Error in CardDao.fetchLinkedFeedbackIds. Error Message: {e}")
            raise e

    def fetchCardsByBoardWithRelationships(
        self,
        session: Session,
        board_id: UUID,
        column_id: str | None = None,
        created_by: str | None = None,
        include_relationships: bool = True,
    ) -> list[CardWithRelationships]:
        """
        Fetch the top-level cards of a board with their relationships embedded.

        Child cards are not returned at the top level; they appear in their
        parent's `children`, oldest first. Action cards embed the feedback
        cards they link to.

        Parameters
        ----------
        include_relationships : bool
            When False, `children` and `linked_feedback_cards` stay empty.

        Returns
        -------
        list[CardWithRelationships]
            Newest first.
        """
        try:
            query = (
                session.query(Card)
                .populate_existing()
                .filter(Card.board_id == board_id)
                .filter(Card.parent_card_id.is_(None))
            )
            if column_id is not None:
                query = query.filter(Card.column_id == column_id)
            if created_by is not None:
                query = query.filter(Card.created_by_hash == created_by)
            cards = query.order_by(Card.created_at.desc()).all()
            return self._embedRelationships(session, cards, include_relationships)
        except Exception as e:
            logger.error(f"Error in CardDao.fetchCardsByBoardWithRelationships. Error Message: {e}")
            raise e

    def fetchCardWithRelationships(self, session: Session, card_id: UUID) -> CardWithRelationships | None:
        try:
            card = self.fetchCardById(session, card_id)
            if card is None:
                return None
            return self._embedRelationships(session, [card], True)[0]
        except Exception as e:
            logger.error(f"Error in CardDao.fetchCardWithRelationships. Error Message: {e}")
            raise e

    def _embedRelationships(self, session: Session, cards, include_relationships: bool):
        card_ids = [card.id for card in cards]
        links = self.fetchLinkedFeedbackIds(session, card_ids)
        if not include_relationships or not cards:
            return [CardWithRelationships.from_entity(card, links.get(card.id, ())) for card in cards]

        children = defaultdict(list)
        for child in (
            session.query(Card)
            .populate_existing()
            .filter(Card.parent_card_id.in_(card_ids))
            .order_by(Card.created_at.asc())
        ):
            children[child.parent_card_id].append(child)

        linked_ids = {feedback_id for ids in links.values() for feedback_id in ids}
        linked_cards = {}
        if linked_ids:
            linked_cards = {
                card.id: card
                for card in session.query(Card).populate_existing().filter(Card.id.in_(linked_ids))
            }

        result = []
        for card in cards:
            item = CardWithRelationships.from_entity(card, links.get(card.id, ()))
            item.children = [ChildCard.model_validate(child) for child in children[card.id]]
            item.linked_feedback_cards = [
                LinkedFeedbackCard.model_validate(linked_cards[feedback_id])
                for feedback_id in links.get(card.id, ())
                if feedback_id in linked_cards
            ]
            result.append(item)
        return result

    # ----------------------------------------------------------------
    # Counts
    # ----------------------------------------------------------------

    def countByBoard(self, session: Session, board_id: UUID) -> int:
        try:
            return session.scalar(select(func.count()).select_from(Card).where(Card.board_id == board_id))
        except Exception as e:
            logger.error(f"Error in CardDao.countByBoard. Error Message: {e}")
            raise e

    def countByColumn(self, session: Session, board_id: UUID) -> dict[str, int]:
        """Number of cards per column id, children included."""
        try:
            rows = session.execute(
                select(Card.column_id, func.count())
                .where(Card.board_id == board_id)
                .group_by(Card.column_id)
            )
            return {column_id: count for column_id, count in rows}
        except Exception as e:
            logger.error(f"Error in CardDao.countByColumn. Error Message: {e}")
            raise e

    def countUserCards(
        self, session: Session, board_id: UUID, user_hash: str, card_type: str = CARD_TYPE_FEEDBACK
    ) -> int:
        try:
            return session.scalar(
                select(func.count())
                .select_from(Card)
                .where(Card.board_id == board_id)
                .where(Card.created_by_hash == user_hash)
                .where(Card.card_type == card_type)
            )
        except Exception as e:
            logger.error(f"Error in CardDao.countUserCards. Error Message: {e}")
            raise e

    # ----------------------------------------------------------------
    # Creator-guarded edits
    # ----------------------------------------------------------------

    def _guardedUpdate(self, session: Session, card_id: UUID, require_creator: str | None, **values):
        statement = update(Card).where(Card.id == card_id)
        if require_creator is not None:
            statement = statement.where(Card.created_by_hash == require_creator)
        result = session.execute(
            statement.values(updated_at=_now(), **values).execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            return None
        return self.fetchCardById(session, card_id)

    def updateContent(
        self, session: Session, card_id: UUID, content: str, require_creator: str | None = None
    ) -> Card | None:
        """
        Replace a card's content.

        Parameters
        ----------
        require_creator : str, optional
            When given, the update only applies if the card was created by
            this hashed identity.

        Returns
        -------
        Card | None
            The updated card, or None when no card matched.
        """
        try:
            return self._guardedUpdate(session, card_id, require_creator, content=content)
        except Exception as e:
            logger.error(f"Error in CardDao.updateContent. Error Message: {e}")
            raise e

    def moveToColumn(
        self, session: Session, card_id: UUID, column_id: str, require_creator: str | None = None
    ) -> Card | None:
        try:
            return self._guardedUpdate(session, card_id, require_creator, column_id=column_id)
        except Exception as e:
            logger.error(f"Error in CardDao.moveToColumn. Error Message: {e}")
            raise e

    # ----------------------------------------------------------------
    # Relationships
    # ----------------------------------------------------------------

    def _boardCards(self, session: Session, board_id: UUID) -> dict[UUID, Card]:
        return {card.id: card for card in self.fetchCardsByBoard(session, board_id)}

    def setParentCard(self, session: Session, child_id: UUID, parent_id: UUID | None) -> Card | None:
        """
        Make `parent_id` the parent of `child_id`, or clear the parent when None.

        Setting a parent is validated as a ``parent_of`` link first, and the
        write only applies while the child is still parentless, so two racing
        links cannot both succeed.

        Returns
        -------
        Card | None
            The updated child, or None when the child does not exist (clear)
            or gained a parent concurrently (set).

        Raises
        ------
        RetroboardError
            The typed error of the first failed link rule.
        """
        try:
            if parent_id is None:
                return self._guardedUpdate(session, child_id, None, parent_card_id=None)

            child = self.fetchCardById(session, child_id)
            parent = self.fetchCardById(session, parent_id)
            board_cards = self._boardCards(session, child.board_id) if child is not None else {}
            validate_link(PARENT_OF, parent, child, board_cards).raise_for_error()

            result = session.execute(
                update(Card)
                .where(Card.id == child_id, Card.parent_card_id.is_(None))
                .values(parent_card_id=parent_id, updated_at=_now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                return None
            return self.fetchCardById(session, child_id)
        except Exception as e:
            logger.error(f"Error in CardDao.setParentCard. Error Message: {e}")
            raise e

    def addLinkedFeedback(self, session: Session, action_id: UUID, feedback_id: UUID) -> bool:
        """
        Add `feedback_id` to the action card's linked feedback set.

        Validated as a ``linked_to`` link first. Adding a link that already
        exists is a no-op.

        Returns
        -------
        bool
            True if the link was created, False if it already existed.
        """
        try:
            action = self.fetchCardById(session, action_id)
            feedback = self.fetchCardById(session, feedback_id)
            validate_link(LINKED_TO, action, feedback, {}).raise_for_error()

            exists = session.scalar(
                select(func.count())
                .select_from(card_link)
                .where(card_link.c.action_card_id == action_id, card_link.c.feedback_card_id == feedback_id)
            )
            if exists:
                return False
            try:
                with session.begin_nested():
                    session.execute(
                        insert(card_link).values(
                            action_card_id=action_id, feedback_card_id=feedback_id, created_at=_now()
                        )
                    )
            except IntegrityError:
                # concurrent insert of the same pair
                return False
            self._touch(session, action_id)
            return True
        except Exception as e:
            logger.error(f"Error in CardDao.addLinkedFeedback. Error Message: {e}")
            raise e

    def removeLinkedFeedback(self, session: Session, action_id: UUID, feedback_id: UUID) -> bool:
        """Remove one link. Returns False when the link did not exist."""
        try:
            result = session.execute(
                delete(card_link).where(
                    card_link.c.action_card_id == action_id,
                    card_link.c.feedback_card_id == feedback_id,
                )
            )
            if result.rowcount == 0:
                return False
            self._touch(session, action_id)
            return True
        except Exception as e:
            logger.error(f"Error in CardDao.removeLinkedFeedback. Error Message: {e}")
            raise e

    def _touch(self, session: Session, card_id: UUID) -> None:
        session.execute(
            update(Card)
            .where(Card.id == card_id)
            .values(updated_at=_now())
            .execution_options(synchronize_session=False)
        )

    def orphanChildren(self, session: Session, parent_id: UUID) -> list[UUID]:
        """
        Clear the parent of every child of `parent_id`.

        Returns
        -------
        list[UUID]
            Ids of the cards that were orphaned.
        """
        try:
            child_ids = list(session.scalars(select(Card.id).where(Card.parent_card_id == parent_id)))
            if child_ids:
                session.execute(
                    update(Card)
                    .where(Card.parent_card_id == parent_id)
                    .values(parent_card_id=None, updated_at=_now())
                    .execution_options(synchronize_session=False)
                )
            return child_ids
        except Exception as e:
            logger.error(f"Error in CardDao.orphanChildren. Error Message: {e}")
            raise e

    def scrubLinkedFeedback(self, session: Session, card_id: UUID) -> int:
        """
        Remove every link that mentions `card_id`, on either side.

        Returns the number of links removed.
        """
        try:
            result = session.execute(
                delete(card_link).where(
                    or_(card_link.c.feedback_card_id == card_id, card_link.c.action_card_id == card_id)
                )
            )
            return result.rowcount
        except Exception as e:
            logger.error(f"Error in CardDao.scrubLinkedFeedback. Error Message: {e}")
            raise e

    # ----------------------------------------------------------------
    # Counters
    # ----------------------------------------------------------------

    def incrementDirectReactionCount(self, session: Session, card_id: UUID, delta: int) -> Card | None:
        """
        Apply `delta` to a card's own reaction count.

        A card's own reactions are part of its aggregate, so the direct and
        aggregated counts move together in one statement. Both are floored
        at zero.

        Returns
        -------
        Card | None
            The refreshed card, or None when it does not exist.
        """
        try:
            session.execute(
                update(Card)
                .where(Card.id == card_id)
                .values(
                    direct_reaction_count=_shifted(Card.direct_reaction_count, delta),
                    aggregated_reaction_count=_shifted(Card.aggregated_reaction_count, delta),
                )
                .execution_options(synchronize_session=False)
            )
            return self.fetchCardById(session, card_id)
        except Exception as e:
            logger.error(f"Error in CardDao.incrementDirectReactionCount. Error Message: {e}")
            raise e

    def incrementAggregatedReactionCount(self, session: Session, card_id: UUID, delta: int) -> Card | None:
        """Apply `delta` to the aggregated count only, floored at zero."""
        try:
            session.execute(
                update(Card)
                .where(Card.id == card_id)
                .values(aggregated_reaction_count=_shifted(Card.aggregated_reaction_count, delta))
                .execution_options(synchronize_session=False)
            )
            return self.fetchCardById(session, card_id)
        except Exception as e:
            logger.error(f"Error in CardDao.incrementAggregatedReactionCount. Error Message: {e}")
            raise e

    def setAggregatedReactionCount(self, session: Session, card_id: UUID, count: int) -> Card | None:
        try:
            session.execute(
                update(Card)
                .where(Card.id == card_id)
                .values(aggregated_reaction_count=max(count, 0))
                .execution_options(synchronize_session=False)
            )
            return self.fetchCardById(session, card_id)
        except Exception as e:
            logger.error(f"Error in CardDao.setAggregatedReactionCount. Error Message: {e}")
            raise e

    # ----------------------------------------------------------------
    # Delete
    # ----------------------------------------------------------------

    def deleteCard(self, session: Session, card_id: UUID) -> bool:
        """
        Delete one card: orphan its children, scrub its links, remove the row.

        Reactions on the card must already be gone (see `CascadeCoordinator`).

        Returns
        -------
        bool
            False when the card did not exist.
        """
        try:
            self.orphanChildren(session, card_id)
            self.scrubLinkedFeedback(session, card_id)
            result = session.execute(
                delete(Card)
                .where(Card.id == card_id)
                .execution_options(synchronize_session="fetch")
            )
            return result.rowcount > 0
        except Exception as e:
            logger.error(f"Error in CardDao.deleteCard. Error Message: {e}")
            raise e

    def deleteByBoard(self, session: Session, board_id: UUID) -> int:
        """
        Delete every card of a board and their links.

        Returns the number of cards removed.
        """
        try:
            board_card_ids = select(Card.id).where(Card.board_id == board_id)
            session.execute(
                delete(card_link).where(
                    or_(
                        card_link.c.action_card_id.in_(board_card_ids),
                        card_link.c.feedback_card_id.in_(board_card_ids),
                    )
                )
            )
            session.execute(
                update(Card)
                .where(Card.board_id == board_id, Card.parent_card_id.is_not(None))
                .values(parent_card_id=None)
                .execution_options(synchronize_session=False)
            )
            result = session.execute(
                delete(Card)
                .where(Card.board_id == board_id)
                .execution_options(synchronize_session="fetch")
            )
            return result.rowcount
        except Exception as e:
            logger.error(f"Error in CardDao.deleteByBoard. Error Message: {e}")
            raise e
