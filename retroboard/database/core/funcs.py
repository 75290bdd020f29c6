"""
Service-layer operations for cards and reactions.

All functions are wrapped with the `@transactional` decorator, which manages
SQLAlchemy sessions and transactions automatically. Each function receives
the active `session` as a keyword argument from the decorator; nested calls
join the caller's transaction.

Every mutation:
- rejects missing boards/cards with `NotFound` and closed boards with `Conflict`
- checks the caller's rights (creator, board admin, or `ADMIN_OVERRIDE`)
- queues its event on the injected broadcaster with `after_commit`, so
  listeners only hear about committed data

Results are pydantic models, never live ORM objects.
"""

import functools
import logging
from uuid import UUID

from sqlalchemy.orm import Session

from retroboard.api.events import EventBroadcaster, NullBroadcaster
from retroboard.api.models import (
    AddReactionInput,
    Caller,
    Capability,
    CardCreatedEvent,
    CardDeletedEvent,
    CardLinkEvent,
    CardMovedEvent,
    CardsResponse,
    CardSummary,
    CardUpdatedEvent,
    CardWithRelationships,
    CreateCardInput,
    LinkCardsInput,
    MoveCardInput,
    QuotaStatus,
    ReactionEvent,
    ReactionSummary,
    UpdateCardInput,
)
from retroboard.database.config.config import settings
from retroboard.database.core import cascade_coordinator, counter_aggregator, quota_enforcer
from retroboard.database.core.relationship_validator import PARENT_OF, validate_unlink
from retroboard.database.daos.board_dao import BoardDao
from retroboard.database.daos.card_dao import CardDao
from retroboard.database.daos.reaction_dao import Inserted, ReactionDao
from retroboard.database.daos.user_session_dao import UserSessionDao
from retroboard.database.entities.card import Card
from retroboard.database.helpers.transactionManagement import after_commit, transactional
from retroboard.errors import (
    CircularRelationship,
    Conflict,
    ErrorCodes,
    Forbidden,
    NotFound,
    ValidationError,
)

logger = logging.getLogger(__name__)

NULL_BROADCASTER = NullBroadcaster()


# --------------------------------------------------------------------
# Shared lookups
# --------------------------------------------------------------------

def _board_or_404(session: Session, board_id: UUID):
    board = BoardDao().fetchBoardById(session, board_id)
    if board is None:
        logger.warning(f"Board not found: {board_id}")
        raise NotFound("Board not found", ErrorCodes.BOARD_NOT_FOUND)
    return board


def _open_board_or_error(session: Session, board_id: UUID):
    board = _board_or_404(session, board_id)
    if board.is_closed:
        logger.warning(f"Rejected mutation on closed board {board_id}")
        raise Conflict("Board is closed", ErrorCodes.BOARD_CLOSED)
    return board


def _card_or_404(session: Session, card_id: UUID, label: str = "Card"):
    card = CardDao().fetchCardById(session, card_id)
    if card is None:
        logger.warning(f"{label} not found: {card_id}")
        raise NotFound(f"{label} not found", ErrorCodes.CARD_NOT_FOUND)
    return card


def _require_column(board, column_id: str) -> None:
    if column_id not in board.column_ids:
        logger.warning(f"Column {column_id} not found on board {board.id}")
        raise ValidationError("Column not found", ErrorCodes.COLUMN_NOT_FOUND)


def _alias(session: Session, board_id: UUID, user_hash: str) -> str | None:
    user_session = UserSessionDao().fetchSession(session, board_id, user_hash)
    return user_session.alias if user_session is not None else None


def _summary(session: Session, card: Card) -> CardSummary:
    links = CardDao().fetchLinkedFeedbackIds(session, [card.id])
    return CardSummary.from_entity(card, links.get(card.id, ()))


# --------------------------------------------------------------------
# Cards
# --------------------------------------------------------------------

@transactional
def create_card(
    board_id: UUID,
    caller: Caller,
    data: CreateCardInput,
    broadcaster: EventBroadcaster = NULL_BROADCASTER,
    *,
    session: Session = None,
) -> CardSummary:
    """
    Post a new card to a board.

    Parameters
    ----------
    board_id : UUID
        Target board; must exist and be active.
    caller : Caller
        Creator of the card.
    data : CreateCardInput
        Column, content, type and anonymity flag.
    broadcaster : EventBroadcaster
        Receives `card_created` after commit.

    Returns
    -------
    CardSummary
        The new card, with zero counts and no relationships.

    Raises
    ------
    NotFound
        Board does not exist.
    Conflict
        Board is closed.
    ValidationError
        Column is not on the board.
    LimitReached
        Caller has used up the board's feedback card quota.
    """
    logger.info(f"Creating {data.card_type} card on board {board_id} for user {caller.short_hash}")
    board = _open_board_or_error(session, board_id)
    _require_column(board, data.column_id)
    quota_enforcer.enforce_card_quota(board, caller.user_hash, data.card_type)

    alias = None if data.is_anonymous else _alias(session, board_id, caller.user_hash)
    card = CardDao().createCard(
        session,
        Card(
            board_id=board_id,
            column_id=data.column_id,
            content=data.content,
            card_type=data.card_type,
            created_by_hash=caller.user_hash,
            created_by_alias=alias,
            is_anonymous=data.is_anonymous,
        ),
    )
    summary = CardSummary.from_entity(card)

    after_commit(functools.partial(broadcaster.card_created, CardCreatedEvent(
        card_id=summary.id,
        board_id=summary.board_id,
        column_id=summary.column_id,
        content=summary.content,
        card_type=summary.card_type,
        is_anonymous=summary.is_anonymous,
        created_by_alias=summary.created_by_alias,
        created_at=summary.created_at,
        direct_reaction_count=summary.direct_reaction_count,
        aggregated_reaction_count=summary.aggregated_reaction_count,
        parent_card_id=summary.parent_card_id,
        linked_feedback_ids=summary.linked_feedback_ids,
    )))
    logger.info(f"Card created: {card.id} on board {board_id}")
    return summary


@transactional
def get_card(card_id: UUID, *, session: Session = None) -> CardWithRelationships:
    """A card with its children and linked feedback cards embedded."""
    card = CardDao().fetchCardWithRelationships(session, card_id)
    if card is None:
        raise NotFound("Card not found", ErrorCodes.CARD_NOT_FOUND)
    return card


@transactional
def get_cards(
    board_id: UUID,
    column_id: str | None = None,
    created_by: str | None = None,
    include_relationships: bool = True,
    *,
    session: Session = None,
) -> CardsResponse:
    """
    Top-level cards of a board plus board-wide statistics.

    `total_count` and `cards_by_column` always describe the whole board,
    children included, regardless of the filters applied to `cards`.
    """
    _board_or_404(session, board_id)
    card_dao = CardDao()
    return CardsResponse(
        cards=card_dao.fetchCardsByBoardWithRelationships(
            session, board_id, column_id, created_by, include_relationships
        ),
        total_count=card_dao.countByBoard(session, board_id),
        cards_by_column=card_dao.countByColumn(session, board_id),
    )


@transactional
def update_card(
    card_id: UUID,
    caller: Caller,
    data: UpdateCardInput,
    broadcaster: EventBroadcaster = NULL_BROADCASTER,
    *,
    session: Session = None,
) -> CardSummary:
    """
    Replace a card's content. Creator only.

    Raises
    ------
    NotFound, Conflict, Forbidden
    """
    logger.info(f"Updating card {card_id} for user {caller.short_hash}")
    existing = _card_or_404(session, card_id)
    _open_board_or_error(session, existing.board_id)

    card = CardDao().updateContent(session, card_id, data.content, require_creator=caller.user_hash)
    if card is None:
        logger.warning(f"Card update forbidden, not creator: {card_id}")
        raise Forbidden("Only the card creator can update this card")

    after_commit(functools.partial(broadcaster.card_updated, CardUpdatedEvent(
        card_id=card.id, board_id=card.board_id, content=card.content, updated_at=card.updated_at,
    )))
    logger.info(f"Card updated: {card_id}")
    return _summary(session, card)


@transactional
def move_card(
    card_id: UUID,
    caller: Caller,
    data: MoveCardInput,
    broadcaster: EventBroadcaster = NULL_BROADCASTER,
    *,
    session: Session = None,
) -> CardSummary:
    """Move a card to another column of its board. Creator only."""
    logger.info(f"Moving card {card_id} to column {data.column_id} for user {caller.short_hash}")
    existing = _card_or_404(session, card_id)
    board = _open_board_or_error(session, existing.board_id)
    _require_column(board, data.column_id)

    card = CardDao().moveToColumn(session, card_id, data.column_id, require_creator=caller.user_hash)
    if card is None:
        logger.warning(f"Card move forbidden, not creator: {card_id}")
        raise Forbidden("Only the card creator can move this card")

    after_commit(functools.partial(broadcaster.card_moved, CardMovedEvent(
        card_id=card.id, board_id=card.board_id, column_id=card.column_id,
    )))
    logger.info(f"Card moved: {card_id} -> {data.column_id}")
    return _summary(session, card)


@transactional
def delete_card(
    card_id: UUID,
    caller: Caller,
    broadcaster: EventBroadcaster = NULL_BROADCASTER,
    *,
    session: Session = None,
) -> None:
    """
    Delete a card, its reactions and its links, orphaning its children.

    Only the creator may delete a card, unless the caller holds
    `Capability.ADMIN_OVERRIDE`. Deleting a child takes its direct reactions
    out of its parent's aggregate.

    Raises
    ------
    NotFound
        Card does not exist.
    Forbidden
        Caller is neither the creator nor holds the override.
    Conflict
        Board is closed.
    """
    override = caller.has(Capability.ADMIN_OVERRIDE)
    logger.info(f"Deleting card {card_id} for user {caller.short_hash} (override: {override})")
    card = _card_or_404(session, card_id)

    if not override and card.created_by_hash != caller.user_hash:
        logger.warning(f"Card delete forbidden, not creator: {card_id}")
        raise Forbidden("Only the card creator can delete this card")

    board = BoardDao().fetchBoardById(session, card.board_id)
    if board is not None and board.is_closed:
        logger.warning(f"Attempted to delete card on closed board: {card_id}")
        raise Conflict("Board is closed", ErrorCodes.BOARD_CLOSED)

    board_id, parent_card_id = card.board_id, card.parent_card_id
    deleted = cascade_coordinator.delete_card_cascade(card)

    after_commit(functools.partial(broadcaster.card_deleted, CardDeletedEvent(
        card_id=card_id,
        board_id=board_id,
        parent_card_id=parent_card_id,
        orphaned_child_ids=deleted.orphaned_child_ids,
        parent_aggregated_count=deleted.parent_aggregated_count,
    )))
    logger.info(f"Card deleted: {card_id} on board {board_id}")


@transactional
def link_cards(
    source_card_id: UUID,
    caller: Caller,
    data: LinkCardsInput,
    broadcaster: EventBroadcaster = NULL_BROADCASTER,
    *,
    session: Session = None,
) -> CardWithRelationships:
    """
    Link two cards.

    ``parent_of`` makes the target a child of the source; ``linked_to`` adds
    the target feedback card to the source action card's links. Allowed for
    the source card's creator and board admins. Reaction counts already on
    the cards do not move.

    Returns
    -------
    CardWithRelationships
        The source card after the change.

    Raises
    ------
    NotFound, Conflict, Forbidden
        Missing card or board, closed board, caller not allowed.
    ValidationError, CircularRelationship
        The link breaks a relationship rule.
    """
    logger.info(
        f"Linking {source_card_id} -[{data.link_type}]-> {data.target_card_id} for user {caller.short_hash}"
    )
    source = _card_or_404(session, source_card_id, "Source card")
    board = _open_board_or_error(session, source.board_id)

    if source.created_by_hash != caller.user_hash and not board.is_admin(caller.user_hash):
        logger.warning(f"Link forbidden for user {caller.short_hash} on card {source_card_id}")
        raise Forbidden("Only the card creator or board admin can link cards")

    card_dao = CardDao()
    if data.link_type == PARENT_OF:
        child = card_dao.setParentCard(session, data.target_card_id, source_card_id)
        if child is None:
            raise CircularRelationship("Target card already has a parent")
    else:
        card_dao.addLinkedFeedback(session, source_card_id, data.target_card_id)

    result = card_dao.fetchCardWithRelationships(session, source_card_id)
    after_commit(functools.partial(broadcaster.card_linked, CardLinkEvent(
        source_id=source_card_id,
        target_id=data.target_card_id,
        board_id=source.board_id,
        link_type=data.link_type,
        source_aggregated_count=result.aggregated_reaction_count,
    )))
    logger.info(f"Cards linked: {source_card_id} -[{data.link_type}]-> {data.target_card_id}")
    return result


@transactional
def unlink_cards(
    source_card_id: UUID,
    caller: Caller,
    data: LinkCardsInput,
    broadcaster: EventBroadcaster = NULL_BROADCASTER,
    *,
    session: Session = None,
) -> CardWithRelationships:
    """
    Remove an existing link. Board admins only.

    Raises
    ------
    ValidationError
        The link does not exist.
    """
    logger.info(
        f"Unlinking {source_card_id} -[{data.link_type}]-> {data.target_card_id} for user {caller.short_hash}"
    )
    card_dao = CardDao()
    source = _card_or_404(session, source_card_id, "Source card")
    target = _card_or_404(session, data.target_card_id, "Target card")
    board = _open_board_or_error(session, source.board_id)

    if not board.is_admin(caller.user_hash):
        logger.warning(f"Unlink forbidden for user {caller.short_hash} on card {source_card_id}")
        raise Forbidden("Only board admin can unlink cards")

    linked = card_dao.fetchLinkedFeedbackIds(session, [source_card_id]).get(source_card_id, ())
    validate_unlink(data.link_type, source, target, linked).raise_for_error()

    if data.link_type == PARENT_OF:
        card_dao.setParentCard(session, target.id, None)
    else:
        card_dao.removeLinkedFeedback(session, source_card_id, target.id)

    result = card_dao.fetchCardWithRelationships(session, source_card_id)
    after_commit(functools.partial(broadcaster.card_unlinked, CardLinkEvent(
        source_id=source_card_id,
        target_id=target.id,
        board_id=source.board_id,
        link_type=data.link_type,
        source_aggregated_count=result.aggregated_reaction_count,
    )))
    logger.info(f"Cards unlinked: {source_card_id} -[{data.link_type}]-> {target.id}")
    return result


@transactional
def get_card_quota(board_id: UUID, user_hash: str, *, session: Session = None) -> QuotaStatus:
    board = _board_or_404(session, board_id)
    return quota_enforcer.check_card_quota(board, user_hash)


@transactional
def is_card_creator(card_id: UUID, user_hash: str, *, session: Session = None) -> bool:
    return _card_or_404(session, card_id).created_by_hash == user_hash


# --------------------------------------------------------------------
# Reactions
# --------------------------------------------------------------------

def _reaction_event(card, parent_aggregated_count, user_alias, reaction_type=None) -> ReactionEvent:
    return ReactionEvent(
        card_id=card.id,
        board_id=card.board_id,
        user_alias=user_alias,
        reaction_type=reaction_type,
        direct_count=card.direct_reaction_count,
        aggregated_count=card.aggregated_reaction_count,
        parent_card_id=card.parent_card_id,
        parent_aggregated_count=parent_aggregated_count,
    )


@transactional
def add_reaction(
    card_id: UUID,
    caller: Caller,
    data: AddReactionInput | None = None,
    broadcaster: EventBroadcaster = NULL_BROADCASTER,
    *,
    session: Session = None,
) -> ReactionSummary:
    """
    React to a card, or update the caller's existing reaction on it.

    A new reaction consumes reaction quota, moves the card's counts (and its
    parent's aggregate) and emits `reaction_added`. Reacting again only
    refreshes the stored alias and type: no quota, no counter change, no
    event. The ledger write and the counter updates commit together.

    Raises
    ------
    NotFound
        Card or board does not exist.
    Conflict
        Board is closed.
    LimitReached
        The reaction would exceed the board's per-user reaction limit.
    """
    reaction_type = data.reaction_type if data is not None else settings.DEFAULT_REACTION_TYPE
    logger.info(f"Adding reaction to card {card_id} for user {caller.short_hash}")
    card = _card_or_404(session, card_id)
    board = _open_board_or_error(session, card.board_id)

    reaction_dao = ReactionDao()
    if not reaction_dao.hasUserReacted(session, card_id, caller.user_hash):
        quota_enforcer.enforce_reaction_quota(board, caller.user_hash)

    alias = _alias(session, card.board_id, caller.user_hash)
    outcome = reaction_dao.upsertReaction(session, card_id, caller.user_hash, alias, reaction_type)

    if isinstance(outcome, Inserted):
        change = counter_aggregator.on_reaction_added(card)
        after_commit(functools.partial(
            broadcaster.reaction_added,
            _reaction_event(change.card, change.parent_aggregated_count, alias, reaction_type),
        ))
        logger.info(f"Reaction added to card {card_id}")
    else:
        logger.debug(f"Reaction on card {card_id} updated in place")
    return ReactionSummary.model_validate(outcome.record)


@transactional
def remove_reaction(
    card_id: UUID,
    caller: Caller,
    broadcaster: EventBroadcaster = NULL_BROADCASTER,
    *,
    session: Session = None,
) -> None:
    """
    Remove the caller's reaction from a card.

    Raises
    ------
    NotFound
        Card, board or reaction does not exist; counts are left untouched.
    Conflict
        Board is closed.
    """
    logger.info(f"Removing reaction from card {card_id} for user {caller.short_hash}")
    card = _card_or_404(session, card_id)
    _open_board_or_error(session, card.board_id)

    reaction_dao = ReactionDao()
    if not reaction_dao.deleteReaction(session, card_id, caller.user_hash):
        logger.warning(f"Reaction not found on card {card_id} for user {caller.short_hash}")
        raise NotFound("Reaction not found", ErrorCodes.REACTION_NOT_FOUND)

    alias = _alias(session, card.board_id, caller.user_hash)
    change = counter_aggregator.on_reaction_removed(card)
    after_commit(functools.partial(
        broadcaster.reaction_removed,
        _reaction_event(change.card, change.parent_aggregated_count, alias),
    ))
    logger.info(f"Reaction removed from card {card_id}")


@transactional
def get_reaction_quota(board_id: UUID, user_hash: str, *, session: Session = None) -> QuotaStatus:
    board = _board_or_404(session, board_id)
    return quota_enforcer.check_reaction_quota(board, user_hash)


@transactional
def has_user_reacted(card_id: UUID, user_hash: str, *, session: Session = None) -> bool:
    return ReactionDao().hasUserReacted(session, card_id, user_hash)


@transactional
def get_user_reaction(card_id: UUID, user_hash: str, *, session: Session = None) -> ReactionSummary | None:
    """The user's reaction on a card, or None."""
    reaction = ReactionDao().fetchReaction(session, card_id, user_hash)
    return ReactionSummary.model_validate(reaction) if reaction is not None else None
