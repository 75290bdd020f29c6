from datetime import datetime, timedelta, timezone

import pytest

from retroboard.database.daos.board_dao import BoardDao
from retroboard.database.daos.card_dao import CardDao
from retroboard.database.entities.board import Board
from retroboard.database.entities.card import Card
from retroboard.errors import CircularRelationship, ValidationError

COLUMNS = [
    {"id": "col-went-well", "name": "Went well"},
    {"id": "col-improve", "name": "To improve"},
    {"id": "col-actions", "name": "Actions"},
]
T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


@pytest.fixture
def board(session):
    return BoardDao().createBoard(session, Board(name="dao", columns=COLUMNS, created_by_hash="owner"))


@pytest.fixture
def dao():
    return CardDao()


@pytest.fixture
def new_card(session, board, dao):
    def factory(card_type="feedback", creator="owner", column="col-went-well", minutes=0):
        return dao.createCard(
            session,
            Card(
                board_id=board.id,
                column_id=column,
                content=f"{card_type} card",
                card_type=card_type,
                created_by_hash=creator,
                created_at=T0 + timedelta(minutes=minutes),
            ),
        )
    return factory


def test_counters_move_atomically_and_floor_at_zero(session, dao, new_card):
    card = new_card()
    card = dao.incrementDirectReactionCount(session, card.id, 1)
    assert (card.direct_reaction_count, card.aggregated_reaction_count) == (1, 1)

    card = dao.incrementDirectReactionCount(session, card.id, -3)
    assert (card.direct_reaction_count, card.aggregated_reaction_count) == (0, 0)

    card = dao.incrementAggregatedReactionCount(session, card.id, -1)
    assert card.aggregated_reaction_count == 0


def test_guarded_update_only_matches_creator(session, dao, new_card):
    card = new_card(creator="alice")
    assert dao.updateContent(session, card.id, "hijacked", require_creator="mallory") is None
    updated = dao.updateContent(session, card.id, "edited", require_creator="alice")
    assert updated.content == "edited"
    assert updated.updated_at is not None

    moved = dao.moveToColumn(session, card.id, "col-improve", require_creator="alice")
    assert moved.column_id == "col-improve"


def test_set_parent_validates_and_clears(session, dao, new_card):
    parent, child, other = new_card(), new_card(minutes=1), new_card(minutes=2)

    assert dao.setParentCard(session, child.id, parent.id).parent_card_id == parent.id
    assert dao.hasChildren(session, parent.id)

    with pytest.raises(CircularRelationship):
        dao.setParentCard(session, parent.id, child.id)
    with pytest.raises(CircularRelationship):
        dao.setParentCard(session, child.id, other.id)

    assert dao.setParentCard(session, child.id, None).parent_card_id is None
    assert not dao.hasChildren(session, parent.id)


def test_linked_feedback_set_is_idempotent(session, dao, new_card):
    action, feedback = new_card("action"), new_card()

    assert dao.addLinkedFeedback(session, action.id, feedback.id) is True
    assert dao.addLinkedFeedback(session, action.id, feedback.id) is False
    assert dao.fetchLinkedFeedbackIds(session, [action.id])[action.id] == [feedback.id]

    assert dao.removeLinkedFeedback(session, action.id, feedback.id) is True
    assert dao.removeLinkedFeedback(session, action.id, feedback.id) is False
    assert action.id not in dao.fetchLinkedFeedbackIds(session, [action.id])


def test_linked_feedback_rejects_wrong_types(session, dao, new_card):
    a, b = new_card(), new_card()
    with pytest.raises(ValidationError):
        dao.addLinkedFeedback(session, a.id, b.id)


def test_relationships_are_embedded_and_children_hidden(session, dao, new_card):
    parent = new_card(minutes=0)
    late_child = new_card(minutes=5)
    early_child = new_card(minutes=3)
    action = new_card("action", column="col-actions", minutes=6)
    dao.setParentCard(session, late_child.id, parent.id)
    dao.setParentCard(session, early_child.id, parent.id)
    dao.addLinkedFeedback(session, action.id, parent.id)

    cards = dao.fetchCardsByBoardWithRelationships(session, parent.board_id)
    assert [c.id for c in cards] == [action.id, parent.id]
    by_id = {c.id: c for c in cards}
    assert [c.id for c in by_id[parent.id].children] == [early_child.id, late_child.id]
    assert [c.id for c in by_id[action.id].linked_feedback_cards] == [parent.id]
    assert by_id[action.id].linked_feedback_ids == [parent.id]

    bare = dao.fetchCardsByBoardWithRelationships(session, parent.board_id, include_relationships=False)
    assert all(c.children == [] and c.linked_feedback_cards == [] for c in bare)

    only_actions = dao.fetchCardsByBoardWithRelationships(session, parent.board_id, column_id="col-actions")
    assert [c.id for c in only_actions] == [action.id]


def test_counts(session, dao, new_card):
    new_card(creator="alice")
    new_card(creator="alice", column="col-improve")
    new_card("action", creator="alice", column="col-actions")
    new_card(creator="bob")

    board_id = new_card(creator="bob").board_id
    assert dao.countByBoard(session, board_id) == 5
    assert dao.countByColumn(session, board_id) == {"col-went-well": 3, "col-improve": 1, "col-actions": 1}
    assert dao.countUserCards(session, board_id, "alice") == 2
    assert dao.countUserCards(session, board_id, "alice", "action") == 1


def test_delete_card_orphans_children_and_scrubs_links(session, dao, new_card):
    parent, child, action = new_card(), new_card(minutes=1), new_card("action", minutes=2)
    dao.setParentCard(session, child.id, parent.id)
    dao.addLinkedFeedback(session, action.id, parent.id)

    assert dao.deleteCard(session, parent.id) is True
    assert dao.fetchCardById(session, parent.id) is None
    assert dao.fetchCardById(session, child.id).parent_card_id is None
    assert dao.fetchLinkedFeedbackIds(session, [action.id]) == {}
    assert dao.deleteCard(session, parent.id) is False


def test_delete_by_board(session, dao, new_card):
    parent, child, action = new_card(), new_card(minutes=1), new_card("action", minutes=2)
    dao.setParentCard(session, child.id, parent.id)
    dao.addLinkedFeedback(session, action.id, child.id)

    assert dao.deleteByBoard(session, parent.board_id) == 3
    assert dao.countByBoard(session, parent.board_id) == 0
    assert dao.deleteByBoard(session, parent.board_id) == 0
