import uuid

import pytest

from retroboard.api.models import CreateCardInput, LinkCardsInput
from retroboard.database.core import cascade_coordinator, funcs
from retroboard.database.daos.board_dao import BoardDao
from retroboard.database.daos.user_session_dao import UserSessionDao
from retroboard.database.helpers.transactionManagement import transactional
from retroboard.errors import NotFound


@transactional
def _board_exists(board_id, *, session=None):
    return BoardDao().fetchBoardById(session, board_id) is not None


@transactional
def _session_count(board_id, *, session=None):
    return UserSessionDao().countByBoard(session, board_id)


@pytest.fixture
def populated(make_board, join_board, alice, bob):
    """A board with two users, a parent/child pair, an action link and three reactions."""
    board = make_board()
    join_board(board, alice, "Alice")
    join_board(board, bob, "Bob")
    fb = CreateCardInput(column_id="col-went-well", content="c", card_type="feedback")
    parent = funcs.create_card(board.id, alice, fb)
    child = funcs.create_card(board.id, bob, fb)
    todo = funcs.create_card(board.id, alice, CreateCardInput(column_id="col-actions", content="a", card_type="action"))
    funcs.link_cards(parent.id, alice, LinkCardsInput(target_card_id=child.id, link_type="parent_of"))
    funcs.link_cards(todo.id, alice, LinkCardsInput(target_card_id=child.id, link_type="linked_to"))
    funcs.add_reaction(parent.id, bob)
    funcs.add_reaction(child.id, alice)
    funcs.add_reaction(child.id, bob)
    return board


def test_clear_board_removes_everything_but_the_board(populated):
    result = cascade_coordinator.clear_board(populated.id)

    assert (result.cards_deleted, result.reactions_deleted, result.sessions_deleted) == (3, 3, 2)
    assert _board_exists(populated.id)
    assert funcs.get_cards(populated.id).total_count == 0

    again = cascade_coordinator.clear_board(populated.id)
    assert (again.cards_deleted, again.reactions_deleted, again.sessions_deleted) == (0, 0, 0)


def test_clear_unknown_board_is_not_found():
    with pytest.raises(NotFound):
        cascade_coordinator.clear_board(uuid.uuid4())
    with pytest.raises(NotFound):
        cascade_coordinator.reset_board(uuid.uuid4())


def test_reset_board_reopens_a_closed_board(populated, close_board, alice):
    close_board(populated)

    result = cascade_coordinator.reset_board(populated.id)

    assert result.board_reopened is True
    assert result.cards_deleted == 3
    funcs.create_card(populated.id, alice, CreateCardInput(column_id="col-went-well", content="c", card_type="feedback"))
    assert cascade_coordinator.reset_board(populated.id).board_reopened is False


def test_delete_board_is_idempotent(populated):
    result = cascade_coordinator.delete_board(populated.id)

    assert result.board_deleted is True
    assert (result.cards_deleted, result.reactions_deleted, result.sessions_deleted) == (3, 3, 2)
    assert not _board_exists(populated.id)
    assert _session_count(populated.id) == 0

    again = cascade_coordinator.delete_board(populated.id)
    assert again.board_deleted is False
    assert (again.cards_deleted, again.reactions_deleted, again.sessions_deleted) == (0, 0, 0)


def test_deleting_a_child_takes_its_reactions_out_of_the_parent_aggregate(populated, alice, bob, broadcaster):
    parent = next(c for c in funcs.get_cards(populated.id).cards if c.children)
    child = parent.children[0]
    assert parent.aggregated_reaction_count == 3

    funcs.delete_card(child.id, bob, broadcaster)

    after = funcs.get_card(parent.id)
    assert after.children == []
    assert (after.direct_reaction_count, after.aggregated_reaction_count) == (1, 1)
    assert broadcaster.of("card_deleted")[0].parent_aggregated_count == 1
    assert not funcs.has_user_reacted(child.id, alice.user_hash)
    todo = next(c for c in funcs.get_cards(populated.id).cards if c.card_type == "action")
    assert todo.linked_feedback_ids == []


def test_parent_aggregate_drops_to_zero_when_its_only_reacted_child_goes(make_board, join_board, alice, bob):
    board = make_board()
    join_board(board, alice, "Alice")
    join_board(board, bob, "Bob")
    fb = CreateCardInput(column_id="col-went-well", content="c", card_type="feedback")
    parent = funcs.create_card(board.id, alice, fb)
    child = funcs.create_card(board.id, alice, fb)
    funcs.link_cards(parent.id, alice, LinkCardsInput(target_card_id=child.id, link_type="parent_of"))
    funcs.add_reaction(child.id, alice)
    funcs.add_reaction(child.id, bob)
    assert funcs.get_card(parent.id).aggregated_reaction_count == 2

    funcs.delete_card(child.id, alice)

    after = funcs.get_card(parent.id)
    assert (after.direct_reaction_count, after.aggregated_reaction_count) == (0, 0)


def test_deleting_a_parentless_card_reports_no_parent_aggregate(populated, alice, broadcaster):
    todo = next(c for c in funcs.get_cards(populated.id).cards if c.card_type == "action")

    funcs.delete_card(todo.id, alice, broadcaster)

    event = broadcaster.of("card_deleted")[0]
    assert event.parent_card_id is None
    assert event.parent_aggregated_count is None
