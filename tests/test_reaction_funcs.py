import uuid
from concurrent.futures import ThreadPoolExecutor

import pytest

from retroboard.api.models import AddReactionInput, Caller, CreateCardInput, LinkCardsInput
from retroboard.database.core import counter_aggregator, funcs
from retroboard.errors import Conflict, ErrorCodes, LimitReached, NotFound


def post(board, caller, card_type="feedback"):
    column = "col-actions" if card_type == "action" else "col-went-well"
    return funcs.create_card(board.id, caller, CreateCardInput(column_id=column, content="c", card_type=card_type))


def counts(card):
    fresh = funcs.get_card(card.id)
    return fresh.direct_reaction_count, fresh.aggregated_reaction_count


def test_reacting_twice_stores_one_reaction(make_board, join_board, alice, broadcaster):
    board = make_board()
    join_board(board, alice, "Alice")
    card = post(board, alice)

    first = funcs.add_reaction(card.id, alice, AddReactionInput(), broadcaster)
    second = funcs.add_reaction(card.id, alice, AddReactionInput(), broadcaster)

    assert first.id == second.id
    assert first.user_alias == "Alice"
    assert counts(card) == (1, 1)
    assert broadcaster.names() == ["reaction_added"]
    assert funcs.has_user_reacted(card.id, alice.user_hash)
    assert funcs.get_user_reaction(card.id, alice.user_hash).id == first.id


def test_reaction_on_child_propagates_to_parent(make_board, alice, bob, broadcaster):
    board = make_board()
    parent = post(board, alice)
    child = post(board, alice)
    funcs.link_cards(parent.id, alice, LinkCardsInput(target_card_id=child.id, link_type="parent_of"))

    funcs.add_reaction(parent.id, alice)
    funcs.add_reaction(child.id, alice, broadcaster=broadcaster)
    funcs.add_reaction(child.id, bob)

    assert counts(child) == (2, 2)
    assert counts(parent) == (1, 3)

    event = broadcaster.of("reaction_added")[0]
    assert event.parent_card_id == parent.id
    assert event.parent_aggregated_count == 2

    funcs.remove_reaction(child.id, bob, broadcaster)
    assert counts(child) == (1, 1)
    assert counts(parent) == (1, 2)
    assert broadcaster.of("reaction_removed")[0].parent_aggregated_count == 2


def test_link_does_not_move_existing_counts(make_board, alice):
    board = make_board()
    parent = post(board, alice)
    child = post(board, alice)
    funcs.add_reaction(child.id, alice)

    funcs.link_cards(parent.id, alice, LinkCardsInput(target_card_id=child.id, link_type="parent_of"))
    assert counts(parent) == (0, 0)

    funcs.add_reaction(child.id, Caller(user_hash="carol-hash-0004"))
    assert counts(parent) == (0, 1)

    funcs.unlink_cards(parent.id, alice, LinkCardsInput(target_card_id=child.id, link_type="parent_of"))
    assert counts(parent) == (0, 1)

    assert counter_aggregator.reconcile_aggregate(parent.id).aggregated_reaction_count == 0


def test_removing_missing_reaction_leaves_counts_alone(make_board, alice, bob):
    board = make_board()
    card = post(board, alice)
    funcs.add_reaction(card.id, alice)

    with pytest.raises(NotFound) as missing:
        funcs.remove_reaction(card.id, bob)
    assert missing.value.code == ErrorCodes.REACTION_NOT_FOUND
    assert counts(card) == (1, 1)


def test_reaction_limit_frees_up_after_removal(make_board, alice):
    board = make_board(reaction_limit=1)
    x = post(board, alice)
    y = post(board, alice)

    funcs.add_reaction(x.id, alice)
    with pytest.raises(LimitReached) as limit:
        funcs.add_reaction(y.id, alice)
    assert limit.value.code == ErrorCodes.REACTION_LIMIT_REACHED

    # updating an existing reaction never consumes quota
    funcs.add_reaction(x.id, alice)

    funcs.remove_reaction(x.id, alice)
    funcs.add_reaction(y.id, alice)

    quota = funcs.get_reaction_quota(board.id, alice.user_hash)
    assert (quota.current_count, quota.can_create) == (1, False)


def test_closed_board_rejects_reactions(make_board, close_board, alice):
    board = make_board()
    card = post(board, alice)
    funcs.add_reaction(card.id, alice)
    close_board(board)

    with pytest.raises(Conflict):
        funcs.add_reaction(card.id, alice)
    with pytest.raises(Conflict):
        funcs.remove_reaction(card.id, alice)
    assert counts(card) == (1, 1)


def test_unknown_card_is_not_found(alice):
    with pytest.raises(NotFound):
        funcs.add_reaction(uuid.uuid4(), alice)


def test_failed_counter_update_rolls_back_the_ledger(make_board, alice, broadcaster, monkeypatch):
    board = make_board()
    card = post(board, alice)

    def boom(card, **kwargs):
        raise RuntimeError("counter store down")

    monkeypatch.setattr(counter_aggregator, "on_reaction_added", boom)
    with pytest.raises(RuntimeError):
        funcs.add_reaction(card.id, alice, broadcaster=broadcaster)

    assert not funcs.has_user_reacted(card.id, alice.user_hash)
    assert counts(card) == (0, 0)
    assert broadcaster.events == []


def test_concurrent_reactions_on_one_card_lose_no_updates(file_engine, make_board, alice):
    board = make_board()
    parent = post(board, alice)
    card = post(board, alice)
    funcs.link_cards(parent.id, alice, LinkCardsInput(target_card_id=card.id, link_type="parent_of"))
    callers = [Caller(user_hash=f"user-hash-{n:04d}") for n in range(8)]

    with ThreadPoolExecutor(max_workers=len(callers)) as pool:
        summaries = list(pool.map(lambda caller: funcs.add_reaction(card.id, caller), callers))

    assert len({summary.id for summary in summaries}) == len(callers)
    assert counts(card) == (len(callers), len(callers))
    assert counts(parent) == (0, len(callers))
