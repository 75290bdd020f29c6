import logging

from sqlalchemy import inspect

from retroboard.api.events import EventBroadcaster, LoggingBroadcaster, NullBroadcaster
from retroboard.api.models import CreateCardInput
from retroboard.database.config.connection_engine import create_schema
from retroboard.database.core import funcs


def test_broadcasters_satisfy_the_protocol(broadcaster):
    assert isinstance(NullBroadcaster(), EventBroadcaster)
    assert isinstance(LoggingBroadcaster(), EventBroadcaster)
    assert isinstance(broadcaster, EventBroadcaster)


def test_logging_broadcaster_writes_one_line_per_event(make_board, alice, caplog):
    board = make_board()
    with caplog.at_level(logging.INFO, logger="retroboard.api.events"):
        card = funcs.create_card(
            board.id,
            alice,
            CreateCardInput(column_id="col-went-well", content="Nice demo", card_type="feedback"),
            LoggingBroadcaster(),
        )
    lines = [r.getMessage() for r in caplog.records if r.name == "retroboard.api.events"]
    assert len(lines) == 1
    assert "card:created" in lines[0]
    assert str(card.id) in lines[0]


def test_create_schema_is_repeatable(engine):
    create_schema(engine)
    assert {"board", "card", "card_link", "reaction", "user_session"} <= set(inspect(engine).get_table_names())


def test_null_broadcaster_drops_every_event(make_board, alice):
    board = make_board()
    null = NullBroadcaster()
    card = funcs.create_card(
        board.id, alice, CreateCardInput(column_id="col-went-well", content="Quiet", card_type="feedback"), null
    )
    funcs.add_reaction(card.id, alice, None, null)
    funcs.remove_reaction(card.id, alice, null)
    funcs.delete_card(card.id, alice, null)

    for name in (
        "card_created", "card_updated", "card_deleted", "card_moved",
        "card_linked", "card_unlinked", "reaction_added", "reaction_removed",
    ):
        assert getattr(null, name)(object()) is None
