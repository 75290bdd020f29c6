import uuid

import pytest

from retroboard.database.core.relationship_validator import (
    ALLOWED,
    LINKED_TO,
    PARENT_OF,
    validate_link,
    validate_unlink,
)
from retroboard.database.entities.card import Card
from retroboard.errors import CircularRelationship, ErrorCodes, NotFound, ValidationError

BOARD = uuid.uuid4()


def card(card_type="feedback", parent=None, board_id=BOARD):
    c = Card(board_id=board_id, column_id="col", content="x", card_type=card_type, created_by_hash="u")
    if parent is not None:
        c.parent_card_id = parent.id
    return c


def index(*cards):
    return {c.id: c for c in cards}


def test_parent_of_two_loose_feedback_cards_is_allowed():
    a, b = card(), card()
    check = validate_link(PARENT_OF, a, b, index(a, b))
    assert check.ok
    assert check is ALLOWED


def test_linked_to_action_and_feedback_is_allowed():
    action, feedback = card("action"), card()
    assert validate_link(LINKED_TO, action, feedback, index(action, feedback)).ok


def test_same_card_is_circular():
    a = card()
    check = validate_link(PARENT_OF, a, a, index(a))
    assert isinstance(check.error, CircularRelationship)


def test_same_card_is_reported_before_type_errors():
    action = card("action")
    check = validate_link(PARENT_OF, action, action, index(action))
    assert isinstance(check.error, CircularRelationship)


@pytest.mark.parametrize("missing", ["source", "target"])
def test_missing_card_is_not_found(missing):
    a = card()
    source, target = (None, a) if missing == "source" else (a, None)
    check = validate_link(PARENT_OF, source, target, index(a))
    assert isinstance(check.error, NotFound)
    assert check.error.code == ErrorCodes.CARD_NOT_FOUND


def test_cards_on_different_boards_are_rejected():
    a, b = card(), card(board_id=uuid.uuid4())
    check = validate_link(PARENT_OF, a, b, index(a, b))
    assert isinstance(check.error, ValidationError)


@pytest.mark.parametrize(
    "link_type, source_type, target_type",
    [
        (PARENT_OF, "action", "feedback"),
        (PARENT_OF, "feedback", "action"),
        (LINKED_TO, "feedback", "feedback"),
        (LINKED_TO, "action", "action"),
    ],
)
def test_card_types_must_fit_link_type(link_type, source_type, target_type):
    source, target = card(source_type), card(target_type)
    check = validate_link(link_type, source, target, index(source, target))
    assert isinstance(check.error, ValidationError)


def test_child_with_a_parent_cannot_get_another():
    p1 = card()
    child = card(parent=p1)
    p2 = card()
    check = validate_link(PARENT_OF, p2, child, index(p1, child, p2))
    assert isinstance(check.error, CircularRelationship)
    assert check.error.code == ErrorCodes.CIRCULAR_RELATIONSHIP


def test_child_cannot_become_a_parent():
    parent = card()
    child = card(parent=parent)
    loose = card()
    check = validate_link(PARENT_OF, child, loose, index(parent, child, loose))
    assert check.error.code == ErrorCodes.CHILD_CANNOT_BE_PARENT


def test_parent_cannot_become_a_child():
    parent = card()
    child = card(parent=parent)
    loose = card()
    check = validate_link(PARENT_OF, loose, parent, index(parent, child, loose))
    assert isinstance(check.error, CircularRelationship)
    assert check.error.code == ErrorCodes.PARENT_CANNOT_BE_CHILD


def test_swapping_parent_and_child_is_circular():
    a = card()
    b = card(parent=a)
    check = validate_link(PARENT_OF, b, a, index(a, b))
    assert isinstance(check.error, CircularRelationship)


def test_linked_to_ignores_hierarchy():
    parent = card()
    child = card(parent=parent)
    action = card("action")
    assert validate_link(LINKED_TO, action, child, index(parent, child, action)).ok


def test_raise_for_error_raises_the_typed_error():
    a = card()
    with pytest.raises(CircularRelationship):
        validate_link(PARENT_OF, a, a, index(a)).raise_for_error()
    ALLOWED.raise_for_error()


def test_unlink_requires_existing_parent_link():
    parent, other = card(), card()
    child = card(parent=parent)
    assert validate_unlink(PARENT_OF, parent, child).ok
    assert isinstance(validate_unlink(PARENT_OF, other, child).error, ValidationError)


def test_unlink_requires_existing_feedback_link():
    action, feedback = card("action"), card()
    assert isinstance(validate_unlink(LINKED_TO, action, feedback, []).error, ValidationError)
    assert validate_unlink(LINKED_TO, action, feedback, [feedback.id]).ok
