import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

import retroboard.database.entities  # noqa: F401
from retroboard.api.models import Caller, Capability
from retroboard.database.config.connection_engine import configure_sqlite, metadata
from retroboard.database.daos.board_dao import BoardDao
from retroboard.database.daos.user_session_dao import UserSessionDao
from retroboard.database.entities.board import Board
from retroboard.database.helpers.transactionManagement import SessionLocal, transactional

COLUMNS = [
    {"id": "col-went-well", "name": "Went well"},
    {"id": "col-improve", "name": "To improve"},
    {"id": "col-actions", "name": "Actions"},
]


class RecordingBroadcaster:
    """Keeps every event it receives as ``(name, payload)``."""

    def __init__(self):
        self.events = []

    def names(self):
        return [name for name, _ in self.events]

    def of(self, name):
        return [event for event_name, event in self.events if event_name == name]

    def card_created(self, event):
        self.events.append(("card_created", event))

    def card_updated(self, event):
        self.events.append(("card_updated", event))

    def card_deleted(self, event):
        self.events.append(("card_deleted", event))

    def card_moved(self, event):
        self.events.append(("card_moved", event))

    def card_linked(self, event):
        self.events.append(("card_linked", event))

    def card_unlinked(self, event):
        self.events.append(("card_unlinked", event))

    def reaction_added(self, event):
        self.events.append(("reaction_added", event))

    def reaction_removed(self, event):
        self.events.append(("reaction_removed", event))


@pytest.fixture(autouse=True)
def engine():
    engine = create_engine(
        "sqlite+pysqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    configure_sqlite(engine)
    metadata.create_all(engine)
    SessionLocal.configure(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(engine, tmp_path):
    """A file-backed engine, so every session and thread gets its own connection."""
    file_engine = create_engine(
        f"sqlite+pysqlite:///{tmp_path / 'retroboard.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    configure_sqlite(file_engine, "BEGIN IMMEDIATE")
    metadata.create_all(file_engine)
    SessionLocal.configure(bind=file_engine)
    yield file_engine
    file_engine.dispose()


@pytest.fixture
def session(engine):
    """A plain session for DAO-level tests. Do not mix with `@transactional` calls in one test."""
    with SessionLocal() as session:
        yield session


@pytest.fixture
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture
def alice():
    return Caller(user_hash="alice-hash-0001")


@pytest.fixture
def bob():
    return Caller(user_hash="bob-hash-0002")


@pytest.fixture
def operator():
    return Caller(user_hash="operator-hash-0003", capabilities=frozenset({Capability.ADMIN_OVERRIDE}))


@transactional
def _create_board(name, creator_hash, card_limit, reaction_limit, closed, *, session=None):
    board_dao = BoardDao()
    board = board_dao.createBoard(
        session,
        Board(
            name=name,
            columns=COLUMNS,
            created_by_hash=creator_hash,
            card_limit_per_user=card_limit,
            reaction_limit_per_user=reaction_limit,
        ),
    )
    if closed:
        board_dao.closeBoard(session, board.id)
    return board_dao.fetchBoardById(session, board.id)


@transactional
def _join(board_id, user_hash, alias, *, session=None):
    return UserSessionDao().upsertSession(session, board_id, user_hash, alias)


@pytest.fixture
def make_board(alice):
    """Create a board owned (and administered) by `alice` unless told otherwise."""
    def factory(card_limit=None, reaction_limit=None, closed=False, creator=None, name="Sprint 42"):
        creator_hash = creator.user_hash if creator is not None else alice.user_hash
        return _create_board(name, creator_hash, card_limit, reaction_limit, closed)
    return factory


@pytest.fixture
def join_board():
    def factory(board, caller, alias):
        return _join(board.id, caller.user_hash, alias)
    return factory


@transactional
def _close(board_id, *, session=None):
    return BoardDao().closeBoard(session, board_id)


@pytest.fixture
def close_board():
    def close(board):
        return _close(board.id)
    return close
