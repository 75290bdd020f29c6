"""
Database Transaction Management
===============================

This module provides utilities for managing SQLAlchemy database sessions
using Python context variables and a decorator-based transaction wrapper.

It allows seamless propagation of a database session across function calls
without explicitly threading it through arguments. Functions can be safely
decorated with ``@transactional`` to ensure they run inside a managed
transactional context.

Key features
~~~~~~~~~~~~
- Context variable to store the active session
- Implicit reuse of existing sessions (nested calls join the outer unit)
- Automatic commit and rollback handling
- After-commit callbacks, run once the outermost unit has committed and
  discarded when it rolls back
- Clean session closure after execution

"""

from functools import wraps
from sqlalchemy.orm import sessionmaker
import contextvars
import logging
from retroboard.database.config.connection_engine import connection_engine

logger = logging.getLogger(__name__)

SessionLocal = sessionmaker(bind=connection_engine, expire_on_commit=False)
"""Session factory used by ``@transactional``. Tests rebind it with ``SessionLocal.configure(bind=...)``."""

# --------------------------------------------------------------------
# Context variable to store the current database session.
# --------------------------------------------------------------------
db_session_context = contextvars.ContextVar("db_session_context", default=None)
"""Context variable storing the active SQLAlchemy session."""

after_commit_context = contextvars.ContextVar("after_commit_context", default=None)
"""Context variable storing callbacks queued for the active transaction."""


def after_commit(callback) -> None:
    """
    Queue ``callback`` to run after the active transaction commits.

    Outside of a transaction the callback runs immediately. Callbacks are
    fire-and-forget: an exception raised by one is logged and never reaches
    the caller, and never undoes the committed data.

    Parameters
    ----------
    callback : callable
        Zero-argument callable.
    """
    pending = after_commit_context.get()
    if pending is None:
        _run_callbacks([callback])
        return
    pending.append(callback)


def _run_callbacks(callbacks) -> None:
    for callback in callbacks:
        try:
            callback()
        except Exception:
            logger.exception("After-commit callback failed")


def transactional(func):
    """
    Decorator to wrap functions in a managed SQLAlchemy transaction.

    Ensures that:
    - If a session already exists in context, it is reused.
    - Otherwise, a new session is created, committed, and closed.
    - On errors, the session is rolled back and closed, and queued
      after-commit callbacks are dropped.
    - After a successful commit, queued after-commit callbacks run.

    Parameters
    ----------
    func : callable
        The function to wrap. It must accept a `session` keyword argument.

    Returns
    -------
    callable
        The wrapped function, executed within a database transaction.

    Example
    -------
    >>> @transactional
    ... def rename_board(board_id, name, session=None):
    ...     session.get(Board, board_id).name = name
    ...
    >>> rename_board(board_id, "Sprint 42")
    """
    @wraps(func)
    def wrap_func(*args, **kwargs):
        # Try to get an existing session from context
        session = db_session_context.get()
        if session:
            return func(*args, session=session, **kwargs)

        # Create a new session if none exists
        session = SessionLocal()
        session_token = db_session_context.set(session)
        pending_token = after_commit_context.set([])

        try:
            result = func(*args, session=session, **kwargs)
            session.flush()   # Push pending changes
            session.commit()  # Commit transaction
            callbacks = after_commit_context.get()
        except Exception as e:
            session.rollback()  # Rollback on failure
            raise e
        finally:
            session.close()
            db_session_context.reset(session_token)
            after_commit_context.reset(pending_token)

        _run_callbacks(callbacks)
        return result

    return wrap_func
