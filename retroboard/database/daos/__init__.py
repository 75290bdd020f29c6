"""
DAOs Package — Data Access Layer (SQLAlchemy 2.0)
=================================================

The `daos` package wraps every interaction with the ORM entities behind
small CRUD-style classes used by the service layer.

Conventions
-----------
- Every method takes the caller's `Session` first; DAOs never open, commit
  or roll back sessions
- Counter and guarded updates are single Core ``UPDATE`` statements
- DAOs log and re-raise; upper layers decide error policy

Contents
--------
- BoardDao
    Looks up boards, reopens them on reset, removes them on cascade delete.

- CardDao
    Card persistence and relationships:
    * Creates cards, reads them per board with children and linked feedback embedded
    * Creator-guarded content edits and column moves
    * Parent / linked-feedback mutations, validated by `relationship_validator`
    * Atomic, zero-floored reaction counters

- ReactionDao
    The reaction ledger:
    * SAVEPOINT-backed upsert returning `Inserted` or `Updated`
    * Per-card and per-board (JOIN on card) counts
    * Single and bulk deletes

- UserSessionDao
    Alias lookup for a hashed identity on a board; bulk delete per board.
"""
