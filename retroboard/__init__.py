"""
The `retroboard` package is the card relationship and reaction-aggregation
engine behind a retrospective board: users post feedback and action cards,
react to them, and read aggregated reaction counts.

Contents:
    - database:
        Configuration, SQLAlchemy entities, DAOs, transaction helpers and the
        core service functions (linking rules, counter propagation, quotas
        and cascading deletes).

    - api:
        Pydantic data contracts exchanged with callers and the event
        broadcaster port used to notify listeners after each mutation.

    - errors:
        Typed failures raised by the engine.
"""
