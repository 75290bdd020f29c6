"""
Connection Engine (SQLAlchemy)

Purpose
-------
Centralizes database initialization for the engine:
- Builds the SQLAlchemy connection URL from environment-backed settings.
- Creates the Engine (connection pool + SQL execution entry point).
- Defines shared MetaData for table and schema objects.
- Exposes a Declarative Base class for ORM models.

Notes
-----
- Uses `URL.create(...)` so credentials stay environment-driven.
- All ORM models must inherit from `declarativeBase` to be part of `metadata`.
- `create_schema()` issues `CREATE TABLE IF NOT EXISTS` for every entity; real
  deployments should prefer migrations.
"""


from sqlalchemy import create_engine, event
from sqlalchemy.engine import URL, Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.schema import MetaData
from retroboard.database.config.config import settings

# --------------------------------------------------------------------
# Construct the SQLAlchemy connection URL using values from Settings.
# --------------------------------------------------------------------
connection_url = URL.create(
    drivername=settings.DB_DRIVER_NAME,   # e.g., "postgresql+psycopg", "sqlite+pysqlite"
    username=settings.DB_USERNAME,
    password=settings.DB_PASSWORD,
    host=settings.DB_HOST,
    port=settings.DB_PORT,
    database=settings.DB_DATABASE_NAME
)
"""SQLAlchemy connection URL built from Settings."""

# --------------------------------------------------------------------
# Engine object: core interface to the database.
# Connections are opened lazily, so importing this module never touches
# the database.
# --------------------------------------------------------------------
def configure_sqlite(engine: Engine, begin_statement: str = "BEGIN") -> Engine:
    """
    Make a pysqlite engine honour transactions, SAVEPOINTs and foreign keys.

    The sqlite3 driver delays BEGIN until the first DML statement, so a
    SAVEPOINT issued after plain SELECTs would open (and RELEASE would
    commit) its own transaction. Driver-level transaction handling is turned
    off and SQLAlchemy emits BEGIN itself.

    Parameters
    ----------
    engine : Engine
        A `sqlite+pysqlite` engine.
    begin_statement : str
        Statement opening each transaction. `"BEGIN IMMEDIATE"` takes the
        write lock up front, so concurrent writers wait out the busy timeout
        instead of failing when a read lock cannot be upgraded.
    """
    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(connection):
        connection.exec_driver_sql(begin_statement)

    return engine


connection_engine = create_engine(connection_url, echo=settings.DB_ECHO)
"""Engine object: manages connections, executes SQL, pools connections."""

if connection_url.get_backend_name() == "sqlite":
    configure_sqlite(connection_engine, "BEGIN IMMEDIATE")

# --------------------------------------------------------------------
# Metadata object: schema-level information shared across all models.
# --------------------------------------------------------------------
metadata = MetaData()
"""Metadata object: tables, constraints and indexes of every entity."""

declarativeBase = declarative_base(metadata=metadata)
"""Declarative Base: root class for ORM models."""


def create_schema(engine: Engine | None = None) -> None:
    """
    Create every table registered on `metadata`.

    Parameters
    ----------
    engine : Engine | None
        Target engine; defaults to `connection_engine`.
    """
    # entity modules register their tables on import
    import retroboard.database.entities  # noqa: F401

    metadata.create_all(engine or connection_engine)
