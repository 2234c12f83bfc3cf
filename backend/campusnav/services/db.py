"""
Database configuration and session management for the walkway backend.

This module defines a SQLModel engine for the URL configured in
:mod:`settings` (a SQLite file in the project's ``storage`` directory
by default).  It exposes helpers to initialise the schema and to
obtain session objects.  Keeping this layer central isolates database
configuration from the walkway and feature store logic.
"""

from __future__ import annotations

from sqlmodel import SQLModel, create_engine, Session

from pathlib import Path

from .settings import DATABASE_URL

# SQLite needs its parent directory to exist before the first connect.
if DATABASE_URL.startswith("sqlite:///"):
    Path(DATABASE_URL[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)

# ``check_same_thread`` is disabled so FastAPI's threadpool can share
# the engine.  We avoid echoing SQL statements for cleanliness.
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
engine = create_engine(DATABASE_URL, echo=False, connect_args=_connect_args)


def create_db_and_tables() -> None:
    """Create all tables in the database.

    This should be called once on application startup.  If the
    database file does not exist it will be created automatically.
    """
    SQLModel.metadata.create_all(engine)


def get_session() -> Session:
    """Return a new SQLModel session bound to the engine.

    Sessions returned by this function should be managed with a
    context manager (``with get_session() as session: ...``) so that
    connections are properly closed.
    """
    return Session(engine)
