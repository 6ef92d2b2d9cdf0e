"""Database engine and helpers.

The engine is built from `Settings.DATABASE_URL` by `create_app` and kept
on the application context, so tests can point each app at its own
SQLite file. The default is a local `planner.db`.
"""

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

from . import models  # noqa: F401  (registers the tables on SQLModel.metadata)
from .config import Settings


def build_engine(settings: Settings) -> Engine:
    """Create the SQLAlchemy engine for `settings.DATABASE_URL`."""
    connect_args = {}
    if settings.DATABASE_URL.startswith("sqlite"):
        # handlers run on the threadpool, so the connection crosses threads
        connect_args["check_same_thread"] = False
    return create_engine(settings.DATABASE_URL, echo=False, connect_args=connect_args)


def create_db_and_tables(engine: Engine):
    """Create database tables using SQLModel metadata.

    This is idempotent and intended for local development; production
    deployments should manage the schema with a migration tool.
    """
    SQLModel.metadata.create_all(engine)


def drop_db_and_tables(engine: Engine):
    SQLModel.metadata.drop_all(engine)


def get_session(request: Request):
    """Yield a database `Session` for FastAPI dependency injection.

    The generator yields a session bound to the app's engine and ensures
    it is closed when the request scope finishes.
    """
    with Session(request.app.state.context.engine) as session:
        yield session
