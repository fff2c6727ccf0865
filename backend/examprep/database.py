"""Database engine and helpers.

The engine is built by the application factory from `DATABASE_URL` and
kept on `app.state.engine`; request handlers receive a `Session` bound
to it through `get_session`.
"""

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session, create_engine

from . import models  # noqa: F401  (registers table metadata)


def build_engine(url: str, pool_size: int = 10) -> Engine:
    """Create an engine for `url`.

    SQLite files are opened with `check_same_thread=False` so the
    threadpool that serves sync routes can share the engine. Server
    databases get a bounded connection pool.
    """
    if url.startswith("sqlite"):
        return create_engine(url, echo=False, connect_args={"check_same_thread": False})
    return create_engine(url, echo=False, pool_size=pool_size, pool_pre_ping=True)


def create_db_and_tables(engine: Engine):
    """Create database tables using SQLModel metadata.

    Intended for local development and tests; production deployments
    should run migrations instead.
    """
    SQLModel.metadata.create_all(engine)


def get_session(request: Request):
    """Yield a database `Session` for FastAPI dependency injection.

    The session is closed when the request scope finishes.
    """
    with Session(request.app.state.engine) as session:
        yield session
