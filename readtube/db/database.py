"""
Database connection and session management for ReadTube.
"""

from typing import Generator
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi import Request

# Create base class for SQLAlchemy models
Base = declarative_base()

def create_db_engine(database_url: str) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections are shared across threads; an in-memory SQLite
    database is pinned to a single connection so every session sees it.
    """
    kwargs = {}
    if database_url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, **kwargs)


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine) -> None:
    """Initialize the database by creating all tables."""
    from readtube.db import models  # noqa: F401

    Base.metadata.create_all(bind=engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Get a database session.

    This is a dependency that will be used in FastAPI route functions.
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
