"""SQLAlchemy engine & session factory."""

from collections.abc import Iterator

from fastapi import Request
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


class Database:
    """Owns one engine and its session factory.

    Built by the application lifespan and stored on ``app.state.database``;
    nothing in the package creates an engine at import time.
    """

    def __init__(self, url: str, *, echo: bool = False, **engine_kwargs) -> None:
        self.url = url
        engine_kwargs.setdefault("pool_pre_ping", True)
        self.engine: Engine = create_engine(url, echo=echo, **engine_kwargs)
        self.session_factory = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False
        )

    def create_all(self) -> None:
        # Import for side effects: registers every model on Base.metadata.
        from studybuddy.db import models  # noqa: F401

        Base.metadata.create_all(bind=self.engine)

    def session(self) -> Session:
        return self.session_factory()

    def dispose(self) -> None:
        self.engine.dispose()


def get_db(request: Request) -> Iterator[Session]:
    """FastAPI dependency — yields a DB session and closes it after the request."""
    database: Database = request.app.state.database
    db = database.session()
    try:
        yield db
    finally:
        db.close()
