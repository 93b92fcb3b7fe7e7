"""SQLModel engine and session management."""

from typing import AsyncIterator

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.core.config import settings


def build_engine(database_url: str) -> Engine:
    """Create an engine; in-memory SQLite shares one connection across threads"""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, echo=False, **kwargs)
    return create_engine(database_url, echo=False, pool_pre_ping=True)


engine = build_engine(settings.DATABASE_URL)


def init_db(db_engine: Engine = engine) -> None:
    # Import models so their tables are registered on the metadata
    from app.db import models  # noqa: F401

    SQLModel.metadata.create_all(db_engine)


async def get_session(request: Request) -> AsyncIterator[Session]:
    """Request-scoped session bound to the application's engine.

    Opened and closed on the event loop thread, where the deployment drivers
    also write: in-memory SQLite gives every session the same connection.

    Use with FastAPI's Depends():
        async def endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(request.app.state.engine) as session:
        yield session
