from typing import Generator
import logging

from fastapi import Request
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import create_engine, Session, SQLModel

from . import config

# Make sure to import models to register them with SQLModel.metadata
from .models import User, Todo  # noqa: F401

logger = logging.getLogger(__name__)


def create_db_engine(url: str = None, echo: bool = None) -> Engine:
    url = url or config.DATABASE_URL
    echo = config.SQL_ECHO if echo is None else echo
    kwargs = {}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        # In-memory SQLite lives on a single connection, share it
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    logger.info("Creating database engine for %s...", url[:15])
    return create_engine(url, echo=echo, **kwargs)


def init_db(engine: Engine) -> None:
    SQLModel.metadata.create_all(engine)


def get_session(request: Request) -> Generator[Session, None, None]:
    with Session(request.app.state.engine) as session:
        yield session
