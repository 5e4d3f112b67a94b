from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, Session

from . import models  # noqa: F401  registers the tables on SQLModel.metadata
from .config import get_engine

_schema_checked_urls: set[str] = set()
engine: Engine | None = None


def _resolve_engine() -> Engine:
    global engine
    if engine is None:
        engine = get_engine()
    return engine


def ensure_schema() -> None:
    resolved = _resolve_engine()
    url = str(resolved.url)
    if url not in _schema_checked_urls:
        SQLModel.metadata.create_all(resolved)
        _schema_checked_urls.add(url)


def get_session():
    ensure_schema()
    resolved = _resolve_engine()
    with Session(resolved) as session:
        yield session


def new_session() -> Session:
    ensure_schema()
    return Session(_resolve_engine())
