"""
SQLAlchemy engine, session factory, and declarative base.

``get_db`` is the FastAPI dependency used by every router; it yields one
``Session`` per request and always closes it.  The per-call store timeout from
settings is pushed down to the driver: SQLite receives it as its busy timeout
and PostgreSQL as ``statement_timeout``.
"""

from __future__ import annotations

from typing import Any, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.config import get_settings

Base = declarative_base()


def build_engine(url: str, timeout_seconds: float, **kwargs: Any) -> Engine:
    """Create an engine honouring the per-call store timeout.

    Args:
        url: SQLAlchemy database URL.
        timeout_seconds: Maximum seconds a statement may wait or run.
        **kwargs: Extra keyword arguments forwarded to ``create_engine``.

    Returns:
        A configured SQLAlchemy ``Engine``.
    """
    connect_args: dict[str, Any] = dict(kwargs.pop("connect_args", {}))
    if url.startswith("sqlite"):
        connect_args.setdefault("check_same_thread", False)
        connect_args.setdefault("timeout", timeout_seconds)
    elif url.startswith("postgresql"):
        connect_args.setdefault(
            "options", f"-c statement_timeout={int(timeout_seconds * 1000)}"
        )
    return create_engine(url, connect_args=connect_args, **kwargs)


_settings = get_settings()
engine = build_engine(_settings.DATABASE_URL, _settings.STORE_TIMEOUT_SECONDS)
SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
