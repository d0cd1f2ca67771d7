"""Engine and session helpers for the orders database.

The engine is built lazily from ``settings.DATABASE_URL`` the first time it
is needed, so importing the package never opens a connection.
"""

import logging
import time
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from . import settings
from .models import Base

logger = logging.getLogger("orders.db")

_engine: Optional[Engine] = None


def build_engine(url: str) -> Engine:
    """Create an engine for ``url``.

    In-memory SQLite URLs get a single shared connection so every session
    sees the same database.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)
    return create_engine(url, pool_pre_ping=True)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = build_engine(settings.DATABASE_URL)
    return _engine


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, expire_on_commit=False)


def init_db(engine: Engine) -> None:
    """Create missing tables."""
    Base.metadata.create_all(engine)


def ping(engine: Engine) -> bool:
    """Return True when the database answers ``SELECT 1``."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.warning("database ping failed", exc_info=True)
        return False
    return True


def wait_for_db(engine: Engine, timeout: float) -> None:
    """Block until the database accepts connections.

    Raises:
        sqlalchemy.exc.OperationalError: If it is still unreachable after
            ``timeout`` seconds.
    """
    deadline = time.monotonic() + timeout
    while True:
        try:
            with engine.connect() as conn:
                conn.execute(text("SELECT 1"))
            return
        except Exception:
            if time.monotonic() > deadline:
                raise
            logger.info("waiting for database")
            time.sleep(1)
