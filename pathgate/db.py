from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from pathgate.config import Settings
from pathgate.models import Base

logger = logging.getLogger(__name__)


engine: Engine | None = None
_session_factory: sessionmaker | None = None


class _SessionWrapper:
    """Callable proxy returning sessions from the current factory."""

    def __call__(self, *args: Any, **kwargs: Any):
        if _session_factory is None:
            raise RuntimeError("Database not initialized")
        return _session_factory(*args, **kwargs)


SessionLocal = _SessionWrapper()


def init_db(cfg: Settings) -> None:
    """Create engine and session factory using SQLAlchemy's ``create_engine``."""
    global engine, _session_factory

    if cfg.database_url.startswith("sqlite"):
        # concurrent writers wait on the file lock instead of failing fast
        engine = create_engine(
            cfg.database_url,
            future=True,
            connect_args={"check_same_thread": False, "timeout": 30},
        )
    else:
        engine = create_engine(
            cfg.database_url,
            future=True,
            pool_size=50,
            max_overflow=0,
            pool_recycle=30,
            pool_pre_ping=True,
        )
    _session_factory = sessionmaker(
        bind=engine,
        autoflush=False,
        autocommit=False,
        future=True,
        expire_on_commit=False,
    )

    if cfg.db_create_all:
        Base.metadata.create_all(engine)
    logger.info("database initialized (%s)", engine.dialect.name)
