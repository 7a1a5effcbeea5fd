"""SQLite engine and session handling.

One engine per database file, shared by the API process and the
maintenance scripts. The path comes from the caller, EARSHOT_DB_PATH
or data/earshot.db, in that order.
"""

from __future__ import annotations

import os
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from earshot.db.schema import Base

DEFAULT_DB_PATH = Path("data/earshot.db")

_engines: dict[str, Engine] = {}
_factories: dict[str, sessionmaker] = {}


def resolve_db_path(db_path: Path | None = None) -> Path:
    if db_path is not None:
        return Path(db_path)
    env_path = os.environ.get("EARSHOT_DB_PATH")
    return Path(env_path) if env_path else DEFAULT_DB_PATH


def _cache_key(db_path: Path) -> str:
    return str(db_path.resolve())


def get_engine(db_path: Path | None = None) -> Engine:
    """Engine for the resolved database file, created on first use."""
    db_path = resolve_db_path(db_path)
    key = _cache_key(db_path)
    engine = _engines.get(key)
    if engine is None:
        db_path.parent.mkdir(parents=True, exist_ok=True)
        # Request threads share one connection
        engine = create_engine(
            f"sqlite:///{db_path}",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        _engines[key] = engine
    return engine


def get_session(db_path: Path | None = None) -> Session:
    """New session; the caller closes it."""
    key = _cache_key(resolve_db_path(db_path))
    factory = _factories.get(key)
    if factory is None:
        factory = sessionmaker(bind=get_engine(db_path))
        _factories[key] = factory
    return factory()


@contextmanager
def get_db_session(db_path: Path | None = None) -> Generator[Session, None, None]:
    """Session scope for scripts: commit on success, roll back on error."""
    session = get_session(db_path)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def init_db(db_path: Path | None = None) -> None:
    """Create any missing tables."""
    Base.metadata.create_all(get_engine(db_path))
