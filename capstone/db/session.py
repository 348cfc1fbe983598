# capstone/db/session.py
from __future__ import annotations

from typing import Any, Dict, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from capstone.core.config import Settings, get_settings


def engine_options(settings: Settings) -> Dict[str, Any]:
    """
    create_engine kwargs for the configured backend.

    SQLite (local runs and tests) shares one connection across threads;
    an in-memory database would otherwise vanish per connection. Server
    databases get a sized, recycled pool.
    """
    url = make_url(settings.database_url)
    if url.get_backend_name() == "sqlite":
        opts: Dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url.database in (None, "", ":memory:"):
            opts["poolclass"] = StaticPool
        return opts
    return {
        "pool_pre_ping": True,
        "pool_size": settings.db_pool_size,
        "max_overflow": settings.db_max_overflow,
        "pool_recycle": settings.db_pool_recycle_seconds,
    }


settings = get_settings()

# fails fast at import when DATABASE_URL is missing
engine = create_engine(settings.database_url, **engine_options(settings))

SessionLocal = sessionmaker(bind=engine, autoflush=False, expire_on_commit=True)


def get_db() -> Iterator[Session]:
    """Request-scoped session; services own commit/rollback via unit_of_work."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
