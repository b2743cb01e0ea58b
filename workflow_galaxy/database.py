"""
Database connection and session management for the workflow cache.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any

from dotenv import load_dotenv
from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from workflow_galaxy.config import settings
from workflow_galaxy.core.exceptions import CacheNotConfiguredError

load_dotenv()

# Bound to the engine on first use; the cache URL is optional.
SessionLocal = sessionmaker(autocommit=False, autoflush=False)


def build_engine(database_url: str) -> Engine:
    options: dict[str, Any] = {"pool_pre_ping": True, "echo": False}
    if database_url.startswith("postgresql"):
        options.update(pool_size=10, max_overflow=20)
    return create_engine(database_url, **options)


@lru_cache
def get_engine() -> Engine:
    if not settings.cache_configured:
        raise CacheNotConfiguredError("DATABASE_URL is not configured.")
    return build_engine(settings.database_url)


def get_session_factory() -> sessionmaker:
    """
    Return SessionLocal bound to the cache engine.
    """
    SessionLocal.configure(bind=get_engine())
    return SessionLocal


def init_db(engine: Engine | None = None) -> None:
    """
    Create the cache and analytics tables when missing.
    """
    from workflow_galaxy.models import Base

    Base.metadata.create_all(bind=engine or get_engine())


def check_database_connection(engine: Engine | None = None) -> bool:
    """
    Return True when the database connection is healthy.
    """
    try:
        with (engine or get_engine()).connect() as connection:
            connection.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, CacheNotConfiguredError):
        return False


def database_health(engine: Engine | None = None) -> dict[str, Any]:
    """
    Return structured database health details.
    """
    if engine is None:
        if not settings.cache_configured:
            return {"ok": False, "configured": False}
        engine = get_engine()
    if not check_database_connection(engine):
        return {"ok": False, "configured": True, "dialect": engine.dialect.name}
    return {
        "ok": True,
        "configured": True,
        "dialect": engine.dialect.name,
        "database": engine.url.database,
    }
