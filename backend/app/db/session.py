"""Database engine and session utilities."""

from __future__ import annotations

from functools import lru_cache

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.config import get_settings


def create_engine(database_url: str) -> AsyncEngine:
    return create_async_engine(database_url, echo=False, future=True)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False, class_=AsyncSession)


@lru_cache(maxsize=None)
def get_engine(database_url: str | None = None) -> AsyncEngine:
    """Return the process-wide engine for ``database_url`` (default: configured URL)."""

    return create_engine(database_url or get_settings().database_url)


__all__ = ["create_engine", "create_session_factory", "get_engine"]
