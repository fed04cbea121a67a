"""Persistent stores for the rate cache.

Both stores satisfy ``fx_sync.sync.RateStore``: ``load()`` returns a
:class:`RateCache` and ``save(cache)`` writes it back so that a following
``load()`` returns an equal cache.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from app.config import AppSettings
from app.db.init import init_database
from app.db.session import create_session_factory, get_engine
from app.models import RateSnapshotRecord
from fx_sync.cache import RateCache
from fx_sync.sync import RateStore

logger = logging.getLogger(__name__)


class SqlRateStore:
    """Keep the cache in the ``fx_rate_snapshot`` table, one row per date."""

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory: async_sessionmaker[AsyncSession] = create_session_factory(engine)
        self._schema_ready = False

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def _ensure_schema(self) -> None:
        if not self._schema_ready:
            await init_database(self._engine)
            self._schema_ready = True

    async def load(self) -> RateCache:
        await self._ensure_schema()
        async with self._session_factory() as session:
            rows = (await session.execute(select(RateSnapshotRecord))).scalars().all()
        cache = RateCache.from_dict({row.date: row.rates for row in rows})
        logger.info("Loaded %d cached rate dates from the database", len(cache))
        return cache

    async def save(self, cache: RateCache) -> None:
        """Replace the stored rows with the cache contents in one transaction."""

        await self._ensure_schema()
        payload = cache.to_dict()
        async with self._session_factory() as session:
            async with session.begin():
                await session.execute(delete(RateSnapshotRecord))
                session.add_all(RateSnapshotRecord(date=key, rates=rates) for key, rates in payload.items())
        logger.debug("Saved %d rate dates to the database", len(payload))


class JsonFileRateStore:
    """Keep the cache as a JSON object ``{date: {currency: rate}}`` on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    async def load(self) -> RateCache:
        if not self.path.exists():
            logger.info("No rate cache at %s; starting empty", self.path)
            return RateCache()
        text = await asyncio.to_thread(self.path.read_text, encoding="utf-8")
        try:
            payload = json.loads(text) if text.strip() else {}
        except json.JSONDecodeError as exc:
            raise ValueError(f"Rate cache file {self.path} is not valid JSON") from exc
        cache = RateCache.from_dict(payload)
        logger.info("Loaded %d cached rate dates from %s", len(cache), self.path)
        return cache

    async def save(self, cache: RateCache) -> None:
        text = json.dumps(cache.to_dict(), indent=2, sort_keys=True)
        await asyncio.to_thread(self._write, text)
        logger.debug("Saved %d rate dates to %s", len(cache), self.path)

    def _write(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp.write_text(text, encoding="utf-8")
        tmp.replace(self.path)


def build_rate_store(settings: AppSettings, engine: AsyncEngine | None = None) -> RateStore:
    """Return the store selected by ``settings.rate_store``."""

    if settings.rate_store == "file":
        return JsonFileRateStore(settings.rate_store_path)
    return SqlRateStore(engine or get_engine(settings.database_url))


__all__ = ["JsonFileRateStore", "SqlRateStore", "build_rate_store"]
