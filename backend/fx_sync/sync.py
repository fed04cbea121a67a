"""Historical rate synchronization: reconcile the cache against the rate source."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Optional, Protocol

from opentelemetry import trace

from .cache import RateCache
from .fetcher import FetchError
from .models import DateRange, RateSnapshot, SyncResult

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class HistoricalRateSource(Protocol):
    async def historical(self, day: date) -> Optional[RateSnapshot]:
        """Return the snapshot for ``day``, ``None`` when the source has no data.

        Raises :class:`FetchError` once transport-level retries are exhausted.
        """


class RateStore(Protocol):
    async def load(self) -> RateCache: ...

    async def save(self, cache: RateCache) -> None: ...


class HistoricalSync:
    """Fill the gaps of a :class:`RateCache` for a date range.

    Dates outside the requested range are pruned first, so the cache behaves
    as a sliding window over the most recent request. Missing dates are
    fetched concurrently; a failure for one date is recorded in
    ``missing_dates`` and never stops the others.
    """

    def __init__(self, source: HistoricalRateSource, store: RateStore | None = None) -> None:
        self._source = source
        self._store = store

    async def sync(
        self,
        base_currency: str,
        target_currency: str,
        date_range: DateRange,
        cache: RateCache,
    ) -> SyncResult:
        async with cache.lock:
            with tracer.start_as_current_span("fx_sync.historical_sync") as span:
                span.set_attribute("fx.base_currency", base_currency)
                span.set_attribute("fx.target_currency", target_currency)
                span.set_attribute("fx.range_start", date_range.start.isoformat())
                span.set_attribute("fx.range_end", date_range.end.isoformat())

                result = await self._reconcile(base_currency, target_currency, date_range, cache)

                span.set_attribute("fx.missing_dates", len(result.missing_dates))
                if self._store is not None:
                    await self._store.save(cache)
                return result

    async def _reconcile(
        self,
        base_currency: str,
        target_currency: str,
        date_range: DateRange,
        cache: RateCache,
    ) -> SyncResult:
        cache.prune(date_range)

        result = SyncResult()
        missing: list[date] = []
        for day in date_range:
            snapshot = cache.get(day)
            if snapshot is not None:
                result.fetched_data[day.isoformat()] = dict(snapshot)
            else:
                missing.append(day)

        logger.info(
            "Syncing %s/%s for %s..%s: %d cached, %d to fetch",
            base_currency,
            target_currency,
            date_range.start,
            date_range.end,
            len(date_range) - len(missing),
            len(missing),
        )

        await asyncio.gather(*(self._fetch_day(day, cache, result) for day in missing))

        result.fetched_data = dict(sorted(result.fetched_data.items()))
        result.missing_dates.sort()
        if result.missing_dates:
            logger.warning("No rates available for %s", ", ".join(result.missing_dates))
        return result

    async def _fetch_day(self, day: date, cache: RateCache, result: SyncResult) -> None:
        key = day.isoformat()
        try:
            snapshot = await self._source.historical(day)
        except FetchError as exc:
            logger.error("Error fetching rates for %s: %s", key, exc)
            result.missing_dates.append(key)
            return
        if snapshot is None:
            logger.info("Rate source has no data for %s", key)
            result.missing_dates.append(key)
            return
        # Distinct dates per branch, so merges never collide.
        cache.merge(key, snapshot)
        result.fetched_data[key] = dict(cache.get(key) or snapshot)


__all__ = ["HistoricalRateSource", "HistoricalSync", "RateStore"]
