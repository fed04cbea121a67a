"""Rate service: cache lifecycle, history sync, conversion and currency list."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Callable
from zoneinfo import ZoneInfo

from app.config import AppSettings, get_settings
from app.providers.exchangerates import ExchangeRatesClient
from app.services.rate_store import build_rate_store
from fx_sync.cache import RateCache
from fx_sync.conversion import ConversionCalculator, RateUnavailable, format_conversion
from fx_sync.models import ChartSeries, DateRange, SyncResult
from fx_sync.sync import HistoricalSync, RateStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoryResult:
    date_range: DateRange
    sync: SyncResult
    series: ChartSeries


@dataclass(frozen=True)
class ConversionResult:
    amount: Decimal
    base_currency: str
    target_currency: str
    rate: Decimal
    # 2dp, half-up
    converted: Decimal
    date: str
    summary: str


class RateService:
    """Own the loaded :class:`RateCache` and run every operation against it."""

    def __init__(
        self,
        client: ExchangeRatesClient,
        store: RateStore,
        *,
        settings: AppSettings | None = None,
        today: Callable[[], date] | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = client
        self.store = store
        self.syncer = HistoricalSync(client, store)
        self.calculator = ConversionCalculator()
        self._today = today or self._zone_today
        self._cache: RateCache | None = None

    def _zone_today(self) -> date:
        return datetime.now(ZoneInfo(self.settings.timezone)).date()

    def today(self) -> date:
        return self._today()

    async def load(self) -> RateCache:
        """Load the cache from the store once; later calls reuse it."""

        if self._cache is None:
            self._cache = await self.store.load()
        return self._cache

    def window(self, days: int | None = None) -> DateRange:
        days_back = self.settings.history_window_days if days is None else days
        return DateRange.ending(self.today(), days_back)

    async def history(self, base_currency: str, target_currency: str, days: int | None = None) -> HistoryResult:
        """Sync the window ending today and chart the cached union for the pair."""

        base_currency, target_currency = base_currency.upper(), target_currency.upper()
        cache = await self.load()
        date_range = self.window(days)
        result = await self.syncer.sync(base_currency, target_currency, date_range, cache)
        # fetched_data already holds the cached and newly fetched dates of the window
        return HistoryResult(
            date_range=date_range,
            sync=result,
            series=result.series(base_currency, target_currency),
        )

    async def convert(self, amount: Decimal, base_currency: str, target_currency: str) -> ConversionResult:
        """Convert with today's rates, syncing the history window at most once."""

        base_currency, target_currency = base_currency.upper(), target_currency.upper()
        cache = await self.load()
        today = self.today()
        snapshot = cache.get(today)
        if not _has_pair(snapshot, base_currency, target_currency):
            logger.info("Rates for %s/%s missing on %s; syncing history", base_currency, target_currency, today)
            await self.history(base_currency, target_currency)
            snapshot = cache.get(today)

        rate = self.calculator.rate(base_currency, target_currency, snapshot)
        converted = self.calculator.convert(amount, base_currency, target_currency, snapshot)
        return ConversionResult(
            amount=amount,
            base_currency=base_currency,
            target_currency=target_currency,
            rate=rate,
            converted=converted,
            date=today.isoformat(),
            summary=format_conversion(amount, base_currency, converted, target_currency),
        )

    async def currencies(self) -> tuple[str, list[str]]:
        """Return today's available currency codes, from cache or the latest endpoint."""

        cache = await self.load()
        today = self.today()
        snapshot = cache.get(today)
        if snapshot:
            return today.isoformat(), sorted(snapshot)
        logger.info("No cached rates for %s; asking the latest endpoint for currencies", today)
        latest = await self.client.latest()
        return today.isoformat(), sorted(latest)

    async def aclose(self) -> None:
        await self.client.aclose()


def _has_pair(snapshot: dict[str, float] | None, base_currency: str, target_currency: str) -> bool:
    if not snapshot:
        return False
    return bool(snapshot.get(base_currency)) and bool(snapshot.get(target_currency))


def build_rate_service(settings: AppSettings | None = None) -> RateService:
    """Build the production service from settings."""

    settings = settings or get_settings()
    return RateService(
        ExchangeRatesClient(settings=settings),
        build_rate_store(settings),
        settings=settings,
    )


__all__ = [
    "ConversionResult",
    "HistoryResult",
    "RateService",
    "RateUnavailable",
    "build_rate_service",
]
