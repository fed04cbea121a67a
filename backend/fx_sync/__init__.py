"""Core package for FX rate synchronization and conversion."""

from .cache import RateCache
from .conversion import ConversionCalculator, RateUnavailable, format_conversion
from .fetcher import FetchError, RetryingFetcher
from .models import ChartSeries, DateRange, RateSnapshot, SyncResult
from .sync import HistoricalSync

__all__ = [
    "ChartSeries",
    "ConversionCalculator",
    "DateRange",
    "FetchError",
    "HistoricalSync",
    "RateCache",
    "RateSnapshot",
    "RateUnavailable",
    "RetryingFetcher",
    "SyncResult",
    "format_conversion",
]
