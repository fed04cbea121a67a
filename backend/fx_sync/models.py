"""Domain models used by the FX rate synchronization engine."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterator, List, Mapping, Union

RateSnapshot = Dict[str, float]
"""Currency code -> rate, all relative to one implicit reference currency."""

DateLike = Union[date, str]


def date_key(day: DateLike) -> str:
    """Return the ISO ``YYYY-MM-DD`` cache key for ``day``."""

    if isinstance(day, date):
        return day.isoformat()
    return date.fromisoformat(day).isoformat()


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar date range."""

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError(
                f"Range start {self.start.isoformat()} is after end {self.end.isoformat()}"
            )

    @classmethod
    def ending(cls, end: date, days_back: int) -> "DateRange":
        """Return the range covering ``days_back`` days before ``end`` plus ``end`` itself."""

        if days_back < 0:
            raise ValueError("days_back must be non-negative")
        return cls(end - timedelta(days=days_back), end)

    def days(self) -> List[date]:
        return list(self)

    def keys(self) -> List[str]:
        return [day.isoformat() for day in self]

    def __iter__(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def __len__(self) -> int:
        return (self.end - self.start).days + 1

    def __contains__(self, day: object) -> bool:
        if isinstance(day, str):
            try:
                day = date.fromisoformat(day)
            except ValueError:
                return False
        if not isinstance(day, date):
            return False
        return self.start <= day <= self.end


@dataclass(frozen=True)
class ChartSeries:
    """Two aligned rate series over ascending dates, ready for a line chart."""

    dates: List[str]
    base_values: List[float]
    target_values: List[float]
    base_currency: str
    target_currency: str

    @classmethod
    def from_rates(
        cls,
        rates: Mapping[str, RateSnapshot],
        base_currency: str,
        target_currency: str,
    ) -> "ChartSeries":
        """Build the series from a date-keyed mapping; absent currencies plot as ``0.0``."""

        dates = sorted(rates)
        return cls(
            dates=dates,
            base_values=[float(rates[d].get(base_currency) or 0.0) for d in dates],
            target_values=[float(rates[d].get(target_currency) or 0.0) for d in dates],
            base_currency=base_currency,
            target_currency=target_currency,
        )

    def rows(self) -> List[tuple[str, float, float]]:
        return list(zip(self.dates, self.base_values, self.target_values))


@dataclass
class SyncResult:
    """Outcome of a historical sync over one date range."""

    fetched_data: Dict[str, RateSnapshot] = field(default_factory=dict)
    missing_dates: List[str] = field(default_factory=list)

    def resolved_dates(self) -> List[str]:
        return sorted(self.fetched_data)

    def series(self, base_currency: str, target_currency: str) -> ChartSeries:
        return ChartSeries.from_rates(self.fetched_data, base_currency, target_currency)
