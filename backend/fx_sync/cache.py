"""In-memory date-indexed rate cache."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple

from .models import DateLike, DateRange, RateSnapshot, date_key

logger = logging.getLogger(__name__)


class RateCache:
    """Mapping of ISO date -> :data:`RateSnapshot` with at most one snapshot per date.

    ISO keys sort lexicographically in chronological order, so every accessor
    that returns keys or items returns them ascending. Persistence belongs to
    the stores in ``app.services.rate_store``; this class never touches disk.
    """

    def __init__(self, entries: Optional[Mapping[str, Mapping[str, float]]] = None) -> None:
        self._entries: Dict[str, RateSnapshot] = {}
        self._lock: Optional[asyncio.Lock] = None
        for key, snapshot in (entries or {}).items():
            self.merge(key, snapshot)

    @property
    def lock(self) -> asyncio.Lock:
        """Single-flight gate held for the duration of a sync against this cache."""

        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    def has(self, day: DateLike) -> bool:
        return date_key(day) in self._entries

    def get(self, day: DateLike) -> Optional[RateSnapshot]:
        return self._entries.get(date_key(day))

    def merge(self, day: DateLike, snapshot: Mapping[str, float]) -> None:
        """Insert ``snapshot`` for ``day``; re-merging an equal snapshot changes nothing."""

        key = date_key(day)
        incoming = {code: float(rate) for code, rate in snapshot.items()}
        existing = self._entries.get(key)
        if existing is not None and existing != incoming:
            logger.warning("Overwriting cached rates for %s with a different snapshot", key)
        self._entries[key] = incoming

    def prune(self, date_range: DateRange) -> List[str]:
        """Drop every entry outside ``date_range`` and return the removed keys."""

        removed = [key for key in self._entries if key not in date_range]
        for key in removed:
            del self._entries[key]
        if removed:
            logger.debug("Pruned %d cached dates outside %s..%s", len(removed), date_range.start, date_range.end)
        return sorted(removed)

    def subset(self, date_range: DateRange) -> Dict[str, RateSnapshot]:
        return {key: dict(snapshot) for key, snapshot in self.items() if key in date_range}

    def keys(self) -> List[str]:
        return sorted(self._entries)

    def items(self) -> List[Tuple[str, RateSnapshot]]:
        return [(key, self._entries[key]) for key in self.keys()]

    def to_dict(self) -> Dict[str, RateSnapshot]:
        return {key: dict(snapshot) for key, snapshot in self.items()}

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "RateCache":
        if not isinstance(payload, Mapping):
            raise ValueError("Rate cache payload must be a mapping of date -> rates")
        cache = cls()
        for key, snapshot in payload.items():
            if not isinstance(snapshot, Mapping):
                raise ValueError(f"Cached rates for {key!r} are not a mapping")
            cache.merge(key, snapshot)
        return cache

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())

    def __contains__(self, day: object) -> bool:
        try:
            return self.has(day)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RateCache):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"RateCache(dates={self.keys()!r})"
