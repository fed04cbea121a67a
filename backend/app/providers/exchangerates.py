"""exchangeratesapi.io client used by the rate sync service."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

import httpx

from app.config import AppSettings, get_settings
from fx_sync.fetcher import RetryingFetcher, Sleep
from fx_sync.models import RateSnapshot

logger = logging.getLogger(__name__)


class ExchangeRatesError(RuntimeError):
    """Raised when the latest-rates endpoint returns an error payload."""


def parse_rates(payload: Any) -> Optional[RateSnapshot]:
    """Return the ``rates`` mapping of a successful payload, ``None`` otherwise.

    A payload counts as successful when ``success`` is true and ``rates`` maps
    at least one currency code to a positive number. Codes with unusable
    values are dropped; charts zero-fill them.
    """

    if not isinstance(payload, dict) or not payload.get("success"):
        return None
    raw = payload.get("rates")
    if not isinstance(raw, dict) or not raw:
        return None
    snapshot: RateSnapshot = {}
    for code, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, (int, float)) or not value > 0:
            logger.debug("Dropping unusable rate %r for %r", value, code)
            continue
        snapshot[str(code).upper()] = float(value)
    return snapshot or None


class ExchangeRatesClient:
    """Build exchangeratesapi.io request targets and interpret their payloads."""

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str | None = None,
        client: httpx.AsyncClient | None = None,
        fetcher: RetryingFetcher | None = None,
        settings: AppSettings | None = None,
        sleep: Sleep | None = None,
    ) -> None:
        settings = settings or get_settings()
        self._api_key = api_key if api_key is not None else settings.exchangerates_api_key
        self._base_url = (base_url or settings.exchangerates_base_url).rstrip("/")
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.http_timeout_seconds)
        self._fetcher = fetcher or RetryingFetcher(
            self._client,
            retries=settings.fetch_retries,
            backoff_seconds=settings.fetch_backoff_seconds,
            backoff_factor=settings.fetch_backoff_factor,
            sleep=sleep,
        )

    def latest_url(self) -> str:
        return str(httpx.URL(f"{self._base_url}/latest", params={"access_key": self._api_key}))

    def historical_url(self, day: date) -> str:
        return str(httpx.URL(f"{self._base_url}/{day.isoformat()}", params={"access_key": self._api_key}))

    async def latest(self) -> RateSnapshot:
        """Return the latest rates; raises :class:`ExchangeRatesError` on an unusable payload."""

        response = await self._fetcher.fetch(self.latest_url())
        payload = _json_or_none(response)
        snapshot = parse_rates(payload)
        if snapshot is None:
            detail = payload.get("error") if isinstance(payload, dict) else None
            raise ExchangeRatesError(f"Latest rates unavailable: {detail or 'malformed payload'}")
        return snapshot

    async def historical(self, day: date) -> Optional[RateSnapshot]:
        """Return the rates for ``day`` or ``None`` when the source has none."""

        response = await self._fetcher.fetch(self.historical_url(day))
        return parse_rates(_json_or_none(response))

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _json_or_none(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        logger.warning("Rate source returned a non-JSON body (HTTP %s)", response.status_code)
        return None


__all__ = ["ExchangeRatesClient", "ExchangeRatesError", "parse_rates"]
