"""HTTP fetching with bounded retry for the rate source."""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_RETRIES = 3
DEFAULT_BACKOFF_SECONDS = 30.0
RATE_LIMIT_STATUSES = frozenset({403, 429})

Sleep = Callable[[float], Awaitable[None]]


class FetchError(RuntimeError):
    """Raised when a request fails for good: retries spent or a non-retryable error."""

    def __init__(self, url: str, attempts: int, cause: BaseException | None = None) -> None:
        self.url = url
        self.attempts = attempts
        self.cause = cause
        super().__init__(f"Fetching {url} failed after {attempts} attempt(s): {cause}")


class RateLimitedError(RuntimeError):
    """Raised internally when the rate source answers 403 or 429."""

    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"Rate limit exceeded (HTTP {status_code})")


class RetryingFetcher:
    """Issue GET requests, retrying rate-limited and transient failures.

    Any other ``httpx.HTTPError`` becomes a :class:`FetchError` at once, so
    callers only ever see that one exception type.

    ``retries`` counts attempts after the first, so the default budget is four
    requests. The delay before retry ``n`` is ``backoff_seconds *
    backoff_factor ** (n - 1)``; the default factor of 1 keeps it fixed.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        retries: int = DEFAULT_RETRIES,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        backoff_factor: float = 1.0,
        sleep: Sleep | None = None,
    ) -> None:
        if retries < 0:
            raise ValueError("retries must be non-negative")
        if backoff_seconds < 0 or backoff_factor < 1:
            raise ValueError("backoff_seconds must be >= 0 and backoff_factor >= 1")
        self._client = client
        self.retries = retries
        self.backoff_seconds = backoff_seconds
        self.backoff_factor = backoff_factor
        self._sleep = sleep or asyncio.sleep

    @property
    def max_attempts(self) -> int:
        return self.retries + 1

    def delay_for(self, retry_number: int) -> float:
        return self.backoff_seconds * self.backoff_factor ** (retry_number - 1)

    async def fetch(self, url: str) -> httpx.Response:
        """Return the first successful response for ``url`` or raise :class:`FetchError`."""

        last_error: BaseException | None = None
        for attempt in range(1, self.max_attempts + 1):
            try:
                return await self._attempt(url)
            except (RateLimitedError, httpx.TransportError) as exc:
                last_error = exc
            except httpx.HTTPStatusError as exc:
                if not _is_transient(exc.response.status_code):
                    logger.error("Request to %s rejected with HTTP %s", _redact(url), exc.response.status_code)
                    raise FetchError(_redact(url), attempt, exc) from exc
                last_error = exc
            except httpx.HTTPError as exc:
                # Undecodable bodies and redirect loops are not transient.
                logger.error("Request to %s failed: %s", _redact(url), exc)
                raise FetchError(_redact(url), attempt, exc) from exc
            if attempt == self.max_attempts:
                break
            delay = self.delay_for(attempt)
            logger.warning(
                "Attempt %d/%d for %s failed (%s); retrying in %.1fs",
                attempt,
                self.max_attempts,
                _redact(url),
                last_error,
                delay,
            )
            await self._sleep(delay)

        logger.error("Giving up on %s after %d attempts: %s", _redact(url), self.max_attempts, last_error)
        raise FetchError(_redact(url), self.max_attempts, last_error) from last_error

    async def _attempt(self, url: str) -> httpx.Response:
        response = await self._client.get(url)
        if response.status_code in RATE_LIMIT_STATUSES:
            raise RateLimitedError(response.status_code)
        response.raise_for_status()
        return response


def _is_transient(status_code: int) -> bool:
    return status_code >= 500


def _redact(url: str) -> str:
    """Hide the access key when a URL ends up in logs or error messages."""

    parsed = httpx.URL(url)
    if "access_key" not in parsed.params:
        return url
    return str(parsed.copy_set_param("access_key", "***"))


__all__ = [
    "DEFAULT_BACKOFF_SECONDS",
    "DEFAULT_RETRIES",
    "FetchError",
    "RateLimitedError",
    "RetryingFetcher",
]
