import asyncio
import inspect
import pathlib
import sys
from datetime import date
from typing import Callable, Optional

import httpx
import pytest

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from fx_sync.cache import RateCache  # noqa: E402
from fx_sync.fetcher import FetchError  # noqa: E402
from fx_sync.models import RateSnapshot  # noqa: E402


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers used in the suite."""

    config.addinivalue_line("markers", "asyncio: mark test as running in an asyncio event loop")


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem: pytest.Function) -> bool | None:
    """Execute async test functions without requiring pytest-asyncio."""

    test_function = pyfuncitem.obj
    if inspect.iscoroutinefunction(test_function):
        kwargs = {name: pyfuncitem.funcargs[name] for name in pyfuncitem._fixtureinfo.argnames}
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            loop.run_until_complete(test_function(**kwargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class FakeRateSource:
    """In-memory rate source keyed by ISO date.

    A snapshot value returns rates, ``None`` means "no data", and an exception
    instance is raised for that date.
    """

    def __init__(self, responses: dict[str, object] | None = None) -> None:
        self.responses = responses or {}
        self.calls: list[str] = []

    async def historical(self, day: date) -> Optional[RateSnapshot]:
        key = day.isoformat()
        self.calls.append(key)
        outcome = self.responses.get(key)
        if isinstance(outcome, BaseException):
            raise outcome
        return dict(outcome) if outcome is not None else None  # type: ignore[arg-type]


class MemoryRateStore:
    def __init__(self) -> None:
        self.saved: list[dict[str, dict[str, float]]] = []

    async def load(self) -> RateCache:
        return RateCache.from_dict(self.saved[-1]) if self.saved else RateCache()

    async def save(self, cache: RateCache) -> None:
        self.saved.append(cache.to_dict())


@pytest.fixture()
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture()
def fake_source() -> FakeRateSource:
    return FakeRateSource()


@pytest.fixture()
def memory_store() -> MemoryRateStore:
    return MemoryRateStore()


@pytest.fixture()
def fetch_error() -> Callable[[str], FetchError]:
    def _make(url: str = "http://rates.test/2024-01-01") -> FetchError:
        return FetchError(url, 4, httpx.ConnectError("connection refused"))

    return _make


@pytest.fixture()
def mock_http() -> Callable[..., httpx.AsyncClient]:
    """Return a factory for AsyncClients whose requests go to ``handler``."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make
