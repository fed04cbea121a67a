"""Historical sync engine tests."""

from __future__ import annotations

import asyncio
from datetime import date

import httpx
import pytest

from app.config import AppSettings
from app.providers.exchangerates import ExchangeRatesClient
from fx_sync.cache import RateCache
from fx_sync.models import DateRange
from fx_sync.sync import HistoricalSync

JAN_1_3 = DateRange(date(2024, 1, 1), date(2024, 1, 3))


@pytest.mark.asyncio
async def test_end_to_end_cached_fetched_and_missing(fake_source, memory_store):
    cache = RateCache({"2024-01-01": {"USD": 1.0, "EUR": 0.91}})
    fake_source.responses = {"2024-01-02": {"USD": 1.0, "EUR": 0.92}, "2024-01-03": None}

    result = await HistoricalSync(fake_source, memory_store).sync("USD", "EUR", JAN_1_3, cache)

    assert result.resolved_dates() == ["2024-01-01", "2024-01-02"]
    assert result.fetched_data["2024-01-01"] == {"USD": 1.0, "EUR": 0.91}
    assert result.fetched_data["2024-01-02"] == {"USD": 1.0, "EUR": 0.92}
    assert result.missing_dates == ["2024-01-03"]
    assert sorted(fake_source.calls) == ["2024-01-02", "2024-01-03"]
    assert cache.keys() == ["2024-01-01", "2024-01-02"]


@pytest.mark.asyncio
async def test_resolved_and_missing_partition_the_range(fake_source, fetch_error):
    fake_source.responses = {
        "2024-01-01": {"USD": 1.0},
        "2024-01-02": fetch_error(),
        "2024-01-04": {"USD": 1.0},
    }
    date_range = DateRange(date(2024, 1, 1), date(2024, 1, 5))

    result = await HistoricalSync(fake_source).sync("USD", "EUR", date_range, RateCache())

    resolved = set(result.resolved_dates())
    missing = set(result.missing_dates)
    assert resolved | missing == set(date_range.keys())
    assert not resolved & missing
    assert missing == {"2024-01-02", "2024-01-03", "2024-01-05"}


@pytest.mark.asyncio
async def test_fetch_failure_does_not_abort_other_dates(fake_source, fetch_error):
    fake_source.responses = {
        "2024-01-01": fetch_error(),
        "2024-01-02": {"USD": 1.0, "EUR": 0.9},
        "2024-01-03": {"USD": 1.0, "EUR": 0.95},
    }

    result = await HistoricalSync(fake_source).sync("USD", "EUR", JAN_1_3, RateCache())

    assert result.missing_dates == ["2024-01-01"]
    assert result.resolved_dates() == ["2024-01-02", "2024-01-03"]


@pytest.mark.asyncio
async def test_second_sync_is_idempotent_and_fetches_nothing(fake_source, memory_store):
    fake_source.responses = {key: {"USD": 1.0, "EUR": 0.9} for key in JAN_1_3.keys()}
    cache = RateCache()
    syncer = HistoricalSync(fake_source, memory_store)

    await syncer.sync("USD", "EUR", JAN_1_3, cache)
    first = cache.to_dict()
    calls_after_first = len(fake_source.calls)
    second = await syncer.sync("USD", "EUR", JAN_1_3, cache)

    assert cache.to_dict() == first
    assert len(fake_source.calls) == calls_after_first == 3
    assert second.missing_dates == []
    assert memory_store.saved[0] == memory_store.saved[1]


@pytest.mark.asyncio
async def test_non_overlapping_range_prunes_previous_window(fake_source):
    fake_source.responses = {
        "2024-01-01": {"USD": 1.0},
        "2024-01-02": {"USD": 1.0},
        "2024-02-01": {"USD": 1.0},
        "2024-02-02": {"USD": 1.0},
    }
    cache = RateCache()
    syncer = HistoricalSync(fake_source)

    await syncer.sync("USD", "EUR", DateRange(date(2024, 1, 1), date(2024, 1, 2)), cache)
    result = await syncer.sync("USD", "EUR", DateRange(date(2024, 2, 1), date(2024, 2, 2)), cache)

    assert cache.keys() == ["2024-02-01", "2024-02-02"]
    assert all(key.startswith("2024-02") for key in result.fetched_data)


@pytest.mark.asyncio
async def test_store_receives_pruned_and_merged_cache(fake_source, memory_store):
    cache = RateCache({"2023-12-31": {"USD": 1.0}, "2024-01-01": {"USD": 1.0}})
    fake_source.responses = {"2024-01-02": {"USD": 1.1}, "2024-01-03": {"USD": 1.2}}

    await HistoricalSync(fake_source, memory_store).sync("USD", "EUR", JAN_1_3, cache)

    assert list(memory_store.saved[-1]) == ["2024-01-01", "2024-01-02", "2024-01-03"]


@pytest.mark.asyncio
async def test_missing_dates_are_fetched_concurrently():
    in_flight = 0
    peak = 0
    gate = asyncio.Event()

    class SlowSource:
        async def historical(self, day):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            if peak == 3:
                gate.set()
            await asyncio.wait_for(gate.wait(), timeout=1)
            in_flight -= 1
            return {"USD": 1.0}

    result = await HistoricalSync(SlowSource()).sync("USD", "EUR", JAN_1_3, RateCache())

    assert peak == 3
    assert result.resolved_dates() == JAN_1_3.keys()


@pytest.mark.asyncio
async def test_resolved_date_without_target_currency_zero_fills(fake_source):
    fake_source.responses = {
        "2024-01-01": {"USD": 1.0, "EUR": 0.9},
        "2024-01-02": {"USD": 1.0},
        "2024-01-03": {"USD": 1.0, "EUR": 0.95},
    }

    result = await HistoricalSync(fake_source).sync("USD", "EUR", JAN_1_3, RateCache())
    series = result.series("USD", "EUR")

    assert result.missing_dates == []
    assert series.dates == JAN_1_3.keys()
    assert series.target_values == [0.9, 0.0, 0.95]
    assert series.base_values == [1.0, 1.0, 1.0]


@pytest.mark.asyncio
async def test_exhausted_retries_record_date_as_missing(mock_http, sleep_recorder):
    attempts: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        attempts.append(request.url.path)
        raise httpx.ReadTimeout("timed out", request=request)

    settings = AppSettings(exchangerates_base_url="http://rates.test/v1", exchangerates_api_key="k")
    source = ExchangeRatesClient(settings=settings, client=mock_http(handler), sleep=sleep_recorder)
    one_day = DateRange(date(2024, 1, 2), date(2024, 1, 2))

    result = await HistoricalSync(source).sync("USD", "EUR", one_day, RateCache())

    assert result.missing_dates == ["2024-01-02"]
    assert len(attempts) == 4
    assert sleep_recorder.delays == [30.0, 30.0, 30.0]


@pytest.mark.asyncio
async def test_undecodable_response_marks_only_that_date_missing(mock_http, sleep_recorder, memory_store):
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("2024-01-02"):
            return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=b"not gzip")
        return httpx.Response(200, json={"success": True, "rates": {"USD": 1.0, "EUR": 0.9}})

    settings = AppSettings(exchangerates_base_url="http://rates.test/v1", exchangerates_api_key="k")
    source = ExchangeRatesClient(settings=settings, client=mock_http(handler), sleep=sleep_recorder)

    result = await HistoricalSync(source, memory_store).sync("USD", "EUR", JAN_1_3, RateCache())

    assert result.missing_dates == ["2024-01-02"]
    assert result.resolved_dates() == ["2024-01-01", "2024-01-03"]
    assert list(memory_store.saved[-1]) == ["2024-01-01", "2024-01-03"]


@pytest.mark.asyncio
async def test_fetched_data_does_not_alias_the_cache(fake_source):
    cache = RateCache({"2024-01-01": {"USD": 1.0, "EUR": 0.9}})
    fake_source.responses = {"2024-01-02": {"USD": 1.0, "EUR": 0.92}, "2024-01-03": {"USD": 1.0, "EUR": 0.93}}

    result = await HistoricalSync(fake_source).sync("USD", "EUR", JAN_1_3, cache)
    result.fetched_data["2024-01-01"]["EUR"] = 5.0
    result.fetched_data["2024-01-02"]["EUR"] = 5.0

    assert cache.get("2024-01-01") == {"USD": 1.0, "EUR": 0.9}
    assert cache.get("2024-01-02") == {"USD": 1.0, "EUR": 0.92}
