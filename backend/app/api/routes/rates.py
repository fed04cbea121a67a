"""Rate endpoints: currency list, history series and conversion."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.exc import SQLAlchemyError

from app.api.dependencies.rates import get_rate_service
from app.providers.exchangerates import ExchangeRatesError
from app.schemas.rates import ConversionRequest, ConversionResponse, CurrencyListResponse, HistoryResponse
from app.services.rates import RateService
from fx_sync.conversion import RateUnavailable
from fx_sync.fetcher import FetchError

router = APIRouter()
logger = logging.getLogger(__name__)

CURRENCY_CODE = r"^[A-Za-z]{3}$"
HISTORY_ERROR = "Error fetching historical rates."
# Raised by the rate stores while loading or saving the cache.
STORE_ERRORS = (SQLAlchemyError, OSError, ValueError)


@router.get("/currencies", response_model=CurrencyListResponse)
async def list_currencies(service: RateService = Depends(get_rate_service)) -> CurrencyListResponse:
    try:
        day, codes = await service.currencies()
    except (FetchError, ExchangeRatesError) as exc:
        logger.error("Currency list unavailable: %s", exc)
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail="Error fetching currencies.") from exc
    return CurrencyListResponse(date=day, currencies=codes)


@router.get("/history", response_model=HistoryResponse)
async def rate_history(
    base: str = Query(..., pattern=CURRENCY_CODE, description="Base currency code"),
    target: str = Query(..., pattern=CURRENCY_CODE, description="Target currency code"),
    days: int | None = Query(None, ge=0, le=31, description="Days before today to include"),
    service: RateService = Depends(get_rate_service),
) -> HistoryResponse:
    """Sync the window ending today and return both series; unresolved dates are listed, not plotted."""

    try:
        history = await service.history(base, target, days)
    except STORE_ERRORS as exc:
        logger.exception("History sync for %s/%s failed to persist", base, target)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=HISTORY_ERROR) from exc
    series = history.series
    return HistoryResponse(
        base=series.base_currency,
        target=series.target_currency,
        start=history.date_range.start,
        end=history.date_range.end,
        dates=series.dates,
        base_values=series.base_values,
        target_values=series.target_values,
        missing_dates=history.sync.missing_dates,
    )


@router.post("/convert", response_model=ConversionResponse)
async def convert(
    payload: ConversionRequest,
    service: RateService = Depends(get_rate_service),
) -> ConversionResponse:
    try:
        result = await service.convert(payload.amount, payload.base, payload.target)
    except RateUnavailable as exc:
        logger.warning("Conversion %s -> %s failed: %s", payload.base, payload.target, exc)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except STORE_ERRORS as exc:
        logger.exception("Conversion %s -> %s failed during history sync", payload.base, payload.target)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=HISTORY_ERROR) from exc
    return ConversionResponse(
        amount=result.amount,
        base=result.base_currency,
        target=result.target_currency,
        rate=result.rate,
        converted=result.converted,
        date=result.date,
        summary=result.summary,
    )


__all__ = ["router"]
