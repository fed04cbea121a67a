"""Pydantic schema exports."""

from .rates import ConversionRequest, ConversionResponse, CurrencyListResponse, HistoryResponse

__all__ = [
    "ConversionRequest",
    "ConversionResponse",
    "CurrencyListResponse",
    "HistoryResponse",
]
