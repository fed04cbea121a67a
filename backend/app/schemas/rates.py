from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _currency_code(value: str) -> str:
    code = value.strip().upper()
    if len(code) != 3 or not code.isalpha():
        raise ValueError("Currency codes are three letters, e.g. USD")
    return code


class CurrencyListResponse(BaseModel):
    date: date
    currencies: list[str]


class HistoryResponse(BaseModel):
    base: str = Field(..., examples=["USD"])
    target: str = Field(..., examples=["EUR"])
    start: date
    end: date
    dates: list[str]
    base_values: list[float]
    target_values: list[float]
    missing_dates: list[str]


class ConversionRequest(BaseModel):
    amount: Decimal = Field(..., ge=0, examples=[100])
    base: str = Field(..., examples=["USD"])
    target: str = Field(..., examples=["EUR"])

    @field_validator("base", "target")
    @classmethod
    def normalize_codes(cls, value: str) -> str:
        return _currency_code(value)


class ConversionResponse(BaseModel):
    amount: Decimal
    base: str
    target: str
    rate: Decimal
    converted: Decimal
    date: date
    summary: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "amount": "100",
                "base": "USD",
                "target": "EUR",
                "rate": "0.9",
                "converted": "90.00",
                "date": "2024-01-03",
                "summary": "100 USD = 90.00 EUR",
            }
        }
    )


__all__ = [
    "ConversionRequest",
    "ConversionResponse",
    "CurrencyListResponse",
    "HistoryResponse",
]
