"""Currency conversion from a single day's rate snapshot."""
from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Mapping, Union

Number = Union[int, float, Decimal, str]

CENT = Decimal("0.01")


class RateUnavailable(LookupError):
    """Raised when a snapshot lacks a usable rate for either side of a pair."""

    def __init__(self, base_currency: str, target_currency: str, missing: list[str]) -> None:
        self.base_currency = base_currency
        self.target_currency = target_currency
        self.missing = missing
        super().__init__(
            f"No usable rate for {', '.join(missing)} to convert {base_currency} -> {target_currency}"
        )


def _to_decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    # str() keeps the short repr of floats, e.g. 0.9 instead of 0.900000000000000022...
    return Decimal(str(value))


class ConversionCalculator:
    """Convert amounts with ``amount * target_rate / base_rate``.

    Both rates are quoted against the same reference currency. A missing,
    zero or negative rate raises :class:`RateUnavailable` instead of producing
    ``inf`` or ``NaN``. The calculator never fetches anything.
    """

    def rate(self, base_currency: str, target_currency: str, snapshot: Mapping[str, float] | None) -> Decimal:
        """Return the unrounded ``base -> target`` ratio."""

        snapshot = snapshot or {}
        rates: dict[str, Decimal] = {}
        missing: list[str] = []
        for code in dict.fromkeys((base_currency, target_currency)):
            raw = snapshot.get(code)
            try:
                value = _to_decimal(raw) if raw is not None else None
            except (InvalidOperation, ValueError):
                value = None
            if value is None or not value.is_finite() or value <= 0:
                missing.append(code)
            else:
                rates[code] = value
        if missing:
            raise RateUnavailable(base_currency, target_currency, missing)
        return rates[target_currency] / rates[base_currency]

    def convert(
        self,
        amount: Number,
        base_currency: str,
        target_currency: str,
        snapshot: Mapping[str, float] | None,
    ) -> Decimal:
        """Return ``amount`` in ``target_currency`` rounded half-up to two decimals."""

        ratio = self.rate(base_currency, target_currency, snapshot)
        return (_to_decimal(amount) * ratio).quantize(CENT, rounding=ROUND_HALF_UP)


def format_conversion(amount: Number, base_currency: str, converted: Number, target_currency: str) -> str:
    """Render ``"100 USD = 90.00 EUR"``."""

    rounded = _to_decimal(converted).quantize(CENT, rounding=ROUND_HALF_UP)
    return f"{amount} {base_currency} = {rounded} {target_currency}"


__all__ = ["CENT", "ConversionCalculator", "RateUnavailable", "format_conversion"]
