"""CLI wrapper for a one-off historical rate sync."""

from __future__ import annotations

import argparse
import asyncio
from decimal import Decimal

from app.config import AppSettings, get_settings
from app.core.logging import setup_logging
from app.services.rates import RateService, build_rate_service
from fx_sync.conversion import RateUnavailable


async def _run(service: RateService, base: str, target: str, days: int | None, amount: Decimal | None) -> int:
    try:
        history = await service.history(base, target, days)
        print(f"{'date':<12}{history.series.base_currency:>14}{history.series.target_currency:>14}")
        for day, base_value, target_value in history.series.rows():
            print(f"{day:<12}{base_value:>14.6f}{target_value:>14.6f}")
        if history.sync.missing_dates:
            print(f"Missing dates: {', '.join(history.sync.missing_dates)}")
        if amount is not None:
            try:
                result = await service.convert(amount, base, target)
            except RateUnavailable as exc:
                print(f"Conversion unavailable: {exc}")
                return 1
            print(result.summary)
        return 0
    finally:
        await service.aclose()


def build_parser(settings: AppSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Sync cached daily FX rates and print the trend")
    parser.add_argument("--base", default=settings.default_base_currency)
    parser.add_argument("--target", default=settings.default_target_currency)
    parser.add_argument("--days", type=int, default=None, help="Days before today to include")
    parser.add_argument(
        "--amount", type=Decimal, default=settings.default_amount, help="Amount to convert with today's rates"
    )
    parser.add_argument("--no-convert", action="store_true", help="Only sync and print the trend")
    return parser


def main() -> None:
    settings = get_settings()
    args = build_parser(settings).parse_args()
    setup_logging()
    amount = None if args.no_convert else args.amount
    raise SystemExit(asyncio.run(_run(build_rate_service(settings), args.base, args.target, args.days, amount)))


if __name__ == "__main__":
    main()
