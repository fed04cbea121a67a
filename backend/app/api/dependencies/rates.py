"""FastAPI dependencies for the rate endpoints."""

from __future__ import annotations

from fastapi import Request

from app.services.rates import RateService


def get_rate_service(request: Request) -> RateService:
    """Return the service instance attached to the running application."""

    return request.app.state.rate_service


__all__ = ["get_rate_service"]
