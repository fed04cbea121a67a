"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import api_router
from app.config import AppSettings, get_settings
from app.core.logging import setup_logging
from app.core.telemetry import setup_telemetry
from app.services.rate_store import SqlRateStore
from app.services.rates import RateService, build_rate_service

logger = logging.getLogger(__name__)


def create_app(settings: AppSettings | None = None, service: RateService | None = None) -> FastAPI:
    """Build the API around ``service`` (or one built from ``settings``)."""

    settings = settings or get_settings()
    rate_service = service or build_rate_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info("Starting %s with settings %s", settings.app_name, settings.dict_for_logging())
        await rate_service.load()
        yield
        await rate_service.aclose()

    app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
    app.state.rate_service = rate_service
    setup_logging()
    # Instrument the engine the store actually writes to.
    store = rate_service.store
    setup_telemetry(app, settings, engine=store.engine if isinstance(store, SqlRateStore) else None)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        """Return service readiness metadata."""

        return {
            "status": "ok",
            "timestamp": datetime.now().isoformat(),
            "timezone": settings.timezone,
        }

    app.include_router(api_router)
    return app


app = create_app()
