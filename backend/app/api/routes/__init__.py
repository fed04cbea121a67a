"""Route registration helpers."""

from __future__ import annotations

from fastapi import APIRouter

from .rates import router as rates_router

api_router = APIRouter()
api_router.include_router(rates_router, prefix="/rates", tags=["rates"])

__all__ = ["api_router"]
