"""Configuration package for the FX rate sync service."""

from .settings import AppSettings, get_settings

__all__ = ["AppSettings", "get_settings"]
