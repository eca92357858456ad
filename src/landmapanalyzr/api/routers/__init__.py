"""API routers."""

from . import admin, leads, market, plots, pois

__all__ = ["plots", "market", "pois", "leads", "admin"]
