"""Storage modules for catalog persistence.

This package provides SQLite-backed repositories for plots, leads and
points of interest.
"""

from .database import (
    Database,
    DuplicateRecordError,
    LeadRepository,
    NotFoundError,
    PlotRepository,
    PoiRepository,
)

__all__ = [
    "Database",
    "PlotRepository",
    "LeadRepository",
    "PoiRepository",
    "NotFoundError",
    "DuplicateRecordError",
]
