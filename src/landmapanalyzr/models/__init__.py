"""Data models for LandMapAnalyzr."""

from landmapanalyzr.models.lead import Lead, LeadCreate, LeadNote, LeadStatus
from landmapanalyzr.models.market import (
    CategoryBadge,
    CitySummary,
    MarketOverview,
    MarketSummary,
    PriceHistogram,
)
from landmapanalyzr.models.plot import Plot, PlotStatus, ZoningStage, normalize_plots
from landmapanalyzr.models.poi import PointOfInterest

__all__ = [
    "Plot",
    "PlotStatus",
    "ZoningStage",
    "normalize_plots",
    "Lead",
    "LeadCreate",
    "LeadNote",
    "LeadStatus",
    "PointOfInterest",
    "MarketSummary",
    "CitySummary",
    "PriceHistogram",
    "CategoryBadge",
    "MarketOverview",
]
