"""Investment analysis modules for land plot evaluation.

This package provides the per-plot investment formulas, market-level
aggregations, and the filter/sort pipeline behind the catalog views.
"""

from .calculator import PlotCalculator
from .geo import BoundingBox, haversine_km, plot_center, plot_perimeter
from .market import MarketAnalyzer
from .ranker import PlotFilters, PlotRanker, SortKey

__all__ = [
    "PlotCalculator",
    "MarketAnalyzer",
    "PlotRanker",
    "PlotFilters",
    "SortKey",
    "BoundingBox",
    "haversine_km",
    "plot_center",
    "plot_perimeter",
]
