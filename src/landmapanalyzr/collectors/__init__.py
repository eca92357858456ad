"""Plot data collection framework.

This module provides a unified interface for loading plots from the
catalog REST API, with graceful fallback to cached and demo data.

Main Components:
    - DataSource: Abstract base class for all data sources
    - ApiSource: httpx client for the catalog REST API
    - DemoSource: Bundled demo dataset
    - PlotCollector: Orchestrator with caching and fallback

Example usage:
    from landmapanalyzr.collectors import PlotCollector

    collector = PlotCollector()
    result = await collector.fetch_plots()
"""

from .api import ApiSource
from .base import DataSource, DataSourceError, RateLimitError
from .collector import FetchResult, PlotCollector
from .demo import DemoSource, demo_plots, demo_pois

__all__ = [
    "DataSource",
    "DataSourceError",
    "RateLimitError",
    "ApiSource",
    "DemoSource",
    "PlotCollector",
    "FetchResult",
    "demo_plots",
    "demo_pois",
]
