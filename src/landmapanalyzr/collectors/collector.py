"""Data collection orchestrator.

This module provides the PlotCollector class which fetches plots from the
configured sources in priority order. A backend failure never empties the
catalog: the collector falls back to the last cached result (marked stale)
and finally to the bundled demo dataset (marked demo).
"""

import logging
import time
from collections import OrderedDict
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, Field

from ..analysis.ranker import PlotFilters
from ..config import Settings, config
from ..models.plot import Plot
from .api import ApiSource
from .base import DataSource, DataSourceError
from .demo import DemoSource

logger = logging.getLogger(__name__)


class FetchResult(BaseModel):
    """Plots plus where they came from.

    ``is_stale`` and ``is_demo`` drive the "showing cached/sample data"
    banner; ``errors`` lists every source failure met along the way.
    """

    plots: list[Plot] = Field(default_factory=list)
    source: str
    is_stale: bool = False
    is_demo: bool = False
    errors: list[str] = Field(default_factory=list)
    fetched_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_degraded(self) -> bool:
        return self.is_stale or self.is_demo


class CacheEntry:
    """Cache entry with TTL support."""

    def __init__(self, result: FetchResult, ttl_seconds: int = 120):
        self.result = result
        self.created_at = time.time()
        self.ttl = ttl_seconds

    def is_expired(self) -> bool:
        """Check if the cache entry has expired."""
        return time.time() - self.created_at > self.ttl


class PlotCollector:
    """Fetch plots with source fallback and caching.

    Fallback order:
        1. Fresh cache entry for the same filters
        2. Live sources in priority order (lower number first)
        3. Last cached result for the same filters, marked stale
        4. Demo dataset, marked demo

    Example:
        async with PlotCollector(sources=[ApiSource()]) as collector:
            result = await collector.fetch_plots(PlotFilters(city="Hadera"))
            if result.is_degraded:
                print(f"Showing {result.source} data: {result.errors}")
    """

    def __init__(
        self,
        sources: Optional[list[DataSource]] = None,
        demo: Optional[DemoSource] = None,
        cache_ttl: Optional[int] = None,
        cache_size: Optional[int] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the PlotCollector.

        Args:
            sources: Live sources to use. If None, an ApiSource is added
                     when settings.api_url is configured.
            demo: Demo source used as the final fallback.
            cache_ttl: Cache time-to-live in seconds (default from settings).
            cache_size: Filter sets kept in the LRU cache (default from settings).
            settings: Optional Settings instance.
        """
        self.settings = settings or config
        self.cache_ttl = self.settings.fetch_cache_ttl if cache_ttl is None else cache_ttl
        self.cache_size = self.settings.fetch_cache_size if cache_size is None else cache_size
        self.demo = demo or DemoSource()
        self._sources: list[DataSource] = []
        self._cache: OrderedDict[PlotFilters, CacheEntry] = OrderedDict()

        if sources is None:
            api = ApiSource(settings=self.settings)
            sources = [api] if api.is_available() else []
        for source in sources:
            self.add_source(source)

    def add_source(self, source: DataSource) -> None:
        """Register a live source, keeping priority order."""
        if source not in self._sources:
            self._sources.append(source)
            self._sources.sort(key=lambda s: s.priority)
            logger.debug(f"Added source: {source.name} (priority {source.priority})")

    def get_available_sources(self) -> list[str]:
        return [s.name for s in self._sources if s.is_available()]

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.debug("Cache cleared")

    async def fetch_plots(
        self,
        filters: Optional[PlotFilters] = None,
        use_cache: bool = True,
    ) -> FetchResult:
        """Fetch plots, degrading to stale or demo data on failure.

        Never raises for source failures; inspect ``errors`` on the result.

        Args:
            filters: Filter state passed to the sources
            use_cache: Whether to serve a fresh cached result

        Returns:
            FetchResult
        """
        key = filters or PlotFilters()
        entry = self._cache.get(key)
        if entry is not None:
            self._cache.move_to_end(key)
        if use_cache and entry and not entry.is_expired():
            logger.debug(f"Cache hit for {entry.result.source} ({len(entry.result.plots)} plots)")
            return entry.result

        errors = []
        for source in self._sources:
            if not source.is_available():
                continue
            try:
                logger.info(f"Fetching from source: {source.name}")
                plots = await source.fetch_plots(key)
            except DataSourceError as e:
                logger.warning(f"Source {source.name} failed: {e}")
                errors.append(str(e))
                continue

            result = FetchResult(plots=plots, source=source.name)
            self._cache[key] = CacheEntry(result, self.cache_ttl)
            self._cache.move_to_end(key)
            while len(self._cache) > self.cache_size:
                self._cache.popitem(last=False)
            logger.info(f"Fetched {len(plots)} plots from {source.name}")
            return result

        if entry is not None:
            logger.warning(f"All sources failed, serving stale {entry.result.source} data")
            return entry.result.model_copy(update={"is_stale": True, "errors": errors})

        if self._sources:
            logger.warning("All sources failed, serving demo data")
        plots = await self.demo.fetch_plots(key)
        return FetchResult(plots=plots, source=self.demo.name, is_demo=True, errors=errors)

    async def get_plot(self, plot_id: str) -> Optional[Plot]:
        """Get a single plot from the first source that has it.

        Falls back to cached results and then the demo dataset.
        """
        for source in self._sources:
            if not source.is_available():
                continue
            try:
                plot = await source.get_plot(plot_id)
            except DataSourceError as e:
                logger.warning(f"Source {source.name} failed: {e}")
                continue
            if plot is not None:
                return plot

        for entry in self._cache.values():
            for plot in entry.result.plots:
                if plot.id == plot_id:
                    return plot
        return await self.demo.get_plot(plot_id)

    async def close(self) -> None:
        """Close all data sources and release resources."""
        for source in self._sources:
            if hasattr(source, "close"):
                await source.close()

    async def __aenter__(self) -> "PlotCollector":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.close()
