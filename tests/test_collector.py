"""Tests for data sources and the PlotCollector fallback chain."""

import asyncio
from typing import Optional

import httpx
import pytest

from landmapanalyzr.analysis import PlotFilters
from landmapanalyzr.collectors import (
    ApiSource,
    DataSource,
    DataSourceError,
    PlotCollector,
    RateLimitError,
)
from landmapanalyzr.models.plot import Plot

RECORDS = [
    {"id": "p1", "city": "Hadera", "totalPrice": 400000, "sizeSqM": 1000},
    {"id": "p2", "city": "Netanya", "total_price": 520000, "size_sqm": 1500},
]


def api_source(handler, settings) -> ApiSource:
    return ApiSource(
        base_url="https://landmap.test",
        settings=settings,
        transport=httpx.MockTransport(handler),
    )


class StubSource(DataSource):
    """Live source whose failure can be switched on."""

    name = "stub"
    priority = 1

    def __init__(self, plots: list[Plot]):
        self.plots = plots
        self.failing = False
        self.calls = 0

    def is_available(self) -> bool:
        return True

    async def fetch_plots(self, filters: Optional[PlotFilters] = None) -> list[Plot]:
        self.calls += 1
        if self.failing:
            raise DataSourceError(self.name, "backend down")
        return self.plots

    async def get_plot(self, plot_id: str) -> Optional[Plot]:
        if self.failing:
            raise DataSourceError(self.name, "backend down")
        return next((p for p in self.plots if p.id == plot_id), None)


class TestApiSource:
    """Test the REST API source against a mock transport."""

    def test_list_response(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/plots"
            assert request.url.params["city"] == "Hadera"
            return httpx.Response(200, json=RECORDS)

        source = api_source(handler, settings)
        plots = asyncio.run(source.fetch_plots(PlotFilters(city="Hadera")))

        assert [p.id for p in plots] == ["p1", "p2"]
        assert plots[1].total_price == 520000

    def test_envelope_response(self, settings):
        source = api_source(lambda request: httpx.Response(200, json={"plots": RECORDS + ["junk"]}), settings)
        plots = asyncio.run(source.fetch_plots())
        assert len(plots) == 2

    def test_unexpected_shape(self, settings):
        source = api_source(lambda request: httpx.Response(200, json={"count": 2}), settings)
        with pytest.raises(DataSourceError):
            asyncio.run(source.fetch_plots())

    def test_get_plot(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/plots/p1":
                return httpx.Response(200, json={"plot": RECORDS[0]})
            return httpx.Response(404)

        source = api_source(handler, settings)
        assert asyncio.run(source.get_plot("p1")).id == "p1"
        assert asyncio.run(source.get_plot("nope")) is None

    def test_rate_limit(self, settings):
        source = api_source(lambda request: httpx.Response(429, headers={"Retry-After": "30"}), settings)
        with pytest.raises(RateLimitError) as exc:
            asyncio.run(source.fetch_plots())
        assert exc.value.retry_after == 30

    def test_server_error(self, settings):
        source = api_source(lambda request: httpx.Response(500), settings)
        with pytest.raises(DataSourceError, match="HTTP error: 500"):
            asyncio.run(source.fetch_plots())

    def test_not_configured(self, settings):
        source = ApiSource(settings=settings)
        assert source.is_available() is False
        with pytest.raises(DataSourceError):
            asyncio.run(source.fetch_plots())


class TestPlotCollector:
    """Test caching and the stale/demo fallback chain."""

    def test_fresh_fetch_then_cache(self, settings, catalog):
        source = StubSource(catalog)
        collector = PlotCollector(sources=[source], settings=settings)

        first = asyncio.run(collector.fetch_plots())
        second = asyncio.run(collector.fetch_plots())

        assert first.source == "stub"
        assert first.is_degraded is False
        assert second == first
        assert source.calls == 1

    def test_cache_bypass(self, settings, catalog):
        source = StubSource(catalog)
        collector = PlotCollector(sources=[source], settings=settings)
        asyncio.run(collector.fetch_plots())
        asyncio.run(collector.fetch_plots(use_cache=False))
        assert source.calls == 2

    def test_cache_evicts_least_recently_used(self, settings, catalog):
        source = StubSource(catalog)
        collector = PlotCollector(sources=[source], settings=settings.model_copy(update={"fetch_cache_size": 2}))
        hadera, netanya = PlotFilters(city="Hadera"), PlotFilters(city="Netanya")

        asyncio.run(collector.fetch_plots())
        asyncio.run(collector.fetch_plots(hadera))
        asyncio.run(collector.fetch_plots())
        asyncio.run(collector.fetch_plots(netanya))
        assert source.calls == 3

        asyncio.run(collector.fetch_plots())
        assert source.calls == 3
        asyncio.run(collector.fetch_plots(hadera))
        assert source.calls == 4

    def test_stale_fallback(self, settings, catalog):
        source = StubSource(catalog)
        collector = PlotCollector(sources=[source], cache_ttl=-1, settings=settings)
        asyncio.run(collector.fetch_plots())

        source.failing = True
        result = asyncio.run(collector.fetch_plots())

        assert result.is_stale is True
        assert result.is_demo is False
        assert [p.id for p in result.plots] == [p.id for p in catalog]
        assert result.errors == ["[stub] backend down"]

    def test_demo_fallback_when_all_fail(self, settings, catalog):
        source = StubSource(catalog)
        source.failing = True
        collector = PlotCollector(sources=[source], settings=settings)

        result = asyncio.run(collector.fetch_plots(PlotFilters(city="Hadera")))

        assert result.is_demo is True
        assert result.source == "demo"
        assert result.plots
        assert all(p.city == "Hadera" for p in result.plots)
        assert len(result.errors) == 1

    def test_demo_without_sources(self, settings):
        """No api_url configured means no live sources at all."""
        collector = PlotCollector(settings=settings)
        assert collector.get_available_sources() == []

        result = asyncio.run(collector.fetch_plots())
        assert result.is_demo is True
        assert len(result.plots) == 9
        assert result.errors == []

    def test_api_failure_falls_back(self, settings):
        source = api_source(lambda request: httpx.Response(503), settings)
        collector = PlotCollector(sources=[source], settings=settings)

        result = asyncio.run(collector.fetch_plots())

        assert result.is_demo is True
        assert "HTTP error: 503" in result.errors[0]

    def test_get_plot_fallbacks(self, settings, catalog):
        source = StubSource(catalog)
        collector = PlotCollector(sources=[source], settings=settings)
        assert asyncio.run(collector.get_plot("hadera-1")).id == "hadera-1"

        asyncio.run(collector.fetch_plots())
        source.failing = True
        assert asyncio.run(collector.get_plot("netanya-1")).id == "netanya-1"
        assert asyncio.run(collector.get_plot("plot-1")).city == "Hadera"
        assert asyncio.run(collector.get_plot("missing")) is None
