"""Tests for MarketAnalyzer."""

from datetime import datetime, timezone

import pytest

from landmapanalyzr.analysis import MarketAnalyzer, PlotCalculator
from landmapanalyzr.config import Settings
from landmapanalyzr.models.plot import Plot, PlotStatus


class TestEmptyInput:
    """Every aggregation returns a "no data" result for an empty list."""

    def test_summary(self, analyzer: MarketAnalyzer):
        summary = analyzer.summarize([])
        assert summary.has_data is False
        assert summary.count == 0

    def test_histogram(self, analyzer: MarketAnalyzer):
        histogram = analyzer.price_histogram([])
        assert histogram.has_data is False
        assert histogram.buckets == []

    def test_best_value(self, analyzer: MarketAnalyzer):
        assert analyzer.best_value_ids([]) == []

    def test_city_comparison(self, analyzer: MarketAnalyzer):
        assert analyzer.city_comparison([]) == []

    def test_zoning_counts(self, analyzer: MarketAnalyzer):
        assert analyzer.zoning_counts([]) == {}

    def test_overview(self, analyzer: MarketAnalyzer):
        overview = analyzer.market_overview([])
        assert overview.summary.has_data is False
        assert overview.cities == []

    def test_best_in_category(self, analyzer: MarketAnalyzer):
        assert analyzer.best_in_category([]) == {}

    def test_unknown_city(self, analyzer: MarketAnalyzer, catalog: list[Plot]):
        summary = analyzer.summarize(catalog, city="Eilat")
        assert summary.has_data is False
        assert summary.city == "Eilat"


class TestSummary:
    """Test summary statistics."""

    def test_catalog(self, analyzer: MarketAnalyzer, catalog: list[Plot]):
        summary = analyzer.summarize(catalog)

        assert summary.count == 4
        assert summary.available == 3
        assert summary.avg_price == 1250000
        assert summary.min_price == 400000
        assert summary.max_price == 3000000
        assert summary.median_price == 800000
        assert summary.avg_price_per_sqm == 1250
        assert summary.total_value == 5000000

    def test_city(self, analyzer: MarketAnalyzer, catalog: list[Plot]):
        summary = analyzer.summarize(catalog, city="Netanya")
        assert summary.count == 2
        assert summary.avg_price_per_sqm == 500

    def test_unsized_plots_skip_price_per_sqm(self, analyzer: MarketAnalyzer, make_plot):
        summary = analyzer.summarize([make_plot(id="a"), make_plot(id="b", size_sqm=0)])
        assert summary.avg_price_per_sqm == 500


class TestPriceHistogram:
    """Test the price distribution."""

    def test_buckets(self, analyzer: MarketAnalyzer, make_plot):
        prices = [100000, 100000, 200000, 300000, 400000, 500000]
        plots = [make_plot(id=f"p{i}", total_price=p) for i, p in enumerate(prices)]

        histogram = analyzer.price_histogram(plots)

        assert len(histogram.buckets) == 5
        assert histogram.bucket_width == 80000
        assert [b.count for b in histogram.buckets] == [2, 1, 1, 1, 1]
        assert [b.height for b in histogram.buckets] == [1.0, 0.5, 0.5, 0.5, 0.5]

    def test_max_price_in_last_bucket(self, analyzer: MarketAnalyzer, make_plot):
        plots = [make_plot(id="a", total_price=100), make_plot(id="b", total_price=200)]
        histogram = analyzer.price_histogram(plots)
        assert histogram.buckets[-1].count == 1
        assert histogram.buckets[-1].upper == 200

    def test_counts_sum_to_priced_plots(self, analyzer: MarketAnalyzer, catalog: list[Plot], make_plot):
        plots = catalog + [make_plot(id="free", total_price=0)]
        histogram = analyzer.price_histogram(plots)
        assert sum(b.count for b in histogram.buckets) == len(catalog)

    def test_equal_prices(self, analyzer: MarketAnalyzer, make_plot):
        plots = [make_plot(id="a"), make_plot(id="b")]
        histogram = analyzer.price_histogram(plots)

        assert len(histogram.buckets) == 1
        assert histogram.buckets[0].count == 2
        assert histogram.bucket_width == 0

    def test_custom_bucket_count(self, analyzer: MarketAnalyzer, catalog: list[Plot]):
        assert len(analyzer.price_histogram(catalog, buckets=3).buckets) == 3


class TestBestValue:
    """Test the best-value heuristic."""

    def test_catalog(self, analyzer: MarketAnalyzer, catalog: list[Plot]):
        """Below 1,250 ILS/sqm and scoring at least the median (4)."""
        assert analyzer.best_value_ids(catalog) == ["hadera-1", "netanya-1"]

    def test_no_sizes(self, analyzer: MarketAnalyzer, make_plot):
        assert analyzer.best_value_ids([make_plot(size_sqm=0)]) == []

    def test_price_ratio_from_settings(self, settings: Settings, catalog: list[Plot]):
        """Half the average leaves only plots under 625 ILS/sqm."""
        custom = settings.model_copy(update={"best_value_price_ratio": 0.5})
        analyzer = MarketAnalyzer(PlotCalculator(custom), custom)
        assert analyzer.best_value_ids(catalog) == ["netanya-1"]

    def test_score_quantile_from_settings(self, settings: Settings, catalog: list[Plot]):
        """A zero quantile drops the score requirement."""
        custom = settings.model_copy(update={"best_value_price_ratio": 0.5, "best_value_score_quantile": 0})
        analyzer = MarketAnalyzer(PlotCalculator(custom), custom)
        assert analyzer.best_value_ids(catalog) == ["netanya-1", "netanya-2"]


class TestCityComparison:
    """Test per-city rollups."""

    def test_sorted_by_score(self, analyzer: MarketAnalyzer, catalog: list[Plot]):
        """Hadera averages 4.5, Netanya 4.0."""
        cities = analyzer.city_comparison(catalog)

        assert [c.city for c in cities] == ["Hadera", "Netanya"]
        assert cities[0].avg_score == 4.5
        assert cities[0].by_zoning == {"MASTER_PLAN_DEPOSIT": 1, "DETAILED_PLAN_APPROVED": 1}

    def test_ties_by_name(self, analyzer: MarketAnalyzer, make_plot):
        plots = [make_plot(id="z", city="Zikhron"), make_plot(id="a", city="Afula")]
        assert [c.city for c in analyzer.city_comparison(plots)] == ["Afula", "Zikhron"]

    def test_blank_city_skipped(self, analyzer: MarketAnalyzer, make_plot):
        assert analyzer.city_comparison([make_plot(city="")]) == []


class TestBestInCategory:
    """Test best-in-category badges."""

    NOW = datetime(2026, 3, 11, tzinfo=timezone.utc)

    def test_badges(self, analyzer: MarketAnalyzer, catalog: list[Plot]):
        badges = analyzer.best_in_category(catalog, now=self.NOW)

        assert [b.key for b in badges["netanya-1"]] == ["cheapest_sqm"]
        # hadera-1 also has the top score and the most views, which are not repeated
        assert [b.key for b in badges["hadera-1"]] == ["top_roi"]
        assert "hadera-2" not in badges

    def test_requires_minimum_available(self, analyzer: MarketAnalyzer, catalog: list[Plot]):
        sold = [p.model_copy(update={"status": PlotStatus.SOLD}) for p in catalog[:2]]
        assert analyzer.best_in_category(sold + catalog[2:], now=self.NOW) == {}

    def test_naive_now(self, analyzer: MarketAnalyzer, catalog: list[Plot]):
        badges = analyzer.best_in_category(catalog, now=datetime(2026, 3, 11))
        assert "netanya-1" in badges


@pytest.mark.parametrize("city", [None, "Hadera"])
def test_overview_counts_match_summary(analyzer: MarketAnalyzer, catalog: list[Plot], city):
    overview = analyzer.market_overview(catalog)
    total = sum(c.count for c in overview.cities)
    assert total == overview.summary.count == sum(overview.by_zoning.values())
    if city:
        assert any(c.city == city for c in overview.cities)
