"""Market-level aggregations over a set of plots.

Every aggregation accepts an empty input and returns a "no data" result
(``has_data=False``, an empty list or an empty dict) instead of raising.
Each one makes a single pass over the plots plus at most one sort, since
they run again on every filter change.
"""

import logging
import math
from collections import defaultdict
from datetime import datetime, timezone
from statistics import median
from typing import Optional, Sequence

from ..config import Settings, config
from ..models.market import (
    CategoryBadge,
    CitySummary,
    HistogramBucket,
    MarketOverview,
    MarketSummary,
    PriceHistogram,
)
from ..models.plot import Plot, PlotStatus
from .calculator import PlotCalculator

logger = logging.getLogger(__name__)


def _quantile(values: Sequence[float], q: float) -> float:
    """Linear-interpolated quantile (q=0.5 is the median)."""
    ordered = sorted(values)
    pos = q * (len(ordered) - 1)
    lower = math.floor(pos)
    upper = min(lower + 1, len(ordered) - 1)
    return ordered[lower] + (ordered[upper] - ordered[lower]) * (pos - lower)


class MarketAnalyzer:
    """Aggregate statistics across plots.

    Example:
        analyzer = MarketAnalyzer()

        summary = analyzer.summarize(plots, city="Hadera")
        if summary.has_data:
            print(f"{summary.count} plots, avg {summary.avg_price:,.0f} ILS")

        for city in analyzer.city_comparison(plots):
            print(f"{city.city}: {city.avg_score:.1f}/10")
    """

    def __init__(
        self,
        calculator: Optional[PlotCalculator] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize analyzer.

        Args:
            calculator: Optional PlotCalculator used for per-plot metrics.
            settings: Optional Settings instance (bucket count, badge minimum).
        """
        self.settings = settings or config
        self.calc = calculator or PlotCalculator(self.settings)

    # =========================================================================
    # Summary Statistics
    # =========================================================================

    def summarize(self, plots: Sequence[Plot], city: Optional[str] = None) -> MarketSummary:
        """Summary statistics for a set of plots.

        Args:
            plots: Plots to summarize
            city: Restrict to this city when given

        Returns:
            MarketSummary, or MarketSummary.empty() when nothing matches
        """
        if city:
            plots = [p for p in plots if p.city == city]
        if not plots:
            return MarketSummary.empty(city)

        count = len(plots)
        available = 0
        total_price = 0
        total_score = 0
        total_size = 0.0
        total_psm = 0.0
        psm_count = 0
        total_roi = 0.0
        min_price = math.inf
        max_price = 0
        prices = []

        for plot in plots:
            price = plot.total_price
            prices.append(price)
            total_price += price
            min_price = min(min_price, price)
            max_price = max(max_price, price)
            total_size += plot.size_sqm
            total_score += self.calc.investment_score(plot)
            total_roi += self.calc.roi(plot)
            if plot.size_sqm > 0:
                total_psm += self.calc.price_per_sqm(plot)
                psm_count += 1
            if plot.status == PlotStatus.AVAILABLE:
                available += 1

        return MarketSummary(
            city=city,
            count=count,
            available=available,
            avg_price=round(total_price / count),
            min_price=int(min_price),
            max_price=max_price,
            median_price=median(prices),
            avg_score=round(total_score / count, 1),
            avg_size=round(total_size / count),
            avg_price_per_sqm=round(total_psm / psm_count) if psm_count else 0,
            avg_roi=round(total_roi / count, 1),
            total_value=total_price,
        )

    def price_histogram(self, plots: Sequence[Plot], buckets: Optional[int] = None) -> PriceHistogram:
        """Fixed-bucket price distribution.

        Bucket width is (max - min) / buckets. The maximum price falls in
        the last bucket. Bar heights are normalized to the tallest bucket.
        When every price is equal a single full bucket is returned.

        Args:
            plots: Plots to bucket (plots without a price are ignored)
            buckets: Number of buckets (default from settings, 5)

        Returns:
            PriceHistogram, with ``has_data=False`` when there are no prices
        """
        buckets = buckets or self.settings.histogram_buckets
        prices = [p.total_price for p in plots if p.total_price > 0]
        if not prices:
            return PriceHistogram(has_data=False)

        low, high = min(prices), max(prices)
        if low == high:
            return PriceHistogram(
                min_price=low,
                max_price=high,
                bucket_width=0,
                buckets=[HistogramBucket(lower=low, upper=high, count=len(prices), height=1.0)],
            )

        width = (high - low) / buckets
        counts = [0] * buckets
        for price in prices:
            idx = min(int((price - low) / width), buckets - 1)
            counts[idx] += 1

        tallest = max(counts)
        return PriceHistogram(
            min_price=low,
            max_price=high,
            bucket_width=width,
            buckets=[
                HistogramBucket(
                    lower=low + i * width,
                    upper=high if i == buckets - 1 else low + (i + 1) * width,
                    count=c,
                    height=c / tallest,
                )
                for i, c in enumerate(counts)
            ],
        )

    def best_value_ids(self, plots: Sequence[Plot]) -> list[str]:
        """Ids of plots priced below the average per sqm while scoring at or above the median.

        A badge heuristic, not an optimality guarantee. Plots without a
        size never qualify. The price cut-off (a fraction of the average)
        and the score quantile come from settings.

        Returns:
            Plot ids in input order (empty for an empty input)
        """
        if not plots:
            return []

        psms = {p.id: self.calc.price_per_sqm(p) for p in plots}
        scores = {p.id: self.calc.investment_score(p) for p in plots}
        priced = [v for v in psms.values() if v > 0]
        if not priced:
            return []

        s = self.settings
        max_psm = sum(priced) / len(priced) * s.best_value_price_ratio
        min_score = _quantile(list(scores.values()), s.best_value_score_quantile)
        return [
            p.id
            for p in plots
            if 0 < psms[p.id] < max_psm and scores[p.id] >= min_score
        ]

    # =========================================================================
    # City Comparison
    # =========================================================================

    def city_comparison(self, plots: Sequence[Plot]) -> list[CitySummary]:
        """Per-city rollups sorted by average score (best first).

        Ties are broken by city name so the order is deterministic.
        """
        by_city: dict[str, list[Plot]] = defaultdict(list)
        for plot in plots:
            if plot.city:
                by_city[plot.city].append(plot)

        cities = []
        for city, city_plots in by_city.items():
            summary = self.summarize(city_plots)
            cities.append(
                CitySummary(
                    **summary.model_dump(exclude={"city"}),
                    city=city,
                    by_zoning=self.zoning_counts(city_plots),
                )
            )
        return sorted(cities, key=lambda c: (-c.avg_score, c.city))

    def zoning_counts(self, plots: Sequence[Plot]) -> dict[str, int]:
        """Number of plots per zoning stage, in pipeline order."""
        counts: dict[str, int] = {}
        for plot in sorted(plots, key=lambda p: p.zoning_stage.index):
            stage = plot.zoning_stage.value
            counts[stage] = counts.get(stage, 0) + 1
        return counts

    def market_overview(self, plots: Sequence[Plot]) -> MarketOverview:
        """Global summary plus the city list and zoning counts."""
        return MarketOverview(
            summary=self.summarize(plots),
            cities=self.city_comparison(plots),
            by_zoning=self.zoning_counts(plots),
        )

    # =========================================================================
    # Badges
    # =========================================================================

    def best_in_category(
        self,
        plots: Sequence[Plot],
        now: Optional[datetime] = None,
    ) -> dict[str, list[CategoryBadge]]:
        """Assign "best in category" badges among available plots.

        Categories: cheapest per sqm, highest ROI, best score (only when a
        different plot than the highest ROI), and most viewed per day
        (at least one view per day, and not already badged as cheapest or
        top ROI).

        Returns:
            Mapping of plot id to its badges; empty when fewer than the
            configured minimum of available plots
        """
        minimum = self.settings.best_category_min_plots
        available = [p for p in plots if p.status == PlotStatus.AVAILABLE]
        if len(available) < minimum:
            return {}

        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        cheapest = (None, math.inf)
        top_roi = (None, -math.inf)
        top_score = (None, -math.inf)
        most_viewed = (None, -math.inf)

        for plot in available:
            psm = self.calc.price_per_sqm(plot) if plot.total_price > 0 else 0
            if psm <= 0:
                psm = math.inf
            roi = self.calc.roi(plot)
            score = self.calc.investment_score(plot)
            if plot.created_at is not None:
                days = max(1, (now - plot.created_at).days)
            else:
                days = 999
            velocity = plot.views / days

            if psm < cheapest[1]:
                cheapest = (plot.id, psm)
            if roi > top_roi[1]:
                top_roi = (plot.id, roi)
            if score > top_score[1]:
                top_score = (plot.id, score)
            if velocity >= 1 and velocity > most_viewed[1]:
                most_viewed = (plot.id, velocity)

        badges: dict[str, list[CategoryBadge]] = {}

        def add(plot_id: Optional[str], key: str, label: str) -> None:
            if plot_id is None:
                return
            badges.setdefault(plot_id, []).append(CategoryBadge(key=key, label=label))

        add(cheapest[0], "cheapest_sqm", "Cheapest per sqm")
        add(top_roi[0], "top_roi", "Top return")
        if top_score[0] != top_roi[0]:
            add(top_score[0], "top_score", "Top score")
        if most_viewed[0] not in (cheapest[0], top_roi[0]):
            add(most_viewed[0], "most_viewed", "Most viewed")
        return badges
