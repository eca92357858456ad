"""Plot filtering and sorting for the catalog views.

The visible list is a single idempotent transform:
``visible = sort(filter(plots, filters), sort_key, user_location)``.
Sorting is stable with an id tie-break, so the same inputs always yield
the same order.
"""

import logging
from collections import OrderedDict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.plot import Plot, PlotStatus, ZoningStage
from .calculator import PlotCalculator
from .geo import BoundingBox, haversine_km, plot_center, valid_vertices

logger = logging.getLogger(__name__)

# Score-derived readiness buckets
RIPENESS_BUCKETS = {
    "high": (7, 10),
    "medium": (4, 6),
    "low": (1, 3),
}
# Raw readiness horizons matched against the plot's estimate
READINESS_HORIZONS = ("1-3", "3-5", "5+")

LatLng = tuple[float, float]


class SortKey(str, Enum):
    """Catalog sort orders."""

    RECOMMENDED = "recommended"
    PRICE_ASC = "price-asc"
    PRICE_DESC = "price-desc"
    ROI_DESC = "roi-desc"
    NEWEST = "newest"
    NEAREST = "nearest"
    SIZE_ASC = "size-asc"
    SIZE_DESC = "size-desc"
    SCORE_DESC = "score-desc"
    PPSQM_ASC = "ppsqm-asc"
    CAGR_DESC = "cagr-desc"
    MONTHLY_ASC = "monthly-asc"


class PlotFilters(BaseModel):
    """Catalog filter state.

    All predicates are optional and AND-combined. The model is frozen so
    it can key the visible-list cache.
    """

    model_config = ConfigDict(frozen=True)

    city: Optional[str] = None
    price_min: Optional[float] = Field(default=None, ge=0)
    price_max: Optional[float] = Field(default=None, ge=0)
    size_min: Optional[float] = Field(default=None, ge=0)
    size_max: Optional[float] = Field(default=None, ge=0)
    ripeness: Optional[str] = Field(
        default=None,
        description="high/medium/low score bucket, or a 1-3/3-5/5+ horizon",
    )
    min_roi: Optional[float] = None
    zoning: Optional[ZoningStage] = None
    search: Optional[str] = None
    below_avg: bool = False
    bounds: Optional[BoundingBox] = None
    statuses: tuple[PlotStatus, ...] = ()
    max_days: Optional[int] = Field(default=None, gt=0, description="Listed at most this many days ago")
    max_monthly: Optional[float] = Field(default=None, gt=0, description="Highest acceptable monthly loan payment")

    @field_validator("city", "ripeness", "search", mode="before")
    @classmethod
    def _blank_or_all_is_none(cls, value):
        if value is None:
            return None
        value = str(value).strip()
        if not value or value.lower() == "all":
            return None
        return value

    @field_validator("ripeness")
    @classmethod
    def _known_ripeness(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.lower()
        if value not in RIPENESS_BUCKETS and value not in READINESS_HORIZONS:
            raise ValueError(f"Unknown ripeness: {value}")
        return value

    @property
    def is_empty(self) -> bool:
        return self == PlotFilters()


class PlotRanker:
    """Filter and sort plots for the catalog.

    Example:
        ranker = PlotRanker()
        ranker.load(plots)

        filters = PlotFilters(city="Hadera", below_avg=True)
        for plot in ranker.visible(filters, SortKey.PRICE_ASC):
            print(plot.label, plot.total_price)
    """

    def __init__(self, calculator: Optional[PlotCalculator] = None, cache_size: int = 64):
        """Initialize ranker.

        Args:
            calculator: Optional PlotCalculator instance.
                       Creates new instance if not provided.
            cache_size: Number of visible lists kept in the LRU cache
        """
        self.calc = calculator or PlotCalculator()
        self.cache_size = cache_size
        self._plots: tuple[Plot, ...] = ()
        self._version = 0
        self._cache: OrderedDict = OrderedDict()

    @property
    def version(self) -> int:
        """Dataset version, bumped by every load()."""
        return self._version

    @property
    def plots(self) -> list[Plot]:
        return list(self._plots)

    def load(self, plots: Sequence[Plot]) -> int:
        """Replace the dataset and invalidate cached results.

        Returns:
            The new dataset version
        """
        self._plots = tuple(plots)
        self._version += 1
        self._cache.clear()
        logger.info(f"Loaded {len(self._plots)} plots (dataset v{self._version})")
        return self._version

    # =========================================================================
    # Filtering
    # =========================================================================

    def _matches_ripeness(self, plot: Plot, ripeness: str) -> bool:
        if ripeness in RIPENESS_BUCKETS:
            low, high = RIPENESS_BUCKETS[ripeness]
            return low <= self.calc.investment_score(plot) <= high
        return ripeness in plot.readiness_estimate

    def _matches(self, plot: Plot, f: PlotFilters) -> bool:
        if f.city and plot.city != f.city:
            return False
        if f.price_min is not None and plot.total_price < f.price_min:
            return False
        if f.price_max is not None and plot.total_price > f.price_max:
            return False
        if f.size_min is not None and plot.size_sqm < f.size_min:
            return False
        if f.size_max is not None and plot.size_sqm > f.size_max:
            return False
        if f.min_roi is not None and self.calc.roi(plot) < f.min_roi:
            return False
        if f.zoning is not None and plot.zoning_stage != f.zoning:
            return False
        if f.statuses and plot.status not in f.statuses:
            return False
        if f.ripeness and not self._matches_ripeness(plot, f.ripeness):
            return False
        if f.search:
            needle = f.search.lower()
            haystack = f"{plot.city} {plot.block_number} {plot.number}".lower()
            if needle not in haystack:
                return False
        if f.bounds is not None:
            # Any vertex in view keeps a plot straddling the viewport edge
            if not any(f.bounds.contains(lat, lng) for lat, lng in valid_vertices(plot.coordinates)):
                return False
        if f.max_days is not None:
            if plot.created_at is None:
                return False
            age = datetime.now(timezone.utc) - plot.created_at
            if age.total_seconds() > f.max_days * 86400:
                return False
        if f.max_monthly is not None:
            payment = self.calc.monthly_payment(plot.total_price)
            if payment is None or payment.monthly > f.max_monthly:
                return False
        return True

    def filter(self, plots: Sequence[Plot], filters: Optional[PlotFilters] = None) -> list[Plot]:
        """Apply all filter predicates.

        The below-average toggle runs last: it compares each remaining
        plot with the average price per sqm of the set that survived every
        other predicate, using a strict "<".

        Args:
            plots: Plots to filter
            filters: Filter state (no filtering when omitted)

        Returns:
            Matching plots in input order
        """
        if filters is None:
            return list(plots)

        result = [p for p in plots if self._matches(p, filters)]

        if filters.below_avg and result:
            psms = [self.calc.price_per_sqm(p) for p in result]
            priced = [v for v in psms if v > 0]
            if not priced:
                return []
            avg = sum(priced) / len(priced)
            result = [p for p, psm in zip(result, psms) if 0 < psm < avg]

        return result

    # =========================================================================
    # Sorting
    # =========================================================================

    def sort(
        self,
        plots: Sequence[Plot],
        key: SortKey = SortKey.RECOMMENDED,
        user_location: Optional[LatLng] = None,
    ) -> list[Plot]:
        """Sort plots by a catalog sort key.

        "nearest" without a user location keeps the input order. Plots
        without coordinates go last for "nearest", plots without a
        listing date go last for "newest", and unpriced plots go last for
        "monthly-asc".

        Args:
            plots: Plots to sort
            key: Sort order
            user_location: (lat, lng) of the user, for "nearest"

        Returns:
            New sorted list; ties are broken by plot id
        """
        key = SortKey(key)
        calc = self.calc

        def created(p: Plot) -> float:
            return p.created_at.timestamp() if p.created_at else 0.0

        def cagr(p: Plot) -> float:
            result = calc.cagr(calc.roi(p), p.readiness_estimate)
            return result.cagr if result else 0.0

        def monthly(p: Plot) -> float:
            payment = calc.monthly_payment(p.total_price)
            return payment.monthly if payment else float("inf")

        if key == SortKey.NEAREST:
            if user_location is None:
                return list(plots)
            lat, lng = user_location

            def distance(p: Plot) -> tuple:
                center = plot_center(p.coordinates)
                if center is None:
                    return (1, 0.0, p.id)
                return (0, haversine_km(lat, lng, *center), p.id)

            return sorted(plots, key=distance)

        sort_keys = {
            SortKey.RECOMMENDED: lambda p: (-calc.investment_score(p), -created(p), p.id),
            SortKey.PRICE_ASC: lambda p: (p.total_price, p.id),
            SortKey.PRICE_DESC: lambda p: (-p.total_price, p.id),
            SortKey.ROI_DESC: lambda p: (-calc.roi(p), p.id),
            SortKey.NEWEST: lambda p: (p.created_at is None, -created(p), p.id),
            SortKey.SIZE_ASC: lambda p: (p.size_sqm, p.id),
            SortKey.SIZE_DESC: lambda p: (-p.size_sqm, p.id),
            SortKey.SCORE_DESC: lambda p: (-calc.investment_score(p), p.id),
            SortKey.PPSQM_ASC: lambda p: (calc.price_per_sqm(p) or float("inf"), p.id),
            SortKey.CAGR_DESC: lambda p: (-cagr(p), p.id),
            SortKey.MONTHLY_ASC: lambda p: (monthly(p), p.id),
        }
        return sorted(plots, key=sort_keys[key])

    # =========================================================================
    # Visible List
    # =========================================================================

    def rank(
        self,
        plots: Sequence[Plot],
        filters: Optional[PlotFilters] = None,
        key: SortKey = SortKey.RECOMMENDED,
        user_location: Optional[LatLng] = None,
    ) -> list[Plot]:
        """sort(filter(plots)) without caching."""
        return self.sort(self.filter(plots, filters), key, user_location)

    def visible(
        self,
        filters: Optional[PlotFilters] = None,
        key: SortKey = SortKey.RECOMMENDED,
        user_location: Optional[LatLng] = None,
    ) -> list[Plot]:
        """Filtered and sorted view of the loaded dataset, memoized.

        Results are cached by (dataset version, filters, sort key,
        location) in a bounded LRU.
        """
        filters = filters or PlotFilters()
        key = SortKey(key)
        location = tuple(user_location) if user_location is not None else None
        cache_key = (self._version, filters, key, location)

        cached = self._cache.get(cache_key)
        if cached is not None:
            self._cache.move_to_end(cache_key)
            logger.debug(f"Visible list cache hit (v{self._version}, {key.value})")
            return list(cached)

        result = self.rank(self._plots, filters, key, location)
        self._cache[cache_key] = tuple(result)
        if len(self._cache) > self.cache_size:
            self._cache.popitem(last=False)
        return result

    def cache_info(self) -> dict:
        return {"version": self._version, "size": len(self._cache), "max_size": self.cache_size}
