"""Aggregated market models produced by MarketAnalyzer."""

from typing import Optional

from pydantic import BaseModel, Field


class MarketSummary(BaseModel):
    """Summary statistics over a set of plots.

    An empty input yields ``has_data=False`` with zeroed figures instead
    of an error.
    """

    has_data: bool = True
    city: Optional[str] = None
    count: int = 0
    available: int = 0
    avg_price: float = 0
    min_price: int = 0
    max_price: int = 0
    median_price: float = 0
    avg_score: float = 0
    avg_size: float = 0
    avg_price_per_sqm: float = 0
    avg_roi: float = 0
    total_value: int = 0

    @classmethod
    def empty(cls, city: Optional[str] = None) -> "MarketSummary":
        return cls(has_data=False, city=city)


class HistogramBucket(BaseModel):
    lower: float
    upper: float
    count: int = 0
    height: float = Field(default=0, ge=0, le=1, description="Count relative to the tallest bucket")


class PriceHistogram(BaseModel):
    has_data: bool = True
    min_price: int = 0
    max_price: int = 0
    bucket_width: float = 0
    buckets: list[HistogramBucket] = Field(default_factory=list)


class CitySummary(MarketSummary):
    """Per-city rollup used by the city comparison view."""

    by_zoning: dict[str, int] = Field(default_factory=dict)


class CategoryBadge(BaseModel):
    key: str = Field(..., description="cheapest_sqm, top_roi, top_score or most_viewed")
    label: str


class MarketOverview(BaseModel):
    summary: MarketSummary
    cities: list[CitySummary] = Field(default_factory=list)
    by_zoning: dict[str, int] = Field(default_factory=dict)
