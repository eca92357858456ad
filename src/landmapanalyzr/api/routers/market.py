"""Market overview endpoints.

Aggregates the published catalog: global summary, per-city comparison,
zoning pipeline counts and the price distribution.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...analysis import MarketAnalyzer, PlotRanker
from ...models.market import CitySummary, MarketOverview, PriceHistogram
from ..dependencies import get_analyzer, get_ranker

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/overview", response_model=MarketOverview)
async def market_overview(
    ranker: PlotRanker = Depends(get_ranker),
    analyzer: MarketAnalyzer = Depends(get_analyzer),
):
    """Summary of every published plot, cities and zoning stages."""
    return analyzer.market_overview(ranker.plots)


@router.get("/compare", response_model=list[CitySummary])
async def compare_cities(
    cities: Optional[str] = Query(None, description="Comma-separated city names"),
    ranker: PlotRanker = Depends(get_ranker),
    analyzer: MarketAnalyzer = Depends(get_analyzer),
):
    """Side-by-side city statistics, best average score first."""
    summaries = analyzer.city_comparison(ranker.plots)
    if cities:
        wanted = {c.strip() for c in cities.split(",") if c.strip()}
        summaries = [s for s in summaries if s.city in wanted]
    return summaries


@router.get("/histogram", response_model=PriceHistogram)
async def price_histogram(
    city: Optional[str] = Query(None),
    buckets: Optional[int] = Query(None, ge=1, le=50),
    ranker: PlotRanker = Depends(get_ranker),
    analyzer: MarketAnalyzer = Depends(get_analyzer),
):
    """Distribution of total prices across equal-width buckets."""
    plots = ranker.plots
    if city:
        plots = [p for p in plots if p.city == city]
    return analyzer.price_histogram(plots, buckets)
