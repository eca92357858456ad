"""Public plot catalog endpoints."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from ...analysis import (
    BoundingBox,
    MarketAnalyzer,
    PlotCalculator,
    PlotRanker,
    SortKey,
    plot_center,
    plot_perimeter,
)
from ...models.plot import Plot
from ...state.query_params import filters_from_query
from ...storage import PlotRepository
from ..dependencies import get_analyzer, get_calculator, get_plot_repo, get_ranker

router = APIRouter()
logger = logging.getLogger(__name__)


def plot_analysis(calc: PlotCalculator, plot: Plot, plots: list[Plot]) -> dict:
    """Every derived metric shown on the plot detail page."""
    roi = calc.roi(plot)
    years = calc.holding_years(plot.readiness_estimate)
    breakdown = calc.score_breakdown(plot, calc.area_average_price_sqm(plot, plots))
    return {
        "metrics": calc.plot_metrics(plot),
        "buildable": calc.buildable_value(plot),
        "center": plot_center(plot.coordinates),
        "perimeter_m": plot_perimeter(plot.coordinates),
        "score": breakdown,
        "grade": calc.grade(breakdown.total),
        "score_label": calc.score_label(breakdown.total),
        "cagr": calc.cagr(roi, plot.readiness_estimate),
        "monthly_payment": calc.monthly_payment(plot.total_price),
        "days_on_market": calc.days_on_market(plot.created_at),
        "demand": calc.demand_velocity(plot),
        "pnl": calc.investment_pnl(plot, years),
        "risk": calc.risk_level(plot, plots),
        "timeline": calc.investment_timeline(plot),
        "percentiles": calc.plot_percentiles(plot, plots),
        "verdict": calc.verdict(plot, plots),
        "price_position": calc.price_position(plot, plots),
        "alternatives": calc.alternative_returns(
            plot.total_price,
            plot.projected_value - plot.total_price,
            years,
        ),
    }


@router.get("")
async def list_plots(
    request: Request,
    lat: Optional[float] = Query(None, ge=-90, le=90, description="User latitude for 'nearest'"),
    lng: Optional[float] = Query(None, ge=-180, le=180, description="User longitude for 'nearest'"),
    bbox: Optional[str] = Query(None, description="south,west,north,east"),
    ids: Optional[str] = Query(None, description="Comma separated plot ids (compare and favorites views)"),
    limit: Optional[int] = Query(None, ge=1, le=500),
    offset: int = Query(0, ge=0),
    ranker: PlotRanker = Depends(get_ranker),
    analyzer: MarketAnalyzer = Depends(get_analyzer),
    repo: PlotRepository = Depends(get_plot_repo),
):
    """Filtered and sorted catalog.

    Accepts the same query keys as shareable catalog links (city, priceMin,
    priceMax, sizeMin, sizeMax, ripeness, minRoi, zoning, search, belowAvg,
    maxDays, maxMonthly, sort). Invalid values are dropped rather than rejected.

    With ids, only those published plots are returned, in the requested
    order, and the filter keys are ignored.
    """
    filters, sort = filters_from_query(request.query_params)
    if ids is not None:
        plots = repo.get_many((i.strip() for i in ids.split(",")), published_only=True)
        return catalog_page(plots, sort, analyzer, limit, offset)

    if bbox:
        try:
            filters = filters.model_copy(update={"bounds": BoundingBox.parse(bbox)})
        except ValueError as e:
            raise HTTPException(status_code=422, detail=f"Invalid bbox: {e}")

    location = (lat, lng) if lat is not None and lng is not None else None
    plots = ranker.visible(filters, sort, location)
    return catalog_page(plots, sort, analyzer, limit, offset)


def catalog_page(
    plots: list[Plot],
    sort: SortKey,
    analyzer: MarketAnalyzer,
    limit: Optional[int],
    offset: int,
) -> dict:
    page = plots[offset:offset + limit] if limit is not None else plots[offset:]
    return {
        "plots": [p.model_dump(mode="json") for p in page],
        "total": len(plots),
        "sort": sort.value,
        "best_value_ids": analyzer.best_value_ids(plots),
        "badges": analyzer.best_in_category(plots),
    }


@router.get("/{plot_id}")
async def get_plot(
    plot_id: str,
    ranker: PlotRanker = Depends(get_ranker),
    calc: PlotCalculator = Depends(get_calculator),
):
    """Single plot with its derived investment metrics."""
    plots = ranker.plots
    plot = next((p for p in plots if p.id == plot_id), None)
    if plot is None:
        raise HTTPException(status_code=404, detail="Plot not found")
    return {"plot": plot.model_dump(mode="json"), **plot_analysis(calc, plot, plots)}
