"""Shared FastAPI dependencies.

Services live on ``app.state`` (created in the app factory) so tests can
build an app around a temporary database.
"""

from fastapi import Request

from ..analysis import MarketAnalyzer, PlotCalculator, PlotRanker
from ..leads import LeadService
from ..storage import LeadRepository, PlotRepository, PoiRepository


def get_plot_repo(request: Request) -> PlotRepository:
    return PlotRepository(request.app.state.db)


def get_poi_repo(request: Request) -> PoiRepository:
    return PoiRepository(request.app.state.db)


def get_lead_service(request: Request) -> LeadService:
    db = request.app.state.db
    return LeadService(LeadRepository(db), PlotRepository(db))


def get_calculator(request: Request) -> PlotCalculator:
    return request.app.state.calculator


def get_analyzer(request: Request) -> MarketAnalyzer:
    return request.app.state.analyzer


def get_ranker(request: Request) -> PlotRanker:
    return request.app.state.ranker


def refresh_catalog(app) -> int:
    """Reload published plots into the ranker after catalog changes.

    Returns:
        The new dataset version
    """
    plots = PlotRepository(app.state.db).list(published_only=True)
    return app.state.ranker.load(plots)
