"""FastAPI application for the LandMapAnalyzr catalog API."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from ..analysis import MarketAnalyzer, PlotCalculator, PlotRanker
from ..collectors import demo_plots, demo_pois
from ..config import Settings, config
from ..leads import LeadValidationError
from ..storage import Database, DuplicateRecordError, NotFoundError, PlotRepository, PoiRepository
from .dependencies import refresh_catalog
from .routers import admin, leads, market, plots, pois

logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    def __init__(self, app, hsts: bool = False):
        super().__init__(app)
        self.hsts = hsts

    async def dispatch(self, request: Request, call_next):
        response: Response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Permissions-Policy"] = "microphone=(), camera=()"
        if self.hsts:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


def seed_demo_data(db: Database) -> int:
    """Fill an empty catalog with the bundled demo plots and POIs.

    Returns:
        Number of plots inserted (0 when the catalog already has plots)
    """
    repo = PlotRepository(db)
    if repo.count() > 0:
        return 0
    saved = repo.save_batch(demo_plots())
    poi_repo = PoiRepository(db)
    for poi in demo_pois():
        if poi_repo.get(poi.id) is None:
            poi_repo.create(poi)
    logger.info(f"Seeded {saved} demo plots")
    return saved


def create_app(
    settings: Optional[Settings] = None,
    db_path: Optional[Path] = None,
) -> FastAPI:
    """Build the API application.

    Args:
        settings: Optional Settings instance (defaults to the global config)
        db_path: Database file, overriding settings.db_path

    Returns:
        Configured FastAPI app
    """
    settings = settings or config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = Database(db_path, settings=settings)
        calculator = PlotCalculator(settings)
        app.state.settings = settings
        app.state.db = db
        app.state.calculator = calculator
        app.state.analyzer = MarketAnalyzer(calculator, settings)
        app.state.ranker = PlotRanker(calculator)
        if settings.seed_demo_data:
            seed_demo_data(db)
        refresh_catalog(app)
        logger.info(f"Catalog ready ({db.path})")
        yield

    app = FastAPI(
        title="LandMapAnalyzr API",
        description="Land plot investment catalog for Israel",
        version=API_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.rstrip("/") for o in settings.cors_origins],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=3600,
    )
    app.add_middleware(
        SecurityHeadersMiddleware,
        hsts=any(o.startswith("https") for o in settings.cors_origins),
    )

    @app.exception_handler(NotFoundError)
    async def not_found_handler(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(DuplicateRecordError)
    async def duplicate_handler(request: Request, exc: DuplicateRecordError):
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    @app.exception_handler(LeadValidationError)
    async def lead_validation_handler(request: Request, exc: LeadValidationError):
        return JSONResponse(
            status_code=422,
            content={"detail": "Invalid lead", "errors": exc.errors},
        )

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError):
        errors = {".".join(str(p) for p in e["loc"]): e["msg"] for e in exc.errors()}
        return JSONResponse(status_code=422, content={"detail": "Invalid data", "errors": errors})

    app.include_router(plots.router, prefix="/api/plots", tags=["Plots"])
    app.include_router(market.router, prefix="/api/market", tags=["Market"])
    app.include_router(pois.router, prefix="/api/pois", tags=["POIs"])
    app.include_router(leads.router, prefix="/api/leads", tags=["Leads"])
    app.include_router(admin.router, prefix="/api/admin", tags=["Admin"])

    @app.get("/api/health")
    async def health(request: Request):
        """Health check endpoint."""
        result = {"status": "healthy", "version": API_VERSION}
        try:
            result["plots"] = PlotRepository(request.app.state.db).count()
            result["database"] = "connected"
        except Exception as e:
            logger.warning(f"Health check database error: {e}")
            result["database"] = "disconnected"
        return result

    return app


app = create_app()
