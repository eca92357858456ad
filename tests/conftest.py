"""Pytest fixtures and test utilities."""

from datetime import datetime, timezone
from pathlib import Path

import pytest

from landmapanalyzr.analysis import MarketAnalyzer, PlotCalculator, PlotRanker
from landmapanalyzr.config import Settings
from landmapanalyzr.models.plot import Plot, PlotStatus, ZoningStage
from landmapanalyzr.storage import Database


def build_plot(**overrides) -> Plot:
    """Plot with sensible defaults; keyword arguments override fields."""
    data = {
        "id": "plot-a",
        "block_number": "10006",
        "number": "1",
        "city": "Hadera",
        "total_price": 500000,
        "projected_value": 1000000,
        "size_sqm": 1000,
        "zoning_stage": ZoningStage.AGRICULTURAL,
        "readiness_estimate": "3-5",
        "status": PlotStatus.AVAILABLE,
    }
    data.update(overrides)
    return Plot(**data)


@pytest.fixture
def make_plot():
    """Factory fixture building Plot objects."""
    return build_plot


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated to a temporary directory."""
    return Settings(
        db_path=tmp_path / "landmap.db",
        state_path=tmp_path / "state.json",
        api_url=None,
        seed_demo_data=False,
        jwt_secret_key="test-secret-key-with-enough-length-for-hs256",
    )


@pytest.fixture
def calculator(settings: Settings) -> PlotCalculator:
    """PlotCalculator instance."""
    return PlotCalculator(settings)


@pytest.fixture
def ranker(calculator: PlotCalculator) -> PlotRanker:
    """PlotRanker instance."""
    return PlotRanker(calculator)


@pytest.fixture
def analyzer(calculator: PlotCalculator, settings: Settings) -> MarketAnalyzer:
    """MarketAnalyzer instance."""
    return MarketAnalyzer(calculator, settings)


@pytest.fixture
def database(settings: Settings) -> Database:
    """Fresh SQLite database in a temporary directory."""
    return Database(settings=settings)


@pytest.fixture
def sample_plot() -> Plot:
    """Agricultural plot doubling in value over 3-5 years."""
    return build_plot()


@pytest.fixture
def catalog() -> list[Plot]:
    """Two cities whose price-per-sqm averages differ.

    Hadera: 1,000 and 3,000 ILS/sqm (average 2,000)
    Netanya: 400 and 600 ILS/sqm (average 500)
    Overall average: 1,250 ILS/sqm
    """
    return [
        build_plot(
            id="hadera-1",
            city="Hadera",
            block_number="10006",
            total_price=1000000,
            projected_value=2500000,
            size_sqm=1000,
            zoning_stage=ZoningStage.DETAILED_PLAN_APPROVED,
            readiness_estimate="1-3",
            coordinates=[(32.45, 34.87)],
            created_at=datetime(2026, 3, 1, tzinfo=timezone.utc),
            views=40,
        ),
        build_plot(
            id="hadera-2",
            city="Hadera",
            block_number="10011",
            total_price=3000000,
            projected_value=3600000,
            size_sqm=1000,
            zoning_stage=ZoningStage.MASTER_PLAN_DEPOSIT,
            readiness_estimate="5+",
            coordinates=[(32.46, 34.88)],
            created_at=datetime(2025, 6, 1, tzinfo=timezone.utc),
            status=PlotStatus.SOLD,
        ),
        build_plot(
            id="netanya-1",
            city="Netanya",
            block_number="7842",
            total_price=400000,
            projected_value=1000000,
            size_sqm=1000,
            zoning_stage=ZoningStage.MASTER_PLAN_APPROVED,
            readiness_estimate="3-5",
            coordinates=[(32.33, 34.86)],
            created_at=datetime(2026, 2, 1, tzinfo=timezone.utc),
            views=5,
        ),
        build_plot(
            id="netanya-2",
            city="Netanya",
            block_number="7850",
            total_price=600000,
            projected_value=900000,
            size_sqm=1000,
            zoning_stage=ZoningStage.AGRICULTURAL,
            readiness_estimate="5+",
            created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        ),
    ]
