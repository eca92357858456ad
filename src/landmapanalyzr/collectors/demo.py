"""Bundled demo dataset.

Served when every live source fails and nothing is cached, so the catalog
degrades to sample data instead of becoming unusable. The raw records use
the camelCase shape of the REST API on purpose: they go through the same
normalization as live data.
"""

import logging
from typing import Optional

from ..analysis.ranker import PlotFilters, PlotRanker
from ..models.plot import Plot, normalize_plots
from ..models.poi import PointOfInterest
from .base import DataSource

logger = logging.getLogger(__name__)


DEMO_PLOTS = [
    {
        "id": "plot-1",
        "blockNumber": "10006",
        "number": "168",
        "city": "Hadera",
        "sizeSqM": 2011,
        "status": "AVAILABLE",
        "totalPrice": 400000,
        "projectedValue": 1200000,
        "zoningStage": "DETAILED_PLAN_PREP",
        "readinessEstimate": "3-5 years",
        "coordinates": [[32.4505, 34.8735], [32.4505, 34.8755], [32.4495, 34.8755], [32.4495, 34.8735]],
        "distanceToSea": 500,
        "distanceToPark": 300,
        "distanceToHospital": 2500,
        "densityUnitsPerDunam": 15,
        "views": 42,
        "description": "500 m from the coastline, north of the Hadera stream park",
        "created_at": "2026-02-10T10:00:00Z",
        "updated_at": "2026-02-17T14:30:00Z",
    },
    {
        "id": "plot-2",
        "blockNumber": "7842",
        "number": "54",
        "city": "Netanya",
        "sizeSqM": 1500,
        "status": "RESERVED",
        "totalPrice": 520000,
        "projectedValue": 1800000,
        "zoningStage": "MASTER_PLAN_APPROVED",
        "readinessEstimate": "3-5 years",
        "coordinates": [[32.3330, 34.8570], [32.3330, 34.8595], [32.3315, 34.8595], [32.3315, 34.8570]],
        "distanceToSea": 800,
        "distanceToPark": 450,
        "distanceToHospital": 3200,
        "densityUnitsPerDunam": 18,
        "views": 18,
        "description": "South Netanya expansion area, approved master plan",
        "created_at": "2026-01-20T08:00:00Z",
        "updated_at": "2026-02-01T09:00:00Z",
    },
    {
        "id": "plot-3",
        "blockNumber": "10234",
        "number": "23",
        "city": "Caesarea",
        "sizeSqM": 3200,
        "status": "AVAILABLE",
        "totalPrice": 280000,
        "projectedValue": 950000,
        "zoningStage": "AGRICULTURAL",
        "readinessEstimate": "5+ years",
        "coordinates": [[32.5000, 34.8870], [32.5000, 34.8905], [32.4980, 34.8905], [32.4980, 34.8870]],
        "distanceToSea": 1200,
        "distanceToPark": 600,
        "distanceToHospital": 5000,
        "densityUnitsPerDunam": 8,
        "views": 7,
        "description": "Agricultural land inside the Caesarea development envelope",
        "created_at": "2025-12-01T09:00:00Z",
        "updated_at": "2025-12-01T09:00:00Z",
    },
    {
        "id": "plot-4",
        "blockNumber": "10006",
        "number": "171",
        "city": "Hadera",
        "sizeSqM": 1850,
        "status": "AVAILABLE",
        "totalPrice": 610000,
        "projectedValue": 1450000,
        "zoningStage": "DETAILED_PLAN_DEPOSIT",
        "readinessEstimate": "1-3 years",
        "coordinates": [[32.4512, 34.8760], [32.4512, 34.8778], [32.4503, 34.8778], [32.4503, 34.8760]],
        "distanceToSea": 700,
        "distanceToPark": 150,
        "distanceToHospital": 2300,
        "densityUnitsPerDunam": 16,
        "views": 65,
        "description": "Detailed plan deposited, adjacent to the stream park",
        "created_at": "2026-02-25T12:00:00Z",
        "updated_at": "2026-03-02T08:00:00Z",
    },
    {
        "id": "plot-5",
        "blockNumber": "10011",
        "number": "12",
        "city": "Hadera",
        "sizeSqM": 4300,
        "status": "SOLD",
        "totalPrice": 720000,
        "projectedValue": 2100000,
        "zoningStage": "MASTER_PLAN_DEPOSIT",
        "readinessEstimate": "5+ years",
        "coordinates": [[32.4550, 34.8800], [32.4550, 34.8830], [32.4535, 34.8830], [32.4535, 34.8800]],
        "distanceToSea": 1500,
        "distanceToPark": 900,
        "distanceToHospital": 1800,
        "densityUnitsPerDunam": 10,
        "views": 12,
        "description": "Master plan deposited for the eastern neighborhoods",
        "created_at": "2025-10-14T07:30:00Z",
        "updated_at": "2026-01-05T10:00:00Z",
    },
    {
        "id": "plot-6",
        "blockNumber": "8120",
        "number": "301",
        "city": "Netanya",
        "sizeSqM": 1200,
        "status": "AVAILABLE",
        "totalPrice": 690000,
        "projectedValue": 1550000,
        "zoningStage": "DETAILED_PLAN_APPROVED",
        "readinessEstimate": "1-3 years",
        "coordinates": [[32.3410, 34.8610], [32.3410, 34.8625], [32.3400, 34.8625], [32.3400, 34.8610]],
        "distanceToSea": 600,
        "distanceToPark": 250,
        "distanceToHospital": 2700,
        "densityUnitsPerDunam": 22,
        "views": 30,
        "description": "Approved detailed plan, developer tender expected",
        "created_at": "2026-03-01T09:00:00Z",
        "updated_at": "2026-03-04T11:00:00Z",
    },
    {
        "id": "plot-7",
        "blockNumber": "7850",
        "number": "9",
        "city": "Netanya",
        "sizeSqM": 2600,
        "status": "IN_PLANNING",
        "totalPrice": 455000,
        "projectedValue": 1300000,
        "zoningStage": "DETAILED_PLAN_PREP",
        "readinessEstimate": "3-5 years",
        "coordinates": [[32.3290, 34.8640], [32.3290, 34.8668], [32.3276, 34.8668], [32.3276, 34.8640]],
        "distanceToSea": 1100,
        "distanceToPark": 500,
        "distanceToHospital": 3900,
        "densityUnitsPerDunam": 14,
        "views": 9,
        "description": "Detailed plan in preparation near the Poleg interchange",
        "created_at": "2025-11-20T10:00:00Z",
        "updated_at": "2026-01-12T10:00:00Z",
    },
    {
        "id": "plot-8",
        "blockNumber": "10240",
        "number": "77",
        "city": "Caesarea",
        "sizeSqM": 2750,
        "status": "AVAILABLE",
        "totalPrice": 395000,
        "projectedValue": 1150000,
        "zoningStage": "MASTER_PLAN_APPROVED",
        "readinessEstimate": "3-5 years",
        "coordinates": [[32.5030, 34.8900], [32.5030, 34.8930], [32.5012, 34.8930], [32.5012, 34.8900]],
        "distanceToSea": 1600,
        "distanceToPark": 400,
        "distanceToHospital": 4500,
        "densityUnitsPerDunam": 9,
        "views": 21,
        "description": "Approved master plan, close to the business park",
        "created_at": "2026-01-08T08:00:00Z",
        "updated_at": "2026-02-20T16:00:00Z",
    },
    {
        "id": "plot-9",
        "blockNumber": "10251",
        "number": "5",
        "city": "Caesarea",
        "sizeSqM": 5200,
        "status": "AVAILABLE",
        "totalPrice": 560000,
        "projectedValue": 1250000,
        "zoningStage": "AGRICULTURAL",
        "readinessEstimate": "5+ years",
        "coordinates": [[32.4950, 34.8950], [32.4950, 34.8990], [32.4925, 34.8990], [32.4925, 34.8950]],
        "distanceToSea": 2200,
        "distanceToPark": 800,
        "distanceToHospital": 5600,
        "densityUnitsPerDunam": 6,
        "views": 3,
        "description": "Large agricultural parcel on the eastern edge",
        "created_at": "2025-09-02T09:00:00Z",
        "updated_at": "2025-09-02T09:00:00Z",
    },
]

DEMO_POIS = [
    {"id": "poi-sea", "name": "Mediterranean Sea", "type": "beach", "icon": "wave", "lat": 32.4510, "lng": 34.8680},
    {"id": "poi-park", "name": "Hadera Stream Park", "type": "park", "icon": "tree", "lat": 32.4530, "lng": 34.8760},
    {"id": "poi-hospital", "name": "Hillel Yaffe Medical Center", "type": "hospital", "icon": "hospital", "lat": 32.4440, "lng": 34.8900},
]


def demo_plots() -> list[Plot]:
    """The demo dataset as canonical Plot models."""
    return normalize_plots(DEMO_PLOTS)


def demo_pois() -> list[PointOfInterest]:
    return [PointOfInterest.model_validate(p) for p in DEMO_POIS]


class DemoSource(DataSource):
    """Always-available source serving the bundled demo dataset."""

    name = "demo"
    priority = 99

    def __init__(self, ranker: Optional[PlotRanker] = None):
        self.ranker = ranker or PlotRanker()
        self._plots = demo_plots()

    def is_available(self) -> bool:
        return True

    async def fetch_plots(self, filters: Optional[PlotFilters] = None) -> list[Plot]:
        plots = self.ranker.filter(self._plots, filters)
        logger.debug(f"Serving {len(plots)} demo plots")
        return plots

    async def get_plot(self, plot_id: str) -> Optional[Plot]:
        for plot in self._plots:
            if plot.id == plot_id:
                return plot
        return None
