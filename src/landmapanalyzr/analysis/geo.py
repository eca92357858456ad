"""Geographic helpers for plot polygons."""

import math
from typing import Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field, model_validator

EARTH_RADIUS_M = 6371000


class BoundingBox(BaseModel):
    """A map viewport ("search in this area")."""

    model_config = ConfigDict(frozen=True)

    south: float = Field(..., ge=-90, le=90)
    west: float = Field(..., ge=-180, le=180)
    north: float = Field(..., ge=-90, le=90)
    east: float = Field(..., ge=-180, le=180)

    @model_validator(mode="after")
    def _check_order(self) -> "BoundingBox":
        if self.south > self.north:
            raise ValueError("south must not exceed north")
        return self

    def contains(self, lat: float, lng: float) -> bool:
        """Whether a point lies inside the box (edges inclusive)."""
        if not self.south <= lat <= self.north:
            return False
        if self.west <= self.east:
            return self.west <= lng <= self.east
        # Box crossing the antimeridian
        return lng >= self.west or lng <= self.east

    @classmethod
    def parse(cls, value: str) -> "BoundingBox":
        """Parse a ``south,west,north,east`` query string."""
        parts = [float(p) for p in value.split(",")]
        if len(parts) != 4:
            raise ValueError("bbox needs four comma separated numbers")
        south, west, north, east = parts
        return cls(south=south, west=west, north=north, east=east)


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Distance in meters between two coordinates using the Haversine formula.

    Args:
        lat1: Latitude of point 1 (degrees).
        lon1: Longitude of point 1 (degrees).
        lat2: Latitude of point 2 (degrees).
        lon2: Longitude of point 2 (degrees).

    Returns:
        Distance in meters.
    """
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    return haversine_distance(lat1, lon1, lat2, lon2) / 1000


def valid_vertices(coordinates: Sequence[Sequence[float]]) -> list[tuple[float, float]]:
    """(lat, lng) pairs of a polygon, skipping short or non-finite entries."""
    return [
        (c[0], c[1])
        for c in coordinates or []
        if len(c) >= 2 and math.isfinite(c[0]) and math.isfinite(c[1])
    ]


def plot_center(coordinates: Sequence[Sequence[float]]) -> Optional[tuple[float, float]]:
    """Centroid (mean of vertices) of a plot polygon, or None without coordinates."""
    valid = valid_vertices(coordinates)
    if not valid:
        return None
    lat = sum(c[0] for c in valid) / len(valid)
    lng = sum(c[1] for c in valid) / len(valid)
    return (lat, lng)


def plot_perimeter(coordinates: Sequence[Sequence[float]]) -> Optional[int]:
    """Closed polygon perimeter in meters; None for fewer than 3 vertices."""
    valid = valid_vertices(coordinates)
    if len(valid) < 3:
        return None
    perimeter = 0.0
    for i, (lat1, lng1) in enumerate(valid):
        lat2, lng2 = valid[(i + 1) % len(valid)]
        perimeter += haversine_distance(lat1, lng1, lat2, lng2)
    return round(perimeter)
