"""Land plot data models."""

import logging
import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable

from pydantic import AliasChoices, BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class ZoningStage(str, Enum):
    """Planning-approval stage of a land parcel, in pipeline order."""

    AGRICULTURAL = "AGRICULTURAL"
    MASTER_PLAN_DEPOSIT = "MASTER_PLAN_DEPOSIT"
    MASTER_PLAN_APPROVED = "MASTER_PLAN_APPROVED"
    DETAILED_PLAN_PREP = "DETAILED_PLAN_PREP"
    DETAILED_PLAN_DEPOSIT = "DETAILED_PLAN_DEPOSIT"
    DETAILED_PLAN_APPROVED = "DETAILED_PLAN_APPROVED"
    DEVELOPER_TENDER = "DEVELOPER_TENDER"
    BUILDING_PERMIT = "BUILDING_PERMIT"

    @property
    def index(self) -> int:
        """Position in the planning pipeline (0 = agricultural)."""
        return list(ZoningStage).index(self)


class PlotStatus(str, Enum):
    """Sale status of a plot."""

    AVAILABLE = "AVAILABLE"
    RESERVED = "RESERVED"
    SOLD = "SOLD"
    IN_PLANNING = "IN_PLANNING"


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class Plot(BaseModel):
    """A land parcel listed in the catalog.

    Raw records coming from the database or the REST API use either
    snake_case or camelCase keys (``total_price`` / ``totalPrice``). Both
    are accepted here so that everything downstream works with a single
    canonical schema.
    """

    # Identification
    id: str = Field(..., description="Unique plot identifier")
    number: str = Field(default="", description="Parcel (helka) number")
    block_number: str = Field(
        default="",
        validation_alias=_alias("block_number", "blockNumber"),
        description="Block (gush) number",
    )
    city: str = Field(default="", description="City name")

    # Financials
    total_price: int = Field(
        default=0,
        ge=0,
        validation_alias=_alias("total_price", "totalPrice"),
        description="Asking price in ILS",
    )
    projected_value: int = Field(
        default=0,
        ge=0,
        validation_alias=_alias("projected_value", "projectedValue"),
        description="Projected value after rezoning in ILS",
    )
    size_sqm: float = Field(
        default=0,
        ge=0,
        validation_alias=_alias("size_sqm", "sizeSqM", "sizeSqm"),
        description="Plot area in square meters",
    )

    # Planning
    zoning_stage: ZoningStage = Field(
        default=ZoningStage.AGRICULTURAL,
        validation_alias=_alias("zoning_stage", "zoningStage"),
    )
    readiness_estimate: str = Field(
        default="",
        validation_alias=_alias("readiness_estimate", "readinessEstimate", "ripeness"),
        description="Expected years until building readiness (e.g. '3-5')",
    )
    density_units_per_dunam: float = Field(
        default=0,
        ge=0,
        validation_alias=_alias("density_units_per_dunam", "densityUnitsPerDunam"),
    )
    status: PlotStatus = Field(default=PlotStatus.AVAILABLE)

    # Geography: list of [lat, lng] pairs (a polygon, or a single point)
    coordinates: list[tuple[float, float]] = Field(default_factory=list)
    distance_to_sea: float | None = Field(
        default=None,
        validation_alias=_alias("distance_to_sea", "distanceToSea"),
    )
    distance_to_park: float | None = Field(
        default=None,
        validation_alias=_alias("distance_to_park", "distanceToPark"),
    )
    distance_to_hospital: float | None = Field(
        default=None,
        validation_alias=_alias("distance_to_hospital", "distanceToHospital"),
    )

    # Listing info
    views: int = Field(default=0, ge=0)
    description: str = Field(default="")
    is_published: bool = Field(
        default=True,
        validation_alias=_alias("is_published", "isPublished"),
    )
    created_at: datetime | None = Field(
        default=None,
        validation_alias=_alias("created_at", "createdAt"),
    )
    updated_at: datetime | None = Field(
        default=None,
        validation_alias=_alias("updated_at", "updatedAt"),
    )

    model_config = {
        "populate_by_name": True,
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }

    @field_validator("id", "number", "block_number", mode="before")
    @classmethod
    def _coerce_identifier(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator(
        "total_price", "projected_value", "size_sqm",
        "density_units_per_dunam", "views",
        mode="before",
    )
    @classmethod
    def _missing_numbers_are_zero(cls, value: Any) -> Any:
        if value is None or value == "":
            return 0
        if isinstance(value, float) and not math.isfinite(value):
            return 0
        return value

    @field_validator("total_price", "projected_value", "views", mode="before")
    @classmethod
    def _round_whole_numbers(cls, value: Any) -> Any:
        if isinstance(value, float):
            return round(value) if math.isfinite(value) else 0
        return value

    @field_validator("city", "readiness_estimate", "description", mode="before")
    @classmethod
    def _missing_text_is_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("zoning_stage", mode="before")
    @classmethod
    def _unknown_zoning_is_agricultural(cls, value: Any) -> Any:
        if isinstance(value, ZoningStage):
            return value
        try:
            return ZoningStage(str(value).upper())
        except ValueError:
            return ZoningStage.AGRICULTURAL

    @field_validator("status", mode="before")
    @classmethod
    def _unknown_status_is_available(cls, value: Any) -> Any:
        if isinstance(value, PlotStatus):
            return value
        try:
            return PlotStatus(str(value).upper())
        except ValueError:
            return PlotStatus.AVAILABLE

    @field_validator("coordinates", mode="before")
    @classmethod
    def _drop_invalid_coordinates(cls, value: Any) -> Any:
        if not value:
            return []
        if isinstance(value, dict):
            value = [[value.get("lat"), value.get("lng")]]
        valid = []
        for pair in value:
            if not isinstance(pair, (list, tuple)) or len(pair) < 2:
                continue
            try:
                lat, lng = float(pair[0]), float(pair[1])
            except (TypeError, ValueError):
                continue
            if not (math.isfinite(lat) and math.isfinite(lng)):
                continue
            valid.append((lat, lng))
        return valid

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def _as_utc(cls, value: datetime | None) -> datetime | None:
        # Stored as ISO text, so all timestamps share one offset to sort
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    @property
    def dunam(self) -> float:
        """Plot area in dunams (1 dunam = 1,000 sqm)."""
        return self.size_sqm / 1000 if self.size_sqm > 0 else 0.0

    @property
    def label(self) -> str:
        """Human readable block/parcel label."""
        return f"Block {self.block_number} / Parcel {self.number}"


def normalize_plots(records: Iterable[dict[str, Any] | Plot]) -> list[Plot]:
    """Normalize raw plot records into canonical Plot models.

    Records that fail validation are skipped with a warning so that a single
    malformed row never blanks the whole catalog.
    """
    plots = []
    for record in records:
        if isinstance(record, Plot):
            plots.append(record)
            continue
        try:
            plots.append(Plot.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Skipping malformed plot {record.get('id', '?')}: {e.error_count()} errors")
    return plots
