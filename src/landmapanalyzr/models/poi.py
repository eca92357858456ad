"""Point-of-interest data model."""

import uuid
from typing import Optional

from pydantic import BaseModel, Field


class PointOfInterest(BaseModel):
    """A named map marker (school, beach, train station, ...).

    Purely reference data for the map; unrelated to plot financials.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = Field(..., min_length=1)
    type: str = Field(..., description="Marker category (e.g. 'school', 'beach')")
    icon: Optional[str] = None
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)
    description: Optional[str] = None

    model_config = {
        "str_strip_whitespace": True,
        "validate_assignment": True,
    }
