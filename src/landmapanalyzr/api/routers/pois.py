"""Map points of interest."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ...models.poi import PointOfInterest
from ...storage import PoiRepository
from ..dependencies import get_poi_repo

router = APIRouter()


@router.get("", response_model=list[PointOfInterest])
async def list_pois(
    type: Optional[str] = Query(None, description="Filter by POI type"),
    repo: PoiRepository = Depends(get_poi_repo),
):
    return repo.list(type=type)
