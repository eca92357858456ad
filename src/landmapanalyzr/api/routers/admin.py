"""Admin endpoints for leads, plots and POIs. All routes require the admin role."""

import logging
import uuid
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Query, Request, Response
from pydantic import BaseModel, Field

from ...leads import LeadService
from ...models.lead import Lead, LeadStatus
from ...models.plot import Plot, PlotStatus
from ...models.poi import PointOfInterest
from ...storage import PlotRepository, PoiRepository
from ..auth import get_admin_user
from ..dependencies import get_lead_service, get_plot_repo, get_poi_repo, refresh_catalog

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(get_admin_user)])


# --- Request models ---


class LeadStatusUpdate(BaseModel):
    status: LeadStatus
    note: Optional[str] = Field(default=None, max_length=2000)


class LeadBulkStatusUpdate(BaseModel):
    ids: list[str] = Field(..., min_length=1)
    status: LeadStatus


class PlotBulkStatusUpdate(BaseModel):
    ids: list[str] = Field(..., min_length=1)
    status: PlotStatus


# --- Leads ---


@router.get("/leads")
async def list_leads(
    status: Optional[LeadStatus] = Query(None),
    plot_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    service: LeadService = Depends(get_lead_service),
):
    """Leads newest first, with per-status counts for the pipeline tabs."""
    leads = service.list(status=status, plot_id=plot_id, limit=limit, offset=offset)
    return {"leads": leads, "counts": service.status_counts()}


@router.get("/leads/{lead_id}", response_model=Lead)
async def get_lead(lead_id: str, service: LeadService = Depends(get_lead_service)):
    return service.get(lead_id)


@router.patch("/leads/{lead_id}/status", response_model=Lead)
async def update_lead_status(
    lead_id: str,
    body: LeadStatusUpdate,
    service: LeadService = Depends(get_lead_service),
):
    """Move a lead to any status, optionally recording a note."""
    return service.update_status(lead_id, body.status, body.note)


@router.post("/leads/bulk-status")
async def bulk_update_lead_status(
    body: LeadBulkStatusUpdate,
    service: LeadService = Depends(get_lead_service),
):
    updated = service.bulk_update_status(body.ids, body.status)
    return {"updated": updated, "status": body.status.value}


# --- Plots ---


@router.post("/plots", response_model=Plot, status_code=201)
async def create_plot(
    request: Request,
    payload: dict[str, Any] = Body(...),
    repo: PlotRepository = Depends(get_plot_repo),
):
    """Add a plot; snake_case and camelCase keys are both accepted.

    A plot posted without an id gets a generated UUID.
    """
    if not payload.get("id"):
        payload = {**payload, "id": str(uuid.uuid4())}
    plot = repo.create(Plot.model_validate(payload))
    refresh_catalog(request.app)
    return plot


@router.patch("/plots/{plot_id}", response_model=Plot)
async def update_plot(
    plot_id: str,
    request: Request,
    changes: dict[str, Any] = Body(...),
    repo: PlotRepository = Depends(get_plot_repo),
):
    plot = repo.update(plot_id, changes)
    refresh_catalog(request.app)
    return plot


@router.delete("/plots/{plot_id}", status_code=204)
async def delete_plot(
    plot_id: str,
    request: Request,
    repo: PlotRepository = Depends(get_plot_repo),
):
    repo.delete(plot_id)
    refresh_catalog(request.app)
    return Response(status_code=204)


@router.post("/plots/bulk-status")
async def bulk_update_plot_status(
    body: PlotBulkStatusUpdate,
    request: Request,
    repo: PlotRepository = Depends(get_plot_repo),
):
    updated = repo.bulk_update_status(body.ids, body.status)
    if updated:
        refresh_catalog(request.app)
    return {"updated": updated, "status": body.status.value}


# --- Points of interest ---


@router.post("/pois", response_model=PointOfInterest, status_code=201)
async def create_poi(poi: PointOfInterest, repo: PoiRepository = Depends(get_poi_repo)):
    return repo.create(poi)


@router.patch("/pois/{poi_id}", response_model=PointOfInterest)
async def update_poi(
    poi_id: str,
    changes: dict[str, Any] = Body(...),
    repo: PoiRepository = Depends(get_poi_repo),
):
    return repo.update(poi_id, changes)


@router.delete("/pois/{poi_id}", status_code=204)
async def delete_poi(poi_id: str, repo: PoiRepository = Depends(get_poi_repo)):
    repo.delete(poi_id)
    return Response(status_code=204)
