"""Public lead capture endpoint."""

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends

from ...leads import LeadService
from ..dependencies import get_lead_service

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("", status_code=201)
async def create_lead(
    payload: dict[str, Any] = Body(...),
    service: LeadService = Depends(get_lead_service),
):
    """Submit the contact form.

    The raw body is validated by the lead service so that errors come back
    as a flat ``{field: message}`` map (HTTP 422).
    """
    lead = service.create(payload)
    return {"id": lead.id, "status": lead.status.value}
