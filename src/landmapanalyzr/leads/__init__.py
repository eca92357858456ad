"""Lead capture and status workflow."""

from ..storage.database import NotFoundError
from .service import LeadService, LeadValidationError

__all__ = ["LeadService", "LeadValidationError", "NotFoundError"]
