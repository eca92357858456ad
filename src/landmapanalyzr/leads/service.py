"""Lead capture and admin workflow.

Leads are created from the public contact form and moved through the
pipeline by admins. Status changes may carry a note; notes accumulate as
history and are never replaced.
"""

import logging
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from ..models.lead import Lead, LeadCreate, LeadNote, LeadStatus, utcnow
from ..storage.database import LeadRepository, NotFoundError, PlotRepository

logger = logging.getLogger(__name__)


class LeadValidationError(Exception):
    """Raised when a lead form fails validation.

    Attributes:
        errors: Mapping of field name to a human-readable message
    """

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))

    @classmethod
    def from_validation_error(cls, exc: ValidationError) -> "LeadValidationError":
        errors = {}
        for error in exc.errors():
            field = ".".join(str(part) for part in error["loc"]) or "form"
            message = error["msg"]
            if message.startswith("Value error, "):
                message = message[len("Value error, "):]
            errors.setdefault(field, message)
        return cls(errors)


class LeadService:
    """Create leads and manage their status.

    Example:
        db = Database()
        service = LeadService(LeadRepository(db), PlotRepository(db))
        lead = service.create({"name": "Dana", "phone": "050-1234567"})
        service.update_status(lead.id, LeadStatus.CONTACTED, note="Called, will visit Sunday")
    """

    def __init__(self, leads: LeadRepository, plots: Optional[PlotRepository] = None):
        self.leads = leads
        self.plots = plots

    def create(self, payload: dict[str, Any] | LeadCreate) -> Lead:
        """Validate a contact form and store it as a new lead.

        Args:
            payload: Raw form fields or an already-validated LeadCreate

        Returns:
            The stored Lead with status "new"

        Raises:
            LeadValidationError: With per-field messages
            NotFoundError: If plot_id does not reference an existing plot
        """
        if not isinstance(payload, LeadCreate):
            try:
                payload = LeadCreate.model_validate(payload)
            except ValidationError as e:
                raise LeadValidationError.from_validation_error(e) from e

        if payload.plot_id and self.plots is not None and self.plots.get(payload.plot_id) is None:
            raise NotFoundError("Plot", payload.plot_id)

        lead = self.leads.create(Lead(**payload.model_dump()))
        logger.info(f"New lead {lead.id} for plot {lead.plot_id or '-'}")
        return lead

    def get(self, lead_id: str) -> Lead:
        lead = self.leads.get(lead_id)
        if lead is None:
            raise NotFoundError("Lead", lead_id)
        return lead

    def list(
        self,
        status: Optional[LeadStatus] = None,
        plot_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> list[Lead]:
        return self.leads.list(status=status, plot_id=plot_id, limit=limit, offset=offset)

    def update_status(
        self,
        lead_id: str,
        status: LeadStatus,
        note: Optional[str] = None,
    ) -> Lead:
        """Set a lead's status, optionally recording a note.

        Any status may follow any other. Repeating the same call is a no-op:
        the note is only appended when it differs from the latest note, and
        setting the current status without a note returns the lead as is.

        Args:
            lead_id: Lead to update
            status: New status
            note: Optional note text (blank counts as no note)

        Returns:
            The updated (or unchanged) Lead

        Raises:
            NotFoundError: If the lead does not exist
        """
        lead = self.get(lead_id)
        status = LeadStatus(status)
        note = note.strip() if note else None

        notes = list(lead.notes)
        latest = lead.latest_note
        if note and not (latest and latest.text == note and latest.status == status):
            notes.append(LeadNote(text=note, status=status))

        if status == lead.status and len(notes) == len(lead.notes):
            return lead

        updated = lead.model_copy(update={
            "status": status,
            "notes": notes,
            "updated_at": utcnow(),
        })
        self.leads.save(updated)
        logger.info(f"Lead {lead_id}: {lead.status.value} -> {status.value}")
        return updated

    def bulk_update_status(self, lead_ids: Iterable[str], status: LeadStatus) -> int:
        """Set the status of many leads; unknown ids are skipped."""
        return self.leads.bulk_update_status(lead_ids, status)

    def status_counts(self) -> dict[str, int]:
        return self.leads.status_counts()
