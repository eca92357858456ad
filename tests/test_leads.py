"""Tests for LeadService."""

import pytest

from landmapanalyzr.leads import LeadService, LeadValidationError, NotFoundError
from landmapanalyzr.models.lead import LeadStatus
from landmapanalyzr.storage import Database, LeadRepository, PlotRepository


@pytest.fixture
def service(database: Database, make_plot) -> LeadService:
    plots = PlotRepository(database)
    plots.create(make_plot(id="plot-a"))
    return LeadService(LeadRepository(database), plots)


class TestCreate:
    """Test lead capture from the contact form."""

    def test_create(self, service: LeadService):
        lead = service.create({"name": "Dana", "phone": "050-123-4567", "plot_id": "plot-a"})

        assert lead.status == LeadStatus.NEW
        assert lead.phone == "0501234567"
        assert service.get(lead.id) == lead

    def test_without_plot(self, service: LeadService):
        lead = service.create({"name": "Dana", "phone": "0501234567", "message": "General question"})
        assert lead.plot_id is None

    def test_field_errors(self, service: LeadService):
        with pytest.raises(LeadValidationError) as exc:
            service.create({"name": "D", "phone": "12345"})

        assert set(exc.value.errors) == {"name", "phone"}
        assert exc.value.errors["phone"] == "Invalid phone number"
        assert service.list() == []

    def test_missing_fields(self, service: LeadService):
        with pytest.raises(LeadValidationError) as exc:
            service.create({})
        assert {"name", "phone"} <= set(exc.value.errors)

    def test_unknown_plot(self, service: LeadService):
        with pytest.raises(NotFoundError):
            service.create({"name": "Dana", "phone": "0501234567", "plot_id": "missing"})


class TestUpdateStatus:
    """Test the admin status workflow."""

    def test_status_with_note_then_back(self, service: LeadService):
        """Going back to "new" keeps the note history."""
        lead = service.create({"name": "Dana", "phone": "0501234567"})

        contacted = service.update_status(lead.id, LeadStatus.CONTACTED, "called once")
        assert contacted.status == LeadStatus.CONTACTED
        assert [n.text for n in contacted.notes] == ["called once"]

        reverted = service.update_status(lead.id, LeadStatus.NEW)
        assert reverted.status == LeadStatus.NEW
        assert [n.text for n in reverted.notes] == ["called once"]
        assert service.get(lead.id) == reverted

    def test_repeat_does_not_duplicate_note(self, service: LeadService):
        lead = service.create({"name": "Dana", "phone": "0501234567"})

        first = service.update_status(lead.id, "contacted", "called once")
        second = service.update_status(lead.id, "contacted", "called once")

        assert second == first
        assert len(service.get(lead.id).notes) == 1

    def test_same_status_without_note_is_unchanged(self, service: LeadService):
        lead = service.create({"name": "Dana", "phone": "0501234567"})
        assert service.update_status(lead.id, LeadStatus.NEW) == lead
        assert service.update_status(lead.id, LeadStatus.NEW, "   ") == lead

    def test_note_on_same_status(self, service: LeadService):
        lead = service.create({"name": "Dana", "phone": "0501234567"})
        updated = service.update_status(lead.id, LeadStatus.NEW, "left voicemail")
        assert updated.status == LeadStatus.NEW
        assert updated.notes[0].status == LeadStatus.NEW

    def test_any_transition_allowed(self, service: LeadService):
        lead = service.create({"name": "Dana", "phone": "0501234567"})
        lost = service.update_status(lead.id, LeadStatus.LOST)
        converted = service.update_status(lead.id, LeadStatus.CONVERTED)
        assert (lost.status, converted.status) == (LeadStatus.LOST, LeadStatus.CONVERTED)

    def test_unknown_lead(self, service: LeadService):
        with pytest.raises(NotFoundError):
            service.update_status("missing", LeadStatus.CONTACTED)

    def test_unknown_status(self, service: LeadService):
        lead = service.create({"name": "Dana", "phone": "0501234567"})
        with pytest.raises(ValueError):
            service.update_status(lead.id, "archived")


class TestBulk:
    """Test bulk operations and counts."""

    def test_bulk_update(self, service: LeadService):
        a = service.create({"name": "Dana", "phone": "0501234567"})
        b = service.create({"name": "Avi", "phone": "0521234567"})

        assert service.bulk_update_status([a.id, b.id, "missing"], LeadStatus.QUALIFIED) == 2
        assert service.status_counts()["qualified"] == 2
        assert service.list(status=LeadStatus.NEW) == []
