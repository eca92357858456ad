"""Tests for data models and normalization."""

from datetime import timezone

import pytest
from pydantic import ValidationError

from landmapanalyzr.collectors import demo_plots
from landmapanalyzr.models import LeadCreate, Plot, PlotStatus, ZoningStage, normalize_plots


class TestPlotNormalization:
    """Raw records are normalized into one canonical schema."""

    def test_camel_case(self):
        plot = Plot.model_validate({
            "id": "p1",
            "blockNumber": 10006,
            "totalPrice": 400000,
            "projectedValue": 1200000,
            "sizeSqM": 2011,
            "zoningStage": "DETAILED_PLAN_PREP",
            "readinessEstimate": "3-5 years",
        })
        assert plot.block_number == "10006"
        assert plot.total_price == 400000
        assert plot.size_sqm == 2011
        assert plot.zoning_stage == ZoningStage.DETAILED_PLAN_PREP

    def test_snake_and_camel_agree(self):
        snake = Plot.model_validate({"id": "p1", "total_price": 100, "size_sqm": 10})
        camel = Plot.model_validate({"id": "p1", "totalPrice": 100, "sizeSqM": 10})
        assert snake == camel

    def test_missing_values(self):
        plot = Plot.model_validate({"id": 7, "total_price": None, "city": None, "size_sqm": ""})
        assert plot.id == "7"
        assert plot.total_price == 0
        assert plot.size_sqm == 0
        assert plot.city == ""

    def test_unknown_enums_fall_back(self):
        plot = Plot.model_validate({"id": "p1", "zoning_stage": "???", "status": "gone"})
        assert plot.zoning_stage == ZoningStage.AGRICULTURAL
        assert plot.status == PlotStatus.AVAILABLE

    def test_coordinates_cleaned(self):
        plot = Plot.model_validate({
            "id": "p1",
            "coordinates": [[32.1, 34.8], ["x", 1], [32.2], [float("nan"), 34.0], (32.3, "34.9")],
        })
        assert plot.coordinates == [(32.1, 34.8), (32.3, 34.9)]

    def test_naive_timestamps_are_utc(self):
        plot = Plot.model_validate({"id": "p1", "created_at": "2026-02-10T10:00:00"})
        assert plot.created_at.tzinfo == timezone.utc

    def test_dunam(self):
        assert Plot(id="p1", size_sqm=2500).dunam == 2.5

    def test_normalize_skips_malformed(self):
        plots = normalize_plots([
            {"id": "ok", "totalPrice": 1},
            {"totalPrice": 1},
            {"id": "negative", "totalPrice": -5},
        ])
        assert [p.id for p in plots] == ["ok"]

    def test_demo_dataset(self):
        plots = demo_plots()
        assert len(plots) == 9
        assert {p.city for p in plots} == {"Hadera", "Netanya", "Caesarea"}
        assert all(p.total_price > 0 and p.size_sqm > 0 for p in plots)


class TestLeadCreate:
    """Test the contact form payload."""

    @pytest.mark.parametrize(
        "raw,normalized",
        [
            ("050-123-4567", "0501234567"),
            ("+972 50 123 4567", "+972501234567"),
            ("04-6123456", "046123456"),
        ],
    )
    def test_phone_formats(self, raw: str, normalized: str):
        lead = LeadCreate(name="Dana", phone=raw)
        assert lead.phone == normalized

    def test_invalid_phone(self):
        with pytest.raises(ValidationError) as exc:
            LeadCreate(name="Dana", phone="12345")
        assert exc.value.errors()[0]["loc"] == ("phone",)

    def test_short_name(self):
        with pytest.raises(ValidationError):
            LeadCreate(name="D", phone="0501234567")

    def test_blank_email_is_none(self):
        lead = LeadCreate(name="Dana", phone="0501234567", email="  ")
        assert lead.email is None

    def test_invalid_email(self):
        with pytest.raises(ValidationError):
            LeadCreate(name="Dana", phone="0501234567", email="not-an-email")
