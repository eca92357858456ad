"""Tests for the FastAPI application."""

import uuid

import pytest
from fastapi.testclient import TestClient

from landmapanalyzr.api import create_access_token
from landmapanalyzr.api.main import create_app
from landmapanalyzr.config import Settings
from landmapanalyzr.models.plot import Plot
from landmapanalyzr.storage import Database, PlotRepository


@pytest.fixture
def client(settings: Settings, database: Database, catalog: list[Plot]):
    """Client for an app serving the four-plot test catalog."""
    PlotRepository(database).save_batch(catalog)
    with TestClient(create_app(settings)) as client:
        yield client


@pytest.fixture
def admin_headers(settings: Settings) -> dict:
    token = create_access_token("admin@example.com", "admin", settings)
    return {"Authorization": f"Bearer {token}"}


def ids(response) -> list[str]:
    return [p["id"] for p in response.json()["plots"]]


class TestHealth:
    """Test the health endpoint and app startup."""

    def test_health(self, client: TestClient):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["plots"] == 4
        assert response.json()["database"] == "connected"
        assert response.headers["X-Content-Type-Options"] == "nosniff"

    def test_seeds_demo_data(self, settings: Settings):
        seeded = settings.model_copy(update={"seed_demo_data": True})
        with TestClient(create_app(seeded)) as client:
            assert client.get("/api/health").json()["plots"] == 9
            assert client.get("/api/plots").json()["total"] == 9
            assert client.get("/api/pois").json()


class TestPlots:
    """Test the public catalog endpoints."""

    def test_list(self, client: TestClient):
        response = client.get("/api/plots")

        assert response.status_code == 200
        assert response.json()["total"] == 4
        assert response.json()["sort"] == "recommended"
        assert ids(response) == ["hadera-1", "netanya-1", "netanya-2", "hadera-2"]

    def test_query_keys(self, client: TestClient):
        response = client.get("/api/plots", params={"city": "Netanya", "sort": "price-asc"})
        assert ids(response) == ["netanya-1", "netanya-2"]

    def test_below_average(self, client: TestClient):
        response = client.get("/api/plots", params={"belowAvg": "true"})
        assert ids(response) == ["hadera-1", "netanya-1", "netanya-2"]

    def test_invalid_values_ignored(self, client: TestClient):
        response = client.get("/api/plots", params={"priceMin": "cheap", "sort": "random"})
        assert response.status_code == 200
        assert response.json()["total"] == 4

    def test_pagination(self, client: TestClient):
        response = client.get("/api/plots", params={"limit": 2, "offset": 1})
        assert response.json()["total"] == 4
        assert ids(response) == ["netanya-1", "netanya-2"]

    def test_bbox(self, client: TestClient):
        response = client.get("/api/plots", params={"bbox": "32.4,34.8,32.5,34.9"})
        assert sorted(ids(response)) == ["hadera-1", "hadera-2"]

        assert client.get("/api/plots", params={"bbox": "1,2"}).status_code == 422

    def test_nearest(self, client: TestClient):
        response = client.get("/api/plots", params={"sort": "nearest", "lat": 32.33, "lng": 34.86})
        assert ids(response) == ["netanya-1", "hadera-1", "hadera-2", "netanya-2"]

    def test_lookup_by_ids(self, client: TestClient):
        """Requested order is kept and unknown ids are skipped."""
        response = client.get("/api/plots", params={"ids": "netanya-2, missing,hadera-1", "city": "Netanya"})

        assert response.status_code == 200
        assert ids(response) == ["netanya-2", "hadera-1"]
        assert response.json()["total"] == 2
        assert {"best_value_ids", "badges", "sort"} <= set(response.json())

    def test_lookup_by_ids_capped(self, client: TestClient):
        requested = ",".join(["hadera-1"] + [f"missing-{i}" for i in range(10)] + ["netanya-1"])
        assert ids(client.get("/api/plots", params={"ids": requested})) == ["hadera-1"]

    def test_lookup_skips_unpublished(self, client: TestClient, admin_headers: dict):
        client.patch("/api/admin/plots/hadera-1", json={"isPublished": False}, headers=admin_headers)
        assert ids(client.get("/api/plots", params={"ids": "hadera-1,netanya-1"})) == ["netanya-1"]

    def test_listing_age_filter(self, client: TestClient):
        """The catalog fixture was listed long ago."""
        assert client.get("/api/plots", params={"maxDays": 1}).json()["total"] == 0

    def test_monthly_sort(self, client: TestClient):
        response = client.get("/api/plots", params={"sort": "monthly-asc", "maxMonthly": 3000})
        assert ids(response) == ["netanya-1", "netanya-2"]

    def test_detail(self, client: TestClient):
        response = client.get("/api/plots/hadera-1")

        assert response.status_code == 200
        data = response.json()
        assert data["plot"]["id"] == "hadera-1"
        assert data["metrics"]["roi"] == 150
        assert 1 <= data["score"]["total"] <= 10
        assert data["grade"]["grade"]
        assert data["center"] == [32.45, 34.87]
        assert data["perimeter_m"] is None
        assert data["buildable"] is None

    def test_detail_not_found(self, client: TestClient):
        assert client.get("/api/plots/missing").status_code == 404


class TestMarket:
    """Test market aggregation endpoints."""

    def test_overview(self, client: TestClient):
        data = client.get("/api/market/overview").json()
        assert data["summary"]["count"] == 4
        assert [c["city"] for c in data["cities"]] == ["Hadera", "Netanya"]

    def test_compare(self, client: TestClient):
        data = client.get("/api/market/compare", params={"cities": "Netanya, Eilat"}).json()
        assert [c["city"] for c in data] == ["Netanya"]
        assert data[0]["avg_price_per_sqm"] == 500

    def test_histogram(self, client: TestClient):
        data = client.get("/api/market/histogram", params={"buckets": 3}).json()
        assert len(data["buckets"]) == 3
        assert sum(b["count"] for b in data["buckets"]) == 4


class TestLeads:
    """Test the public contact form."""

    def test_create(self, client: TestClient):
        response = client.post("/api/leads", json={"name": "Dana", "phone": "050-123-4567", "plot_id": "hadera-1"})
        assert response.status_code == 201
        assert response.json()["status"] == "new"

    def test_field_errors(self, client: TestClient):
        response = client.post("/api/leads", json={"name": "Dana", "phone": "123"})

        assert response.status_code == 422
        assert response.json()["errors"] == {"phone": "Invalid phone number"}

    def test_unknown_plot(self, client: TestClient):
        response = client.post("/api/leads", json={"name": "Dana", "phone": "0501234567", "plot_id": "missing"})
        assert response.status_code == 404


class TestAdmin:
    """Test admin authentication and catalog management."""

    def test_requires_token(self, client: TestClient):
        assert client.get("/api/admin/leads").status_code == 401

    def test_invalid_token(self, client: TestClient):
        response = client.get("/api/admin/leads", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    def test_expired_token(self, client: TestClient, settings: Settings):
        token = create_access_token("admin@example.com", "admin", settings, expires_minutes=-1)
        response = client.get("/api/admin/leads", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_requires_admin_role(self, client: TestClient, settings: Settings):
        token = create_access_token("viewer@example.com", "viewer", settings)
        response = client.get("/api/admin/leads", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403

    def test_lead_workflow(self, client: TestClient, admin_headers: dict):
        lead_id = client.post("/api/leads", json={"name": "Dana", "phone": "0501234567"}).json()["id"]

        response = client.patch(
            f"/api/admin/leads/{lead_id}/status",
            json={"status": "contacted", "note": "called once"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "contacted"

        response = client.patch(
            f"/api/admin/leads/{lead_id}/status",
            json={"status": "new"},
            headers=admin_headers,
        )
        assert response.json()["status"] == "new"
        assert [n["text"] for n in response.json()["notes"]] == ["called once"]

        data = client.get("/api/admin/leads", headers=admin_headers).json()
        assert [lead["id"] for lead in data["leads"]] == [lead_id]
        assert data["counts"]["new"] == 1

    def test_lead_not_found(self, client: TestClient, admin_headers: dict):
        response = client.patch(
            "/api/admin/leads/missing/status",
            json={"status": "lost"},
            headers=admin_headers,
        )
        assert response.status_code == 404

    def test_plot_create_refreshes_catalog(self, client: TestClient, admin_headers: dict):
        response = client.post(
            "/api/admin/plots",
            json={"id": "caesarea-1", "city": "Caesarea", "totalPrice": 900000, "sizeSqM": 1200},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert client.get("/api/plots").json()["total"] == 5
        assert client.get("/api/plots/caesarea-1").status_code == 200

        duplicate = client.post("/api/admin/plots", json={"id": "caesarea-1"}, headers=admin_headers)
        assert duplicate.status_code == 409

    def test_plot_create_generates_id(self, client: TestClient, admin_headers: dict):
        response = client.post(
            "/api/admin/plots",
            json={"city": "Caesarea", "totalPrice": 900000, "sizeSqM": 1200},
            headers=admin_headers,
        )

        assert response.status_code == 201
        plot_id = response.json()["id"]
        assert uuid.UUID(plot_id)
        assert client.get(f"/api/plots/{plot_id}").json()["plot"]["city"] == "Caesarea"

    def test_plot_invalid(self, client: TestClient, admin_headers: dict):
        response = client.post("/api/admin/plots", json={"sizeSqM": -5}, headers=admin_headers)
        assert response.status_code == 422
        assert response.json()["errors"]

    def test_plot_update_and_delete(self, client: TestClient, admin_headers: dict):
        response = client.patch("/api/admin/plots/netanya-1", json={"totalPrice": 350000}, headers=admin_headers)
        assert response.json()["total_price"] == 350000
        assert client.get("/api/plots/netanya-1").json()["plot"]["total_price"] == 350000

        assert client.delete("/api/admin/plots/netanya-1", headers=admin_headers).status_code == 204
        assert client.get("/api/plots/netanya-1").status_code == 404
        assert client.delete("/api/admin/plots/netanya-1", headers=admin_headers).status_code == 404

    def test_unpublish_hides_plot(self, client: TestClient, admin_headers: dict):
        client.patch("/api/admin/plots/hadera-2", json={"isPublished": False}, headers=admin_headers)
        assert "hadera-2" not in ids(client.get("/api/plots"))

    def test_plot_bulk_status(self, client: TestClient, admin_headers: dict):
        response = client.post(
            "/api/admin/plots/bulk-status",
            json={"ids": ["hadera-1", "netanya-1"], "status": "RESERVED"},
            headers=admin_headers,
        )
        assert response.json()["updated"] == 2
        assert client.get("/api/plots/hadera-1").json()["plot"]["status"] == "RESERVED"

    def test_poi_management(self, client: TestClient, admin_headers: dict):
        response = client.post(
            "/api/admin/pois",
            json={"id": "beach", "name": "Olga Beach", "type": "beach", "lat": 32.44, "lng": 34.87},
            headers=admin_headers,
        )
        assert response.status_code == 201
        assert [p["id"] for p in client.get("/api/pois", params={"type": "beach"}).json()] == ["beach"]

        assert client.delete("/api/admin/pois/beach", headers=admin_headers).status_code == 204
        assert client.get("/api/pois").json() == []
