"""
Tests for the companies HTTP surface.

Drives the full application (routers, validation, error handlers and
rate limiting) over the in-memory backend and checks the envelopes.
"""

from fastapi.testclient import TestClient

from recordapi.core.config import Settings
from recordapi.infrastructure.companies.documents import COMPANY_DESCRIPTOR
from recordapi.infrastructure.records.base import CollectionRegistry
from recordapi.infrastructure.records.memory_collection import InMemoryCollection
from recordapi.main import create_app

COMPANIES = "/api/v1/companies"


def create(client: TestClient, name: str) -> dict:
    response = client.post(COMPANIES, json={"name": name})
    assert response.status_code == 201
    return response.json()["data"]


class TestCreateEndpoint:
    """Tests for POST /api/v1/companies."""

    def test_created_envelope(self, client) -> None:
        response = client.post(COMPANIES, json={"name": "acme llc"})
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["code"] == 201
        assert body["message"] == "Resource created successfully"
        assert body["data"]["name"] == "Acme LLC"
        assert body["data"]["status"] == "active"
        assert "created_at" not in body["data"]
        assert "count" not in body

    def test_missing_name_rejected(self, client) -> None:
        response = client.post(COMPANIES, json={})
        assert response.status_code == 422
        body = response.json()
        assert body["success"] is False
        assert body["message"] == "Validation Error"
        assert body["errors"] == [
            {
                "field": "name",
                "message": "Field required",
                "location": "body",
                "type": "missing",
                "code": "REQUIRED_FIELD",
                "suggestion": "This field is required",
            }
        ]
        assert body["metadata"] == {"suggestedFix": "Missing required fields detected"}

    def test_empty_name_rejected(self, client) -> None:
        response = client.post(COMPANIES, json={"name": ""})
        assert response.status_code == 422
        body = response.json()
        assert body["errors"][0]["code"] == "EMPTY_FIELD"
        assert body["errors"][0]["suggestion"] == "Please provide a value for this field"
        assert body["metadata"] == {"suggestedFix": "Text format issues detected"}

    def test_invalid_status_rejected(self, client) -> None:
        response = client.post(COMPANIES, json={"name": "Acme", "status": "gone"})
        assert response.status_code == 422
        assert response.json()["errors"][0]["field"] == "status"

    def test_blank_name_fails_document_validation(self, client) -> None:
        response = client.post(COMPANIES, json={"name": "   "})
        assert response.status_code == 400
        errors = {e["field"]: e["message"] for e in response.json()["errors"]}
        assert errors["name"] == "Company name cannot be empty"

    def test_duplicate_rejected(self, client) -> None:
        create(client, "Acme")
        response = client.post(COMPANIES, json={"name": "acme"})
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation Error"
        assert {e["field"] for e in body["errors"]} == {"name", "slug"}
        assert all(e["message"].endswith("already in use.") for e in body["errors"])

    def test_malformed_json(self, client) -> None:
        response = client.post(
            COMPANIES, content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400


class TestListEndpoint:
    """Tests for GET /api/v1/companies."""

    def test_search(self, client) -> None:
        create(client, "Acme")
        create(client, "Beta")
        body = client.get(COMPANIES, params={"query": "acm"}).json()
        assert body["code"] == 200
        assert body["count"] == 1
        assert body["total"] == 1
        assert body["data"][0]["name"] == "Acme"

    def test_pagination_sort_and_fields(self, client) -> None:
        for name in ("Gamma", "Alpha", "Beta"):
            create(client, name)
        body = client.get(
            COMPANIES, params={"perPage": "2", "page": "1", "dsc": "name", "fields": "name"}
        ).json()
        assert [r["name"] for r in body["data"]] == ["Gamma", "Beta"]
        assert set(body["data"][0]) == {"id", "name"}
        assert body["count"] == 2
        assert body["total"] == 3

    def test_asc_and_dsc_on_same_field_sorts_descending(self, client) -> None:
        for name in ("Beta", "Gamma", "Alpha"):
            create(client, name)
        body = client.get(f"{COMPANIES}?asc=name&dsc=name").json()
        assert [r["name"] for r in body["data"]] == ["Gamma", "Beta", "Alpha"]

    def test_repeated_filter_key(self, client) -> None:
        acme = create(client, "Acme")
        client.patch(f"{COMPANIES}/{acme['id']}", json={"status": "suspended"})
        create(client, "Beta")
        create(client, "Gamma")
        response = client.get(f"{COMPANIES}?status=suspended&status=inactive")
        assert [r["name"] for r in response.json()["data"]] == ["Acme"]

    def test_empty_result(self, client) -> None:
        response = client.get(COMPANIES, params={"status": "inactive"})
        assert response.status_code == 200
        body = response.json()
        assert body["data"] == []
        assert body["total"] == 0
        assert body["message"] == "Resource not found"

    def test_body_directive_is_accepted(self, client) -> None:
        create(client, "Acme")
        response = client.request("GET", COMPANIES, json={"populateMap": "owner"})
        assert response.status_code == 200
        assert response.json()["count"] == 1


class TestRecordEndpoints:
    """Tests for GET, PATCH, PUT and DELETE /api/v1/companies/{id}."""

    def test_get(self, client) -> None:
        acme = create(client, "Acme")
        response = client.get(f"{COMPANIES}/{acme['id']}")
        assert response.status_code == 200
        assert response.json()["data"] == acme

    def test_get_missing(self, client) -> None:
        response = client.get(f"{COMPANIES}/missing")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "code": 404,
            "message": "Resource not found",
        }

    def test_patch_and_put(self, client) -> None:
        acme = create(client, "Acme")
        patched = client.patch(f"{COMPANIES}/{acme['id']}", json={"name": "acme corp"})
        assert patched.status_code == 200
        assert patched.json()["data"]["slug"] == "acme-corp"
        put = client.put(f"{COMPANIES}/{acme['id']}", json={"status": "inactive"})
        assert put.json()["data"]["status"] == "inactive"
        assert put.json()["message"] == "Resource updated successfully"

    def test_update_requires_a_field(self, client) -> None:
        acme = create(client, "Acme")
        response = client.patch(f"{COMPANIES}/{acme['id']}", json={})
        assert response.status_code == 422

    def test_update_duplicate(self, client) -> None:
        create(client, "Acme")
        beta = create(client, "Beta")
        response = client.patch(f"{COMPANIES}/{beta['id']}", json={"name": "Acme"})
        assert response.status_code == 400

    def test_delete_then_get(self, client) -> None:
        acme = create(client, "Acme")
        deleted = client.delete(f"{COMPANIES}/{acme['id']}")
        assert deleted.status_code == 200
        assert deleted.json()["data"]["name"] == "Acme"
        assert client.delete(f"{COMPANIES}/{acme['id']}").status_code == 404
        assert client.get(f"{COMPANIES}/{acme['id']}").status_code == 404


class TestErrorSurface:
    """Tests for unmatched routes, diagnostics, redaction and rate limits."""

    def test_unmatched_route(self, client) -> None:
        response = client.get("/api/v1/nowhere")
        assert response.status_code == 404
        assert response.json() == {
            "success": False,
            "code": 404,
            "message": "Resource not found",
        }

    def test_method_not_allowed(self, client) -> None:
        response = client.delete(COMPANIES)
        assert response.status_code == 405
        assert response.json()["success"] is False

    def test_development_diagnostics(self, app_factory) -> None:
        client = app_factory(environment="development")
        body = client.get(f"{COMPANIES}/missing").json()
        assert body["type"] == "NotFoundError"
        assert body["path"] == "/api/v1/companies/missing"
        assert body["method"] == "GET"
        assert "stack" in body

    def test_production_redacts_unexpected_errors(self) -> None:
        class BrokenCollection(InMemoryCollection):
            async def count(self, predicate):
                raise RuntimeError("password=hunter2")

        registry = CollectionRegistry()
        registry.register(BrokenCollection(COMPANY_DESCRIPTOR, registry))
        settings = Settings(environment="production", storage_backend="memory")
        client = TestClient(create_app(settings, registry), raise_server_exceptions=False)

        response = client.get(COMPANIES)
        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "code": 500,
            "message": "Internal Server Error",
        }

    def test_rate_limit(self, app_factory) -> None:
        client = app_factory(rate_limit_default="2/minute")
        assert client.get("/api/v1/health").status_code == 200
        assert client.get("/api/v1/health").status_code == 200
        response = client.get("/api/v1/health")
        assert response.status_code == 429
        assert response.json() == {
            "success": False,
            "code": 429,
            "message": "Too many requests",
        }

    def test_rate_limit_disabled(self, app_factory) -> None:
        client = app_factory(rate_limit_default="1/minute", rate_limit_enabled=False)
        for _ in range(3):
            assert client.get("/api/v1/health").status_code == 200

    def test_rate_limit_counters_in_development(self, app_factory) -> None:
        client = app_factory(environment="development", rate_limit_default="2/minute")
        for _ in range(2):
            assert client.get("/api/v1/health").status_code == 200
        body = client.get("/api/v1/health").json()
        assert body["code"] == 429
        assert body["limit"] == 2
        assert body["current"] == 2
        assert body["remaining"] == 0
        assert body["path"] == "/api/v1/health"
        assert body["method"] == "GET"

    def test_collection_routes_are_limited(self, app_factory) -> None:
        client = app_factory(rate_limit_default="2/minute")
        assert client.get(COMPANIES).status_code == 200
        assert client.get(COMPANIES).status_code == 200
        response = client.get(COMPANIES)
        assert response.status_code == 429
        assert response.json()["message"] == "Too many requests"
