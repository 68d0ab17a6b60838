"""
Basic application tests.

Validates that the FastAPI app starts correctly and the
health endpoint responds as expected.
"""


class TestHealthEndpoint:
    """Tests for the health check endpoint."""

    def test_health_returns_200(self, client) -> None:
        """Health endpoint must return HTTP 200 with status ok."""
        response = client.get("/api/v1/health")
        assert response.status_code == 200

    def test_health_response_body(self, client) -> None:
        """Health endpoint must describe version, environment and storage."""
        body = client.get("/api/v1/health").json()
        assert body["status"] == "ok"
        assert "version" in body
        assert body["environment"] == "test"
        assert body["storage"] == "memory"
        assert body["collections"] == ["companies"]

    def test_docs_hidden_without_debug(self, client) -> None:
        assert client.get("/docs").status_code == 404

    def test_docs_exposed_in_debug(self, app_factory) -> None:
        assert app_factory(debug=True).get("/docs").status_code == 200
