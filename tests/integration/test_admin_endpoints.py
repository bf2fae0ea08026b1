"""
Integration tests for health and metrics endpoints.
"""

from hwlink.factory import create_app


class TestHealthEndpoint:
    """Test health check endpoint."""

    def test_health_endpoint_returns_ok(self, client):
        """Test that health endpoint returns 200 OK."""
        response = client.get("/health")

        assert response.status_code == 200
        data = response.get_json()
        assert data["status"] == "healthy"
        assert "timestamp" in data

    def test_health_endpoint_includes_version(self, client):
        """Test that health endpoint includes version info."""
        data = client.get("/health").get_json()

        assert data["version"] == "1.0.0"
        assert data["world"] == "demo"
        assert data["authority_enabled"] is True

    def test_health_reports_ledger(self, client):
        data = client.get("/health").get_json()

        assert data["ledger"] == {"loaded": True, "size": 0, "degraded": False}
        assert data["components"]["storage"]["backend"] == "memory"

    def test_health_degraded_ledger(self, app, client):
        app.extensions["hwlink"]["authority"].ledger.degraded = True

        response = client.get("/health")

        assert response.status_code == 503
        assert response.get_json()["status"] == "degraded"

    def test_health_disabled_authority(self):
        app, _ = create_app({"WORLD_NAME": ""})

        response = app.test_client().get("/health")

        assert response.status_code == 503
        data = response.get_json()
        assert data["status"] == "disabled"
        assert data["world"] is None


class TestProbes:
    def test_liveness(self, client):
        response = client.get("/health/live")
        assert response.status_code == 200
        assert response.get_json() == {"status": "alive"}

    def test_readiness(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.get_json()["status"] == "ready"

    def test_readiness_without_link_config(self):
        app, _ = create_app({"SECRET_KEY": ""})

        response = app.test_client().get("/health/ready")

        assert response.status_code == 503
        assert response.get_json()["status"] == "not_ready"


class TestMetricsEndpoint:
    """Test Prometheus metrics endpoint."""

    def test_metrics_endpoint_exists(self, client):
        response = client.get("/metrics/prometheus")

        assert response.status_code == 200
        assert response.content_type.startswith("text/plain")

    def test_metrics_include_link_counters(self, client):
        body = client.get("/metrics/prometheus").get_data(as_text=True)

        assert "hwlink_verifications_total" in body
        assert "hwlink_connected_players" in body
        assert "hwlink_ledger_write_failures_total" in body


class TestErrorHandlers:
    def test_not_found_is_json(self, client):
        response = client.get("/does-not-exist")

        assert response.status_code == 404
        assert response.get_json()["error"] == "not_found"


class TestRateLimitExemptions:
    """Monitoring endpoints must stay reachable under the default HTTP limit."""

    def test_monitoring_routes_are_not_rate_limited(self):
        app, _ = create_app({"RATE_LIMIT_ENABLED": True, "RATE_LIMIT_DEFAULT": "2/hour"})
        client = app.test_client()

        for path in ("/health", "/health/live", "/health/ready", "/metrics/prometheus"):
            statuses = {client.get(path).status_code for _ in range(5)}
            assert 429 not in statuses, path
