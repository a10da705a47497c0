"""Tests for health check endpoints."""

from datetime import datetime
from unittest.mock import AsyncMock
from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from nexus_api.events.publisher import QueueEventPublisher
from nexus_api.events.queue_client import EventQueueClient
from tests.consts import API_BASE


class TestHealthEndpointsNoAuthRequired:
    """Tests verifying health endpoints work without identity headers."""

    def test_health_check_no_auth_required(self, unauthenticated_client):
        """Test that /health endpoint works without identity headers."""
        response = unauthenticated_client.get(f"{API_BASE}/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"

    def test_liveness_no_auth_required(self, unauthenticated_client):
        response = unauthenticated_client.get(f"{API_BASE}/health/live")

        assert response.status_code == 200
        assert response.json()["status"] == "alive"

    def test_openapi_no_auth_required(self, unauthenticated_client):
        response = unauthenticated_client.get("/openapi.json")

        assert response.status_code == 200


def test_health_check(client):
    """Test basic health check endpoint."""
    response = client.get(f"{API_BASE}/health")

    assert response.status_code == 200
    data = response.json()

    assert data["status"] == "healthy"
    assert data["service"] == "Freelance Nexus Project Service"
    assert data["version"] == "v1"
    assert data["database_configured"] is False
    assert data["ai_enabled"] is True

    # Verify timestamp is a valid ISO format
    datetime.fromisoformat(data["timestamp"])


def test_health_check_without_ai_key(bare_app):
    with TestClient(bare_app) as test_client:
        response = test_client.get(f"{API_BASE}/health")

    assert response.json()["ai_enabled"] is False


def test_readiness_without_database(client, recording_publisher):
    """Without a configured database the service is still ready to serve health and AI calls."""
    response = client.get(f"{API_BASE}/health/ready")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"] == {"database": "not_configured", "pending_events": 0}


def test_readiness_with_healthy_database(app, client):
    mock_pool = MagicMock()
    mock_pool.health_check = AsyncMock(return_value=True)
    mock_pool.close = AsyncMock()
    app.state.db_pool = mock_pool

    response = client.get(f"{API_BASE}/health/ready")

    assert response.status_code == 200
    assert response.json()["checks"]["database"] == "ok"


def test_readiness_with_unreachable_database(app, client):
    mock_pool = MagicMock()
    mock_pool.health_check = AsyncMock(return_value=False)
    mock_pool.close = AsyncMock()
    app.state.db_pool = mock_pool

    response = client.get(f"{API_BASE}/health/ready")

    assert response.status_code == 503
    data = response.json()
    assert data["status"] == "not_ready"
    assert data["checks"]["database"] == "unavailable"


def test_readiness_reports_queue_depth(app, client):
    queues = []
    for name in ("project-events", "proposal-events"):
        sdk_client = MagicMock()
        sdk_client.get_queue_properties.return_value.approximate_message_count = 3
        queues.append(EventQueueClient("UseDevelopmentStorage=true", name, client=sdk_client))
    app.state.event_publisher = QueueEventPublisher(*queues)

    response = client.get(f"{API_BASE}/health/ready")

    assert response.status_code == 200
    assert response.json()["checks"]["queue_depth"] == {"project-events": 3, "proposal-events": 3}


def test_health_endpoints_in_openapi_docs(client):
    """Test that health check endpoints appear in OpenAPI documentation."""
    response = client.get("/openapi.json")

    assert response.status_code == 200
    paths = response.json()["paths"]

    assert f"{API_BASE}/health" in paths
    assert f"{API_BASE}/health/ready" in paths
    assert f"{API_BASE}/health/live" in paths
    assert "Health" in paths[f"{API_BASE}/health"]["get"]["tags"]
