"""Tests for health check endpoint."""

from fastapi.testclient import TestClient

from taskflow_service.config import settings

from .conftest import USER_ID


def test_health_check(client: TestClient) -> None:
    """Test that health endpoint returns healthy status."""
    response = client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["service"] == "taskflow-service"
    assert data["environment"] == settings.environment


def test_health_reports_ai_mode(client: TestClient, monkeypatch) -> None:
    """Test that health shows whether model extraction is switched on."""
    assert client.get("/health").json()["ai"] == "disabled"

    monkeypatch.setattr(settings, "ai_enabled", True)

    assert client.get("/health").json()["ai"] == "enabled"


def test_requests_without_lifespan_create_schema(tmp_path, monkeypatch) -> None:
    """Test that the Lambda path works against a brand new database file."""
    from taskflow_service.main import app

    monkeypatch.setattr(settings, "db_path", tmp_path / "fresh" / "taskflow.db")
    client = TestClient(app, headers={"X-User-Id": USER_ID})

    response = client.get("/drafts")

    assert response.status_code == 200
    assert response.json() == []
    assert settings.db_path.exists()
