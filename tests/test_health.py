"""Tests for the health endpoint and request id propagation."""

from fastapi.testclient import TestClient

from app.main import app

client = TestClient(app)


def test_health_check():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_health_assigns_request_id():
    response = client.get("/health")
    assert response.headers["X-Request-Id"]


def test_health_echoes_request_id():
    response = client.get("/health", headers={"X-Request-Id": "probe-1"})
    assert response.headers["X-Request-Id"] == "probe-1"
