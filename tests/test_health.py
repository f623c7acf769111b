import pytest
from fastapi.testclient import TestClient

from bellwright.core import health as health_module
from bellwright.main import app

client = TestClient(app)


@pytest.fixture(autouse=True)
def _mock_env(monkeypatch):
    monkeypatch.setattr(health_module.settings, "environment", "test")
    yield


def test_health_live_returns_ok() -> None:
    response = client.get("/api/v1/health/live")
    assert response.status_code == 200
    body = response.json()
    assert body["code"] == "ok"
    assert body["data"]["status"] == "ok"
    assert "timestamp" in body["data"]
    assert response.headers["x-request-id"]


def test_request_id_is_echoed() -> None:
    response = client.get("/api/v1/health/live", headers={"X-Request-ID": "req-123"})
    assert response.headers["x-request-id"] == "req-123"


def test_health_ready_ok(monkeypatch) -> None:
    async def ok_db():
        return {"status": "ok"}

    async def ok_redis():
        return {"status": "ok"}

    monkeypatch.setattr(health_module, "_check_db", ok_db)
    monkeypatch.setattr(health_module, "_check_redis", ok_redis)

    response = client.get("/api/v1/health/ready")
    assert response.status_code == 200
    payload = response.json()["data"]
    assert payload["status"] == "ok"
    assert payload["ready"] is True
    assert payload["environment"] == "test"
    assert payload["checks"]["database"]["status"] == "ok"
    assert payload["checks"]["redis"]["status"] == "ok"


def test_health_ready_degraded(monkeypatch) -> None:
    async def bad_db():
        return {"status": "error", "error": "unreachable"}

    async def ok_redis():
        return {"status": "ok"}

    monkeypatch.setattr(health_module, "_check_db", bad_db)
    monkeypatch.setattr(health_module, "_check_redis", ok_redis)

    response = client.get("/api/v1/health")
    assert response.status_code == 200
    payload = response.json()["data"]
    assert payload["status"] == "degraded"
    assert payload["ready"] is False
    assert payload["checks"]["database"]["status"] == "error"


def test_health_ready_is_503_when_a_dependency_is_down(monkeypatch) -> None:
    async def ok_db():
        return {"status": "ok"}

    async def bad_redis():
        return {"status": "error", "error": "connection refused"}

    monkeypatch.setattr(health_module, "_check_db", ok_db)
    monkeypatch.setattr(health_module, "_check_redis", bad_redis)

    response = client.get("/api/v1/health/ready")
    assert response.status_code == 503
    body = response.json()
    assert body["code"] == "not_ready"
    assert body["data"] is None
    assert body["details"]["checks"]["redis"]["status"] == "error"
    assert "latency_ms" in body["details"]["checks"]["database"]
