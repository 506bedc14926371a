# tests/test_health.py
from fastapi.testclient import TestClient


def test_health(client: TestClient) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_root_describes_service(client: TestClient) -> None:
    data = client.get("/").json()
    assert data["docs"] == "/docs"
    assert "version" in data
