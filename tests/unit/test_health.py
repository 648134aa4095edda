from fastapi.testclient import TestClient

from src.api.main import app


def test_health_check():
    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_api_routes_mounted():
    paths = {route.path for route in app.routes}
    assert "/api/redirects" in paths
    assert "/api/files/upload" in paths
    assert "/api/cache/stats" in paths
