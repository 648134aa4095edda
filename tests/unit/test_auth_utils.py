"""
Tests for API key authentication.
"""

from __future__ import annotations

import pytest
from fastapi import Depends, FastAPI
from fastapi.testclient import TestClient

from src.api.auth_utils import (
    ApiKeyType,
    constant_time_compare,
    require_admin,
    require_read,
    validate_api_key,
)
from src.api.deps import get_api_key_pair


class TestValidateApiKey:
    def test_no_keys_configured(self) -> None:
        result = validate_api_key(None, None, None)

        assert result.authenticated
        assert result.key_type == ApiKeyType.ADMIN

    def test_missing_key(self) -> None:
        result = validate_api_key(None, "admin")

        assert not result.authenticated
        assert result.reason == "No API key provided"

    def test_blank_key(self) -> None:
        assert not validate_api_key("   ", "admin").authenticated

    def test_admin_key(self) -> None:
        result = validate_api_key(" admin ", "admin", "reader")

        assert result.key_type == ApiKeyType.ADMIN

    def test_read_key(self) -> None:
        result = validate_api_key("reader", "admin", "reader")

        assert result.key_type == ApiKeyType.READ_ONLY

    def test_read_key_only_configured(self) -> None:
        assert validate_api_key("reader", None, "reader").key_type == ApiKeyType.READ_ONLY

    def test_wrong_key(self) -> None:
        result = validate_api_key("guess", "admin", "reader")

        assert not result.authenticated
        assert result.reason == "Invalid API key"

    def test_constant_time_compare(self) -> None:
        assert constant_time_compare("abc", "abc")
        assert not constant_time_compare("abc", "abd")


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()

    @app.get("/read")
    def read(key_type: ApiKeyType = Depends(require_read)) -> dict[str, str]:
        return {"key": key_type.value}

    @app.post("/write")
    def write(key_type: ApiKeyType = Depends(require_admin)) -> dict[str, str]:
        return {"key": key_type.value}

    app.dependency_overrides[get_api_key_pair] = lambda: ("admin-key", "read-key")
    return TestClient(app)


class TestDependencies:
    def test_x_api_key_header(self, client: TestClient) -> None:
        response = client.get("/read", headers={"X-API-Key": "read-key"})

        assert response.status_code == 200
        assert response.json() == {"key": "read_only"}

    def test_bearer_token(self, client: TestClient) -> None:
        response = client.post("/write", headers={"Authorization": "Bearer admin-key"})

        assert response.status_code == 200
        assert response.json() == {"key": "admin"}

    def test_missing_key_401(self, client: TestClient) -> None:
        response = client.get("/read")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        assert response.json()["detail"]["message"] == "No API key provided"

    def test_invalid_key_401(self, client: TestClient) -> None:
        response = client.get("/read", headers={"X-API-Key": "nope"})

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "Unauthorized"

    def test_read_key_cannot_write(self, client: TestClient) -> None:
        response = client.post("/write", headers={"X-API-Key": "read-key"})

        assert response.status_code == 403
        assert response.json()["detail"]["message"] == "Admin access required"

    def test_auth_disabled_without_keys(self, client: TestClient) -> None:
        client.app.dependency_overrides[get_api_key_pair] = lambda: (None, None)  # type: ignore[attr-defined]

        response = client.post("/write")

        assert response.status_code == 200
