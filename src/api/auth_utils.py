"""
API key authentication for the admin API.

Keys are accepted from the X-API-Key header or an Authorization Bearer
token. The admin key grants full access, the read key read-only access.
With neither key configured authentication is disabled.
"""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.api.deps import get_api_key_pair

logger = logging.getLogger(__name__)


class ApiKeyType(str, Enum):
    ADMIN = "admin"
    READ_ONLY = "read_only"


@dataclass(frozen=True)
class AuthResult:
    authenticated: bool
    key_type: ApiKeyType | None = None
    reason: str | None = None


def constant_time_compare(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode(), b.encode())


def validate_api_key(
    provided_key: str | None,
    admin_key: str | None,
    read_key: str | None = None,
) -> AuthResult:
    """Classify a presented key against the configured keys."""
    if not admin_key and not read_key:
        return AuthResult(
            authenticated=True,
            key_type=ApiKeyType.ADMIN,
            reason="No authentication configured",
        )

    if not provided_key or not provided_key.strip():
        return AuthResult(authenticated=False, reason="No API key provided")

    key = provided_key.strip()

    if admin_key and constant_time_compare(key, admin_key):
        return AuthResult(authenticated=True, key_type=ApiKeyType.ADMIN)

    if read_key and constant_time_compare(key, read_key):
        return AuthResult(authenticated=True, key_type=ApiKeyType.READ_ONLY)

    return AuthResult(authenticated=False, reason="Invalid API key")


def extract_api_key(request: Request) -> str | None:
    """Read the key from X-API-Key, falling back to a Bearer token."""
    api_key = request.headers.get("x-api-key")
    if api_key:
        return api_key

    authorization = request.headers.get("authorization", "")
    if authorization.startswith("Bearer "):
        return authorization[len("Bearer ") :]
    return None


def _authenticate(
    request: Request,
    keys: tuple[str | None, str | None],
    admin_only: bool,
) -> ApiKeyType:
    admin_key, read_key = keys
    result = validate_api_key(extract_api_key(request), admin_key, read_key)

    if not result.authenticated:
        logger.warning(
            "Authentication failed for %s %s: %s",
            request.method,
            request.url.path,
            result.reason,
        )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"error": "Unauthorized", "message": result.reason or "Invalid or missing API key"},
            headers={"WWW-Authenticate": "Bearer"},
        )

    assert result.key_type is not None
    if admin_only and result.key_type != ApiKeyType.ADMIN:
        logger.warning(
            "Insufficient permissions for %s %s (key=%s)",
            request.method,
            request.url.path,
            result.key_type.value,
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail={"error": "Forbidden", "message": "Admin access required"},
        )

    logger.debug("Authenticated %s %s as %s", request.method, request.url.path, result.key_type.value)
    return result.key_type


def require_read(
    request: Request,
    keys: Annotated[tuple[str | None, str | None], Depends(get_api_key_pair)],
) -> ApiKeyType:
    """Dependency: any valid key."""
    return _authenticate(request, keys, admin_only=False)


def require_admin(
    request: Request,
    keys: Annotated[tuple[str | None, str | None], Depends(get_api_key_pair)],
) -> ApiKeyType:
    """Dependency: admin key only."""
    return _authenticate(request, keys, admin_only=True)
