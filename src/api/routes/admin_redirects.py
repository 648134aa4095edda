"""
Admin Redirects API Routes.

Admin endpoints for managing redirect rules and the rule-table cache.

Key behaviors:
- Writes require the admin key, reads accept either key
- Rejected writes return 400 with every validation error
- Unknown sources return 404
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from src.api.auth_utils import require_admin, require_read
from src.api.deps import get_redirect_service, get_request_origin
from src.components.redirects import (
    BulkCreateRedirectsInput,
    CreateRedirectInput,
    DeleteRedirectInput,
    GetRedirectInput,
    RedirectRule,
    RedirectService,
    RedirectValidationError,
    ResolveRedirectInput,
    RuleConditions,
    UpdateRedirectInput,
    run_bulk_create,
    run_create,
    run_delete,
    run_get,
    run_resolve,
    run_update,
)

router = APIRouter()


class BulkRedirectsRequest(BaseModel):
    """Request to save many redirects at once."""

    redirects: list[RedirectRule] = Field(..., min_length=1)


class UpdateRedirectRequest(BaseModel):
    """Partial update; only fields present in the body are applied."""

    model_config = ConfigDict(populate_by_name=True)

    source: str | None = None
    destination: str | None = None
    status_code: int | None = Field(None, alias="statusCode")
    enabled: bool | None = None
    description: str | None = None
    conditions: RuleConditions | None = None
    preserve_query_params: bool | None = Field(None, alias="preserveQueryParams")
    preserve_hash: bool | None = Field(None, alias="preserveHash")


class DryRunRequest(BaseModel):
    """Dry-run resolution request."""

    url: str = Field(..., description="Absolute request URL")
    headers: dict[str, str] = Field(default_factory=dict)


class ValidationErrorResponse(BaseModel):
    """Validation error response."""

    errors: list[dict[str, Any]]


# --- Helper Functions ---


def _serialize_errors(
    errors: list[RedirectValidationError],
) -> list[dict[str, Any]]:
    """Serialize validation errors."""
    return [
        {
            "code": e.code,
            "message": e.message,
            "field": e.field,
        }
        for e in errors
    ]


def _raise_for_errors(errors: list[RedirectValidationError]) -> None:
    if any(e.code == "not_found" for e in errors):
        raise HTTPException(status_code=404, detail="Redirect not found")
    raise HTTPException(
        status_code=400,
        detail={"errors": _serialize_errors(errors)},
    )


# --- Routes ---


@router.post(
    "/redirects",
    status_code=201,
    responses={400: {"model": ValidationErrorResponse}},
    dependencies=[Depends(require_admin)],
)
async def create_redirect(
    rule: RedirectRule,
    service: RedirectService = Depends(get_redirect_service),
    origin: str = Depends(get_request_origin),
) -> dict[str, Any]:
    """Create or replace a redirect."""
    result = await run_create(CreateRedirectInput(rule=rule, origin=origin), service=service)
    if not result.success:
        _raise_for_errors(result.errors)

    assert result.rule is not None
    return {"success": True, "redirect": result.rule.to_wire()}


@router.post(
    "/redirects/bulk",
    status_code=201,
    responses={400: {"model": ValidationErrorResponse}},
    dependencies=[Depends(require_admin)],
)
async def bulk_create_redirects(
    request: BulkRedirectsRequest,
    service: RedirectService = Depends(get_redirect_service),
    origin: str = Depends(get_request_origin),
) -> dict[str, Any]:
    """Save a batch of redirects; nothing is saved if any is invalid."""
    result = await run_bulk_create(
        BulkCreateRedirectsInput(rules=tuple(request.redirects), origin=origin),
        service=service,
    )
    if not result.success:
        _raise_for_errors(result.errors)

    return {"success": True, "count": result.count}


@router.get("/redirects", dependencies=[Depends(require_read)])
async def list_redirects(
    service: RedirectService = Depends(get_redirect_service),
) -> dict[str, Any]:
    """List all redirects keyed by source."""
    rules = await service.list_rules()
    return {"redirects": {rule.source: rule.to_wire() for rule in rules}}


@router.post("/redirects/test", dependencies=[Depends(require_read)])
async def test_redirect(
    request: DryRunRequest,
    service: RedirectService = Depends(get_redirect_service),
) -> dict[str, Any]:
    """Resolve a URL without redirecting and report the outcome."""
    result = await run_resolve(
        ResolveRedirectInput(url=request.url, headers=request.headers),
        service=service,
    )
    if not result.matched or result.rule is None:
        return {"matched": False}

    return {
        "matched": True,
        "blocked": result.blocked,
        "redirect": result.rule.to_wire(),
        "params": result.params,
        "location": result.target_url,
        "statusCode": result.status_code if not result.blocked else 403,
        "reason": result.reason,
    }


@router.get(
    "/redirects/{source:path}",
    responses={404: {"description": "Redirect not found"}},
    dependencies=[Depends(require_read)],
)
async def get_redirect(
    source: str,
    service: RedirectService = Depends(get_redirect_service),
) -> dict[str, Any]:
    """Get a redirect by source."""
    result = await run_get(GetRedirectInput(source=source), service=service)
    if result.rule is None:
        raise HTTPException(status_code=404, detail="Redirect not found")
    return {"redirect": result.rule.to_wire()}


@router.put(
    "/redirects/{source:path}",
    responses={
        400: {"model": ValidationErrorResponse},
        404: {"description": "Redirect not found"},
    },
    dependencies=[Depends(require_admin)],
)
async def update_redirect(
    source: str,
    request: UpdateRedirectRequest,
    service: RedirectService = Depends(get_redirect_service),
    origin: str = Depends(get_request_origin),
) -> dict[str, Any]:
    """
    Update a redirect.

    Validates same constraints as create.
    """
    updates = request.model_dump(exclude_unset=True)
    if not updates:
        raise HTTPException(status_code=400, detail="No updates provided")

    result = await run_update(
        UpdateRedirectInput(source=source, updates=updates, origin=origin),
        service=service,
    )
    if not result.success:
        _raise_for_errors(result.errors)

    assert result.rule is not None
    return {"success": True, "redirect": result.rule.to_wire()}


@router.delete(
    "/redirects/{source:path}",
    responses={404: {"description": "Redirect not found"}},
    dependencies=[Depends(require_admin)],
)
async def delete_redirect(
    source: str,
    service: RedirectService = Depends(get_redirect_service),
) -> dict[str, bool]:
    """Delete a redirect."""
    result = await run_delete(DeleteRedirectInput(source=source), service=service)
    if not result.success:
        raise HTTPException(status_code=404, detail="Redirect not found")
    return {"success": True}


# --- Cache ---


@router.get("/cache/stats", dependencies=[Depends(require_read)])
async def cache_stats(
    service: RedirectService = Depends(get_redirect_service),
) -> dict[str, Any]:
    """Rule-table and pattern cache statistics."""
    return {"cache": service.get_cache_stats()}


@router.post("/cache/clear", dependencies=[Depends(require_admin)])
async def clear_cache(
    service: RedirectService = Depends(get_redirect_service),
) -> dict[str, Any]:
    """Drop the cached rule table and compiled patterns."""
    service.clear_cache()
    dropped = service.clear_pattern_cache()
    return {"success": True, "message": "Cache cleared", "patternsCleared": dropped}


@router.post("/cache/prune", dependencies=[Depends(require_admin)])
async def prune_cache(
    service: RedirectService = Depends(get_redirect_service),
) -> dict[str, Any]:
    """Remove expired cache entries."""
    return {"success": True, "pruned": service.prune_cache()}
