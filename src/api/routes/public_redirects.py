"""
Public Redirects Routes.

Catch-all routing integration for redirect resolution.

Key behaviors:
- Every non-API GET is resolved against the rule table
- Matches return 3xx with Location and cache headers
- Unsafe destinations return 403, misses return 404
- Paths under /api are never redirect sources
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse, RedirectResponse, Response

from src.api.deps import get_redirect_service
from src.components.redirects import (
    RedirectService,
    ResolveOutput,
    ResolveRedirectInput,
    run_resolve,
)

router = APIRouter()


def build_redirect_response(result: ResolveOutput) -> Response:
    """Translate a resolution outcome into an HTTP response."""
    if not result.matched:
        return PlainTextResponse("Not Found", status_code=404)

    if result.blocked or result.target_url is None or result.status_code is None:
        return PlainTextResponse(
            "Redirect blocked: destination not allowed",
            status_code=403,
        )

    headers = {}
    if result.cache_control is not None:
        headers["Cache-Control"] = result.cache_control
        headers["CDN-Cache-Control"] = result.cache_control

    return RedirectResponse(
        url=result.target_url,
        status_code=result.status_code,
        headers=headers,
    )


@router.get("/{path:path}", include_in_schema=False)
async def handle_redirect(
    path: str,
    request: Request,
    service: RedirectService = Depends(get_redirect_service),
) -> Response:
    """Resolve the request URL and redirect when a rule applies."""
    if path == "api" or path.startswith("api/"):
        return PlainTextResponse("Not Found", status_code=404)

    result = await run_resolve(
        ResolveRedirectInput(url=str(request.url), headers=dict(request.headers)),
        service=service,
    )
    return build_redirect_response(result)
