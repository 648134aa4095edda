"""
Rule file upload and download routes.

Uploads are parsed by the formats component and saved through the same
all-or-nothing bulk validation as the JSON API. With overwrite the file
becomes the whole rule table.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from src.api.auth_utils import require_admin, require_read
from src.api.deps import get_redirect_service, get_request_origin
from src.components.formats import (
    ExportRulesInput,
    FileFormat,
    ParseContentInput,
    run_export,
    run_parse,
)
from src.components.redirects import (
    BulkCreateRedirectsInput,
    RedirectService,
    run_bulk_create,
)

logger = logging.getLogger(__name__)

router = APIRouter()


class FileUploadRequest(BaseModel):
    """Uploaded rule file."""

    format: FileFormat
    content: str
    overwrite: bool = False


class FileDownloadRequest(BaseModel):
    """Requested export format."""

    format: FileFormat


@router.post("/files/upload", dependencies=[Depends(require_admin)])
async def upload_file(
    request: FileUploadRequest,
    service: RedirectService = Depends(get_redirect_service),
    origin: str = Depends(get_request_origin),
) -> dict[str, Any]:
    """Import rules from a JSON, CSV or Terraform document."""
    parsed = run_parse(ParseContentInput(content=request.content, format=request.format))
    if not parsed.success:
        raise HTTPException(
            status_code=400,
            detail={
                "success": False,
                "message": f"Failed to process {request.format.value} file: {'; '.join(parsed.errors)}",
            },
        )

    if not parsed.rules:
        raise HTTPException(
            status_code=400,
            detail={"success": False, "message": "No valid redirects found in the uploaded file"},
        )

    result = await run_bulk_create(
        BulkCreateRedirectsInput(rules=parsed.rules, replace=request.overwrite, origin=origin),
        service=service,
    )
    if not result.success:
        raise HTTPException(
            status_code=400,
            detail={
                "success": False,
                "errors": [
                    {"code": e.code, "message": e.message, "field": e.field} for e in result.errors
                ],
            },
        )

    total = len(await service.list_rules())
    logger.info(
        "Imported %d redirects from %s upload (overwrite=%s)",
        len(parsed.rules),
        request.format.value,
        request.overwrite,
    )
    return {
        "success": True,
        "message": f"Successfully processed {len(parsed.rules)} redirects from {request.format.value} file",
        "stats": {
            "uploaded": len(parsed.rules),
            "total": total,
        },
    }


@router.post("/files/download", dependencies=[Depends(require_read)])
async def download_file(
    request: FileDownloadRequest,
    service: RedirectService = Depends(get_redirect_service),
) -> Response:
    """Export all rules as an attachment."""
    rules = await service.list_rules()
    if not rules:
        raise HTTPException(
            status_code=404,
            detail={"success": False, "message": "No redirects found to export"},
        )

    exported = run_export(ExportRulesInput(rules=tuple(rules), format=request.format))
    return Response(
        content=exported.content,
        media_type=exported.format.content_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
