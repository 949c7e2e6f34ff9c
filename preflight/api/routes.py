"""
API routes for PDF preflight.

Base URL: /v1
"""

import json
from datetime import datetime

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile

from preflight.api.dependencies import get_validator
from preflight.validation import ValidationOptions

router = APIRouter(prefix="/v1")

# Track server start time
_server_start_time = datetime.now()


@router.get("/health")
async def health_check(detailed: bool = Query(default=False)):
    """
    Health check endpoint.

    Args:
        detailed: If true, include ink coverage tool status and limits
    """
    if not detailed:
        return {"status": "ok"}

    validator = get_validator()
    tool_available = await validator.probe.is_available()
    uptime_seconds = (datetime.now() - _server_start_time).total_seconds()

    return {
        # Validation still works without the tool, at lower confidence
        "status": "ok" if tool_available else "degraded",
        "uptime_seconds": int(uptime_seconds),
        "ink_coverage": {
            **validator.probe.to_dict(),
            "available": tool_available,
        },
        "limits": validator.config.to_dict(),
    }


@router.post("/validate")
async def validate_document(
    file: UploadFile = File(...),
    options: str = Form(..., description="ValidationOptions as JSON")
):
    """
    Validate a print-ready PDF against its order.

    The options field uses the camelCase shape, e.g.
    {"fileType": "content", "orderOptions": {"size": {"width": 210,
    "height": 297}, "pages": 8, "binding": "perfect", "bleed": 3}}

    Returns the full validation result. Defects in the file are reported
    in the result body, not as HTTP errors.
    """
    validator = get_validator()

    try:
        validation_options = ValidationOptions.from_dict(json.loads(options))
    except (json.JSONDecodeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid options: {e}")

    data = await file.read()

    if not data:
        raise HTTPException(status_code=400, detail="Empty file")

    result = await validator.validate(data, validation_options)

    return {
        "filename": file.filename,
        **result.to_dict(),
    }
