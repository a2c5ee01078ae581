"""
Render endpoint.
"""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel, ConfigDict, Field, StrictInt

from ..persistence import PersistenceError
from ..rendering import RenderError, RenderResult
from .envelope import ApiResponse, error_response, ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/talks", tags=["talks"])


class RenderRequest(BaseModel):
    """Request body for a render."""

    model_config = ConfigDict(extra="forbid")

    import_id: StrictInt = Field(alias="importId")


@router.post("/render", response_model=ApiResponse[RenderResult])
async def render_talk(request: Request):
    """
    Render an uploaded talk through the external toolchain.

    Body: {"importId": <int>}

    Raises:
        400: Missing or non-integer importId
        404: No upload for the import ID
        409: Already rendered, or a render is in progress
        503: Renderer setup incomplete
        500: Renderer step failed
    """
    try:
        payload = await request.json()
        body = RenderRequest.model_validate(payload)
    except ValueError:
        return error_response(400, "Please provide a valid importId.")

    orchestrator = request.app.state.render_orchestrator
    try:
        result = await orchestrator.render_talk(body.import_id)
    except RenderError as e:
        logger.error(f"[Render] Error rendering talk: {e}")
        return error_response(e.status_code, f"Failed to render talk, {e}")
    except PersistenceError as e:
        logger.error(f"[Render] Store failure while rendering: {e}")
        return error_response(500, f"Failed to render talk, {e}")

    return ok(result)
