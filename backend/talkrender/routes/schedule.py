"""
Schedule endpoints.

POST /api/schedule/refresh is the explicit refresh: a fetch failure is
returned to the caller instead of being swallowed.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Request
from pydantic import BaseModel

from ..schedule import FetchError, ScheduleEvent
from .envelope import ApiResponse, error_response, ok

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/schedule", tags=["schedule"])


class ScheduleStatus(BaseModel):
    event_count: int
    fetched_at: Optional[datetime] = None


@router.post("/refresh", response_model=ApiResponse[ScheduleStatus])
async def refresh_schedule(request: Request):
    """
    Fetch the remote schedule now.

    Raises:
        502: Remote schedule could not be fetched
    """
    cache = request.app.state.schedule_cache
    try:
        catalog = await cache.refresh()
    except FetchError as e:
        logger.error(f"[Schedule] Explicit refresh failed: {e}")
        return error_response(502, str(e))

    return ok(ScheduleStatus(event_count=len(catalog.events), fetched_at=catalog.fetched_at))


@router.get("/events/{guid}", response_model=ApiResponse[ScheduleEvent])
def get_event(guid: str, request: Request):
    """Look up a scheduled event by guid."""
    cache = request.app.state.schedule_cache
    event = cache.lookup(guid)
    if event is None:
        return error_response(404, f"GUID {guid} does not exist in the schedule.")
    return ok(event)
