from datetime import datetime
from typing import List

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from ..event_store import EventStoreClient, EventStoreError, get_event_store
from ..schemas import ActivityCategory, ActivityEvent

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/events", response_model=List[ActivityEvent])
async def list_events(
    category: ActivityCategory = Query(..., description="feeding | diaper | sleep | pumping"),
    start: datetime = Query(..., description="Start of range (inclusive)"),
    end: datetime = Query(..., description="End of range (exclusive)"),
    store: EventStoreClient = Depends(get_event_store),
) -> List[ActivityEvent]:
    """Return logged events of one category whose start falls in the window."""

    if start.tzinfo is None or end.tzinfo is None:
        raise HTTPException(status_code=400, detail="start and end must include a UTC offset.")
    if end <= start:
        raise HTTPException(status_code=400, detail="end must be after start.")

    try:
        events = await store.list_events(category, start, end)
    except EventStoreError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc

    logger.info(
        "events query",
        extra={
            "category": category.value,
            "start": start.isoformat(),
            "end": end.isoformat(),
            "count": len(events),
        },
    )
    return events
