"""
Broadcast stream endpoint.

GET /api/events holds a Server-Sent Events connection open and delivers every
person/link/feature-request change to the client as it happens.
"""
import logging

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from config import EVENTS_KEEPALIVE_SECONDS
from events import get_broadcaster

logger = logging.getLogger("people_web")

router = APIRouter(prefix="/api/events", tags=["events"])


@router.get("")
async def event_stream():
    broadcaster = get_broadcaster()
    subscriber = broadcaster.subscribe()
    return StreamingResponse(
        broadcaster.stream(subscriber, keepalive_seconds=EVENTS_KEEPALIVE_SECONDS),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )
