"""Event emitter for publishing broadcast events after successful writes."""
import logging

from .broadcaster import get_broadcaster
from .schema import BroadcastEvent

logger = logging.getLogger("people_web")


def emit_event(event: BroadcastEvent) -> int:
    """
    Publish an event to every connected client.

    Args:
        event: Typed broadcast event

    Returns:
        Number of subscribers that received it
    """
    delivered = get_broadcaster().publish(event)
    logger.debug(f"Emitted {event.event_type.value} for {event.object_id} to {delivered} client(s)")
    return delivered
