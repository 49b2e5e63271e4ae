"""
Broadcast fan-out for the SSE event stream.

Each connected client owns a queue; publishing an event puts it on every
queue, the sender's included. The server runs a single worker, so one
process-wide Broadcaster is enough.
"""
import asyncio
import logging
import uuid
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional

from .schema import BroadcastEvent

logger = logging.getLogger("people_web")


@dataclass(eq=False)
class Subscriber:
    """A connected stream client."""
    client_id: str
    queue: asyncio.Queue = field(repr=False)


class Broadcaster:
    """Manages stream subscribers and fans events out to all of them."""

    def __init__(self, queue_maxsize: int = 0):
        self.queue_maxsize = queue_maxsize
        self.subscribers: Dict[str, Subscriber] = {}

    @property
    def subscriber_count(self) -> int:
        return len(self.subscribers)

    def subscribe(self, client_id: Optional[str] = None) -> Subscriber:
        """Register a new subscriber and return it."""
        subscriber = Subscriber(
            client_id=client_id or uuid.uuid4().hex,
            queue=asyncio.Queue(maxsize=self.queue_maxsize),
        )
        self.subscribers[subscriber.client_id] = subscriber
        logger.info(f"Client connected: {subscriber.client_id}")
        return subscriber

    def unsubscribe(self, subscriber: Subscriber) -> None:
        if self.subscribers.pop(subscriber.client_id, None) is not None:
            logger.info(f"Client disconnected: {subscriber.client_id}")

    def publish(self, event: BroadcastEvent) -> int:
        """
        Put an event on every subscriber's queue.

        Returns:
            Number of subscribers the event was delivered to
        """
        delivered = 0
        for subscriber in list(self.subscribers.values()):
            try:
                subscriber.queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                # Slow consumer; drop for this client only
                logger.warning(
                    f"Dropping {event.event_type.value} for slow client {subscriber.client_id}"
                )
        return delivered

    async def stream(self, subscriber: Subscriber, keepalive_seconds: float = 30.0) -> AsyncIterator[str]:
        """
        Yield SSE frames for one subscriber until the client goes away.

        Idle periods produce a comment line so proxies keep the connection open.
        """
        try:
            yield ": connected\n\n"
            while True:
                try:
                    event = await asyncio.wait_for(subscriber.queue.get(), timeout=keepalive_seconds)
                except asyncio.TimeoutError:
                    yield ": keepalive\n\n"
                    continue
                yield event.to_sse()
        finally:
            self.unsubscribe(subscriber)


_broadcaster: Optional[Broadcaster] = None


def get_broadcaster() -> Broadcaster:
    """Return the process-wide broadcaster, creating it on first use."""
    global _broadcaster
    if _broadcaster is None:
        from config import EVENTS_QUEUE_MAXSIZE
        _broadcaster = Broadcaster(queue_maxsize=EVENTS_QUEUE_MAXSIZE)
    return _broadcaster
