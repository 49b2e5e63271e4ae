"""
Broadcast bus subscriber.

Holds one Server-Sent Events connection to the server's event stream, turns
frames into typed events and hands them to the engine. Connection state is
reported on every connected/disconnected transition. A dropped connection is
retried a fixed number of times with a fixed delay; after that the bus stays
disconnected until retry() is called.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Callable, List, Optional, Tuple

import httpx
from pydantic import ValidationError

from events import BroadcastEvent, parse_event

from .errors import SyncConnectionError

logger = logging.getLogger("people_web")

EventHandler = Callable[[BroadcastEvent], None]
StatusHandler = Callable[[bool], None]


class SseFrameParser:
    """Incremental parser for `event:`/`data:` frames separated by blank lines."""

    def __init__(self) -> None:
        self._event = "message"
        self._data: List[str] = []

    def feed(self, line: str) -> Optional[Tuple[str, str]]:
        """Feed one line (without its newline). Returns (event, data) when a frame completes."""
        if line == "":
            if not self._data:
                self._event = "message"
                return None
            frame = (self._event, "\n".join(self._data))
            self._event = "message"
            self._data = []
            return frame
        if line.startswith(":"):
            return None
        name, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]
        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        return None


class BroadcastBus:
    def __init__(
        self,
        events_url: str,
        *,
        on_event: EventHandler,
        on_status: Optional[StatusHandler] = None,
        reconnect_attempts: int = 5,
        reconnect_delay_seconds: float = 1.0,
        connect_timeout_seconds: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.events_url = events_url
        self._on_event = on_event
        self._on_status = on_status
        self.reconnect_attempts = max(0, int(reconnect_attempts))
        self.reconnect_delay_seconds = max(0.0, float(reconnect_delay_seconds))
        self._connect_timeout_seconds = connect_timeout_seconds
        self._transport = transport

        self.connected = False
        self.exhausted = False
        self._retries = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self.exhausted = False
        self._retries = 0
        self._task = asyncio.create_task(self._run())

    def retry(self) -> None:
        """Manual reconnect after automatic attempts ran out."""
        self.start()

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._set_connected(False)

    async def wait_closed(self) -> None:
        """Wait until the subscription loop ends on its own (retries exhausted)."""
        if self._task is not None:
            await asyncio.shield(self._task)

    async def _run(self) -> None:
        while True:
            try:
                await self._consume()
                logger.info("Broadcast stream closed by server")
            except asyncio.CancelledError:
                raise
            except (httpx.HTTPError, SyncConnectionError) as e:
                logger.warning(f"Broadcast connection error: {e}")
            except Exception as e:
                logger.error(f"Broadcast subscription failed: {e}", exc_info=True)
            self._set_connected(False)

            if self._retries >= self.reconnect_attempts:
                self.exhausted = True
                logger.error(
                    f"Broadcast reconnection gave up after {self.reconnect_attempts} attempt(s); "
                    "waiting for manual retry"
                )
                return
            self._retries += 1
            logger.info(
                f"Reconnecting to broadcast stream (attempt {self._retries}/{self.reconnect_attempts}) "
                f"in {self.reconnect_delay_seconds:.1f}s"
            )
            await asyncio.sleep(self.reconnect_delay_seconds)

    async def _consume(self) -> None:
        # No read timeout: an idle stream is normal, the server sends keepalives
        timeout = httpx.Timeout(self._connect_timeout_seconds, read=None)
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            async with client.stream("GET", self.events_url, headers={"Accept": "text/event-stream"}) as resp:
                if resp.status_code != 200:
                    raise SyncConnectionError(f"Event stream returned HTTP {resp.status_code}")
                self._retries = 0
                self._set_connected(True)

                parser = SseFrameParser()
                async for line in resp.aiter_lines():
                    frame = parser.feed(line.rstrip("\r"))
                    if frame is not None:
                        self._dispatch(*frame)

    def _dispatch(self, event_name: str, data: str) -> None:
        try:
            event = parse_event(event_name, json.loads(data))
        except (ValueError, KeyError, ValidationError) as e:
            logger.warning(f"Skipping malformed broadcast event {event_name!r}: {e}")
            return
        try:
            self._on_event(event)
        except Exception as e:
            logger.error(f"Broadcast handler failed for {event_name}: {e}", exc_info=True)

    def _set_connected(self, connected: bool) -> None:
        if self.connected == connected:
            return
        self.connected = connected
        logger.info("Connected to server" if connected else "Disconnected from server")
        if self._on_status is not None:
            self._on_status(connected)
