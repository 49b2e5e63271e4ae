"""
Bookkeeping for self-originated operations awaiting their broadcast echo.

Each optimistic write registers a marker keyed by (kind, action, id). When the
broadcast for that write comes back the marker is consumed and the event is
dropped, because local state already reflects it. Markers are also retired a
short grace period after the REST call succeeds, so an echo that never
arrives (e.g. the bus was briefly down) can't suppress a later, legitimate
remote event for the same id.
"""
from __future__ import annotations

import asyncio
from collections import defaultdict, deque
from typing import Deque, Dict, Optional


class PendingMarker:
    __slots__ = ("key", "timer")

    def __init__(self, key: str) -> None:
        self.key = key
        self.timer: Optional[asyncio.TimerHandle] = None

    def __repr__(self) -> str:
        return f"PendingMarker({self.key!r})"


class PendingOperations:
    def __init__(self, grace_seconds: float = 2.0) -> None:
        self.grace_seconds = grace_seconds
        self._markers: Dict[str, Deque[PendingMarker]] = defaultdict(deque)

    @staticmethod
    def key(kind: str, action: str, record_id: str) -> str:
        return f"{kind}:{action}:{record_id}"

    def add(self, kind: str, action: str, record_id: str) -> PendingMarker:
        marker = PendingMarker(self.key(kind, action, record_id))
        self._markers[marker.key].append(marker)
        return marker

    def has(self, kind: str, action: str, record_id: str) -> bool:
        return bool(self._markers.get(self.key(kind, action, record_id)))

    def consume(self, kind: str, action: str, record_id: str) -> bool:
        """Retire the oldest marker for this key. Returns False if there was none."""
        key = self.key(kind, action, record_id)
        queue = self._markers.get(key)
        if not queue:
            return False
        marker = queue.popleft()
        self._cancel_timer(marker)
        if not queue:
            del self._markers[key]
        return True

    def discard(self, marker: PendingMarker) -> None:
        """Retire a specific marker now (the operation failed or was cancelled)."""
        self._cancel_timer(marker)
        queue = self._markers.get(marker.key)
        if not queue:
            return
        try:
            queue.remove(marker)
        except ValueError:
            return
        if not queue:
            del self._markers[marker.key]

    def acknowledge(self, marker: PendingMarker) -> None:
        """
        The REST call behind this marker succeeded. Keep it for the grace
        window so the echo is still swallowed, then retire it.
        """
        if marker not in self._markers.get(marker.key, ()):
            # Echo already consumed it
            return
        if self.grace_seconds <= 0:
            self.discard(marker)
            return
        loop = asyncio.get_running_loop()
        self._cancel_timer(marker)
        marker.timer = loop.call_later(self.grace_seconds, self.discard, marker)

    def clear(self) -> None:
        for queue in self._markers.values():
            for marker in queue:
                self._cancel_timer(marker)
        self._markers.clear()

    def __len__(self) -> int:
        return sum(len(queue) for queue in self._markers.values())

    @staticmethod
    def _cancel_timer(marker: PendingMarker) -> None:
        if marker.timer is not None:
            marker.timer.cancel()
            marker.timer = None
