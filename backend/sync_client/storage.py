"""
Local device storage.

A versioned JSON document holding the last known people/links (used to seed
the canvas before the server answers) and the camera viewport, which is
per-device and never leaves this machine. Writes are debounced: rapid
pan/zoom produces one write once activity settles.
"""
from __future__ import annotations

import asyncio
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import ValidationError

from models import Link, Person, Viewport
from utils.timestamp import utcnow_iso

logger = logging.getLogger("people_web")

STORAGE_VERSION = 1


@dataclass
class StoredData:
    people: List[Person] = field(default_factory=list)
    links: List[Link] = field(default_factory=list)
    viewport: Viewport = field(default_factory=Viewport)
    last_modified: Optional[str] = None


class LocalStorage:
    def __init__(self, path: str) -> None:
        self.path = Path(path)

    def load(self) -> StoredData:
        """Read the stored document. Missing, corrupt or foreign-version files yield defaults."""
        if not self.path.exists():
            return StoredData()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(raw, dict) or raw.get("version") != STORAGE_VERSION:
                logger.warning(f"Ignoring local storage at {self.path}: unsupported version")
                return StoredData()
            return StoredData(
                people=[Person.model_validate(p) for p in raw.get("people") or []],
                links=[Link.model_validate(link) for link in raw.get("links") or []],
                viewport=Viewport.model_validate(raw.get("viewport") or {}),
                last_modified=raw.get("lastModified"),
            )
        except (OSError, TypeError, ValueError, ValidationError) as e:
            logger.warning(f"Ignoring unreadable local storage at {self.path}: {e}")
            return StoredData()

    def save(self, data: StoredData) -> None:
        document = {
            "version": STORAGE_VERSION,
            "people": [p.to_wire() for p in data.people],
            "links": [link.to_wire() for link in data.links],
            "viewport": data.viewport.model_dump(),
            "lastModified": utcnow_iso(),
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(document), encoding="utf-8")
        os.replace(tmp_path, self.path)


class ViewportPersister:
    """
    Debounced writer. Every schedule() call resets the timer; the snapshot is
    taken when the timer fires, so the write always carries the latest state.
    """

    def __init__(
        self,
        storage: LocalStorage,
        snapshot: Callable[[], StoredData],
        delay_seconds: float = 1.0,
    ) -> None:
        self.storage = storage
        self.snapshot = snapshot
        self.delay_seconds = delay_seconds
        self._timer: Optional[asyncio.TimerHandle] = None
        self.writes = 0

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self) -> None:
        """Write after the delay; with no running event loop, write now."""
        self.cancel()
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self._write()
            return
        self._timer = loop.call_later(self.delay_seconds, self._fire)

    def flush(self) -> None:
        """Write now if a write is waiting."""
        if self._timer is None:
            return
        self.cancel()
        self._write()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self) -> None:
        self._timer = None
        self._write()

    def _write(self) -> None:
        try:
            self.storage.save(self.snapshot())
            self.writes += 1
        except OSError as e:
            # Local persistence is best effort; the canvas keeps working without it
            logger.warning(f"Failed to write local storage at {self.storage.path}: {e}")
