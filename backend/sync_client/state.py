"""
State container for the sync client.

The engine is the only writer. Collections are replaced, never mutated in
place, so a reader holding an old list keeps a consistent snapshot. Observers
registered with subscribe() are called after every change.
"""
from __future__ import annotations

import logging
from typing import Callable, List, Optional, Tuple

from models import FeatureRequest, Link, Person, Viewport

from .derived import derive_links
from .selection import ConfirmGate, Selection

logger = logging.getLogger("people_web")

Listener = Callable[["SyncState"], None]


def _derivation_key(people: List[Person]) -> Tuple:
    # Only the attributes derivation reads
    return tuple(
        (p.id, p.stream, tuple(p.interests) if p.interests else None)
        for p in people
    )


class SyncState:
    def __init__(self) -> None:
        self.people: List[Person] = []
        # Manual links only; derived ones come from all_links()
        self.links: List[Link] = []
        self.feature_requests: List[FeatureRequest] = []
        self.viewport: Viewport = Viewport()

        self.selection = Selection()
        self.confirm = ConfirmGate()
        # Source person while the user is drawing a new link
        self.pending_link_source_id: Optional[str] = None

        self.is_loading: bool = True
        self.is_connected: bool = False
        self.error: Optional[str] = None

        self._listeners: List[Listener] = []
        self._derived_key: Optional[Tuple] = None
        self._derived: List[Link] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register an observer. Returns a function that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception as e:
                logger.error(f"State listener failed: {e}", exc_info=True)

    # Read helpers

    def get_person_by_id(self, person_id: str) -> Optional[Person]:
        return next((p for p in self.people if p.id == person_id), None)

    def get_link_by_id(self, link_id: str) -> Optional[Link]:
        return next((link for link in self.links if link.id == link_id), None)

    def get_links_for_person(self, person_id: str) -> List[Link]:
        return [
            link for link in self.links
            if link.source_id == person_id or link.target_id == person_id
        ]

    def get_people_connected_to(self, person_id: str) -> List[Person]:
        connected = set()
        for link in self.links:
            if link.source_id == person_id:
                connected.add(link.target_id)
            if link.target_id == person_id:
                connected.add(link.source_id)
        return [p for p in self.people if p.id in connected]

    def search_people(self, query: str) -> List[Person]:
        """Case-insensitive substring match on name or any affiliation."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            p for p in self.people
            if needle in p.name.lower()
            or any(needle in affiliation.lower() for affiliation in p.affiliations or [])
        ]

    def derived_links(self) -> List[Link]:
        key = _derivation_key(self.people)
        if key != self._derived_key:
            self._derived = derive_links(self.people)
            self._derived_key = key
        return self._derived

    def all_links(self) -> List[Link]:
        """Manual links followed by derived ones, as the canvas draws them."""
        return self.links + self.derived_links()
