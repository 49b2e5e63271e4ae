"""
Selection and confirmation coordination.

Selection holds at most one of {person, link}: selecting one clears the
other. Destructive actions go through ConfirmGate, which parks a zero-argument
callable until the user confirms or cancels.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Callable, Optional

logger = logging.getLogger("people_web")

PendingAction = Callable[[], Any]


class SelectionState(str, Enum):
    NONE = "none"
    PERSON_SELECTED = "entitySelected"
    LINK_SELECTED = "relationshipSelected"


class Selection:
    def __init__(self) -> None:
        self.person_id: Optional[str] = None
        self.link_id: Optional[str] = None

    @property
    def state(self) -> SelectionState:
        if self.person_id is not None:
            return SelectionState.PERSON_SELECTED
        if self.link_id is not None:
            return SelectionState.LINK_SELECTED
        return SelectionState.NONE

    def select_person(self, person_id: Optional[str]) -> None:
        self.person_id = person_id
        self.link_id = None

    def select_link(self, link_id: Optional[str]) -> None:
        self.link_id = link_id
        self.person_id = None

    def clear(self) -> None:
        self.person_id = None
        self.link_id = None

    def forget_person(self, person_id: str) -> bool:
        """Clear the selection if it points at this person. Returns True if it did."""
        if self.person_id == person_id:
            self.person_id = None
            return True
        return False

    def forget_link(self, link_id: str) -> bool:
        if self.link_id == link_id:
            self.link_id = None
            return True
        return False


class ConfirmGate:
    """Holds one pending action and the message shown while it waits."""

    def __init__(self) -> None:
        self.message: str = ""
        self._action: Optional[PendingAction] = None

    @property
    def is_open(self) -> bool:
        return self._action is not None

    def open(self, message: str, action: PendingAction) -> None:
        # A second open replaces whatever was waiting
        if self._action is not None:
            logger.debug(f"Replacing pending confirmation: {self.message!r}")
        self.message = message
        self._action = action

    def cancel(self) -> None:
        self.message = ""
        self._action = None

    def confirm(self) -> Any:
        """
        Run the pending action, then close the gate.

        Returns whatever the action returns, so a coroutine action can be
        awaited by the caller. Confirming a closed gate does nothing.
        """
        action = self._action
        if action is None:
            return None
        try:
            result = action()
        finally:
            self.cancel()
        return result
