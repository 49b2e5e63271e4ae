"""
Errors raised by the sync client.

- SyncConnectionError: the initial fetch or the broadcast connection failed.
  Fatal to the first render; the caller offers a retry.
- PersistenceError: one create/update/delete call failed or timed out. The
  engine has already rolled the optimistic change back when this is raised.
- NotFoundError: the record is gone on the server. The engine treats this
  as a benign race and does not surface it.
"""
from typing import Optional


class SyncError(Exception):
    """Base class for sync client errors."""


class SyncConnectionError(SyncError, ConnectionError):
    pass


class PersistenceError(SyncError):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(PersistenceError):
    def __init__(self, message: str = "Not found"):
        super().__init__(message, status_code=404)
