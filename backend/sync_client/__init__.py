"""
Client-side sync core.

SyncEngine owns a SyncState and keeps it in step with the server: optimistic
writes through RestClient, remote changes through BroadcastBus. Derived
(stream/interest) links are computed on read and never leave the client.
"""
from .api import RestClient
from .bus import BroadcastBus
from .config import SyncConfig
from .derived import combine_links, derive_links, derived_link_id, generate_interest_links, generate_stream_links
from .engine import SyncEngine
from .errors import NotFoundError, PersistenceError, SyncConnectionError, SyncError
from .pending import PendingOperations
from .selection import ConfirmGate, Selection, SelectionState
from .state import SyncState
from .storage import LocalStorage, StoredData, ViewportPersister

__all__ = [
    "RestClient",
    "BroadcastBus",
    "SyncConfig",
    "combine_links",
    "derive_links",
    "derived_link_id",
    "generate_interest_links",
    "generate_stream_links",
    "SyncEngine",
    "NotFoundError",
    "PersistenceError",
    "SyncConnectionError",
    "SyncError",
    "PendingOperations",
    "ConfirmGate",
    "Selection",
    "SelectionState",
    "SyncState",
    "LocalStorage",
    "StoredData",
    "ViewportPersister",
]
