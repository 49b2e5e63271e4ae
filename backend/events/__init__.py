"""Broadcast events: schema, fan-out and emission."""
from .schema import (
    BroadcastEvent,
    BroadcastEventType,
    FeatureRequestCreated,
    FeatureRequestDeleted,
    LinkCreated,
    LinkDeleted,
    LinkUpdated,
    PersonCreated,
    PersonDeleted,
    PersonUpdated,
    SyncEvent,
    parse_event,
)
from .broadcaster import Broadcaster, Subscriber, get_broadcaster
from .emitter import emit_event

__all__ = [
    "BroadcastEvent",
    "BroadcastEventType",
    "FeatureRequestCreated",
    "FeatureRequestDeleted",
    "LinkCreated",
    "LinkDeleted",
    "LinkUpdated",
    "PersonCreated",
    "PersonDeleted",
    "PersonUpdated",
    "SyncEvent",
    "parse_event",
    "Broadcaster",
    "Subscriber",
    "get_broadcaster",
    "emit_event",
]
