"""
Broadcast event schema.

Every successful mutation on the server fans out one of these events to all
subscribers, the originating client included. On the wire an event is an SSE
frame whose `event:` line is the event name (e.g. "person:created") and whose
`data:` line is the JSON payload: the full record for created/updated events,
`{"id": ...}` for deletes.

In Python each event name is its own class, so consumers can dispatch with
isinstance checks (or on `kind`/`action`) without touching raw dicts.
"""
import json
from enum import Enum
from typing import Any, ClassVar, Dict, Type, Union

from pydantic import BaseModel

from models import FeatureRequest, Link, Person


class BroadcastEventType(str, Enum):
    """Event names as they appear on the wire."""
    PERSON_CREATED = "person:created"
    PERSON_UPDATED = "person:updated"
    PERSON_DELETED = "person:deleted"
    LINK_CREATED = "link:created"
    LINK_UPDATED = "link:updated"
    LINK_DELETED = "link:deleted"
    FEATURE_REQUEST_CREATED = "featureRequest:created"
    FEATURE_REQUEST_DELETED = "featureRequest:deleted"


class BroadcastEvent(BaseModel):
    """Base for all broadcast events."""
    event_type: ClassVar[BroadcastEventType]
    kind: ClassVar[str]
    action: ClassVar[str]

    @property
    def object_id(self) -> str:
        raise NotImplementedError

    def payload(self) -> Dict[str, Any]:
        raise NotImplementedError

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "BroadcastEvent":
        raise NotImplementedError

    def to_sse(self) -> str:
        """Render as a single Server-Sent Events frame."""
        data = json.dumps(self.payload(), separators=(",", ":"))
        return f"event: {self.event_type.value}\ndata: {data}\n\n"


class _DeletedEvent(BroadcastEvent):
    id: str

    @property
    def object_id(self) -> str:
        return self.id

    def payload(self) -> Dict[str, Any]:
        return {"id": self.id}

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "BroadcastEvent":
        return cls(id=data["id"])


class PersonCreated(BroadcastEvent):
    event_type: ClassVar[BroadcastEventType] = BroadcastEventType.PERSON_CREATED
    kind: ClassVar[str] = "person"
    action: ClassVar[str] = "create"
    person: Person

    @property
    def object_id(self) -> str:
        return self.person.id

    def payload(self) -> Dict[str, Any]:
        return self.person.to_wire()

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "BroadcastEvent":
        return cls(person=Person.model_validate(data))


class PersonUpdated(PersonCreated):
    event_type: ClassVar[BroadcastEventType] = BroadcastEventType.PERSON_UPDATED
    action: ClassVar[str] = "update"


class PersonDeleted(_DeletedEvent):
    event_type: ClassVar[BroadcastEventType] = BroadcastEventType.PERSON_DELETED
    kind: ClassVar[str] = "person"
    action: ClassVar[str] = "delete"


class LinkCreated(BroadcastEvent):
    event_type: ClassVar[BroadcastEventType] = BroadcastEventType.LINK_CREATED
    kind: ClassVar[str] = "link"
    action: ClassVar[str] = "create"
    link: Link

    @property
    def object_id(self) -> str:
        return self.link.id

    def payload(self) -> Dict[str, Any]:
        return self.link.to_wire()

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "BroadcastEvent":
        return cls(link=Link.model_validate(data))


class LinkUpdated(LinkCreated):
    event_type: ClassVar[BroadcastEventType] = BroadcastEventType.LINK_UPDATED
    action: ClassVar[str] = "update"


class LinkDeleted(_DeletedEvent):
    event_type: ClassVar[BroadcastEventType] = BroadcastEventType.LINK_DELETED
    kind: ClassVar[str] = "link"
    action: ClassVar[str] = "delete"


class FeatureRequestCreated(BroadcastEvent):
    event_type: ClassVar[BroadcastEventType] = BroadcastEventType.FEATURE_REQUEST_CREATED
    kind: ClassVar[str] = "featureRequest"
    action: ClassVar[str] = "create"
    request: FeatureRequest

    @property
    def object_id(self) -> str:
        return self.request.id

    def payload(self) -> Dict[str, Any]:
        return self.request.to_wire()

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "BroadcastEvent":
        return cls(request=FeatureRequest.model_validate(data))


class FeatureRequestDeleted(_DeletedEvent):
    event_type: ClassVar[BroadcastEventType] = BroadcastEventType.FEATURE_REQUEST_DELETED
    kind: ClassVar[str] = "featureRequest"
    action: ClassVar[str] = "delete"


SyncEvent = Union[
    PersonCreated,
    PersonUpdated,
    PersonDeleted,
    LinkCreated,
    LinkUpdated,
    LinkDeleted,
    FeatureRequestCreated,
    FeatureRequestDeleted,
]

EVENT_CLASSES: Dict[str, Type[BroadcastEvent]] = {
    cls.event_type.value: cls
    for cls in (
        PersonCreated,
        PersonUpdated,
        PersonDeleted,
        LinkCreated,
        LinkUpdated,
        LinkDeleted,
        FeatureRequestCreated,
        FeatureRequestDeleted,
    )
}


def parse_event(event_type: str, data: Dict[str, Any]) -> BroadcastEvent:
    """
    Build a typed event from its wire name and JSON payload.

    Raises:
        ValueError: unknown event name or a payload that isn't a JSON object
        pydantic.ValidationError: payload doesn't match the record shape
    """
    cls = EVENT_CLASSES.get(event_type)
    if cls is None:
        raise ValueError(f"Unknown broadcast event: {event_type}")
    if not isinstance(data, dict):
        raise ValueError(f"Payload for {event_type} must be an object, got {type(data).__name__}")
    return cls.from_payload(data)
