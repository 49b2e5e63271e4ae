"""Tests for the broadcast event schema."""
import json

import pytest
from pydantic import ValidationError

from events import (
    BroadcastEventType,
    FeatureRequestCreated,
    LinkDeleted,
    PersonCreated,
    PersonUpdated,
    parse_event,
)
from models import FeatureRequest, Person

pytestmark = pytest.mark.unit


def _person(**overrides) -> Person:
    data = {
        "id": "p-1",
        "name": "Alice",
        "position": {"x": 1, "y": 2},
        "createdAt": "2024-01-01T00:00:00.000Z",
        "updatedAt": "2024-01-01T00:00:00.000Z",
    }
    data.update(overrides)
    return Person.model_validate(data)


def test_person_event_payload_is_the_wire_record():
    event = PersonCreated(person=_person(photoUrl="https://img/1.png"))
    payload = event.payload()
    assert payload["photoUrl"] == "https://img/1.png"
    assert "stream" not in payload
    assert event.kind == "person"
    assert event.action == "create"
    assert event.object_id == "p-1"


def test_updated_events_keep_their_own_name():
    event = PersonUpdated(person=_person())
    assert event.event_type == BroadcastEventType.PERSON_UPDATED
    assert event.action == "update"
    assert isinstance(event, PersonCreated)


def test_delete_event_payload_is_just_the_id():
    assert LinkDeleted(id="l-1").payload() == {"id": "l-1"}


def test_to_sse_renders_one_frame():
    frame = LinkDeleted(id="l-1").to_sse()
    assert frame == 'event: link:deleted\ndata: {"id":"l-1"}\n\n'


def test_parse_event_builds_typed_events():
    event = parse_event("person:updated", _person(name="Bob").to_wire())
    assert isinstance(event, PersonUpdated)
    assert event.person.name == "Bob"

    event = parse_event(
        "featureRequest:created",
        {"id": "fr-1", "authorName": None, "requestText": "More colors", "createdAt": "2024-01-01T00:00:00.000Z"},
    )
    assert isinstance(event, FeatureRequestCreated)
    assert event.request == FeatureRequest(id="fr-1", request_text="More colors", created_at="2024-01-01T00:00:00.000Z")


def test_parse_event_rejects_unknown_names():
    with pytest.raises(ValueError):
        parse_event("person:exploded", {"id": "p-1"})


def test_parse_event_rejects_bad_payloads():
    with pytest.raises(ValidationError):
        parse_event("link:created", {"id": "l-1"})


@pytest.mark.parametrize("data", [[], "p-1", None, 3])
def test_parse_event_rejects_non_object_payloads(data):
    with pytest.raises(ValueError):
        parse_event("person:deleted", data)


def test_sse_frame_round_trips_through_parse_event():
    event = PersonCreated(person=_person(interests=["nlp", "vision"]))
    frame = event.to_sse()
    lines = frame.strip().split("\n")
    name = lines[0][len("event: "):]
    data = json.loads(lines[1][len("data: "):])
    assert parse_event(name, data) == event
