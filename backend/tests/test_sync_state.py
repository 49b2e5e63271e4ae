"""Tests for the state container's read helpers."""
import pytest

from models import Link, LinkType, Person
from sync_client.state import SyncState

pytestmark = pytest.mark.unit

TS = "2024-01-01T00:00:00.000Z"


def _person(person_id, name, **extra) -> Person:
    return Person(id=person_id, name=name, position={"x": 0, "y": 0}, created_at=TS, updated_at=TS, **extra)


def _link(link_id, source_id, target_id) -> Link:
    return Link(
        id=link_id,
        source_id=source_id,
        target_id=target_id,
        description="Colleagues",
        type=LinkType.COLLEAGUE,
        created_at=TS,
        updated_at=TS,
    )


@pytest.fixture
def state():
    s = SyncState()
    s.people = [
        _person("a", "Alice Liddell", affiliations=["Oxford"], stream="ML", interests=["nlp"]),
        _person("b", "Bob", affiliations=["MIT", "CSAIL"], stream="ml", interests=["nlp"]),
        _person("c", "Carol"),
    ]
    s.links = [_link("l-1", "a", "b"), _link("l-2", "c", "a")]
    return s


def test_lookups(state):
    assert state.get_person_by_id("b").name == "Bob"
    assert state.get_person_by_id("zz") is None
    assert state.get_link_by_id("l-2").source_id == "c"
    assert state.get_link_by_id("zz") is None


def test_links_and_neighbours(state):
    assert [link.id for link in state.get_links_for_person("a")] == ["l-1", "l-2"]
    assert [p.id for p in state.get_people_connected_to("a")] == ["b", "c"]
    assert state.get_people_connected_to("zz") == []


@pytest.mark.parametrize(
    "query,expected",
    [("alice", ["a"]), ("  LIDDELL ", ["a"]), ("csail", ["b"]), ("o", ["a", "b", "c"]), ("", []), ("   ", [])],
)
def test_search_people(state, query, expected):
    assert [p.id for p in state.search_people(query)] == expected


def test_all_links_adds_derived_links(state):
    links = state.all_links()
    assert [link.id for link in links[:2]] == ["l-1", "l-2"]
    assert sorted(link.type.value for link in links[2:]) == ["interest", "stream"]


def test_derived_links_are_cached_per_people_snapshot(state):
    first = state.derived_links()
    assert state.derived_links() is first

    # A move doesn't change derivation inputs
    state.people = [p.model_copy(update={"position": {"x": 5, "y": 5}}) for p in state.people]
    assert state.derived_links() is first

    state.people = [p for p in state.people if p.id != "b"]
    assert state.derived_links() == []


def test_subscribe_and_unsubscribe():
    state = SyncState()
    calls = []
    unsubscribe = state.subscribe(lambda s: calls.append(s))
    state.notify()
    unsubscribe()
    unsubscribe()
    state.notify()
    assert calls == [state]


def test_a_failing_listener_does_not_block_others():
    state = SyncState()
    calls = []

    def broken(_):
        raise RuntimeError("boom")

    state.subscribe(broken)
    state.subscribe(lambda s: calls.append("ok"))
    state.notify()
    assert calls == ["ok"]
