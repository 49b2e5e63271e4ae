"""Tests for the async REST client."""
import json

import httpx
import pytest

from models import Person
from sync_client.api import RestClient
from sync_client.errors import NotFoundError, PersistenceError

pytestmark = pytest.mark.unit

PERSON = {
    "id": "p-1",
    "name": "Alice",
    "position": {"x": 1, "y": 2},
    "createdAt": "2024-01-01T00:00:00.000Z",
    "updatedAt": "2024-01-01T00:00:00.000Z",
}
LINK = {
    "id": "l-1",
    "sourceId": "p-1",
    "targetId": "p-2",
    "description": "Friends",
    "type": "friend",
    "createdAt": "2024-01-01T00:00:00.000Z",
    "updatedAt": "2024-01-01T00:00:00.000Z",
}


def _client(handler) -> RestClient:
    return RestClient("http://people.test/", transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_fetch_all_data():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/api/people":
            return httpx.Response(200, json=[PERSON])
        if request.url.path == "/api/links":
            return httpx.Response(200, json=[LINK])
        return httpx.Response(404)

    client = _client(handler)
    people, links = await client.fetch_all_data()
    await client.aclose()

    assert [p.id for p in people] == ["p-1"]
    assert links[0].source_id == "p-1"


@pytest.mark.asyncio
async def test_update_sends_the_full_record_including_nulls():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=PERSON)

    client = _client(handler)
    person = Person.model_validate(PERSON)
    saved = await client.people.update("p-1", person)
    await client.aclose()

    assert seen["method"] == "PUT"
    assert seen["path"] == "/api/people/p-1"
    assert seen["body"]["stream"] is None
    assert seen["body"]["createdAt"] == PERSON["createdAt"]
    assert saved == person


@pytest.mark.asyncio
async def test_delete_accepts_no_content():
    client = _client(lambda request: httpx.Response(204))
    assert await client.links.delete("l-1") is None
    await client.aclose()


@pytest.mark.asyncio
async def test_not_found_maps_to_not_found_error():
    client = _client(lambda request: httpx.Response(404, json={"detail": "Person not found"}))
    with pytest.raises(NotFoundError) as excinfo:
        await client.people.get_by_id("nobody")
    await client.aclose()
    assert excinfo.value.status_code == 404
    assert str(excinfo.value) == "Person not found"


@pytest.mark.asyncio
async def test_server_errors_map_to_persistence_error():
    client = _client(lambda request: httpx.Response(400, json={"detail": "Source or target person not found"}))
    with pytest.raises(PersistenceError) as excinfo:
        await client.request("POST", "/api/links", {"id": "l-1"})
    await client.aclose()
    assert excinfo.value.status_code == 400
    assert "Source or target" in str(excinfo.value)


@pytest.mark.asyncio
async def test_timeouts_map_to_persistence_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    client = _client(handler)
    with pytest.raises(PersistenceError, match="timed out"):
        await client.people.get_all()
    await client.aclose()


@pytest.mark.asyncio
async def test_transport_errors_map_to_persistence_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    client = _client(handler)
    with pytest.raises(PersistenceError) as excinfo:
        await client.people.get_all()
    await client.aclose()
    assert not isinstance(excinfo.value, NotFoundError)
