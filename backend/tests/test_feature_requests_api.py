"""
Tests for the feature request endpoints.
"""
import pytest

from events import FeatureRequestCreated, FeatureRequestDeleted
from tests.mock_helpers import drain

pytestmark = pytest.mark.unit


def test_create_and_list_feature_requests(client):
    response = client.post(
        "/api/feature-requests",
        json={"id": "fr-1", "authorName": "  Dana ", "requestText": " Dark mode please ", "createdAt": "2024-01-01T00:00:00.000Z"},
    )
    assert response.status_code == 201
    assert response.json() == {
        "id": "fr-1",
        "authorName": "Dana",
        "requestText": "Dark mode please",
        "createdAt": "2024-01-01T00:00:00.000Z",
    }

    client.post("/api/feature-requests", json={"id": "fr-2", "requestText": "Export to CSV", "createdAt": "2024-02-01T00:00:00.000Z"})
    listed = client.get("/api/feature-requests").json()
    assert [r["id"] for r in listed] == ["fr-2", "fr-1"]
    assert listed[0]["authorName"] is None


def test_feature_request_needs_text(client):
    response = client.post("/api/feature-requests", json={"id": "fr-1", "requestText": "   "})
    assert response.status_code == 400
    assert response.json()["detail"] == "id and requestText are required"


def test_delete_feature_request(client, broadcaster):
    client.post("/api/feature-requests", json={"id": "fr-1", "requestText": "Search by interest"})
    subscriber = broadcaster.subscribe()
    assert client.delete("/api/feature-requests/fr-1").status_code == 204
    assert client.get("/api/feature-requests").json() == []
    assert client.delete("/api/feature-requests/fr-1").status_code == 404

    (event,) = drain(subscriber)
    assert isinstance(event, FeatureRequestDeleted)
    assert event.id == "fr-1"


def test_feature_request_creation_is_broadcast(client, broadcaster):
    subscriber = broadcaster.subscribe()
    client.post("/api/feature-requests", json={"id": "fr-1", "requestText": "Undo"})
    (event,) = drain(subscriber)
    assert isinstance(event, FeatureRequestCreated)
    assert event.request.request_text == "Undo"
