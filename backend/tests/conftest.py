"""
Pytest configuration and fixtures for the People Web test suite.

This module provides:
- A throwaway SQLite database per test (db_sqlite.DB_PATH is patched)
- A fresh process-wide broadcaster per test
- A FastAPI TestClient bound to the app
- Sample person/link payloads in wire (camelCase) shape
"""
import os
from typing import Any, Dict

import pytest
from fastapi.testclient import TestClient

# Keep tests away from a developer's real database and local cache
os.environ.setdefault("PEOPLE_WEB_DB_PATH", os.path.join(os.path.dirname(__file__), ".test_people_web.db"))

import db_sqlite
from events import broadcaster as broadcaster_module
from events.broadcaster import Broadcaster
from main import app


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Point the persistence layer at an empty database file."""
    path = str(tmp_path / "people_web.db")
    monkeypatch.setattr(db_sqlite, "DB_PATH", path)
    db_sqlite.init_db()
    return path


@pytest.fixture
def broadcaster(monkeypatch):
    """A fresh broadcaster installed as the process-wide one."""
    instance = Broadcaster(queue_maxsize=100)
    monkeypatch.setattr(broadcaster_module, "_broadcaster", instance)
    return instance


@pytest.fixture
def client(db_path, broadcaster):
    """
    Test client for the FastAPI app.

    raise_server_exceptions=False so unhandled errors go through the app's
    exception handlers, matching production behavior.
    """
    with TestClient(app, raise_server_exceptions=False) as test_client:
        yield test_client


@pytest.fixture
def person_payload():
    def _make(person_id: str = "p-alice", name: str = "Alice", **extra: Any) -> Dict[str, Any]:
        payload = {
            "id": person_id,
            "name": name,
            "position": {"x": 10, "y": 20},
            "createdAt": "2024-01-01T00:00:00.000Z",
            "updatedAt": "2024-01-01T00:00:00.000Z",
        }
        payload.update(extra)
        return payload

    return _make


@pytest.fixture
def link_payload():
    def _make(
        link_id: str = "l-1",
        source_id: str = "p-alice",
        target_id: str = "p-bob",
        **extra: Any,
    ) -> Dict[str, Any]:
        payload = {
            "id": link_id,
            "sourceId": source_id,
            "targetId": target_id,
            "description": "Worked together",
            "type": "collaborator",
            "createdAt": "2024-01-01T00:00:00.000Z",
            "updatedAt": "2024-01-01T00:00:00.000Z",
        }
        payload.update(extra)
        return payload

    return _make
