"""Tests for local device storage and the debounced viewport writer."""
import asyncio
import json

import pytest

from models import Viewport
from sync_client.storage import LocalStorage, StoredData, ViewportPersister

pytestmark = pytest.mark.unit


def test_missing_file_yields_defaults(tmp_path):
    data = LocalStorage(str(tmp_path / "state.json")).load()
    assert data.people == []
    assert data.links == []
    assert data.viewport == Viewport(x=0, y=0, zoom=1)


def test_save_then_load(tmp_path):
    storage = LocalStorage(str(tmp_path / "nested" / "state.json"))
    storage.save(StoredData(viewport=Viewport(x=5, y=-3, zoom=2)))

    document = json.loads((tmp_path / "nested" / "state.json").read_text())
    assert document["version"] == 1
    assert document["viewport"] == {"x": 5, "y": -3, "zoom": 2}
    assert document["lastModified"].endswith("Z")

    loaded = storage.load()
    assert loaded.viewport == Viewport(x=5, y=-3, zoom=2)
    assert loaded.last_modified == document["lastModified"]


@pytest.mark.parametrize(
    "content",
    [
        "not json",
        json.dumps({"version": 99, "people": []}),
        json.dumps([1, 2]),
        json.dumps({"version": 1, "people": [{"id": 1}]}),
        json.dumps({"version": 1, "people": 5}),
        json.dumps({"version": 1, "links": 7}),
        json.dumps({"version": 1, "viewport": [1, 2]}),
    ],
)
def test_unreadable_documents_yield_defaults(tmp_path, content):
    path = tmp_path / "state.json"
    path.write_text(content)
    data = LocalStorage(str(path)).load()
    assert data.people == []
    assert data.viewport == Viewport()


@pytest.mark.asyncio
async def test_rapid_changes_produce_one_write(tmp_path):
    storage = LocalStorage(str(tmp_path / "state.json"))
    current = {"viewport": Viewport()}
    persister = ViewportPersister(storage, lambda: StoredData(viewport=current["viewport"]), delay_seconds=0.05)

    for i in range(10):
        current["viewport"] = Viewport(x=i, y=i, zoom=1)
        persister.schedule()
        await asyncio.sleep(0.005)

    assert persister.writes == 0
    assert persister.pending
    await asyncio.sleep(0.15)

    assert persister.writes == 1
    assert not persister.pending
    assert storage.load().viewport == Viewport(x=9, y=9, zoom=1)


@pytest.mark.asyncio
async def test_flush_writes_immediately(tmp_path):
    storage = LocalStorage(str(tmp_path / "state.json"))
    persister = ViewportPersister(storage, lambda: StoredData(viewport=Viewport(zoom=3)), delay_seconds=60)
    persister.flush()
    assert persister.writes == 0

    persister.schedule()
    persister.flush()
    assert persister.writes == 1
    assert storage.load().viewport.zoom == 3


@pytest.mark.asyncio
async def test_cancel_drops_the_pending_write(tmp_path):
    storage = LocalStorage(str(tmp_path / "state.json"))
    persister = ViewportPersister(storage, lambda: StoredData(), delay_seconds=0.01)
    persister.schedule()
    persister.cancel()
    await asyncio.sleep(0.05)
    assert persister.writes == 0
    assert not (tmp_path / "state.json").exists()


def test_schedule_without_a_running_loop_writes_now(tmp_path):
    storage = LocalStorage(str(tmp_path / "state.json"))
    persister = ViewportPersister(storage, lambda: StoredData(viewport=Viewport(x=4)), delay_seconds=60)

    persister.schedule()

    assert persister.writes == 1
    assert not persister.pending
    assert storage.load().viewport == Viewport(x=4)
