"""Tests for the broadcast bus subscriber."""
import asyncio

import httpx
import pytest

from events import LinkDeleted, PersonDeleted
from sync_client.bus import BroadcastBus, SseFrameParser

pytestmark = pytest.mark.unit

EVENTS_URL = "http://people.test/api/events"


def _bus(handler, received, statuses, **kwargs) -> BroadcastBus:
    kwargs.setdefault("reconnect_attempts", 0)
    kwargs.setdefault("reconnect_delay_seconds", 0)
    return BroadcastBus(
        EVENTS_URL,
        on_event=received.append,
        on_status=statuses.append,
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


def test_frame_parser():
    parser = SseFrameParser()
    assert parser.feed(": connected") is None
    assert parser.feed("") is None
    assert parser.feed("event: person:deleted") is None
    assert parser.feed('data: {"id":') is None
    assert parser.feed('data: "p-1"}') is None
    assert parser.feed("") == ("person:deleted", '{"id":\n"p-1"}')
    assert parser.feed("data:x") is None
    assert parser.feed("") == ("message", "x")


@pytest.mark.asyncio
async def test_events_are_dispatched_in_order():
    body = (
        ": connected\n\n"
        'event: person:deleted\ndata: {"id":"p-1"}\n\n'
        ": keepalive\n\n"
        'event: link:deleted\ndata: {"id":"l-1"}\n\n'
    )
    received, statuses = [], []
    bus = _bus(lambda request: httpx.Response(200, text=body), received, statuses)

    bus.start()
    await bus.wait_closed()

    assert received == [PersonDeleted(id="p-1"), LinkDeleted(id="l-1")]
    assert statuses == [True, False]
    assert bus.exhausted


@pytest.mark.asyncio
async def test_malformed_and_failing_events_do_not_break_the_stream():
    body = (
        'event: person:exploded\ndata: {"id":"p-1"}\n\n'
        "event: person:deleted\ndata: not json\n\n"
        'event: link:created\ndata: {"id":"l-1"}\n\n'
        'event: person:deleted\ndata: {"id":"p-2"}\n\n'
        'event: link:deleted\ndata: {"id":"l-2"}\n\n'
    )
    received = []

    def on_event(event):
        if event.id == "p-2":
            raise RuntimeError("listener bug")
        received.append(event)

    bus = BroadcastBus(
        EVENTS_URL,
        on_event=on_event,
        reconnect_attempts=0,
        transport=httpx.MockTransport(lambda request: httpx.Response(200, text=body)),
    )
    bus.start()
    await bus.wait_closed()

    assert received == [LinkDeleted(id="l-2")]


@pytest.mark.asyncio
async def test_non_object_payloads_are_skipped():
    body = (
        "event: person:deleted\ndata: []\n\n"
        'event: person:deleted\ndata: "p-1"\n\n'
        'event: link:deleted\ndata: {"id":"l-1"}\n\n'
    )
    received, statuses = [], []
    bus = _bus(lambda request: httpx.Response(200, text=body), received, statuses)

    bus.start()
    await bus.wait_closed()

    assert received == [LinkDeleted(id="l-1")]
    assert statuses == [True, False]
    assert not bus.connected


@pytest.mark.asyncio
async def test_unexpected_failure_reports_disconnect_and_reconnects():
    attempts = []
    received, statuses = [], []

    def handler(request):
        attempts.append(request)
        if len(attempts) > 1:
            return httpx.Response(503)
        return httpx.Response(200, text='event: link:deleted\ndata: {"id":"l-1"}\n\n')

    def broken_dispatch(event_name, data):
        raise TypeError("boom")

    bus = _bus(handler, received, statuses, reconnect_attempts=1)
    bus._dispatch = broken_dispatch

    bus.start()
    await bus.wait_closed()

    assert len(attempts) == 2
    assert statuses == [True, False]
    assert bus.exhausted
    assert not bus.connected


@pytest.mark.asyncio
async def test_bounded_reconnect_then_manual_retry():
    attempts = []

    def handler(request):
        attempts.append(request.url.path)
        return httpx.Response(503)

    received, statuses = [], []
    bus = _bus(handler, received, statuses, reconnect_attempts=2)

    bus.start()
    await bus.wait_closed()
    assert len(attempts) == 3
    assert bus.exhausted
    assert not bus.connected
    assert statuses == []

    bus.retry()
    assert not bus.exhausted
    await bus.wait_closed()
    assert len(attempts) == 6


@pytest.mark.asyncio
async def test_successful_connection_resets_the_retry_budget():
    calls = []

    def handler(request):
        calls.append(1)
        return httpx.Response(200, text=": connected\n\n")

    statuses = []
    bus = _bus(handler, [], statuses, reconnect_attempts=1)
    bus.start()
    await asyncio.sleep(0.05)
    await bus.stop()

    # Each stream closes right away, but it did connect, so one retry is always enough
    assert not bus.exhausted
    assert len(calls) > 3
    assert statuses.count(True) >= 2


@pytest.mark.asyncio
async def test_stop_cancels_an_open_stream():
    async def endless():
        yield b": connected\n\n"
        await asyncio.Event().wait()

    statuses = []
    bus = _bus(lambda request: httpx.Response(200, content=endless()), [], statuses)
    bus.start()
    for _ in range(50):
        if bus.connected:
            break
        await asyncio.sleep(0.01)
    assert bus.connected

    await bus.stop()
    assert statuses == [True, False]
    assert not bus.running
