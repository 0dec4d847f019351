import asyncio
from datetime import datetime, timezone

import pytest

from movienight.api.routes.cycles import stream_cycle_events
from movienight.api.sse import format_sse
from movienight.schemas.cycles import DailyCycleOut
from movienight.services.cycle_events import CycleBroadcaster

pytestmark = pytest.mark.anyio


def _snapshot(status: str = "WAITING_FOR_DECISIONS", cycle_id: str = "2026-10-18") -> DailyCycleOut:
    return DailyCycleOut(
        id=cycle_id,
        current_status=status,
        created_at=datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc),
    )


def test_format_sse():
    assert format_sse({"a": 1}) == 'data: {"a": 1}\n\n'
    assert format_sse({"a": 1}, event="cycle") == 'event: cycle\ndata: {"a": 1}\n\n'


async def test_broadcaster_keeps_newest_snapshots():
    broadcaster = CycleBroadcaster()
    queue = broadcaster.subscribe("2026-10-18")

    for n in range(20):
        broadcaster.publish("2026-10-18", {"n": n})
    broadcaster.publish("2026-10-19", {"n": "other day"})

    seen = [queue.get_nowait()["n"] for _ in range(queue.qsize())]
    assert seen == list(range(4, 20))

    broadcaster.unsubscribe("2026-10-18", queue)
    assert broadcaster.subscriber_count("2026-10-18") == 0


async def test_stream_sends_snapshot_then_updates_and_heartbeats():
    queue: asyncio.Queue = asyncio.Queue()
    resyncs = []

    async def _resync():
        resyncs.append(1)
        return _snapshot()

    async def _connected():
        return False

    stream = stream_cycle_events(queue, resync=_resync, is_disconnected=_connected, heartbeat_seconds=0.01)

    first = await stream.__anext__()
    assert first.startswith("event: cycle\n")
    assert '"current_status": "WAITING_FOR_DECISIONS"' in first

    # nothing published: heartbeat re-evaluates the cycle
    assert await stream.__anext__() == ": ping\n\n"
    assert len(resyncs) == 2

    queue.put_nowait({"current_status": "REVEAL"})
    assert await stream.__anext__() == format_sse({"current_status": "REVEAL"}, event="cycle")

    await stream.aclose()


async def test_stream_stops_on_disconnect():
    async def _resync():
        return _snapshot()

    async def _gone():
        return True

    frames = [
        frame
        async for frame in stream_cycle_events(
            asyncio.Queue(),
            resync=_resync,
            is_disconnected=_gone,
            heartbeat_seconds=1,
        )
    ]
    assert len(frames) == 1


async def test_stream_ends_when_the_day_rolls_over():
    days = iter(["2026-10-18", "2026-10-18", "2026-10-19"])

    async def _resync():
        return _snapshot(cycle_id=next(days))

    async def _connected():
        return False

    frames = [
        frame
        async for frame in stream_cycle_events(
            asyncio.Queue(),
            resync=_resync,
            is_disconnected=_connected,
            heartbeat_seconds=0.01,
        )
    ]

    assert len(frames) == 3
    assert '"id": "2026-10-18"' in frames[0]
    assert frames[1] == ": ping\n\n"
    # the new day's snapshot goes out before the stream closes
    assert '"id": "2026-10-19"' in frames[2]
