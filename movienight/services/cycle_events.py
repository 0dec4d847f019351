from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any

_QUEUE_SIZE = 16


class CycleBroadcaster:
    """Fan cycle snapshots out to live subscribers within this process.

    Delivery is at-least-once per subscriber and may skip intermediate
    snapshots: a slow subscriber keeps only the newest ones. Subscribers always
    receive whole snapshots, never diffs.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, set[asyncio.Queue]] = defaultdict(set)

    def subscribe(self, cycle_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=_QUEUE_SIZE)
        self._subscribers[cycle_id].add(queue)
        return queue

    def unsubscribe(self, cycle_id: str, queue: asyncio.Queue) -> None:
        subscribers = self._subscribers.get(cycle_id)
        if not subscribers:
            return
        subscribers.discard(queue)
        if not subscribers:
            self._subscribers.pop(cycle_id, None)

    def subscriber_count(self, cycle_id: str) -> int:
        return len(self._subscribers.get(cycle_id, ()))

    def publish(self, cycle_id: str, snapshot: dict[str, Any]) -> None:
        for queue in list(self._subscribers.get(cycle_id, ())):
            if queue.full():
                # drop the oldest; the newest snapshot supersedes it
                try:
                    queue.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            queue.put_nowait(snapshot)


broadcaster = CycleBroadcaster()
