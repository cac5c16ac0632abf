"""In-process change feed pushed to facilitator connections.

Services publish row-level changes (notes, participants, ai_analyses, workshops)
keyed by workshop id; the facilitator SSE endpoint subscribes. Participants never
subscribe: they poll the authorization-checked status endpoints instead.

This is a per-process feed. With several uvicorn workers, a facilitator only sees
changes made by requests served in its own worker, so multi-worker deployments
must replace it with a shared broker behind the same publish/subscribe surface.
"""

import asyncio
import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

from app.config import settings

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


def _default(obj):
    if isinstance(obj, datetime):
        return obj.isoformat()
    raise TypeError(f"Object of type {type(obj)} is not JSON serializable")


class ChangeEvent:
    __slots__ = ("workshop_id", "table", "type", "record", "created_at")

    def __init__(self, workshop_id: str, table: str, type: str, record: Dict[str, Any]):
        self.workshop_id = workshop_id
        self.table = table
        self.type = type
        self.record = record
        self.created_at = datetime.now(timezone.utc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "type": self.type,
            "record": self.record,
            "created_at": self.created_at,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=_default)


class ChangeFeed:
    """Per-workshop fan-out of ChangeEvents to bounded subscriber queues."""

    def __init__(self, queue_size: Optional[int] = None) -> None:
        self._channels: Dict[str, List[asyncio.Queue]] = {}
        self._queue_size = queue_size or settings.change_feed_queue_size
        self._closed = False
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def publish(self, workshop_id: str, table: str, type: str, record: Dict[str, Any]) -> None:
        """Fire-and-forget publish.

        Subscriber queues belong to the event loop that serves the SSE streams and
        are not thread-safe. Routes are async and call the blocking supabase client
        inline, so publishes normally already run on that loop. A publish from any
        other thread (a sync route in the threadpool, asyncio.to_thread) is handed
        to the loop with call_soon_threadsafe instead of touching the queues.
        """
        if self._closed or not workshop_id:
            return
        if not self._channels.get(workshop_id):
            return
        event = ChangeEvent(workshop_id, table, type, record)
        loop = self._loop
        if loop is not None and not loop.is_closed() and not self._on_loop(loop):
            loop.call_soon_threadsafe(self._deliver, event)
        else:
            self._deliver(event)

    @staticmethod
    def _on_loop(loop: asyncio.AbstractEventLoop) -> bool:
        try:
            return asyncio.get_running_loop() is loop
        except RuntimeError:
            return False

    def _deliver(self, event: ChangeEvent) -> None:
        for q in list(self._channels.get(event.workshop_id, [])):
            try:
                q.put_nowait(event)
            except asyncio.QueueFull:
                # Slow facilitator tab; it re-syncs with a full fetch on reconnect
                logger.warning(f"Dropped {event.table} {event.type} event for workshop {event.workshop_id}: subscriber queue full")

    def subscriber_count(self, workshop_id: str) -> int:
        return len(self._channels.get(workshop_id, []))

    @asynccontextmanager
    async def _subscription(self, workshop_id: str) -> AsyncIterator[asyncio.Queue]:
        self._loop = asyncio.get_running_loop()
        q: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._channels.setdefault(workshop_id, []).append(q)
        try:
            yield q
        finally:
            subs = self._channels.get(workshop_id, [])
            if q in subs:
                subs.remove(q)
            if not subs:
                self._channels.pop(workshop_id, None)

    async def subscribe(self, workshop_id: str, timeout: Optional[float] = None) -> AsyncIterator[Optional[ChangeEvent]]:
        """Yield events for a workshop. With a timeout, yields None when idle so callers can send keep-alives."""
        async with self._subscription(workshop_id) as q:
            while not self._closed:
                try:
                    if timeout is None:
                        yield await q.get()
                    else:
                        yield await asyncio.wait_for(q.get(), timeout=timeout)
                except asyncio.TimeoutError:
                    yield None
                except asyncio.CancelledError:
                    break

    def close(self) -> None:
        self._closed = True
        self._channels.clear()


change_feed = ChangeFeed()


def get_change_feed() -> ChangeFeed:
    return change_feed
