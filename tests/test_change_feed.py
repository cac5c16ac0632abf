"""Tests for the in-process change feed."""

import asyncio
import json

import pytest

from app.modules.sync.change_feed import ChangeEvent, ChangeFeed, INSERT, DELETE


async def _collect(feed, workshop_id, collected, count, timeout=None):
    async for event in feed.subscribe(workshop_id, timeout=timeout):
        collected.append(event)
        if len(collected) >= count:
            break


@pytest.mark.asyncio
async def test_events_reach_subscribers_of_the_same_workshop():
    feed = ChangeFeed()
    mine, others = [], []
    task_mine = asyncio.create_task(_collect(feed, "w1", mine, 2))
    task_others = asyncio.create_task(_collect(feed, "w2", others, 1))
    await asyncio.sleep(0.01)

    feed.publish("w1", "notes", INSERT, {"id": "n1"})
    feed.publish("w1", "participants", DELETE, {"id": "p1"})
    await asyncio.wait_for(task_mine, timeout=1)

    assert [(e.table, e.type) for e in mine] == [("notes", INSERT), ("participants", DELETE)]
    assert others == []
    task_others.cancel()
    try:
        await task_others
    except asyncio.CancelledError:
        pass


@pytest.mark.asyncio
async def test_multiple_subscribers_receive_the_same_event():
    feed = ChangeFeed()
    first, second = [], []
    tasks = [asyncio.create_task(_collect(feed, "w1", c, 1)) for c in (first, second)]
    await asyncio.sleep(0.01)
    assert feed.subscriber_count("w1") == 2

    feed.publish("w1", "ai_analyses", INSERT, {"id": "a1"})
    await asyncio.wait_for(asyncio.gather(*tasks), timeout=1)

    assert first[0].record == second[0].record == {"id": "a1"}
    assert feed.subscriber_count("w1") == 0


@pytest.mark.asyncio
async def test_idle_subscription_yields_keepalive():
    feed = ChangeFeed()
    collected = []
    await asyncio.wait_for(_collect(feed, "w1", collected, 1, timeout=0.01), timeout=1)
    assert collected == [None]


@pytest.mark.asyncio
async def test_full_queue_drops_instead_of_blocking():
    feed = ChangeFeed(queue_size=1)
    collected = []
    task = asyncio.create_task(_collect(feed, "w1", collected, 2, timeout=0.05))
    await asyncio.sleep(0.01)

    feed.publish("w1", "notes", INSERT, {"id": "kept"})
    feed.publish("w1", "notes", INSERT, {"id": "dropped"})
    await asyncio.wait_for(task, timeout=1)

    assert collected[0].record == {"id": "kept"}
    assert collected[1] is None


def test_publish_without_subscribers_is_a_noop():
    feed = ChangeFeed()
    feed.publish("w1", "notes", INSERT, {"id": "n1"})
    assert feed.subscriber_count("w1") == 0


def test_event_json_has_table_type_and_record():
    payload = json.loads(ChangeEvent("w1", "workshops", "UPDATE", {"id": "w1", "version": 3}).to_json())
    assert payload["table"] == "workshops"
    assert payload["type"] == "UPDATE"
    assert payload["record"] == {"id": "w1", "version": 3}
    assert "created_at" in payload


@pytest.mark.asyncio
async def test_publish_from_a_worker_thread_is_delivered_on_the_loop():
    feed = ChangeFeed()
    collected = []
    task = asyncio.create_task(_collect(feed, "w1", collected, 1))
    await asyncio.sleep(0.01)

    await asyncio.to_thread(feed.publish, "w1", "notes", INSERT, {"id": "from-thread"})
    await asyncio.wait_for(task, timeout=1)

    assert collected[0].record == {"id": "from-thread"}
