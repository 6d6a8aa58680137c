import json
import logging
from unittest.mock import AsyncMock

import fakeredis.aioredis
import pytest
import redis.asyncio as redis

from datepoll.bus import EventBus
from datepoll.producers.participation_producer import (
    build_event_updated,
    build_participations_changed,
    compute_tally,
    load_participations,
    publish,
)
from datepoll.store import PARTICIPATIONS, Where


def test_participations_changed_message():
    msg = build_participations_changed("e1", "p1", "updated")
    assert msg["type"] == "participations_changed"
    assert msg["event_id"] == "e1"
    assert msg["participation_id"] == "p1"
    assert msg["action"] == "updated"
    assert msg["timestamp"]


def test_event_updated_message():
    assert build_event_updated({"id": "e1", "closed_at": "2026-02-01T00:00:00+00:00"})["closed"] is True
    assert build_event_updated({"id": "e1", "closed_at": None})["closed"] is False


@pytest.mark.asyncio
async def test_bus_publishes_on_event_channel():
    client = fakeredis.aioredis.FakeRedis(decode_responses=True)
    pubsub = client.pubsub()
    await pubsub.subscribe("event:e1")
    await pubsub.get_message(timeout=1)

    await EventBus(client).publish_event("e1", build_participations_changed("e1", "p1", "created"))

    message = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1)
    assert json.loads(message["data"])["participation_id"] == "p1"
    await pubsub.aclose()


@pytest.mark.asyncio
async def test_publish_without_bus_is_noop():
    await publish(None, "e1", build_participations_changed("e1", "p1", "created"))


@pytest.mark.asyncio
async def test_publish_failure_is_logged(caplog):
    bus = EventBus(AsyncMock())
    bus.redis_client.publish.side_effect = redis.ConnectionError("down")

    with caplog.at_level(logging.WARNING, logger="datepoll.producers"):
        await publish(bus, "e1", build_participations_changed("e1", "p1", "created"))

    assert "Failed to publish participations_changed" in caplog.text


@pytest.mark.asyncio
async def test_load_participations_query(store, monkeypatch):
    monkeypatch.setenv("VOTING_PARTICIPATIONS_LIMIT", "50")
    from datepoll.config import clear_settings_cache

    clear_settings_cache()
    await load_participations(store, "e1")
    assert store.calls == [("find", PARTICIPATIONS, Where(event="e1"), 50, "created_at")]


@pytest.mark.asyncio
async def test_compute_tally(store):
    event = store.add_event()
    store.add_participation(event["id"], "Ana", ["2026-03-03"])

    participations, tally = await compute_tally(store, event)

    assert [p["participant_name"] for p in participations] == ["Ana"]
    assert tally.best_dates == ["2026-03-03"]
