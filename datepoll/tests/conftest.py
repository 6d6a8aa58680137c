import json
import uuid
from datetime import UTC, datetime, timedelta

import fakeredis
import fakeredis.aioredis
import pytest
from fastapi.testclient import TestClient

from datepoll import lifespan as lifespan_module
from datepoll.config import clear_settings_cache
from datepoll.store import (
    EVENTS,
    PARTICIPATIONS,
    StoreError,
    Where,
    check_where,
    check_writable,
    parse_sort,
)


class InMemoryDocumentStore:
    """Document store kept in dicts, with the same errors as the real ones."""

    def __init__(self):
        self.collections = {EVENTS: [], PARTICIPATIONS: []}
        self.calls = []
        self.fail_with = None
        self._clock = 0

    def _timestamp(self) -> str:
        self._clock += 1
        return (datetime(2026, 1, 1, tzinfo=UTC) + timedelta(seconds=self._clock)).isoformat()

    def _maybe_fail(self):
        if self.fail_with is not None:
            raise self.fail_with

    async def find(self, collection, where=None, *, limit=None, sort=None):
        self.calls.append(("find", collection, where, limit, sort))
        self._maybe_fail()
        check_where(collection, where)
        field, descending = parse_sort(sort) or ("created_at", False)
        docs = [dict(d) for d in self.collections[collection] if where is None or where.matches(d)]
        docs.sort(key=lambda d: d[field], reverse=descending)
        return docs[:limit] if limit is not None else docs

    async def get(self, collection, doc_id):
        docs = await self.find(collection, Where(id=doc_id), limit=1)
        return docs[0] if docs else None

    async def create(self, collection, data):
        self.calls.append(("create", collection, data))
        self._maybe_fail()
        check_writable(collection, data)
        if collection == EVENTS and any(e["slug"] == data.get("slug") for e in self.collections[EVENTS]):
            raise StoreError("Duplicate events document", status_code=409)
        if collection == PARTICIPATIONS and not any(e["id"] == data.get("event") for e in self.collections[EVENTS]):
            raise StoreError("Referenced document does not exist", status_code=404)
        now = self._timestamp()
        defaults = {"description": None, "closed_at": None} if collection == EVENTS else {"comment": None}
        doc = {**defaults, **data, "id": str(uuid.uuid4()), "created_at": now, "updated_at": now}
        self.collections[collection].append(doc)
        return dict(doc)

    async def update(self, collection, doc_id, data):
        self.calls.append(("update", collection, doc_id, data))
        self._maybe_fail()
        check_writable(collection, data)
        for doc in self.collections[collection]:
            if doc["id"] == doc_id:
                doc.update(data)
                doc["updated_at"] = self._timestamp()
                return dict(doc)
        raise StoreError(f"{collection} document {doc_id} not found", status_code=404)

    def add_event(self, **overrides):
        now = self._timestamp()
        doc = {
            "id": str(uuid.uuid4()),
            "name": "Team lunch",
            "description": None,
            "slug": uuid.uuid4().hex[:12],
            "date_options": ["2026-03-02", "2026-03-03", "2026-03-04"],
            "creator": "user-1",
            "closed_at": None,
            "created_at": now,
            "updated_at": now,
        }
        doc.update(overrides)
        self.collections[EVENTS].append(doc)
        return dict(doc)

    def add_participation(self, event_id, name, dates, comment=None):
        now = self._timestamp()
        doc = {
            "id": str(uuid.uuid4()),
            "event": event_id,
            "participant_name": name,
            "selected_dates": list(dates),
            "comment": comment,
            "created_at": now,
            "updated_at": now,
        }
        self.collections[PARTICIPATIONS].append(doc)
        return dict(doc)


@pytest.fixture(autouse=True)
def _fresh_settings():
    clear_settings_cache()
    yield
    clear_settings_cache()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def redis_server():
    return fakeredis.FakeServer()


@pytest.fixture
def login(redis_server):
    """Write a session the way the auth service does and return its headers."""
    sync_redis = fakeredis.FakeRedis(server=redis_server, decode_responses=True)

    def _login(user_id="user-1", email=None, roles=("user",)):
        token = uuid.uuid4().hex
        payload = {"id": user_id, "email": email or f"{user_id}@example.com", "roles": list(roles)}
        sync_redis.set(f"session:{token}", json.dumps(payload))
        return {"Authorization": f"Bearer {token}"}

    return _login


@pytest.fixture
def client(store, redis_server, monkeypatch):
    def fake_redis_constructor(*_args, **_kwargs):
        return fakeredis.aioredis.FakeRedis(server=redis_server, decode_responses=True)

    monkeypatch.setattr(lifespan_module.redis, "Redis", fake_redis_constructor)

    from datepoll.main import create_app

    with TestClient(create_app(store=store)) as c:
        yield c
