"""Tests for dependency injection."""

import json
from unittest.mock import MagicMock, patch

import fakeredis.aioredis
import pytest

from datepoll import state
from datepoll.errors import ServiceUnavailableError, UnauthorizedError


class TestGetStore:
    def test_returns_store(self):
        from datepoll.dependencies import get_store

        mock_store = MagicMock()
        with patch.object(state, "store", mock_store):
            assert get_store() is mock_store

    def test_raises_when_not_initialized(self):
        from datepoll.dependencies import get_store

        with patch.object(state, "store", None):
            with pytest.raises(ServiceUnavailableError) as exc_info:
                get_store()
            assert "Database not initialized" in exc_info.value.detail


class TestGetOptionalEventBus:
    def test_returns_none_when_not_initialized(self):
        from datepoll.dependencies import get_optional_event_bus

        with patch.object(state, "event_bus", None):
            assert get_optional_event_bus() is None


class TestSessions:
    @pytest.fixture
    def redis_client(self):
        client = fakeredis.aioredis.FakeRedis(decode_responses=True)
        with patch.object(state, "redis_client", client):
            yield client

    @pytest.mark.asyncio
    async def test_valid_session(self, redis_client):
        from datepoll.dependencies import get_optional_user

        await redis_client.set("session:tok", json.dumps({"id": 7, "email": "a@b.c", "roles": ["user"]}))

        user = await get_optional_user("Bearer tok")

        assert user.id == "7"
        assert user.email == "a@b.c"
        assert user.roles == ("user",)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("header", [None, "", "Basic tok", "Bearer ", "Bearer unknown"])
    async def test_no_user(self, redis_client, header):
        from datepoll.dependencies import get_optional_user

        await redis_client.set("session:tok", json.dumps({"id": "u"}))
        assert await get_optional_user(header) is None

    @pytest.mark.asyncio
    async def test_malformed_session(self, redis_client, caplog):
        from datepoll.dependencies import get_optional_user

        await redis_client.set("session:tok", "not json")
        assert await get_optional_user("Bearer tok") is None
        assert "Malformed session payload" in caplog.text

    @pytest.mark.asyncio
    async def test_without_redis(self):
        from datepoll.dependencies import get_optional_user

        with patch.object(state, "redis_client", None):
            assert await get_optional_user("Bearer tok") is None

    @pytest.mark.asyncio
    async def test_current_user_required(self):
        from datepoll.dependencies import get_current_user

        with pytest.raises(UnauthorizedError):
            await get_current_user(None)
