"""
Unit tests for RedisCacheStore.

The Redis client is mocked; the tests check that no cache failure escapes
the store and that a dropped connection is retried lazily.
"""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import ResponseError

from sportsdesk.infrastructure.redis.cache_store import RedisCacheStore
from tests.fakes import FakeClock


async def _scan(keys):
    for key in keys:
        yield key


@pytest.mark.redis
class TestRedisCacheStore:
    """Test RedisCacheStore against a mocked client."""

    @pytest.fixture
    def clock(self):
        return FakeClock()

    @pytest.fixture
    def client(self):
        client = AsyncMock()
        client.ping = AsyncMock(return_value=True)
        return client

    @pytest.fixture
    def store(self, client, clock):
        return RedisCacheStore(
            "redis://localhost:6379/0",
            connect_attempts=1,
            reconnect_interval=5.0,
            client=client,
            clock=clock,
        )

    @pytest.mark.asyncio
    async def test_connect_success(self, store, client):
        assert await store.connect() is True
        assert store.is_connected()
        assert store.is_available()
        client.ping.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_connect_failure_returns_false(self, store, client):
        client.ping.side_effect = RedisConnectionError("refused")

        assert await store.connect() is False
        assert not store.is_connected()

    @pytest.mark.asyncio
    async def test_disabled_store_never_touches_redis(self, client, clock):
        store = RedisCacheStore("redis://localhost", enabled=False, client=client, clock=clock)

        assert await store.connect() is False
        assert await store.get("news:all") is None
        assert await store.set("news:all", {"items": []}, 60) is False
        assert await store.delete_many(["news:all"]) == 0
        client.ping.assert_not_awaited()
        client.get.assert_not_awaited()

        health = await store.health_check()
        assert health["status"] == "disabled"

    @pytest.mark.asyncio
    async def test_get_decodes_json(self, store, client):
        await store.connect()
        client.get.return_value = json.dumps({"items": [1, 2], "total": 2})

        assert await store.get("news:all") == {"items": [1, 2], "total": 2}
        client.get.assert_awaited_once_with("news:all")

    @pytest.mark.asyncio
    async def test_get_missing_key(self, store, client):
        await store.connect()
        client.get.return_value = None

        assert await store.get("news:all") is None

    @pytest.mark.asyncio
    async def test_corrupt_value_is_a_miss(self, store, client):
        await store.connect()
        client.get.return_value = "{not json"

        assert await store.get("news:all") is None
        assert store.is_connected()

    @pytest.mark.asyncio
    async def test_set_uses_setex(self, store, client):
        await store.connect()

        assert await store.set("news:id:abc", {"id": "abc"}, 86400) is True
        client.setex.assert_awaited_once_with(
            "news:id:abc", 86400, json.dumps({"id": "abc"})
        )

    @pytest.mark.asyncio
    async def test_set_refuses_non_positive_ttl(self, store, client):
        await store.connect()

        assert await store.set("news:all", {"items": []}, 0) is False
        client.setex.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete_many(self, store, client):
        await store.connect()
        client.unlink.return_value = 2

        assert await store.delete_many(["news:all", "news:latest"]) == 2
        client.unlink.assert_awaited_once_with("news:all", "news:latest")
        assert await store.delete_many([]) == 0

    @pytest.mark.asyncio
    async def test_delete_matching_scans_then_unlinks(self, store, client):
        await store.connect()
        client.scan_iter = MagicMock(
            return_value=_scan(["news:search:a", "news:search:b"])
        )
        client.unlink.return_value = 2

        assert await store.delete_matching("news:search:*") == 2
        client.scan_iter.assert_called_once_with(match="news:search:*", count=500)
        client.unlink.assert_awaited_once_with("news:search:a", "news:search:b")

    @pytest.mark.asyncio
    async def test_other_redis_errors_are_absorbed(self, store, client):
        await store.connect()
        client.get.side_effect = ResponseError("WRONGTYPE")

        assert await store.get("news:all") is None
        assert store.is_connected()

    @pytest.mark.asyncio
    async def test_connection_loss_then_lazy_reconnect(self, store, client, clock):
        await store.connect()
        client.get.side_effect = RedisConnectionError("connection reset")

        assert await store.get("news:all") is None
        assert not store.is_connected()
        assert client.get.await_count == 1

        # Within the reconnect interval nothing is sent to Redis.
        assert await store.get("news:all") is None
        assert client.get.await_count == 1

        clock.advance(5.0)
        client.get.side_effect = None
        client.get.return_value = json.dumps({"id": "x"})

        assert await store.get("news:id:x") == {"id": "x"}
        assert store.is_connected()
        assert client.ping.await_count == 2

    @pytest.mark.asyncio
    async def test_failed_reconnect_keeps_store_down(self, store, client, clock):
        await store.connect()
        client.setex.side_effect = RedisConnectionError("down")
        assert await store.set("news:all", {"items": [1]}, 60) is False
        assert not store.is_connected()

        clock.advance(10.0)
        client.ping.side_effect = RedisConnectionError("still down")
        assert await store.set("news:all", {"items": [1]}, 60) is False
        assert not store.is_connected()
        assert client.setex.await_count == 1

    @pytest.mark.asyncio
    async def test_flush_all_uses_flushdb(self, store, client):
        await store.connect()

        assert await store.flush_all() is True
        client.flushdb.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_health_check(self, store, client):
        await store.connect()

        health = await store.health_check()
        assert health["status"] == "healthy"
        assert health["connected"] is True
        assert "response_time_ms" in health

        client.ping.side_effect = RedisConnectionError("down")
        health = await store.health_check()
        assert health["status"] == "unavailable"
        assert health["connected"] is False

    @pytest.mark.asyncio
    async def test_close(self, store, client):
        await store.connect()
        await store.close()

        client.aclose.assert_awaited_once()
        assert not store.is_connected()
