"""
Cache Store - Availability-Aware Key/Value Cache

CacheStore is the contract every entity cache is built on. RedisCacheStore
implements it on top of redis.asyncio. The cache is strictly optional:
no public operation raises, failures degrade to a miss or a no-op and the
caller falls back to the persistent store.
"""

import json
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, TypeVar

from opentelemetry import trace
from redis.asyncio import Redis
from redis.backoff import ExponentialBackoff
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError
from redis.exceptions import TimeoutError as RedisTimeoutError
from redis.asyncio.retry import Retry
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ...core.config import Settings
from .exceptions import (
    CacheException,
    CacheSerializationException,
    CacheUnavailableException,
)

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")

_CONNECTION_ERRORS = (RedisConnectionError, RedisTimeoutError, OSError)


class CacheStore(ABC):
    """Key/value store with expiry and a liveness flag."""

    @abstractmethod
    async def connect(self) -> bool:
        """Establish the backing connection. Returns whether the cache is usable."""
        pass

    @abstractmethod
    async def get(self, key: str) -> Optional[Any]:
        """Deserialized value, or None on miss, decode failure or unavailability."""
        pass

    @abstractmethod
    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        """Serialize and store with expiry."""
        pass

    @abstractmethod
    async def delete(self, key: str) -> bool:
        """Remove one key. False if unavailable or absent."""
        pass

    @abstractmethod
    async def delete_many(self, keys: Sequence[str]) -> int:
        """Remove several keys, returning how many existed."""
        pass

    @abstractmethod
    async def flush_all(self) -> bool:
        """Clear every key."""
        pass

    @abstractmethod
    async def keys_matching(self, pattern: str) -> List[str]:
        """Keys matching a glob-style pattern."""
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        """Static capability flag configured at startup."""
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Live connectivity flag."""
        pass

    @abstractmethod
    async def close(self) -> None:
        pass

    def is_available(self) -> bool:
        return self.is_enabled() and self.is_connected()

    async def health_check(self) -> Dict[str, Any]:
        """Connectivity report for the health endpoint."""
        if not self.is_enabled():
            status = "disabled"
        else:
            status = "healthy" if self.is_connected() else "unavailable"
        return {
            "status": status,
            "enabled": self.is_enabled(),
            "connected": self.is_connected(),
        }

    async def delete_matching(self, pattern: str) -> int:
        """Delete every key matching the pattern."""
        keys = await self.keys_matching(pattern)
        if not keys:
            return 0
        return await self.delete_many(keys)


class RedisCacheStore(CacheStore):
    """
    Redis-backed cache store.

    One client is shared process-wide. A dropped connection flips the
    connected flag off; the next call after `reconnect_interval` seconds
    checks the server again with PING, so a returning Redis is picked up
    without restarting the process.
    """

    def __init__(
        self,
        url: str,
        enabled: bool = True,
        connection_timeout: float = 5.0,
        operation_timeout: float = 2.0,
        connect_attempts: int = 3,
        reconnect_interval: float = 5.0,
        client: Optional[Redis] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.url = url
        self._enabled = enabled
        self._connection_timeout = connection_timeout
        self._operation_timeout = operation_timeout
        self._connect_attempts = connect_attempts
        self._reconnect_interval = reconnect_interval
        self._client = client
        self._clock = clock
        self._connected = False
        self._last_attempt: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisCacheStore":
        return cls(
            url=settings.REDIS_URL,
            enabled=settings.REDIS_ENABLED,
            connection_timeout=settings.REDIS_CONNECTION_TIMEOUT,
            operation_timeout=settings.REDIS_OPERATION_TIMEOUT,
            connect_attempts=settings.REDIS_CONNECT_ATTEMPTS,
            reconnect_interval=settings.REDIS_RECONNECT_INTERVAL,
        )

    def _build_client(self) -> Redis:
        return Redis.from_url(
            self.url,
            decode_responses=True,
            socket_connect_timeout=self._connection_timeout,
            socket_timeout=self._operation_timeout,
            retry=Retry(ExponentialBackoff(cap=1.0, base=0.05), retries=2),
            health_check_interval=30,
        )

    async def connect(self) -> bool:
        if not self._enabled:
            logger.info("Redis cache disabled by configuration")
            return False

        with tracer.start_as_current_span("cache_store.connect") as span:
            try:
                if self._client is None:
                    self._client = self._build_client()

                async for attempt in AsyncRetrying(
                    stop=stop_after_attempt(self._connect_attempts),
                    wait=wait_exponential(multiplier=0.5, min=0.5, max=5),
                    retry=retry_if_exception_type(_CONNECTION_ERRORS),
                    reraise=True,
                ):
                    with attempt:
                        await self._client.ping()

                self._connected = True
                span.set_attribute("cache.connected", True)
                logger.info(f"Connected to Redis at {self._safe_url()}")
                return True

            except (RedisError, OSError, ValueError) as e:
                self._connected = False
                self._last_attempt = self._clock()
                span.set_attribute("cache.connected", False)
                logger.warning(
                    f"Redis unavailable, continuing without cache: {e}",
                    extra={"url": self._safe_url(), "error": str(e)},
                )
                return False

    def _safe_url(self) -> str:
        # Hide credentials in log lines.
        if "@" in self.url:
            scheme, _, rest = self.url.partition("://")
            return f"{scheme}://***@{rest.rsplit('@', 1)[-1]}"
        return self.url

    def is_enabled(self) -> bool:
        return self._enabled

    def is_connected(self) -> bool:
        return self._enabled and self._connected

    async def _ensure_available(self, operation: str) -> Redis:
        if not self._enabled or self._client is None:
            raise CacheUnavailableException(operation=operation)

        if self._connected:
            return self._client

        now = self._clock()
        if (
            self._last_attempt is not None
            and now - self._last_attempt < self._reconnect_interval
        ):
            raise CacheUnavailableException(operation=operation)

        self._last_attempt = now
        try:
            await self._client.ping()
        except _CONNECTION_ERRORS as e:
            raise CacheUnavailableException(
                message="Redis reconnect attempt failed",
                operation=operation,
                original_error=e,
            )

        self._connected = True
        logger.info("Redis connection restored")
        return self._client

    def _mark_disconnected(self, operation: str, error: Exception) -> None:
        if self._connected:
            logger.warning(
                f"Redis connection lost during {operation}: {error}",
                extra={"operation": operation, "error": str(error)},
            )
        self._connected = False
        self._last_attempt = self._clock()

    async def _execute(
        self,
        operation: str,
        action: Callable[[Redis], Awaitable[T]],
        default: T,
        key: Optional[str] = None,
    ) -> T:
        try:
            client = await self._ensure_available(operation)
            return await action(client)

        except CacheUnavailableException as e:
            logger.debug(
                f"Cache {operation} skipped: {e.message}",
                extra={"key": key, "error_code": e.error_code},
            )
            return default

        except CacheException as e:
            logger.warning(
                f"Cache {operation} failed: {e.message}",
                extra={"key": key, "error_code": e.error_code, **e.details},
            )
            return default

        except _CONNECTION_ERRORS as e:
            self._mark_disconnected(operation, e)
            return default

        except RedisError as e:
            logger.error(
                f"Redis {operation} error: {e}",
                extra={"key": key, "error": str(e)},
            )
            return default

    @staticmethod
    def _encode(key: str, value: Any) -> str:
        try:
            return json.dumps(value, default=str)
        except (TypeError, ValueError) as e:
            raise CacheSerializationException(key, "encode", e)

    @staticmethod
    def _decode(key: str, raw: str) -> Any:
        try:
            return json.loads(raw)
        except (TypeError, ValueError) as e:
            raise CacheSerializationException(key, "decode", e)

    async def get(self, key: str) -> Optional[Any]:
        async def action(client: Redis) -> Optional[Any]:
            raw = await client.get(key)
            if raw is None:
                return None
            return self._decode(key, raw)

        return await self._execute("get", action, None, key)

    async def set(self, key: str, value: Any, ttl_seconds: int) -> bool:
        if ttl_seconds <= 0:
            logger.error(f"Refusing to cache {key} with non-positive TTL {ttl_seconds}")
            return False

        async def action(client: Redis) -> bool:
            payload = self._encode(key, value)
            await client.setex(key, int(ttl_seconds), payload)
            return True

        return await self._execute("set", action, False, key)

    async def delete(self, key: str) -> bool:
        async def action(client: Redis) -> bool:
            return bool(await client.unlink(key))

        return await self._execute("delete", action, False, key)

    async def delete_many(self, keys: Sequence[str]) -> int:
        if not keys:
            return 0

        async def action(client: Redis) -> int:
            return int(await client.unlink(*keys))

        return await self._execute("delete_many", action, 0)

    async def flush_all(self) -> bool:
        async def action(client: Redis) -> bool:
            await client.flushdb()
            logger.warning("Redis cache flushed")
            return True

        return await self._execute("flush_all", action, False)

    async def keys_matching(self, pattern: str) -> List[str]:
        async def action(client: Redis) -> List[str]:
            return [key async for key in client.scan_iter(match=pattern, count=500)]

        return await self._execute("keys_matching", action, [], pattern)

    async def health_check(self) -> Dict[str, Any]:
        """Connectivity report for the health endpoint."""
        if not self._enabled:
            return {"status": "disabled", "enabled": False, "connected": False}

        start_time = time.time()

        async def action(client: Redis) -> bool:
            return bool(await client.ping())

        reachable = await self._execute("ping", action, False)
        return {
            "status": "healthy" if reachable else "unavailable",
            "enabled": True,
            "connected": self.is_connected(),
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
        }

    async def close(self) -> None:
        if self._client is not None:
            try:
                await self._client.aclose()
            except (RedisError, OSError) as e:
                logger.warning(f"Error while closing Redis client: {e}")
            logger.info("Redis client closed")
        self._client = None
        self._connected = False
