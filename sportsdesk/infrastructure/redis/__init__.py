"""
Redis Infrastructure Module

Availability-aware cache store used by every entity cache:
- CacheStore: the key/value contract with a liveness flag
- RedisCacheStore: redis.asyncio implementation with lazy reconnect
- Cache exceptions, absorbed inside the store
"""

from .cache_store import CacheStore, RedisCacheStore
from .exceptions import (
    CacheException,
    CacheSerializationException,
    CacheUnavailableException,
)

__all__ = [
    "CacheStore",
    "RedisCacheStore",
    "CacheException",
    "CacheSerializationException",
    "CacheUnavailableException",
]
