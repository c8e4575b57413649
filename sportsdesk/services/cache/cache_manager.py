"""
Cache Manager Service

Owns the shared cache store and the four entity caches, and backs the admin
cache endpoints: status reporting, clearing and refreshing.
"""

import logging
from typing import Any, Dict, Optional

from opentelemetry import trace

from ...constants import CACHE_FAMILIES, get_current_timestamp
from ...infrastructure.redis.cache_store import CacheStore
from ...repositories.base import Repositories
from ...repositories.query import eq, gt
from .entity_cache import EntityCache
from .leagues import LeagueCache
from .matches import MatchCache
from .news import NewsCache
from .users import UserCache

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

CLEARABLE_COLLECTIONS = ("news", "leagues", "matches", "users", "all")


class UnknownCacheFamilyError(ValueError):
    """Raised for a family or collection name the site does not have."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Unknown cache family: {name}")


class CacheManager:
    """
    High-level cache management service.

    The cache store is injected so tests and alternative backends can
    replace Redis without touching global state.
    """

    def __init__(self, store: CacheStore, repositories: Repositories):
        self.store = store
        self.repositories = repositories
        self.news = NewsCache(store, repositories.news)
        self.leagues = LeagueCache(store, repositories.leagues)
        self.users = UserCache(store, repositories.users)
        self.matches = MatchCache(store, repositories.matches)

    @property
    def caches(self) -> Dict[str, EntityCache]:
        return {
            "news": self.news,
            "leagues": self.leagues,
            "users": self.users,
            "matches": self.matches,
        }

    def family(self, name: str) -> EntityCache:
        cache = self.caches.get(name.lower())
        if cache is None:
            raise UnknownCacheFamilyError(name)
        return cache

    def is_available(self) -> bool:
        return self.store.is_available()

    async def connect(self) -> bool:
        """Connect the shared store. Never raises."""
        return await self.store.connect()

    async def initialize_all(self) -> Dict[str, bool]:
        """Warm every family. Families that fail report False."""
        with tracer.start_as_current_span("cache_manager.initialize_all") as span:
            results = {}
            for name in CACHE_FAMILIES:
                results[name] = await self.family(name).initialize_cache()
            span.set_attribute("warmed_families", sum(results.values()))
            logger.info(f"Cache warm-up finished: {results}")
            return results

    async def rebuild(self, name: str) -> bool:
        """Clear one family's namespace and warm it again."""
        cache = self.family(name)
        with tracer.start_as_current_span("cache_manager.rebuild") as span:
            span.set_attribute("cache_family", cache.name)
            rebuilt = await cache.rebuild_cache()
            logger.info(
                f"Rebuilt {cache.name} cache",
                extra={"family": cache.name, "rebuilt": rebuilt},
            )
            return rebuilt

    async def clear_all(self) -> bool:
        with tracer.start_as_current_span("cache_manager.clear_all"):
            cleared = await self.store.flush_all()
            if cleared:
                logger.warning("All cache entries cleared")
            return cleared

    async def clear_collection(self, target: str) -> int:
        """
        Delete every document of a collection (or of all of them) and drop
        the matching cache entries.

        Returns:
            Number of deleted documents
        """
        target = target.lower()
        if target not in CLEARABLE_COLLECTIONS:
            raise UnknownCacheFamilyError(target)

        names = CACHE_FAMILIES if target == "all" else (target,)
        deleted = 0
        for name in names:
            deleted += await getattr(self.repositories, name).delete_all()

        if target == "all":
            await self.clear_all()
        else:
            await self.rebuild(target)

        logger.warning(
            f"Cleared {target} collection(s)", extra={"target": target, "deleted": deleted}
        )
        return deleted

    async def database_counts(self) -> Dict[str, Any]:
        matches = self.repositories.matches
        return {
            "news": await self.repositories.news.count(),
            "leagues": await self.repositories.leagues.count(),
            "users": await self.repositories.users.count(),
            "matches": await matches.count(),
            "matches_by_status": {
                "live": await matches.count((eq("status", "live"),)),
                "upcoming": await matches.count(
                    (eq("status", "scheduled"), gt("start_time", get_current_timestamp()))
                ),
                "completed": await matches.count((eq("status", "completed"),)),
            },
        }

    async def status(self) -> Dict[str, Any]:
        """Cache flags, key counts and per-family counters."""
        with tracer.start_as_current_span("cache_manager.status"):
            cache_info: Optional[Dict[str, Any]] = None
            if self.store.is_available():
                key_counts = {
                    name: await cache.key_count() for name, cache in self.caches.items()
                }
                cache_info = {
                    "keys": key_counts,
                    "total_keys": sum(key_counts.values()),
                }

            return {
                "enabled": self.store.is_enabled(),
                "connected": self.store.is_connected(),
                "cache_info": cache_info,
                "stats": {name: cache.stats.to_dict() for name, cache in self.caches.items()},
            }

    async def drain(self) -> None:
        for cache in self.caches.values():
            await cache.drain()

    async def close(self) -> None:
        """Finish background counter updates and close the store."""
        await self.drain()
        await self.store.close()
        logger.info("Cache manager closed")
