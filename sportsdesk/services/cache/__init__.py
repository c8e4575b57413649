"""
Entity cache services.
"""

from .cache_manager import CacheManager, UnknownCacheFamilyError
from .entity_cache import (
    CachedDocument,
    CachedList,
    CacheFamily,
    CacheStats,
    EntityCache,
    Page,
)
from .leagues import LeagueCache
from .matches import MatchCache
from .news import NewsCache
from .users import UserCache

__all__ = [
    "CacheFamily",
    "CacheManager",
    "CacheStats",
    "CachedDocument",
    "CachedList",
    "EntityCache",
    "LeagueCache",
    "MatchCache",
    "NewsCache",
    "Page",
    "UnknownCacheFamilyError",
    "UserCache",
]
