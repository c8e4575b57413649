"""
FastAPI dependencies resolving the services wired up in main.create_app.
"""

from typing import Optional

from fastapi import Request

from ..core.config import Settings
from ..core.database import DatabaseManager
from ..services.cache.cache_manager import CacheManager
from ..services.cache.leagues import LeagueCache
from ..services.cache.matches import MatchCache
from ..services.cache.news import NewsCache
from ..services.cache.users import UserCache


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Optional[DatabaseManager]:
    """The SQL database, or None when repositories were injected."""
    return request.app.state.database


def get_cache_manager(request: Request) -> CacheManager:
    return request.app.state.cache_manager


def get_news_cache(request: Request) -> NewsCache:
    return get_cache_manager(request).news


def get_league_cache(request: Request) -> LeagueCache:
    return get_cache_manager(request).leagues


def get_match_cache(request: Request) -> MatchCache:
    return get_cache_manager(request).matches


def get_user_cache(request: Request) -> UserCache:
    return get_cache_manager(request).users
