"""
Main pytest configuration for the Sportsdesk tests.

Every test runs against in-memory doubles of Redis and the document store
unless it is marked `integration`.
"""

import os
from datetime import timedelta

import pytest

# Set test environment variables before importing app modules
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["LOG_LEVEL"] = "DEBUG"

from sportsdesk.constants import get_current_timestamp  # noqa: E402
from sportsdesk.domain.documents import (  # noqa: E402
    LeagueDocument,
    MatchDocument,
    NewsArticleDocument,
    UserDocument,
)
from sportsdesk.repositories.base import Repositories  # noqa: E402
from sportsdesk.services.cache.cache_manager import CacheManager  # noqa: E402
from tests.fakes import (  # noqa: E402
    FakeClock,
    InMemoryCacheStore,
    InMemoryDocumentRepository,
)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache_store(clock):
    """Connected in-memory cache store."""
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def repositories():
    return Repositories(
        news=InMemoryDocumentRepository(NewsArticleDocument, "news"),
        leagues=InMemoryDocumentRepository(LeagueDocument, "leagues", unique=("name",)),
        matches=InMemoryDocumentRepository(MatchDocument, "matches"),
        users=InMemoryDocumentRepository(
            UserDocument, "users", unique=("username", "email")
        ),
    )


@pytest.fixture
def cache_manager(cache_store, repositories):
    return CacheManager(cache_store, repositories)


@pytest.fixture
def seed_news(repositories):
    """Seed one article; later calls publish later articles."""
    counter = {"n": 0}

    def _seed(**overrides):
        counter["n"] += 1
        fields = {
            "title": f"Headline {counter['n']}",
            "summary": "Match report",
            "content": "Full match report content",
            "category": "Cricket",
            "published_at": get_current_timestamp()
            - timedelta(hours=100 - counter["n"]),
        }
        fields.update(overrides)
        return repositories.news.seed(**fields)

    return _seed


@pytest.fixture
def seed_match(repositories):
    def _seed(status="scheduled", category="cricket", start_in_hours=24, **overrides):
        fields = {
            "category": category,
            "status": status,
            "home_team": {"name": "Home"},
            "away_team": {"name": "Away"},
            "start_time": get_current_timestamp() + timedelta(hours=start_in_hours),
        }
        fields.update(overrides)
        return repositories.matches.seed(**fields)

    return _seed


@pytest.fixture
def seed_league(repositories):
    def _seed(name="Premier League", category="Football", teams=None, **overrides):
        fields = {"name": name, "category": category, "teams": teams or []}
        fields.update(overrides)
        return repositories.leagues.seed(**fields)

    return _seed


@pytest.fixture
def seed_user(repositories):
    def _seed(username="fan01", email="fan01@example.com", **overrides):
        return repositories.users.seed(username=username, email=email, **overrides)

    return _seed
