"""
Unit tests for the SQLAlchemy document repositories.

Runs against an in-memory SQLite database through aiosqlite.
"""

from datetime import timedelta

import pytest
import pytest_asyncio

from sportsdesk.constants import get_current_timestamp
from sportsdesk.core.config import Settings
from sportsdesk.core.database import DatabaseManager
from sportsdesk.domain.documents import NewsArticleDocument
from sportsdesk.models import Base
from sportsdesk.repositories.base import DuplicateDocumentError, StoreQueryError
from sportsdesk.repositories.query import (
    DocumentQuery,
    any_of,
    eq,
    gt,
    icontains,
    ieq,
    newest_first,
    oldest_first,
)
from sportsdesk.repositories.sql import SqlDocumentRepository, build_sql_repositories


def _article(title, **overrides):
    data = {
        "title": title,
        "summary": f"{title} summary",
        "content": f"{title} content",
        "category": "Cricket",
    }
    data.update(overrides)
    return data


@pytest_asyncio.fixture
async def database():
    manager = DatabaseManager(
        Settings(ENVIRONMENT="test", DATABASE_URL="sqlite+aiosqlite:///:memory:")
    )
    await manager.initialize()
    yield manager
    await manager.close()


@pytest.fixture
def repos(database):
    return build_sql_repositories(database.session_factory)


class TestSqlDocumentRepository:
    """CRUD and query translation."""

    @pytest.mark.asyncio
    async def test_create_and_find_by_id(self, repos):
        created = await repos.news.create(_article("Opening day", tags=["ipl"]))

        found = await repos.news.find_by_id(created["id"])

        assert found == created
        assert len(created["id"]) == 32
        assert created["views"] == 0
        assert created["tags"] == ["ipl"]

    @pytest.mark.asyncio
    async def test_missing_document(self, repos):
        assert await repos.news.find_by_id("nope") is None
        assert await repos.news.update("nope", {"title": "x"}) is None
        assert await repos.news.delete("nope") is False
        assert await repos.news.increment("nope", "views") is False

    @pytest.mark.asyncio
    async def test_case_insensitive_equality(self, repos):
        await repos.news.create(_article("A", category="Football"))
        await repos.news.create(_article("B", category="Cricket"))

        found = await repos.news.find(DocumentQuery(filters=(ieq("category", "FOOTBALL"),)))

        assert [doc["title"] for doc in found] == ["A"]

    @pytest.mark.asyncio
    async def test_search_across_text_and_tags(self, repos):
        await repos.news.create(_article("Final", tags=["Worldcup"]))
        await repos.news.create(_article("Semi", content="road to the WORLDCUP final"))
        await repos.news.create(_article("Friendly"))

        query = DocumentQuery(
            filters=(
                any_of(
                    icontains("title", "worldcup"),
                    icontains("content", "worldcup"),
                    icontains("tags", "worldcup"),
                ),
            ),
            sort=oldest_first("title"),
        )

        assert [doc["title"] for doc in await repos.news.find(query)] == ["Final", "Semi"]

    @pytest.mark.asyncio
    async def test_like_wildcards_are_literal(self, repos):
        await repos.news.create(_article("100% fit"))
        await repos.news.create(_article("1000 runs"))

        found = await repos.news.find(DocumentQuery(filters=(icontains("title", "100%"),)))

        assert [doc["title"] for doc in found] == ["100% fit"]

    @pytest.mark.asyncio
    async def test_sort_skip_limit_and_count(self, repos):
        now = get_current_timestamp()
        for hours in range(5):
            await repos.news.create(
                _article(f"Story {hours}", published_at=now - timedelta(hours=hours))
            )

        page = await repos.news.find(
            DocumentQuery(sort=newest_first("published_at"), skip=1, limit=2)
        )

        assert [doc["title"] for doc in page] == ["Story 1", "Story 2"]
        assert await repos.news.count() == 5
        assert await repos.news.count((eq("category", "Cricket"),)) == 5

    @pytest.mark.asyncio
    async def test_greater_than_on_datetimes(self, repos):
        now = get_current_timestamp()
        for hours in (3, -3):
            await repos.matches.create(
                {
                    "category": "cricket",
                    "home_team": {"name": "Home"},
                    "away_team": {"name": "Away"},
                    "start_time": now + timedelta(hours=hours),
                }
            )

        assert await repos.matches.count((gt("start_time", now),)) == 1

    @pytest.mark.asyncio
    async def test_distinct_skips_empty_values(self, repos):
        await repos.news.create(_article("A", category="Football"))
        await repos.news.create(_article("B", category="Cricket"))
        await repos.news.create(_article("C", category="Cricket"))
        await repos.news.create(_article("D", category=""))

        assert await repos.news.distinct("category") == ["Cricket", "Football"]

    @pytest.mark.asyncio
    async def test_update_ignores_id_and_timestamps(self, repos):
        created = await repos.news.create(_article("Draft"))

        updated = await repos.news.update(
            created["id"], {"id": "other", "title": "Published", "created_at": None}
        )

        assert updated["id"] == created["id"]
        assert updated["title"] == "Published"
        assert updated["created_at"] == created["created_at"]

    @pytest.mark.asyncio
    async def test_increment(self, repos):
        created = await repos.news.create(_article("Viral"))

        assert await repos.news.increment(created["id"], "views") is True
        assert await repos.news.increment(created["id"], "views", 2) is True

        assert (await repos.news.find_by_id(created["id"]))["views"] == 3

    @pytest.mark.asyncio
    async def test_delete_and_delete_all(self, repos):
        first = await repos.news.create(_article("One"))
        await repos.news.create(_article("Two"))

        assert await repos.news.delete(first["id"]) is True
        assert await repos.news.delete_all() == 1
        assert await repos.news.count() == 0

    @pytest.mark.asyncio
    async def test_find_one_by_email(self, repos):
        user = await repos.users.create({"username": "fan01", "email": "fan@example.com"})

        found = await repos.users.find_one((ieq("email", "FAN@example.com"),))

        assert found["id"] == user["id"]
        assert found["preferences"] == {}

    @pytest.mark.asyncio
    async def test_unknown_field_rejected(self, repos):
        with pytest.raises(ValueError, match="Unknown field"):
            await repos.news.count((eq("nonexistent", 1),))

    @pytest.mark.asyncio
    async def test_integrity_error_wrapped(self, repos):
        await repos.users.create({"username": "dup", "email": "a@example.com"})

        with pytest.raises(StoreQueryError) as exc_info:
            await repos.users.create({"username": "dup", "email": "b@example.com"})

        assert exc_info.value.details["collection"] == "users"
        assert exc_info.value.details["operation"] == "create"
        assert exc_info.value.__cause__ is not None
        assert isinstance(exc_info.value, DuplicateDocumentError)
        assert exc_info.value.error_code == "DUPLICATE_DOCUMENT"

    @pytest.mark.asyncio
    async def test_database_error_wrapped(self, database, repos):
        async with database.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

        with pytest.raises(StoreQueryError) as exc_info:
            await repos.news.count()

        assert exc_info.value.error_code == "STORE_QUERY_ERROR"
        assert exc_info.value.details["operation"] == "count"

    def test_model_validation(self, database):
        with pytest.raises(TypeError, match="__tablename__"):
            SqlDocumentRepository(database.session_factory, object, NewsArticleDocument)


class TestDatabaseManager:
    """Engine lifecycle."""

    @pytest.mark.asyncio
    async def test_health_check(self, database):
        health = await database.health_check()

        assert health["status"] == "healthy"
        assert "response_time_ms" in health

    @pytest.mark.asyncio
    async def test_session_requires_initialize(self):
        manager = DatabaseManager(
            Settings(ENVIRONMENT="test", DATABASE_URL="sqlite+aiosqlite:///:memory:")
        )

        with pytest.raises(RuntimeError, match="not initialized"):
            async with manager.get_session():
                pass
