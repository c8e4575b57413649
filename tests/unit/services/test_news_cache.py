"""
Unit tests for the news cache family.
"""

from unittest.mock import MagicMock

import pytest

from sportsdesk.services.cache import entity_cache
from sportsdesk.services.cache.news import (
    MAX_CACHED_QUERY_LENGTH,
    canonical_category,
    normalize_article,
)


class TestCategoryHelpers:
    def test_legacy_category_is_canonicalized(self):
        assert canonical_category("Other_sports") == "Other"
        assert canonical_category("Cricket") == "Cricket"

    def test_normalize_article(self):
        article = {"id": "1", "category": "Other_sports"}
        assert normalize_article(article)["category"] == "Other"
        # Original is left untouched.
        assert article["category"] == "Other_sports"

    def test_alias_lookup_ignores_case(self):
        assert canonical_category("other_sports") == "Other"
        assert canonical_category("OTHER_SPORTS") == "Other"
        assert normalize_article({"category": "other_sports"})["category"] == "Other"


class TestNewsReads:
    """News read paths."""

    @pytest.mark.asyncio
    async def test_latest_is_newest_first(self, cache_manager, seed_news):
        older = seed_news()
        newer = seed_news()

        result = await cache_manager.news.get_latest_news(10)

        assert [a["id"] for a in result.items] == [newer["id"], older["id"]]

    @pytest.mark.asyncio
    async def test_featured_only(self, cache_manager, seed_news, cache_store):
        seed_news(is_featured=False)
        featured = seed_news(is_featured=True)

        result = await cache_manager.news.get_featured_news()

        assert [a["id"] for a in result.items] == [featured["id"]]
        assert cache_store.ttl("news:featured") == 30 * 60

    @pytest.mark.asyncio
    async def test_category_is_case_insensitive(self, cache_manager, seed_news):
        article = seed_news(category="Football")
        news = cache_manager.news

        first = await news.get_news_by_category("football")
        second = await news.get_news_by_category("FOOTBALL")

        assert [a["id"] for a in first.items] == [article["id"]]
        assert second.from_cache is True

    @pytest.mark.asyncio
    async def test_other_category_includes_legacy_articles(
        self, cache_manager, seed_news
    ):
        legacy = seed_news(category="Other_sports")
        current = seed_news(category="Other")

        result = await cache_manager.news.get_news_by_category("Other")

        assert {a["id"] for a in result.items} == {legacy["id"], current["id"]}
        assert {a["category"] for a in result.items} == {"Other"}

    @pytest.mark.asyncio
    async def test_local_news(self, cache_manager, seed_news, cache_store):
        local = seed_news(location_country="Nepal")
        seed_news(location_country="India")

        result = await cache_manager.news.get_local_news("nepal")

        assert [a["id"] for a in result.items] == [local["id"]]
        assert "news:local:nepal" in cache_store.data

    @pytest.mark.asyncio
    async def test_categories_are_distinct_and_canonical(
        self, cache_manager, seed_news, cache_store
    ):
        seed_news(category="Cricket")
        seed_news(category="Cricket")
        seed_news(category="Other_sports")
        seed_news(category="Football")

        result = await cache_manager.news.get_categories()

        assert result.items == ["Cricket", "Football", "Other"]
        assert cache_store.ttl("news:categories") == 3600

    @pytest.mark.asyncio
    async def test_article_ttl_is_one_day(self, cache_manager, seed_news, cache_store):
        article = seed_news()

        await cache_manager.news.get_news_by_id(article["id"])

        assert cache_store.ttl(f"news:id:{article['id']}") == 86400


class TestBrowse:
    """Paged listing."""

    @pytest.mark.asyncio
    async def test_first_page_is_cached(self, cache_manager, seed_news):
        for _ in range(3):
            seed_news()
        news = cache_manager.news

        await news.browse_news(page=1, limit=2)
        result = await news.browse_news(page=1, limit=2)

        assert result.from_cache is True
        assert len(result.items) == 2
        assert result.total == 3

    @pytest.mark.asyncio
    async def test_later_pages_go_to_the_store(
        self, cache_manager, seed_news, cache_store
    ):
        articles = [seed_news() for _ in range(3)]

        result = await cache_manager.news.browse_news(page=2, limit=2)

        assert result.from_cache is False
        assert [a["id"] for a in result.items] == [articles[0]["id"]]
        assert result.total == 3
        assert cache_store.set_calls == []

    @pytest.mark.asyncio
    async def test_two_filters_bypass_the_cache(
        self, cache_manager, seed_news, cache_store
    ):
        match = seed_news(category="Cricket", location_country="Nepal")
        seed_news(category="Cricket", location_country="India")

        result = await cache_manager.news.browse_news(
            page=1, limit=10, category="cricket", country="Nepal"
        )

        assert [a["id"] for a in result.items] == [match["id"]]
        assert cache_store.set_calls == []


class TestSearch:
    """Search caching rules."""

    @pytest.mark.asyncio
    async def test_empty_query_rejected(self, cache_manager):
        with pytest.raises(ValueError, match="cannot be empty"):
            await cache_manager.news.search_news("   ")

    @pytest.mark.asyncio
    async def test_matches_title_content_and_tags(self, cache_manager, seed_news):
        by_title = seed_news(title="Messi scores twice")
        by_tag = seed_news(tags=["messi"])
        seed_news(title="Cricket final")

        result = await cache_manager.news.search_news("MESSI")

        assert {a["id"] for a in result.items} == {by_title["id"], by_tag["id"]}

    @pytest.mark.asyncio
    async def test_first_unfiltered_page_is_cached(
        self, cache_manager, seed_news, cache_store
    ):
        seed_news(title="Derby day")

        await cache_manager.news.search_news("Derby Day")

        assert "news:search:derby%20day" in cache_store.data
        assert cache_store.ttl("news:search:derby%20day") == 5 * 60

    @pytest.mark.asyncio
    async def test_filtered_or_paged_search_is_not_cached(
        self, cache_manager, seed_news, cache_store
    ):
        seed_news(title="Derby day")

        await cache_manager.news.search_news("derby", page=2)
        await cache_manager.news.search_news("derby", category="Cricket")
        await cache_manager.news.search_news("d" * (MAX_CACHED_QUERY_LENGTH + 1))

        assert cache_store.set_calls == []


class TestNewsInvalidation:
    """Writes fan out over every aggregate an article can appear in."""

    @pytest.mark.asyncio
    async def test_article_change_clears_its_aggregates(
        self, cache_manager, seed_news, cache_store
    ):
        article = seed_news(category="Cricket", location_country="Nepal", title="Derby")
        news = cache_manager.news
        await news.get_all_news()
        await news.get_latest_news()
        await news.get_featured_news()
        await news.get_categories()
        await news.get_news_by_category("Cricket")
        await news.get_local_news("Nepal")
        await news.search_news("derby")
        await news.get_news_by_id(article["id"])
        assert len(cache_store.data) >= 7

        assert await news.invalidate_documents(article) is True

        assert cache_store.data == {}

    @pytest.mark.asyncio
    async def test_unrelated_category_survives(
        self, cache_manager, seed_news, cache_store
    ):
        cricket = seed_news(category="Cricket")
        seed_news(category="Football")
        news = cache_manager.news
        await news.get_news_by_category("Football")

        await news.invalidate_documents(cricket)

        assert "news:category:football" in cache_store.data

    @pytest.mark.asyncio
    async def test_unkeyable_dimension_still_drops_all(
        self, cache_manager, seed_news, cache_store
    ):
        seed_news()
        await cache_manager.news.get_all_news()

        assert await cache_manager.news.invalidate_documents(
            {"id": "x", "category": "   "}
        ) is True

        assert "news:all" not in cache_store.data


class TestFreeTextSelectors:
    """Categories, countries and queries with spaces or non-ASCII text."""

    @pytest.mark.asyncio
    async def test_multi_word_category(self, cache_manager, seed_news, cache_store):
        article = seed_news(category="Table Tennis")

        first = await cache_manager.news.get_news_by_category("Table Tennis")
        second = await cache_manager.news.get_news_by_category("table tennis")

        assert [a["id"] for a in first.items] == [article["id"]]
        assert second.from_cache is True
        assert "news:category:table%20tennis" in cache_store.data

    @pytest.mark.asyncio
    async def test_legacy_alias_shares_the_canonical_key(
        self, cache_manager, seed_news, cache_store
    ):
        seed_news(category="Other_sports")

        await cache_manager.news.get_news_by_category("other_sports")
        again = await cache_manager.news.get_news_by_category("Other")

        assert again.from_cache is True
        assert await cache_store.keys_matching("news:category:*") == ["news:category:other"]

    @pytest.mark.asyncio
    async def test_multi_word_country_write_invalidates_all(
        self, cache_manager, seed_news, cache_store
    ):
        seed_news(location_country="New Zealand")
        news = cache_manager.news
        await news.get_all_news()
        await news.get_local_news("New Zealand")
        assert "news:local:new%20zealand" in cache_store.data

        added = seed_news(location_country="New Zealand")
        assert await news.invalidate_documents(added) is True

        result = await news.get_all_news()
        assert result.from_cache is False
        assert result.total == 2
        assert "news:local:new%20zealand" not in cache_store.data

    @pytest.mark.asyncio
    async def test_long_non_ascii_search_uses_hashed_key(
        self, cache_manager, seed_news, cache_store
    ):
        query = "क्रिकेट विश्व कप फाइनल मुकाबला"
        seed_news(title=f"{query} रिपोर्ट")

        first = await cache_manager.news.search_news(query)
        second = await cache_manager.news.search_news(query)

        assert first.total == 1
        assert second.from_cache is True
        keys = await cache_store.keys_matching("news:search:*")
        assert len(keys) == 1
        assert keys[0].startswith("news:search:sha256:")


class TestTracing:
    @pytest.mark.asyncio
    async def test_counted_read_opens_a_span(self, cache_manager, seed_news, monkeypatch):
        tracer = MagicMock()
        monkeypatch.setattr(entity_cache, "tracer", tracer)
        article = seed_news()

        await cache_manager.news.get_news_by_id(article["id"])

        tracer.start_as_current_span.assert_called_once_with("entity_cache.news.get_by_id")
        span = tracer.start_as_current_span.return_value.__enter__.return_value
        span.set_attribute.assert_any_call("cache_key", f"news:id:{article['id']}")
        span.set_attribute.assert_any_call("cache_hit", False)
