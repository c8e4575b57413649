"""
Unit tests for the cache value objects.
"""

import pytest

from sportsdesk.domain.cache.value_objects import (
    TTL,
    CacheKey,
    Dimension,
    DimensionKind,
)


class TestDimension:
    """Test Dimension value object."""

    def test_all_has_no_selector(self):
        dimension = Dimension.all()
        assert dimension.kind == "all"
        assert dimension.selector is None
        assert str(dimension) == "all"

    def test_enum_kind_is_normalized_to_string(self):
        assert Dimension(DimensionKind.FEATURED) == Dimension("featured")

    def test_selector_is_lower_cased_except_for_ids(self):
        assert str(Dimension.category("Cricket")) == "category:cricket"
        assert str(Dimension.by_id("AbC123")) == "id:AbC123"

    def test_selector_is_stripped(self):
        assert Dimension.local("  Nepal ").selector == "Nepal"

    def test_blank_selector_rejected(self):
        with pytest.raises(ValueError, match="cannot be blank"):
            Dimension.category("   ")

    def test_invalid_kind_rejected(self):
        with pytest.raises(ValueError, match="Invalid dimension kind"):
            Dimension("Bad Kind")

    def test_search_selector_is_encoded(self):
        dimension = Dimension.search("Messi Hat Trick")
        assert str(dimension) == "search:messi%20hat%20trick"

    def test_multi_word_selectors_are_encoded(self):
        assert str(Dimension.category("Table Tennis")) == "category:table%20tennis"
        assert str(Dimension.local("United States")) == "local:united%20states"
        assert str(Dimension.email("Fan@Example.com")) == "email:fan@example.com"

    def test_status_category_separator_is_kept(self):
        assert str(Dimension.status("live:Table Tennis")) == "status:live:table%20tennis"

    def test_ttl_lookup_goes_from_specific_to_generic(self):
        dimension = Dimension.status("live:Cricket")
        assert dimension.ttl_lookup == (
            "status:live:cricket",
            "status:live",
            "status",
        )
        assert Dimension.all().ttl_lookup == ("all",)


class TestCacheKey:
    """Test CacheKey value object."""

    def test_for_dimension(self):
        key = CacheKey.for_dimension("news", Dimension.category("Football"))
        assert key.value == "news:category:football"
        assert str(key) == "news:category:football"

    def test_case_insensitive_categories_share_a_key(self):
        upper = CacheKey.for_dimension("leagues", Dimension.category("CRICKET"))
        lower = CacheKey.for_dimension("leagues", Dimension.category("cricket"))
        assert upper == lower

    def test_multi_word_category_builds_a_valid_key(self):
        key = CacheKey.for_dimension("news", Dimension.category("Table Tennis"))
        assert key.value == "news:category:table%20tennis"

    def test_long_selector_is_hashed(self):
        query = "\u0915\u094d\u0930\u093f\u0915\u0947\u091f " * 7

        key = CacheKey.for_dimension("news", Dimension.search(query))

        assert len(key.value) <= 250
        assert key.value.startswith("news:search:sha256:")
        assert key == CacheKey.for_dimension("news", Dimension.search(query))
        assert key != CacheKey.for_dimension("news", Dimension.search(query + "x"))

    def test_invalid_namespace(self):
        with pytest.raises(ValueError, match="Invalid cache namespace"):
            CacheKey.for_dimension("news:extra", Dimension.all())

    def test_invalid_key_empty(self):
        with pytest.raises(ValueError, match="Cache key cannot be empty"):
            CacheKey("")

    def test_invalid_key_whitespace(self):
        with pytest.raises(ValueError, match="Cache key cannot contain whitespace"):
            CacheKey("invalid key")

    def test_invalid_key_too_long(self):
        with pytest.raises(ValueError, match="Cache key too long"):
            CacheKey("a" * 251)

    def test_namespace_pattern(self):
        assert CacheKey.namespace_pattern("news") == "news:*"
        assert CacheKey.namespace_pattern("news", "search") == "news:search:*"


class TestTTL:
    """Test TTL value object."""

    def test_factories(self):
        assert TTL.of_seconds(60).seconds == 60
        assert TTL.minutes(5).seconds == 300
        assert TTL.hours(1).seconds == 3600
        assert TTL.days(1).seconds == 86400

    def test_ttl_must_be_positive(self):
        with pytest.raises(ValueError, match="TTL must be positive"):
            TTL(0)

    def test_ttl_too_large(self):
        with pytest.raises(ValueError, match="TTL too large"):
            TTL(86400 * 366)
