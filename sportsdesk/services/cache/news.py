"""
News Cache

Read-through cache for news articles: featured, latest, local, per-category,
per-article, search results and the category list. Reading an article bumps
its view counter.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from ...constants import LEGACY_NEWS_CATEGORY_ALIASES
from ...domain.cache.value_objects import TTL, Dimension, DimensionKind
from ...infrastructure.redis.cache_store import CacheStore
from ...repositories.base import DocumentRepository
from ...repositories.query import (
    DocumentQuery,
    Filter,
    any_of,
    eq,
    icontains,
    ieq,
    newest_first,
)
from .entity_cache import CacheFamily, CachedDocument, CachedList, EntityCache, Page

# Longer queries are not worth a cache entry.
MAX_CACHED_QUERY_LENGTH = 100

NEWS_TTLS = {
    DimensionKind.ALL.value: TTL.minutes(15),
    DimensionKind.LATEST.value: TTL.minutes(15),
    DimensionKind.LOCAL.value: TTL.minutes(15),
    DimensionKind.CATEGORY.value: TTL.minutes(15),
    DimensionKind.FEATURED.value: TTL.minutes(30),
    DimensionKind.CATEGORIES.value: TTL.hours(1),
    DimensionKind.ID.value: TTL.days(1),
    DimensionKind.SEARCH.value: TTL.minutes(5),
}

_SORT = newest_first("published_at")


_ALIASES_BY_FOLDED_NAME = {
    legacy.lower(): canonical for legacy, canonical in LEGACY_NEWS_CATEGORY_ALIASES.items()
}


def canonical_category(category: str) -> str:
    return _ALIASES_BY_FOLDED_NAME.get(category.lower(), category)


def _legacy_names(category: str) -> List[str]:
    return [
        legacy
        for legacy, canonical in LEGACY_NEWS_CATEGORY_ALIASES.items()
        if canonical.lower() == category.lower()
    ]


def normalize_article(document: Dict[str, Any]) -> Dict[str, Any]:
    category = document.get("category")
    if category and canonical_category(category) != category:
        document = {**document, "category": canonical_category(category)}
    return document


def category_filter(category: str) -> Filter:
    """Case-insensitive category match that also covers legacy spellings."""
    canonical = canonical_category(category)
    legacy = _legacy_names(canonical)
    if not legacy:
        return ieq("category", canonical)
    return any_of(ieq("category", canonical), *(ieq("category", name) for name in legacy))


def search_filter(query: str) -> Filter:
    return any_of(
        icontains("title", query),
        icontains("summary", query),
        icontains("content", query),
        icontains("tags", query),
    )


def _filters_for(dimension: Dimension) -> Tuple[Filter, ...]:
    kind = dimension.kind
    if kind in (DimensionKind.ALL.value, DimensionKind.LATEST.value):
        return ()
    if kind == DimensionKind.FEATURED.value:
        return (eq("is_featured", True),)
    if kind == DimensionKind.LOCAL.value:
        return (ieq("location_country", dimension.selector),)
    if kind == DimensionKind.CATEGORY.value:
        return (category_filter(dimension.selector),)
    if kind == DimensionKind.SEARCH.value:
        return (search_filter(dimension.selector),)
    raise ValueError(f"Unsupported news dimension: {dimension}")


async def distinct_categories(repository: DocumentRepository) -> List[str]:
    values = await repository.distinct("category")
    return sorted({canonical_category(value) for value in values})


async def load_news_list(
    repository: DocumentRepository, dimension: Dimension, limit: Optional[int]
) -> Page:
    if dimension.kind == DimensionKind.CATEGORIES.value:
        return Page.of(await distinct_categories(repository))

    filters = _filters_for(dimension)
    articles = await repository.find(
        DocumentQuery(filters=filters, sort=_SORT, limit=limit)
    )
    total = await repository.count(filters)
    return Page(items=[normalize_article(a) for a in articles], total=total)


async def load_news_document(
    repository: DocumentRepository, dimension: Dimension
) -> Optional[Dict[str, Any]]:
    article = await repository.find_by_id(dimension.selector)
    return normalize_article(article) if article else None


async def news_warm_plan(repository: DocumentRepository) -> List[Tuple[Dimension, Optional[int]]]:
    plan = [
        (Dimension(DimensionKind.FEATURED), 10),
        (Dimension(DimensionKind.LATEST), 20),
        (Dimension(DimensionKind.CATEGORIES), None),
    ]
    for category in await distinct_categories(repository):
        plan.append((Dimension.category(category), 10))
    return plan


def news_dimensions(document: Dict[str, Any]) -> Iterable[Dimension]:
    category = document.get("category")
    if category:
        yield Dimension.category(canonical_category(category))
        if category != canonical_category(category):
            yield Dimension.category(category)
    country = document.get("location_country")
    if country:
        yield Dimension.local(country)


NEWS_FAMILY = CacheFamily(
    name="news",
    namespace="news",
    ttls=NEWS_TTLS,
    load_list=load_news_list,
    load_document=load_news_document,
    warm_plan=news_warm_plan,
    affected_dimensions=news_dimensions,
    always_invalidate=(
        Dimension(DimensionKind.LATEST),
        Dimension(DimensionKind.FEATURED),
        Dimension(DimensionKind.CATEGORIES),
    ),
    purge_kinds=(DimensionKind.SEARCH.value,),
    counter_field="views",
    items_key="news",
)


class NewsCache(EntityCache):
    """News article cache."""

    def __init__(self, store: CacheStore, repository: DocumentRepository):
        super().__init__(store, repository, NEWS_FAMILY)

    async def get_all_news(self, limit: int = 10) -> CachedList:
        return await self.get_all(limit)

    async def get_latest_news(self, limit: int = 10) -> CachedList:
        return await self.get_by_dimension(Dimension(DimensionKind.LATEST), limit)

    async def get_featured_news(self, limit: int = 10) -> CachedList:
        return await self.get_by_dimension(Dimension(DimensionKind.FEATURED), limit)

    async def get_news_by_category(self, category: str, limit: int = 10) -> CachedList:
        return await self.get_by_dimension(
            Dimension.category(canonical_category(category)), limit
        )

    async def get_local_news(self, country: str, limit: int = 10) -> CachedList:
        return await self.get_by_dimension(Dimension.local(country), limit)

    async def get_news_by_id(self, news_id: str) -> CachedDocument:
        result = await self.get_by_id(news_id)
        if result.document is not None:
            result.document = normalize_article(result.document)
        return result

    async def get_categories(self) -> CachedList:
        return await self.get_by_dimension(Dimension(DimensionKind.CATEGORIES))

    async def browse_news(
        self,
        page: int = 1,
        limit: int = 10,
        category: Optional[str] = None,
        country: Optional[str] = None,
    ) -> CachedList:
        """
        Paged article listing. First pages with at most one filter are read
        through the cache, everything else goes to the store.
        """
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive")

        if page == 1 and not (category and country):
            if category:
                return await self.get_news_by_category(category, limit)
            if country:
                return await self.get_local_news(country, limit)
            return await self.get_all_news(limit)

        filters: Tuple[Filter, ...] = ()
        if category:
            filters += (category_filter(category),)
        if country:
            filters += (ieq("location_country", country),)
        return await self._direct_page(filters, page, limit)

    async def _direct_page(
        self, filters: Tuple[Filter, ...], page: int, limit: int
    ) -> CachedList:
        articles = await self.repository.find(
            DocumentQuery(filters=filters, sort=_SORT, skip=(page - 1) * limit, limit=limit)
        )
        total = await self.repository.count(filters)
        return CachedList(
            items=[normalize_article(a) for a in articles], total=total, from_cache=False
        )

    async def search_news(
        self,
        query: str,
        page: int = 1,
        limit: int = 10,
        category: Optional[str] = None,
    ) -> CachedList:
        """
        Search title, summary, content and tags.

        Only the first page of an unfiltered search is cached; the key space
        of other combinations is unbounded.
        """
        query = (query or "").strip()
        if not query:
            raise ValueError("Search query cannot be empty")
        if page < 1 or limit < 1:
            raise ValueError("page and limit must be positive")

        if page == 1 and not category and len(query) <= MAX_CACHED_QUERY_LENGTH:
            return await self.get_by_dimension(Dimension.search(query), limit)

        filters: Tuple[Filter, ...] = (search_filter(query),)
        if category:
            filters += (category_filter(category),)
        return await self._direct_page(filters, page, limit)
