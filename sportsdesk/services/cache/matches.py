"""
Match Cache

Match state is the most volatile data on the site: live scores expire after
a minute, upcoming fixtures after five.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from ...constants import MATCH_CATEGORIES, get_current_timestamp
from ...domain.cache.value_objects import TTL, Dimension, DimensionKind
from ...infrastructure.redis.cache_store import CacheStore
from ...repositories.base import DocumentRepository
from ...repositories.query import (
    DocumentQuery,
    Filter,
    eq,
    gt,
    ieq,
    newest_first,
    oldest_first,
)
from .entity_cache import CacheFamily, CachedDocument, CachedList, EntityCache, Page

LIVE = "live"
UPCOMING = "upcoming"
COMPLETED = "completed"
STATUS_VIEWS = (LIVE, UPCOMING, COMPLETED)

MATCH_TTLS = {
    f"{DimensionKind.STATUS.value}:{LIVE}": TTL.of_seconds(60),
    f"{DimensionKind.STATUS.value}:{UPCOMING}": TTL.minutes(5),
    f"{DimensionKind.STATUS.value}:{COMPLETED}": TTL.minutes(30),
    DimensionKind.CATEGORY.value: TTL.minutes(15),
    DimensionKind.ALL.value: TTL.minutes(15),
    DimensionKind.ID.value: TTL.minutes(2),
}


def status_dimension(view: str, category: Optional[str] = None) -> Dimension:
    """Dimension for a status view, optionally narrowed to one category."""
    view = view.lower()
    if view not in STATUS_VIEWS:
        raise ValueError(f"Unknown match status view: {view}")
    return Dimension.status(f"{view}:{category}" if category else view)


def _query_for(dimension: Dimension, limit: Optional[int]) -> DocumentQuery:
    kind = dimension.kind
    if kind == DimensionKind.ALL.value:
        return DocumentQuery(sort=newest_first("start_time"), limit=limit)
    if kind == DimensionKind.CATEGORY.value:
        return DocumentQuery(
            filters=(ieq("category", dimension.selector),),
            sort=newest_first("start_time"),
            limit=limit,
        )
    if kind != DimensionKind.STATUS.value:
        raise ValueError(f"Unsupported match dimension: {dimension}")

    view, _, category = dimension.normalized_selector.partition(":")
    filters: Tuple[Filter, ...]
    if view == UPCOMING:
        filters = (eq("status", "scheduled"), gt("start_time", get_current_timestamp()))
        sort = oldest_first("start_time")
    elif view in (LIVE, COMPLETED):
        filters = (eq("status", view),)
        sort = newest_first("start_time")
    else:
        raise ValueError(f"Unknown match status view: {view}")
    if category:
        filters += (ieq("category", category),)
    return DocumentQuery(filters=filters, sort=sort, limit=limit)


async def load_match_list(
    repository: DocumentRepository, dimension: Dimension, limit: Optional[int]
) -> Page:
    query = _query_for(dimension, limit)
    matches = await repository.find(query)
    total = await repository.count(query.filters) if limit is not None else len(matches)
    return Page(items=matches, total=total)


async def load_match_document(
    repository: DocumentRepository, dimension: Dimension
) -> Optional[Dict[str, Any]]:
    return await repository.find_by_id(dimension.selector)


async def match_warm_plan(
    repository: DocumentRepository,
) -> List[Tuple[Dimension, Optional[int]]]:
    plan: List[Tuple[Dimension, Optional[int]]] = [
        (status_dimension(view), None) for view in STATUS_VIEWS
    ]
    plan.extend((Dimension.category(category), None) for category in MATCH_CATEGORIES)
    return plan


def match_dimensions(document: Dict[str, Any]) -> Iterable[Dimension]:
    if document.get("category"):
        yield Dimension.category(document["category"])


MATCH_FAMILY = CacheFamily(
    name="matches",
    namespace="matches",
    ttls=MATCH_TTLS,
    load_list=load_match_list,
    load_document=load_match_document,
    warm_plan=match_warm_plan,
    affected_dimensions=match_dimensions,
    purge_kinds=(DimensionKind.STATUS.value,),
    items_key="matches",
)


class MatchCache(EntityCache):
    """Match and live score cache."""

    def __init__(self, store: CacheStore, repository: DocumentRepository):
        super().__init__(store, repository, MATCH_FAMILY)

    async def get_all_matches(self, limit: Optional[int] = None) -> CachedList:
        return await self.get_all(limit)

    async def get_matches_by_category(
        self, category: str, limit: Optional[int] = None
    ) -> CachedList:
        return await self.get_by_dimension(Dimension.category(category), limit)

    async def get_live_matches(self, category: Optional[str] = None) -> CachedList:
        return await self.get_by_dimension(status_dimension(LIVE, category))

    async def get_upcoming_matches(
        self, category: Optional[str] = None, limit: Optional[int] = None
    ) -> CachedList:
        return await self.get_by_dimension(status_dimension(UPCOMING, category), limit)

    async def get_completed_matches(
        self, category: Optional[str] = None, limit: Optional[int] = None
    ) -> CachedList:
        return await self.get_by_dimension(status_dimension(COMPLETED, category), limit)

    async def get_match_by_id(self, match_id: str) -> CachedDocument:
        return await self.get_by_id(match_id)
