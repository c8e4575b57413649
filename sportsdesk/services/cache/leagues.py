"""
League Cache

Leagues change rarely, so aggregates live for a day. Every league leaving
the loader has its standings table sorted.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from ...constants import LEAGUE_CATEGORIES
from ...domain.cache.value_objects import TTL, Dimension, DimensionKind
from ...infrastructure.redis.cache_store import CacheStore
from ...repositories.base import DocumentRepository
from ...repositories.query import DocumentQuery, Filter, ieq, oldest_first
from .entity_cache import CacheFamily, CachedDocument, CachedList, EntityCache, Page

LEAGUE_TTLS = {
    DimensionKind.ALL.value: TTL.days(1),
    DimensionKind.CATEGORY.value: TTL.days(1),
    DimensionKind.ID.value: TTL.hours(6),
}


def _standing_key(team: Dict[str, Any]) -> Tuple[int, int, int]:
    goals_for = team.get("goals_for", 0)
    return (
        team.get("points", 0),
        goals_for - team.get("goals_against", 0),
        goals_for,
    )


def sort_standings(league: Dict[str, Any]) -> Dict[str, Any]:
    """Order teams by points, then goal difference, then goals scored."""
    teams = league.get("teams") or []
    return {**league, "teams": sorted(teams, key=_standing_key, reverse=True)}


def _filters_for(dimension: Dimension) -> Tuple[Filter, ...]:
    if dimension.kind == DimensionKind.ALL.value:
        return ()
    if dimension.kind == DimensionKind.CATEGORY.value:
        return (ieq("category", dimension.selector),)
    raise ValueError(f"Unsupported league dimension: {dimension}")


async def load_league_list(
    repository: DocumentRepository, dimension: Dimension, limit: Optional[int]
) -> Page:
    filters = _filters_for(dimension)
    leagues = await repository.find(
        DocumentQuery(filters=filters, sort=oldest_first("name"), limit=limit)
    )
    total = await repository.count(filters) if limit is not None else len(leagues)
    return Page(items=[sort_standings(league) for league in leagues], total=total)


async def load_league_document(
    repository: DocumentRepository, dimension: Dimension
) -> Optional[Dict[str, Any]]:
    league = await repository.find_by_id(dimension.selector)
    return sort_standings(league) if league else None


async def league_warm_plan(
    repository: DocumentRepository,
) -> List[Tuple[Dimension, Optional[int]]]:
    plan: List[Tuple[Dimension, Optional[int]]] = [(Dimension.all(), None)]
    plan.extend((Dimension.category(category), None) for category in LEAGUE_CATEGORIES)
    for league in await repository.find(DocumentQuery()):
        plan.append((Dimension.by_id(league["id"]), None))
    return plan


def league_dimensions(document: Dict[str, Any]) -> Iterable[Dimension]:
    if document.get("category"):
        yield Dimension.category(document["category"])


LEAGUE_FAMILY = CacheFamily(
    name="leagues",
    namespace="leagues",
    ttls=LEAGUE_TTLS,
    load_list=load_league_list,
    load_document=load_league_document,
    warm_plan=league_warm_plan,
    affected_dimensions=league_dimensions,
    items_key="leagues",
)


class LeagueCache(EntityCache):
    """League and standings cache."""

    def __init__(self, store: CacheStore, repository: DocumentRepository):
        super().__init__(store, repository, LEAGUE_FAMILY)

    async def get_all_leagues(self, limit: Optional[int] = None) -> CachedList:
        return await self.get_all(limit)

    async def get_leagues_by_category(
        self, category: str, limit: Optional[int] = None
    ) -> CachedList:
        return await self.get_by_dimension(Dimension.category(category), limit)

    async def get_league_by_id(self, league_id: str) -> CachedDocument:
        return await self.get_by_id(league_id)
