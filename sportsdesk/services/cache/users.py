"""
User Cache

Caches public user documents by id and by email. A profile read bumps the
`profile_views` counter.
"""

from typing import Any, Dict, Iterable, List, Optional, Tuple

from ...domain.cache.value_objects import TTL, Dimension, DimensionKind
from ...infrastructure.redis.cache_store import CacheStore
from ...repositories.base import DocumentRepository
from ...repositories.query import DocumentQuery, ieq, oldest_first
from .entity_cache import CacheFamily, CachedDocument, CachedList, EntityCache, Page

USER_TTLS = {
    DimensionKind.ALL.value: TTL.hours(1),
    DimensionKind.ID.value: TTL.minutes(30),
    DimensionKind.EMAIL.value: TTL.minutes(30),
}


async def load_user_list(
    repository: DocumentRepository, dimension: Dimension, limit: Optional[int]
) -> Page:
    if dimension.kind != DimensionKind.ALL.value:
        raise ValueError(f"Unsupported user dimension: {dimension}")
    users = await repository.find(
        DocumentQuery(sort=oldest_first("username"), limit=limit)
    )
    total = await repository.count() if limit is not None else len(users)
    return Page(items=users, total=total)


async def load_user_document(
    repository: DocumentRepository, dimension: Dimension
) -> Optional[Dict[str, Any]]:
    if dimension.kind == DimensionKind.EMAIL.value:
        return await repository.find_one((ieq("email", dimension.selector),))
    return await repository.find_by_id(dimension.selector)


async def user_warm_plan(
    repository: DocumentRepository,
) -> List[Tuple[Dimension, Optional[int]]]:
    plan: List[Tuple[Dimension, Optional[int]]] = [(Dimension.all(), None)]
    for user in await repository.find(DocumentQuery(sort=oldest_first("username"))):
        plan.append((Dimension.by_id(user["id"]), None))
        if user.get("email"):
            plan.append((Dimension.email(user["email"]), None))
    return plan


def user_dimensions(document: Dict[str, Any]) -> Iterable[Dimension]:
    if document.get("email"):
        yield Dimension.email(document["email"])


USER_FAMILY = CacheFamily(
    name="users",
    namespace="user",
    ttls=USER_TTLS,
    load_list=load_user_list,
    load_document=load_user_document,
    warm_plan=user_warm_plan,
    affected_dimensions=user_dimensions,
    document_kinds=(DimensionKind.ID.value, DimensionKind.EMAIL.value),
    counter_field="profile_views",
    items_key="users",
)


class UserCache(EntityCache):
    """User profile cache."""

    def __init__(self, store: CacheStore, repository: DocumentRepository):
        super().__init__(store, repository, USER_FAMILY)

    async def get_all_users(self, limit: Optional[int] = None) -> CachedList:
        return await self.get_all(limit)

    async def get_user_by_id(self, user_id: str) -> CachedDocument:
        return await self.get_by_id(user_id)

    async def get_user_by_email(self, email: str) -> CachedDocument:
        return await self.get_document(Dimension.email(email))
