"""
Entity Cache Engine

Generic read-through cache with keyed invalidation. One EntityCache serves
one entity family (news, leagues, users, matches); everything specific to a
family lives in its CacheFamily descriptor:

- the key namespace and TTL table
- loaders that query the persistent store for a dimension
- the warm-up plan and the dimensions a document belongs to

Cache failures never escape this module: a broken or absent cache store only
turns reads into store queries. Persistent store errors (StoreQueryError)
propagate unchanged.
"""

import asyncio
from dataclasses import dataclass
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Set,
    Tuple,
)

import structlog
from opentelemetry import trace

from ...domain.cache.value_objects import TTL, CacheKey, Dimension, DimensionKind
from ...infrastructure.redis.cache_store import CacheStore
from ...repositories.base import DocumentRepository, StoreQueryError

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

Document = Dict[str, Any]


@dataclass(frozen=True)
class Page:
    """Authoritative result of a list loader."""

    items: List[Any]
    total: int

    @classmethod
    def of(cls, items: List[Any]) -> "Page":
        return cls(items=items, total=len(items))


ListLoader = Callable[[DocumentRepository, Dimension, Optional[int]], Awaitable[Page]]
DocumentLoader = Callable[[DocumentRepository, Dimension], Awaitable[Optional[Document]]]
WarmTarget = Tuple[Dimension, Optional[int]]
WarmPlan = Callable[[DocumentRepository], Awaitable[List[WarmTarget]]]
AffectedDimensions = Callable[[Document], Iterable[Dimension]]


def _no_dimensions(document: Document) -> Iterable[Dimension]:
    return ()


@dataclass(frozen=True)
class CacheFamily:
    """
    Declarative configuration of one entity family.

    `ttls` is keyed by dimension kind (`"category"`) or by a specific
    dimension (`"status:live"`); the specific entry wins.
    `always_invalidate` lists aggregate dimensions dropped on every
    invalidation in addition to `all`. `purge_kinds` names dimension kinds
    whose keys are wiped wholesale by pattern on every invalidation.
    """

    name: str
    namespace: str
    ttls: Mapping[str, TTL]
    load_list: ListLoader
    load_document: DocumentLoader
    warm_plan: WarmPlan
    default_ttl: TTL = TTL.minutes(15)
    affected_dimensions: AffectedDimensions = _no_dimensions
    always_invalidate: Tuple[Dimension, ...] = ()
    purge_kinds: Tuple[str, ...] = ()
    document_kinds: Tuple[str, ...] = (DimensionKind.ID.value,)
    counter_field: Optional[str] = None
    items_key: str = "items"

    def is_document(self, dimension: Dimension) -> bool:
        """Whether the dimension addresses a single document."""
        return dimension.kind in self.document_kinds

    def ttl_for(self, dimension: Dimension) -> TTL:
        for entry in dimension.ttl_lookup:
            if entry in self.ttls:
                return self.ttls[entry]
        return self.default_ttl

    def key_for(self, dimension: Dimension) -> str:
        return CacheKey.for_dimension(self.namespace, dimension).value


@dataclass
class CachedList:
    """List read result annotated with where it came from."""

    items: List[Any]
    total: int
    from_cache: bool

    def to_envelope(self, items_key: str = "items") -> Dict[str, Any]:
        return {items_key: self.items, "total": self.total, "fromCache": self.from_cache}


@dataclass
class CachedDocument:
    """Single document read result."""

    document: Optional[Document]
    from_cache: bool

    @property
    def found(self) -> bool:
        return self.document is not None


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    fallbacks: int = 0
    invalidations: int = 0
    errors: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "fallbacks": self.fallbacks,
            "invalidations": self.invalidations,
            "errors": self.errors,
        }


class EntityCache:
    """
    Read-through cache for one entity family.

    Values are written wholesale and never patched: a mutation deletes the
    affected keys and the next read repopulates them from the store.
    """

    def __init__(
        self,
        store: CacheStore,
        repository: DocumentRepository,
        family: CacheFamily,
    ):
        self.store = store
        self.repository = repository
        self.family = family
        self.stats = CacheStats()
        self._pending: Set[asyncio.Task] = set()

    @property
    def name(self) -> str:
        return self.family.name

    def key_for(self, dimension: Dimension) -> str:
        return self.family.key_for(dimension)

    # Cache access. Any failure here counts as a miss.

    def _key(self, dimension: Dimension) -> Optional[str]:
        try:
            return self.key_for(dimension)
        except ValueError as e:
            self.stats.errors += 1
            logger.warning(
                "Cache key rejected, bypassing cache",
                family=self.name,
                dimension=dimension.kind,
                error=str(e),
            )
            return None

    async def _read(self, key: Optional[str]) -> Optional[Any]:
        if key is None:
            return None
        try:
            return await self.store.get(key)
        except Exception as e:
            self.stats.errors += 1
            logger.warning(
                "Cache read failed, treating as miss",
                family=self.name,
                key=key,
                error=str(e),
            )
            return None

    async def _write(self, key: Optional[str], value: Any, ttl: TTL) -> bool:
        if key is None:
            return False
        try:
            return await self.store.set(key, value, ttl.seconds)
        except Exception as e:
            self.stats.errors += 1
            logger.warning(
                "Cache write failed", family=self.name, key=key, error=str(e)
            )
            return False

    def _record_miss(self, key: Optional[str]) -> None:
        if self.store.is_connected():
            self.stats.misses += 1
            logger.debug("Cache miss", family=self.name, key=key)
        else:
            self.stats.fallbacks += 1
            logger.debug(
                "Cache unavailable, serving from store", family=self.name, key=key
            )

    @staticmethod
    def _page_from_cache(value: Any) -> Optional[Page]:
        if not isinstance(value, dict):
            return None
        items = value.get("items")
        total = value.get("total")
        if not isinstance(items, list) or not isinstance(total, int):
            return None
        return Page(items=items, total=total)

    @staticmethod
    def _covers(page: Page, limit: Optional[int]) -> bool:
        """Whether a cached slice can answer a request for `limit` items."""
        if len(page.items) >= page.total:
            return True
        return limit is not None and len(page.items) >= limit

    # Reads

    async def get_all(self, limit: Optional[int] = None) -> CachedList:
        return await self.get_by_dimension(Dimension.all(), limit)

    async def get_by_dimension(
        self, dimension: Dimension, limit: Optional[int] = None
    ) -> CachedList:
        """
        Cache-first list read for an aggregate dimension.

        A cached slice shorter than both `limit` and its recorded total is
        treated as a miss and reloaded, so a warm cache never under-serves.

        Raises:
            ValueError: For an `id` dimension; use get_by_id
            StoreQueryError: If the persistent store fails on a miss
        """
        if self.family.is_document(dimension):
            raise ValueError("get_by_dimension requires an aggregate dimension")
        if limit is not None and limit <= 0:
            raise ValueError("limit must be positive")

        key = self._key(dimension)
        with tracer.start_as_current_span(f"entity_cache.{self.name}.get_list") as span:
            span.set_attribute("cache_key", key or "")

            page = self._page_from_cache(await self._read(key))
            if page is not None and page.items and self._covers(page, limit):
                self.stats.hits += 1
                span.set_attribute("cache_hit", True)
                items = page.items[:limit] if limit is not None else page.items
                return CachedList(items=items, total=page.total, from_cache=True)

            span.set_attribute("cache_hit", False)
            self._record_miss(key)

            page = await self.family.load_list(self.repository, dimension, limit)
            if page.items:
                await self._write(
                    key,
                    {"items": page.items, "total": page.total},
                    self.family.ttl_for(dimension),
                )
            return CachedList(items=page.items, total=page.total, from_cache=False)

    async def get_document(self, dimension: Dimension) -> CachedDocument:
        """
        Cache-first single document read by `id` or a secondary key.

        A document found through a secondary key is also cached under its id.
        """
        key = self._key(dimension)
        with tracer.start_as_current_span(f"entity_cache.{self.name}.get_document") as span:
            span.set_attribute("cache_key", key or "")

            cached = await self._read(key)
            if isinstance(cached, dict):
                self.stats.hits += 1
                span.set_attribute("cache_hit", True)
                return CachedDocument(document=cached, from_cache=True)

            span.set_attribute("cache_hit", False)
            self._record_miss(key)

            document = await self.family.load_document(self.repository, dimension)
            if document is None:
                return CachedDocument(document=None, from_cache=False)

            await self._cache_document(dimension, document)
            return CachedDocument(document=document, from_cache=False)

    async def _cache_document(self, dimension: Dimension, document: Document) -> None:
        await self._write(
            self._key(dimension), document, self.family.ttl_for(dimension)
        )
        if dimension.kind != DimensionKind.ID.value and document.get("id"):
            id_dimension = Dimension.by_id(document["id"])
            await self._write(
                self._key(id_dimension), document, self.family.ttl_for(id_dimension)
            )

    async def get_by_id(self, entity_id: str) -> CachedDocument:
        """
        Single entity lookup.

        When the family tracks a read counter, a miss increments it before
        loading, and a hit increments it in the background so the cached
        snapshot is still served immediately.
        """
        dimension = Dimension.by_id(entity_id)
        counter = self.family.counter_field
        if counter is None:
            return await self.get_document(dimension)

        key = self._key(dimension)
        with tracer.start_as_current_span(f"entity_cache.{self.name}.get_by_id") as span:
            span.set_attribute("cache_key", key or "")
            span.set_attribute("counter", counter)

            cached = await self._read(key)
            if isinstance(cached, dict):
                self.stats.hits += 1
                span.set_attribute("cache_hit", True)
                self._schedule_increment(entity_id, counter)
                return CachedDocument(document=cached, from_cache=True)

            span.set_attribute("cache_hit", False)
            self._record_miss(key)
            if not await self.repository.increment(entity_id, counter):
                return CachedDocument(document=None, from_cache=False)

            document = await self.family.load_document(self.repository, dimension)
            if document is not None:
                await self._cache_document(dimension, document)
            return CachedDocument(document=document, from_cache=False)

    def _schedule_increment(self, entity_id: str, counter: str) -> None:
        task = asyncio.create_task(self._increment(entity_id, counter))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _increment(self, entity_id: str, counter: str) -> None:
        try:
            await self.repository.increment(entity_id, counter)
        except StoreQueryError as e:
            logger.warning(
                "Background counter increment lost",
                family=self.name,
                entity_id=entity_id,
                counter=counter,
                error=e.message,
            )

    async def drain(self) -> None:
        """Wait for background counter increments to finish."""
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    # Invalidation

    async def invalidate(
        self,
        entity_id: Optional[str] = None,
        dimensions: Iterable[Dimension] = (),
    ) -> bool:
        """
        Delete the entity's id key, every supplied aggregate key, the family's
        `all` key and its always-invalidated keys.

        Returns whether the cache was reachable.
        """
        targets = [Dimension.all(), *dimensions, *self.family.always_invalidate]
        if entity_id:
            targets.append(Dimension.by_id(entity_id))
        keys = {key for key in map(self._key, targets) if key is not None}

        with tracer.start_as_current_span(f"entity_cache.{self.name}.invalidate") as span:
            span.set_attribute("cache_keys", len(keys))
            try:
                deleted = await self.store.delete_many(sorted(keys))
                for kind in self.family.purge_kinds:
                    deleted += await self.store.delete_matching(
                        CacheKey.namespace_pattern(self.family.namespace, kind)
                    )
            except Exception as e:
                self.stats.errors += 1
                logger.warning(
                    "Cache invalidation failed",
                    family=self.name,
                    entity_id=entity_id,
                    error=str(e),
                )
                return False

            self.stats.invalidations += 1
            logger.info(
                "Cache invalidated",
                family=self.name,
                entity_id=entity_id,
                keys=sorted(keys),
                deleted=deleted,
            )
            return self.store.is_available()

    def dimensions_for(self, *documents: Optional[Document]) -> List[Dimension]:
        """Aggregate dimensions the given document versions belong to."""
        seen: List[Dimension] = []
        for document in documents:
            if not document:
                continue
            for dimension in self.family.affected_dimensions(document):
                if dimension not in seen:
                    seen.append(dimension)
        return seen

    async def invalidate_documents(self, *documents: Optional[Document]) -> bool:
        """
        Invalidate after a mutation, given the document before and/or after it.

        Passing both versions covers a dimension change (old and new
        category) in one call.
        """
        entity_id = next(
            (doc["id"] for doc in documents if doc and doc.get("id")), None
        )
        try:
            dimensions = self.dimensions_for(*documents)
        except ValueError as e:
            # The id and aggregate keys are still dropped below.
            logger.warning(
                "Could not derive cache dimensions",
                family=self.name,
                entity_id=entity_id,
                error=str(e),
            )
            dimensions = []
        return await self.invalidate(entity_id, dimensions)

    # Warm-up

    async def initialize_cache(self) -> bool:
        """
        Eagerly populate the family's commonly read keys.

        Returns False if the cache is unavailable, the store is empty or the
        store fails. Never raises.
        """
        if not self.store.is_available():
            logger.info("Cache unavailable, skipping warm-up", family=self.name)
            return False

        with tracer.start_as_current_span(f"entity_cache.{self.name}.initialize"):
            try:
                targets = await self.family.warm_plan(self.repository)
                cached = 0
                for dimension, limit in targets:
                    if not self.family.is_document(dimension):
                        page = await self.family.load_list(
                            self.repository, dimension, limit
                        )
                        if page.items and await self._write(
                            self._key(dimension),
                            {"items": page.items, "total": page.total},
                            self.family.ttl_for(dimension),
                        ):
                            cached += 1
                    else:
                        document = await self.family.load_document(
                            self.repository, dimension
                        )
                        if document is not None and await self._write(
                            self._key(dimension),
                            document,
                            self.family.ttl_for(dimension),
                        ):
                            cached += 1
            except StoreQueryError as e:
                logger.error(
                    "Cache warm-up aborted by store error",
                    family=self.name,
                    error=e.message,
                )
                return False
            except Exception as e:
                logger.error(
                    "Cache warm-up failed",
                    family=self.name,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                return False

        logger.info("Cache warmed", family=self.name, keys=cached)
        return cached > 0

    async def rebuild_cache(self) -> bool:
        """Delete every key in the family namespace, then warm up again."""
        with tracer.start_as_current_span(f"entity_cache.{self.name}.rebuild"):
            removed = await self.store.delete_matching(
                CacheKey.namespace_pattern(self.family.namespace)
            )
            logger.info("Cache namespace cleared", family=self.name, removed=removed)
            return await self.initialize_cache()

    async def key_count(self) -> int:
        keys = await self.store.keys_matching(
            CacheKey.namespace_pattern(self.family.namespace)
        )
        return len(keys)
