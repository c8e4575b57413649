"""
SQLAlchemy Document Repository

Implements the document-store primitives over SQLAlchemy async sessions.
Every database failure is wrapped in StoreQueryError with full context.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional, Sequence, Type

import structlog
from sqlalchemy import JSON, String, cast, delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from ..domain.documents import (
    BaseDocument,
    LeagueDocument,
    MatchDocument,
    NewsArticleDocument,
    UserDocument,
    to_document,
)
from ..models import Base, League, Match, NewsArticle, User
from .base import (
    DocumentRepository,
    DuplicateDocumentError,
    Repositories,
    StoreQueryError,
)
from .query import AnyOf, DocumentQuery, Filter, FilterOp, SortDirection

logger = structlog.get_logger(__name__)

_READ_ONLY_FIELDS = {"created_at", "updated_at"}


def _like_pattern(value: str) -> str:
    escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class SqlDocumentRepository(DocumentRepository):
    """
    Document repository for one SQLAlchemy model.

    Each operation runs in its own session so that repositories can be
    shared process-wide and called from concurrent requests.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        model: Type[Base],
        schema: Type[BaseDocument],
    ):
        if not hasattr(model, "__tablename__"):
            raise TypeError(
                f"model must be valid SQLAlchemy model with __tablename__, got {type(model).__name__}"
            )

        self.session_factory = session_factory
        self.model = model
        self.schema = schema
        self.collection = model.__tablename__

    @asynccontextmanager
    async def _session(self, operation: str) -> AsyncGenerator[AsyncSession, None]:
        try:
            async with self.session_factory() as session:
                yield session
        except IntegrityError as e:
            logger.warning(
                "Repository: unique constraint violated",
                collection=self.collection,
                operation=operation,
                error=str(e.orig),
            )
            raise DuplicateDocumentError(
                message=f"{self.collection}.{operation} violates a unique field",
                collection=self.collection,
                operation=operation,
                original_error=e,
            ) from e
        except (SQLAlchemyError, OSError) as e:
            logger.error(
                "Repository: operation failed",
                collection=self.collection,
                operation=operation,
                error=str(e),
                exc_info=True,
            )
            raise StoreQueryError(
                message=f"{self.collection}.{operation} failed: {e}",
                collection=self.collection,
                operation=operation,
                original_error=e,
            ) from e

    def _column(self, name: str):
        columns = self.model.__table__.c
        if name not in columns:
            raise ValueError(f"Unknown field for {self.collection}: {name}")
        return columns[name]

    def _condition(self, item: Filter):
        if isinstance(item, AnyOf):
            return or_(*(self._condition(inner) for inner in item.filters))

        column = self._column(item.field)
        if item.op is FilterOp.EQ:
            return column == item.value
        if item.op is FilterOp.IEQ:
            return func.lower(column) == str(item.value).lower()
        if item.op is FilterOp.GT:
            return column > item.value
        if item.op is FilterOp.LT:
            return column < item.value
        if item.op is FilterOp.ICONTAINS:
            target = cast(column, String) if isinstance(column.type, JSON) else column
            return target.ilike(_like_pattern(str(item.value)), escape="\\")
        raise ValueError(f"Unsupported filter operator: {item.op}")

    def _writable(self, data: Dict[str, Any]) -> Dict[str, Any]:
        columns = self.model.__table__.c
        return {
            key: value
            for key, value in data.items()
            if key in columns and key not in _READ_ONLY_FIELDS
        }

    def _render(self, row: Any) -> Dict[str, Any]:
        return to_document(self.schema, row)

    async def find(self, query: DocumentQuery) -> List[Dict[str, Any]]:
        stmt = select(self.model)
        for item in query.filters:
            stmt = stmt.where(self._condition(item))
        for name, direction in query.sort:
            column = self._column(name)
            stmt = stmt.order_by(
                column.desc() if direction is SortDirection.DESC else column.asc()
            )
        if query.skip:
            stmt = stmt.offset(query.skip)
        if query.limit is not None:
            stmt = stmt.limit(query.limit)

        async with self._session("find") as session:
            result = await session.execute(stmt)
            return [self._render(row) for row in result.scalars().all()]

    async def find_by_id(self, document_id: str) -> Optional[Dict[str, Any]]:
        async with self._session("find_by_id") as session:
            row = await session.get(self.model, document_id)
            return self._render(row) if row is not None else None

    async def find_one(self, filters: Sequence[Filter]) -> Optional[Dict[str, Any]]:
        documents = await self.find(DocumentQuery(filters=tuple(filters), limit=1))
        return documents[0] if documents else None

    async def count(self, filters: Sequence[Filter] = ()) -> int:
        stmt = select(func.count()).select_from(self.model)
        for item in filters:
            stmt = stmt.where(self._condition(item))

        async with self._session("count") as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())

    async def distinct(self, field_name: str) -> List[Any]:
        column = self._column(field_name)
        stmt = select(column).distinct().where(column.is_not(None)).order_by(column)

        async with self._session("distinct") as session:
            result = await session.execute(stmt)
            return [value for value in result.scalars().all() if value not in ("", None)]

    async def create(self, data: Dict[str, Any]) -> Dict[str, Any]:
        async with self._session("create") as session:
            row = self.model(**self._writable(data))
            session.add(row)
            await session.commit()
            await session.refresh(row)

            logger.debug(
                "Repository: document created",
                collection=self.collection,
                document_id=row.id,
            )
            return self._render(row)

    async def update(
        self, document_id: str, changes: Dict[str, Any]
    ) -> Optional[Dict[str, Any]]:
        async with self._session("update") as session:
            row = await session.get(self.model, document_id)
            if row is None:
                return None

            for key, value in self._writable(changes).items():
                if key != "id":
                    setattr(row, key, value)

            await session.commit()
            await session.refresh(row)
            return self._render(row)

    async def delete(self, document_id: str) -> bool:
        async with self._session("delete") as session:
            row = await session.get(self.model, document_id)
            if row is None:
                return False

            await session.delete(row)
            await session.commit()
            return True

    async def delete_all(self) -> int:
        async with self._session("delete_all") as session:
            result = await session.execute(delete(self.model))
            await session.commit()

            logger.warning(
                "Repository: collection cleared",
                collection=self.collection,
                deleted=result.rowcount,
            )
            return int(result.rowcount or 0)

    async def increment(self, document_id: str, field_name: str, amount: int = 1) -> bool:
        column = self._column(field_name)
        stmt = (
            update(self.model)
            .where(self._column("id") == document_id)
            .values({field_name: column + amount})
        )

        async with self._session("increment") as session:
            result = await session.execute(stmt)
            await session.commit()
            return bool(result.rowcount)


def build_sql_repositories(session_factory: async_sessionmaker) -> Repositories:
    """Create the repositories for every collection."""
    return Repositories(
        news=SqlDocumentRepository(session_factory, NewsArticle, NewsArticleDocument),
        leagues=SqlDocumentRepository(session_factory, League, LeagueDocument),
        matches=SqlDocumentRepository(session_factory, Match, MatchDocument),
        users=SqlDocumentRepository(session_factory, User, UserDocument),
    )
