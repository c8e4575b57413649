"""
Sportsdesk Database Configuration

Async engine lifecycle for the persistent store:
- Connection retry with exponential backoff at startup
- Table creation on first start
- Transactional session context manager
- Health check used by the /health endpoint
"""

import time
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, Optional

import asyncpg
import structlog
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..models import Base
from .config import Settings, get_settings

logger = structlog.get_logger(__name__)


class DatabaseManager:
    """
    Owns the async engine and session factory.

    The session factory is handed to the SQL repositories, which open one
    session per operation.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker] = None

    def _create_engine(self) -> AsyncEngine:
        url = self.settings.DATABASE_URL
        options: Dict[str, Any] = {"echo": self.settings.DATABASE_ECHO}

        if url.startswith("postgresql"):
            options.update(
                pool_size=self.settings.DATABASE_POOL_SIZE,
                max_overflow=self.settings.DATABASE_MAX_OVERFLOW,
                pool_pre_ping=True,
                pool_recycle=3600,
                connect_args={
                    "command_timeout": 60,
                    "server_settings": {"application_name": "sportsdesk_api"},
                },
            )
        elif ":memory:" in url:
            # one shared connection, otherwise each session sees an empty database
            options["poolclass"] = StaticPool

        return create_async_engine(url, **options)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(
            (asyncpg.PostgresConnectionError, OperationalError, ConnectionError, OSError)
        ),
        before_sleep=lambda retry_state: logger.warning(
            "Database connection retry",
            attempt=retry_state.attempt_number,
            wait_time=retry_state.next_action.sleep,
        ),
        reraise=True,
    )
    async def _connect_with_retry(self) -> None:
        """Verify connectivity and create missing tables."""
        async with self.engine.begin() as conn:
            await conn.execute(text("SELECT 1"))
            await conn.run_sync(Base.metadata.create_all)

    async def initialize(self) -> None:
        """Create the engine and session factory and make sure tables exist."""
        start_time = time.time()
        self.engine = self._create_engine()
        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

        try:
            await self._connect_with_retry()
        except Exception as e:
            logger.error(
                "Database initialization failed",
                error=str(e),
                duration_seconds=time.time() - start_time,
                exc_info=True,
            )
            await self.close()
            raise

        logger.info(
            "Database initialized",
            duration_seconds=time.time() - start_time,
            echo=self.settings.DATABASE_ECHO,
        )

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Transactional session: commits on success, rolls back on error.

        Yields:
            AsyncSession bound to the engine
        """
        if not self.session_factory:
            raise RuntimeError("Database not initialized. Call initialize() first.")

        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception as e:
                await session.rollback()
                logger.error(
                    "Database transaction failed", error=str(e), exc_info=True
                )
                raise

    async def health_check(self) -> Dict[str, Any]:
        """Run a trivial query and report latency."""
        start_time = time.time()
        try:
            async with self.get_session() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()
            return {
                "status": "healthy",
                "response_time_ms": round((time.time() - start_time) * 1000, 2),
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {"status": "unhealthy", "error": str(e)}

    async def close(self) -> None:
        """Dispose of the engine."""
        if self.engine is not None:
            await self.engine.dispose()
            logger.info("Database connections closed")
        self.engine = None
        self.session_factory = None
