"""
Sportsdesk API - Main FastAPI Application

Sports news, leagues, matches and user profiles served through a Redis
read-through cache in front of the document store. The API keeps serving
from the store whenever Redis is disabled or unreachable.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .api.endpoints.cache_admin import router as cache_admin_router
from .api.endpoints.health import router as health_router
from .api.endpoints.leagues import router as leagues_router
from .api.endpoints.matches import router as matches_router
from .api.endpoints.news import router as news_router
from .api.endpoints.users import router as users_router
from .constants import APP_NAME, APP_VERSION
from .core.config import Settings, get_settings
from .core.database import DatabaseManager
from .core.logging import configure_logging
from .infrastructure.redis.cache_store import CacheStore, RedisCacheStore
from .repositories.base import Repositories, StoreQueryError
from .repositories.sql import build_sql_repositories
from .services.cache.cache_manager import CacheManager

logger = structlog.get_logger()


def create_app(
    settings: Optional[Settings] = None,
    cache_store: Optional[CacheStore] = None,
    repositories: Optional[Repositories] = None,
) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Defaults to the environment settings
        cache_store: Replaces the Redis store (tests, alternative backends)
        repositories: Replaces the SQL repositories; no database is opened
    """
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.LOG_LEVEL, settings.LOG_JSON)
        logger.info(
            "Starting Sportsdesk API",
            version=APP_VERSION,
            environment=settings.ENVIRONMENT,
            cache_enabled=settings.REDIS_ENABLED,
        )

        database: Optional[DatabaseManager] = None
        repos = repositories
        if repos is None:
            database = DatabaseManager(settings)
            await database.initialize()
            repos = build_sql_repositories(database.session_factory)

        store = cache_store or RedisCacheStore.from_settings(settings)
        manager = CacheManager(store, repos)
        connected = await manager.connect()
        if connected and settings.CACHE_WARM_ON_STARTUP:
            await manager.initialize_all()
        elif not connected:
            logger.warning("Cache unavailable at startup, serving from the store")

        app.state.settings = settings
        app.state.database = database
        app.state.repositories = repos
        app.state.cache_manager = manager

        yield

        logger.info("Shutting down Sportsdesk API")
        try:
            await manager.close()
        finally:
            if database is not None:
                await database.close()
        logger.info("Application shutdown completed")

    app = FastAPI(
        title=f"{APP_NAME} API",
        description="Sports news site backend with a Redis read-through cache",
        version=APP_VERSION,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(StoreQueryError)
    async def store_error_handler(request: Request, exc: StoreQueryError):
        logger.error(
            "Document store failure",
            path=request.url.path,
            error_code=exc.error_code,
            error=exc.message,
        )
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Database error", "error_code": exc.error_code},
        )

    app.include_router(health_router)
    app.include_router(news_router)
    app.include_router(leagues_router)
    app.include_router(matches_router)
    app.include_router(users_router)
    app.include_router(cache_admin_router)

    return app


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        "sportsdesk.main:create_app",
        factory=True,
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.is_development,
    )


if __name__ == "__main__":
    main()
