"""
News API endpoints

Reads go through the news cache. Writes hit the store first and then
invalidate every cache key the old and new article versions belong to.
"""

import math
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ...services.cache.entity_cache import CachedList
from ...services.cache.news import NewsCache
from ..dependencies import get_news_cache

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/news", tags=["news"])


class NewsBase(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    summary: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    category: str = Field("Other", max_length=50)
    tags: List[str] = Field(default_factory=list)
    author: str = Field("Staff Reporter", max_length=100)
    source: Optional[str] = Field(None, max_length=100)
    image_url: Optional[str] = Field(None, max_length=500)
    location_country: Optional[str] = Field(None, max_length=100)
    location_city: Optional[str] = Field(None, max_length=100)
    is_featured: bool = False


class NewsCreate(NewsBase):
    published_at: Optional[datetime] = None


class NewsUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    summary: Optional[str] = Field(None, min_length=1, max_length=500)
    content: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = Field(None, max_length=50)
    tags: Optional[List[str]] = None
    source: Optional[str] = Field(None, max_length=100)
    image_url: Optional[str] = Field(None, max_length=500)
    location_country: Optional[str] = Field(None, max_length=100)
    location_city: Optional[str] = Field(None, max_length=100)
    is_featured: Optional[bool] = None


def _paged(result: CachedList, page: int, limit: int) -> Dict[str, Any]:
    return {
        "success": True,
        **result.to_envelope("news"),
        "count": len(result.items),
        "pagination": {
            "page": page,
            "limit": limit,
            "pages": math.ceil(result.total / limit) if result.total else 0,
        },
    }


@router.get("")
async def list_news(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = Query(None),
    country: Optional[str] = Query(None, description="Only articles from this country"),
    news_cache: NewsCache = Depends(get_news_cache),
) -> Dict[str, Any]:
    result = await news_cache.browse_news(page, limit, category, country)
    return _paged(result, page, limit)


@router.get("/featured")
async def featured_news(
    limit: int = Query(10, ge=1, le=50),
    news_cache: NewsCache = Depends(get_news_cache),
) -> Dict[str, Any]:
    result = await news_cache.get_featured_news(limit)
    return {"success": True, **result.to_envelope("news")}


@router.get("/latest")
async def latest_news(
    limit: int = Query(10, ge=1, le=50),
    news_cache: NewsCache = Depends(get_news_cache),
) -> Dict[str, Any]:
    result = await news_cache.get_latest_news(limit)
    return {"success": True, **result.to_envelope("news")}


@router.get("/categories")
async def news_categories(
    news_cache: NewsCache = Depends(get_news_cache),
) -> Dict[str, Any]:
    result = await news_cache.get_categories()
    return {
        "success": True,
        "count": len(result.items),
        "data": result.items,
        "fromCache": result.from_cache,
    }


@router.get("/search")
async def search_news(
    q: str = Query(..., description="Search text"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    category: Optional[str] = Query(None),
    news_cache: NewsCache = Depends(get_news_cache),
) -> Dict[str, Any]:
    try:
        result = await news_cache.search_news(q, page, limit, category)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _paged(result, page, limit)


@router.get("/{news_id}")
async def get_news(
    news_id: str, news_cache: NewsCache = Depends(get_news_cache)
) -> Dict[str, Any]:
    result = await news_cache.get_news_by_id(news_id)
    if not result.found:
        raise HTTPException(status_code=404, detail="News article not found")
    return {"success": True, "data": result.document, "fromCache": result.from_cache}


@router.post("", status_code=201)
async def create_news(
    payload: NewsCreate, news_cache: NewsCache = Depends(get_news_cache)
) -> Dict[str, Any]:
    data = payload.model_dump(exclude_none=True)
    article = await news_cache.repository.create(data)
    await news_cache.invalidate_documents(article)

    logger.info("News article created", news_id=article["id"], category=article["category"])
    return {"success": True, "data": article}


@router.put("/{news_id}")
async def update_news(
    news_id: str,
    payload: NewsUpdate,
    news_cache: NewsCache = Depends(get_news_cache),
) -> Dict[str, Any]:
    before = await news_cache.repository.find_by_id(news_id)
    if before is None:
        raise HTTPException(status_code=404, detail="News article not found")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    after = await news_cache.repository.update(news_id, changes)
    if after is None:
        raise HTTPException(status_code=404, detail="News article not found")
    await news_cache.invalidate_documents(before, after)

    return {"success": True, "data": after}


@router.delete("/{news_id}")
async def delete_news(
    news_id: str, news_cache: NewsCache = Depends(get_news_cache)
) -> Dict[str, Any]:
    before = await news_cache.repository.find_by_id(news_id)
    if before is None or not await news_cache.repository.delete(news_id):
        raise HTTPException(status_code=404, detail="News article not found")
    await news_cache.invalidate_documents(before)

    logger.info("News article deleted", news_id=news_id)
    return {"success": True, "data": {}}
