"""
Match API endpoints
"""

from datetime import datetime
from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator

from ...constants import MATCH_STATUSES
from ...domain.documents import MatchSide
from ...services.cache.matches import MatchCache
from ..dependencies import get_match_cache

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/matches", tags=["matches"])


def _check_status(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in MATCH_STATUSES:
        raise ValueError(f"status must be one of: {list(MATCH_STATUSES)}")
    return value


class MatchCreate(BaseModel):
    category: str = Field(..., min_length=1, max_length=50)
    status: str = "scheduled"
    league_id: Optional[str] = None
    home_team: MatchSide
    away_team: MatchSide
    home_score: int = Field(0, ge=0)
    away_score: int = Field(0, ge=0)
    venue: Optional[str] = Field(None, max_length=200)
    summary: Optional[str] = None
    start_time: datetime

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


class MatchUpdate(BaseModel):
    category: Optional[str] = Field(None, min_length=1, max_length=50)
    status: Optional[str] = None
    league_id: Optional[str] = None
    home_team: Optional[MatchSide] = None
    away_team: Optional[MatchSide] = None
    home_score: Optional[int] = Field(None, ge=0)
    away_score: Optional[int] = Field(None, ge=0)
    venue: Optional[str] = Field(None, max_length=200)
    summary: Optional[str] = None
    start_time: Optional[datetime] = None

    @field_validator("status")
    @classmethod
    def validate_status(cls, v):
        return _check_status(v)


@router.get("")
async def list_matches(
    category: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=200),
    match_cache: MatchCache = Depends(get_match_cache),
) -> Dict[str, Any]:
    if category:
        result = await match_cache.get_matches_by_category(category, limit)
    else:
        result = await match_cache.get_all_matches(limit)
    return {"success": True, **result.to_envelope("matches")}


@router.get("/live")
async def live_matches(
    category: Optional[str] = Query(None),
    match_cache: MatchCache = Depends(get_match_cache),
) -> Dict[str, Any]:
    result = await match_cache.get_live_matches(category)
    return {"success": True, **result.to_envelope("matches")}


@router.get("/upcoming")
async def upcoming_matches(
    category: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=200),
    match_cache: MatchCache = Depends(get_match_cache),
) -> Dict[str, Any]:
    result = await match_cache.get_upcoming_matches(category, limit)
    return {"success": True, **result.to_envelope("matches")}


@router.get("/completed")
async def completed_matches(
    category: Optional[str] = Query(None),
    limit: Optional[int] = Query(None, ge=1, le=200),
    match_cache: MatchCache = Depends(get_match_cache),
) -> Dict[str, Any]:
    result = await match_cache.get_completed_matches(category, limit)
    return {"success": True, **result.to_envelope("matches")}


@router.get("/{match_id}")
async def get_match(
    match_id: str, match_cache: MatchCache = Depends(get_match_cache)
) -> Dict[str, Any]:
    result = await match_cache.get_match_by_id(match_id)
    if not result.found:
        raise HTTPException(status_code=404, detail="Match not found")
    return {"success": True, "data": result.document, "fromCache": result.from_cache}


@router.post("", status_code=201)
async def create_match(
    payload: MatchCreate, match_cache: MatchCache = Depends(get_match_cache)
) -> Dict[str, Any]:
    match = await match_cache.repository.create(payload.model_dump(exclude_none=True))
    await match_cache.invalidate_documents(match)

    logger.info("Match created", match_id=match["id"], status=match["status"])
    return {"success": True, "data": match}


@router.put("/{match_id}")
async def update_match(
    match_id: str,
    payload: MatchUpdate,
    match_cache: MatchCache = Depends(get_match_cache),
) -> Dict[str, Any]:
    before = await match_cache.repository.find_by_id(match_id)
    if before is None:
        raise HTTPException(status_code=404, detail="Match not found")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    after = await match_cache.repository.update(match_id, changes)
    if after is None:
        raise HTTPException(status_code=404, detail="Match not found")
    await match_cache.invalidate_documents(before, after)

    return {"success": True, "data": after}


@router.delete("/{match_id}")
async def delete_match(
    match_id: str, match_cache: MatchCache = Depends(get_match_cache)
) -> Dict[str, Any]:
    before = await match_cache.repository.find_by_id(match_id)
    if before is None or not await match_cache.repository.delete(match_id):
        raise HTTPException(status_code=404, detail="Match not found")
    await match_cache.invalidate_documents(before)

    logger.info("Match deleted", match_id=match_id)
    return {"success": True, "data": {}}
