"""
League API endpoints

Leagues and their standings tables. Adding a team rewrites the league's
team list in the store and invalidates the league's cache keys.
"""

from typing import Any, Dict, List, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from ...constants import LEAGUE_CATEGORIES
from ...domain.documents import TeamStanding
from ...repositories.base import DuplicateDocumentError
from ...services.cache.leagues import LeagueCache
from ..dependencies import get_league_cache

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/leagues", tags=["leagues"])


class LeagueCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    category: str = Field(..., description=f"One of {', '.join(LEAGUE_CATEGORIES)}")
    status: str = Field("ongoing", max_length=20)
    featured: bool = False
    season: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    logo: Optional[str] = Field(None, max_length=500)
    teams: List[TeamStanding] = Field(default_factory=list)


class LeagueUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    category: Optional[str] = None
    status: Optional[str] = Field(None, max_length=20)
    featured: Optional[bool] = None
    season: Optional[str] = Field(None, max_length=50)
    description: Optional[str] = None
    logo: Optional[str] = Field(None, max_length=500)
    teams: Optional[List[TeamStanding]] = None


@router.get("")
async def list_leagues(
    category: Optional[str] = Query(None),
    league_cache: LeagueCache = Depends(get_league_cache),
) -> Dict[str, Any]:
    if category:
        result = await league_cache.get_leagues_by_category(category)
    else:
        result = await league_cache.get_all_leagues()
    return {"success": True, **result.to_envelope("leagues")}


@router.get("/{league_id}")
async def get_league(
    league_id: str, league_cache: LeagueCache = Depends(get_league_cache)
) -> Dict[str, Any]:
    result = await league_cache.get_league_by_id(league_id)
    if not result.found:
        raise HTTPException(status_code=404, detail="League not found")
    return {"success": True, "data": result.document, "fromCache": result.from_cache}


@router.post("", status_code=201)
async def create_league(
    payload: LeagueCreate, league_cache: LeagueCache = Depends(get_league_cache)
) -> Dict[str, Any]:
    try:
        league = await league_cache.repository.create(payload.model_dump(exclude_none=True))
    except DuplicateDocumentError:
        raise HTTPException(status_code=400, detail="League with this name already exists")
    await league_cache.invalidate_documents(league)

    logger.info("League created", league_id=league["id"], category=league["category"])
    return {"success": True, "data": league}


@router.put("/{league_id}")
async def update_league(
    league_id: str,
    payload: LeagueUpdate,
    league_cache: LeagueCache = Depends(get_league_cache),
) -> Dict[str, Any]:
    before = await league_cache.repository.find_by_id(league_id)
    if before is None:
        raise HTTPException(status_code=404, detail="League not found")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    try:
        after = await league_cache.repository.update(league_id, changes)
    except DuplicateDocumentError:
        raise HTTPException(status_code=400, detail="League with this name already exists")
    if after is None:
        raise HTTPException(status_code=404, detail="League not found")
    await league_cache.invalidate_documents(before, after)

    return {"success": True, "data": after}


@router.post("/{league_id}/teams", status_code=201)
async def add_team_to_league(
    league_id: str,
    team: TeamStanding,
    league_cache: LeagueCache = Depends(get_league_cache),
) -> Dict[str, Any]:
    league = await league_cache.repository.find_by_id(league_id)
    if league is None:
        raise HTTPException(status_code=404, detail="League not found")

    teams = league.get("teams") or []
    if any(existing["name"].lower() == team.name.lower() for existing in teams):
        raise HTTPException(
            status_code=400, detail=f"Team '{team.name}' already exists in this league"
        )

    updated = await league_cache.repository.update(
        league_id, {"teams": teams + [team.model_dump()]}
    )
    if updated is None:
        raise HTTPException(status_code=404, detail="League not found")
    await league_cache.invalidate_documents(league, updated)

    logger.info("Team added to league", league_id=league_id, team=team.name)
    return {"success": True, "data": updated}


@router.delete("/{league_id}")
async def delete_league(
    league_id: str, league_cache: LeagueCache = Depends(get_league_cache)
) -> Dict[str, Any]:
    before = await league_cache.repository.find_by_id(league_id)
    if before is None or not await league_cache.repository.delete(league_id):
        raise HTTPException(status_code=404, detail="League not found")
    await league_cache.invalidate_documents(before)

    logger.info("League deleted", league_id=league_id)
    return {"success": True, "data": {}}
