"""
Document Schemas

Pydantic schemas describing the JSON documents exchanged between the
persistent store, the cache and the HTTP layer. Every document leaves the
store in its JSON form, so a fresh read and a cached read compare equal.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field


class BaseDocument(BaseModel):
    """Common document fields."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class NewsArticleDocument(BaseDocument):
    title: str
    summary: str
    content: str
    category: str = "Other"
    tags: List[str] = Field(default_factory=list)
    author: str = "Staff Reporter"
    source: Optional[str] = None
    image_url: Optional[str] = None
    location_country: Optional[str] = None
    location_city: Optional[str] = None
    is_featured: bool = False
    views: int = 0
    published_at: Optional[datetime] = None


class TeamStanding(BaseModel):
    """One row of a league standings table."""

    name: str
    logo: Optional[str] = None
    played: int = 0
    won: int = 0
    drawn: int = 0
    lost: int = 0
    goals_for: int = 0
    goals_against: int = 0
    points: int = 0


class LeagueDocument(BaseDocument):
    name: str
    category: str
    status: str = "ongoing"
    featured: bool = False
    season: Optional[str] = None
    description: Optional[str] = None
    logo: Optional[str] = None
    teams: List[TeamStanding] = Field(default_factory=list)


class MatchSide(BaseModel):
    name: str
    logo: str = ""


class MatchDocument(BaseDocument):
    category: str
    status: str = "scheduled"
    league_id: Optional[str] = None
    home_team: MatchSide
    away_team: MatchSide
    home_score: int = 0
    away_score: int = 0
    venue: Optional[str] = None
    summary: Optional[str] = None
    start_time: datetime


class UserDocument(BaseDocument):
    """Public user document. Credentials never leave the store."""

    username: str
    email: str
    name: Optional[str] = None
    role: str = "user"
    is_subscribed: bool = False
    location_country: Optional[str] = None
    preferences: Dict[str, Any] = Field(default_factory=dict)
    profile_views: int = 0


def to_document(schema: Type[BaseDocument], source: Any) -> Dict[str, Any]:
    """Render an ORM row or mapping as a JSON-compatible document."""
    return schema.model_validate(source).model_dump(mode="json")
