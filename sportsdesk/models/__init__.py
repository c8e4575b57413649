"""
Sportsdesk Database Models

SQLAlchemy models backing the document repositories. Scalar fields that
queries filter or sort on are real columns; nested parts of a document
(league teams, match sides, article tags) live in JSON columns.
"""

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.sql import func


def new_document_id() -> str:
    """Generate a 32 character hex document id."""
    return uuid.uuid4().hex


class Base(DeclarativeBase):
    """Canonical Base class for all database models."""

    pass


class TimestampMixin:
    """Mixin for timestamp fields."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )


class NewsArticle(Base, TimestampMixin):
    """News article model."""

    __tablename__ = "news"

    id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=new_document_id
    )
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    summary: Mapped[str] = mapped_column(String(500), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(
        String(50), nullable=False, default="Other", index=True
    )
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    author: Mapped[str] = mapped_column(
        String(100), default="Staff Reporter", nullable=False
    )
    source: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    image_url: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    location_country: Mapped[Optional[str]] = mapped_column(
        String(100), nullable=True, index=True
    )
    location_city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    is_featured: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False, index=True
    )
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    published_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )


class League(Base, TimestampMixin):
    """League model with embedded standings table."""

    __tablename__ = "leagues"

    id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=new_document_id
    )
    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(String(20), default="ongoing", nullable=False)
    featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    season: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    logo: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    teams: Mapped[List[Dict[str, Any]]] = mapped_column(
        JSON, default=list, nullable=False
    )


class Match(Base, TimestampMixin):
    """Match model."""

    __tablename__ = "matches"

    id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=new_document_id
    )
    category: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    status: Mapped[str] = mapped_column(
        String(20), default="scheduled", nullable=False, index=True
    )
    league_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    home_team: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    away_team: Mapped[Dict[str, Any]] = mapped_column(JSON, nullable=False)
    home_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    away_score: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    venue: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    summary: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_time: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, index=True
    )


class User(Base, TimestampMixin):
    """User account model."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(32), primary_key=True, default=new_document_id
    )
    username: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    role: Mapped[str] = mapped_column(String(20), default="user", nullable=False)
    is_subscribed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    location_country: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    preferences: Mapped[Dict[str, Any]] = mapped_column(
        JSON, default=dict, nullable=False
    )
    profile_views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
