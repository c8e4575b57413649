"""
User API endpoints

Public profile documents. Credentials and sessions are handled elsewhere.
"""

from typing import Any, Dict, Optional

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator

from ...repositories.base import DuplicateDocumentError
from ...services.cache.users import UserCache
from ..dependencies import get_user_cache

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/api/users", tags=["users"])


def _check_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip().lower()
    local, _, domain = value.partition("@")
    if not local or "." not in domain:
        raise ValueError("Invalid email address")
    return value


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=255)
    name: Optional[str] = Field(None, max_length=255)
    role: str = Field("user", pattern="^(user|admin)$")
    is_subscribed: bool = False
    location_country: Optional[str] = Field(None, max_length=100)
    preferences: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _check_email(v)


class UserUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    name: Optional[str] = Field(None, max_length=255)
    role: Optional[str] = Field(None, pattern="^(user|admin)$")
    is_subscribed: Optional[bool] = None
    location_country: Optional[str] = Field(None, max_length=100)
    preferences: Optional[Dict[str, Any]] = None

    @field_validator("email")
    @classmethod
    def validate_email(cls, v):
        return _check_email(v)


@router.get("")
async def list_users(
    limit: Optional[int] = Query(None, ge=1, le=500),
    user_cache: UserCache = Depends(get_user_cache),
) -> Dict[str, Any]:
    result = await user_cache.get_all_users(limit)
    return {"success": True, **result.to_envelope("users")}


@router.get("/by-email")
async def get_user_by_email(
    email: str = Query(..., min_length=3),
    user_cache: UserCache = Depends(get_user_cache),
) -> Dict[str, Any]:
    result = await user_cache.get_user_by_email(email)
    if not result.found:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "data": result.document, "fromCache": result.from_cache}


@router.get("/{user_id}")
async def get_user(
    user_id: str, user_cache: UserCache = Depends(get_user_cache)
) -> Dict[str, Any]:
    result = await user_cache.get_user_by_id(user_id)
    if not result.found:
        raise HTTPException(status_code=404, detail="User not found")
    return {"success": True, "data": result.document, "fromCache": result.from_cache}


@router.post("", status_code=201)
async def create_user(
    payload: UserCreate, user_cache: UserCache = Depends(get_user_cache)
) -> Dict[str, Any]:
    try:
        user = await user_cache.repository.create(payload.model_dump(exclude_none=True))
    except DuplicateDocumentError:
        raise HTTPException(status_code=400, detail="User already exists")
    await user_cache.invalidate_documents(user)

    logger.info("User created", user_id=user["id"])
    return {"success": True, "data": user}


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    payload: UserUpdate,
    user_cache: UserCache = Depends(get_user_cache),
) -> Dict[str, Any]:
    before = await user_cache.repository.find_by_id(user_id)
    if before is None:
        raise HTTPException(status_code=404, detail="User not found")

    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    try:
        after = await user_cache.repository.update(user_id, changes)
    except DuplicateDocumentError:
        raise HTTPException(status_code=400, detail="Username or email already in use")
    if after is None:
        raise HTTPException(status_code=404, detail="User not found")
    await user_cache.invalidate_documents(before, after)

    return {"success": True, "data": after}


@router.delete("/{user_id}")
async def delete_user(
    user_id: str, user_cache: UserCache = Depends(get_user_cache)
) -> Dict[str, Any]:
    before = await user_cache.repository.find_by_id(user_id)
    if before is None or not await user_cache.repository.delete(user_id):
        raise HTTPException(status_code=404, detail="User not found")
    await user_cache.invalidate_documents(before)

    logger.info("User deleted", user_id=user_id)
    return {"success": True, "data": {}}
