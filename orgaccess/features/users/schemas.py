"""
Pydantic schemas for user responses.
"""
from datetime import datetime
from pydantic import BaseModel


class UserPublic(BaseModel):
    """Public user information (limited fields)."""
    id: str
    handle: str
    avatar_url: str | None = None

    model_config = {"from_attributes": True}


class UserResponse(UserPublic):
    """Schema for the authenticated user's own profile."""
    email: str | None = None
    is_active: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime
