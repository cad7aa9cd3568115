"""
Pydantic schemas for events, comments and reviews.
"""
from datetime import datetime
from pydantic import BaseModel, Field


class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=10000)
    starts_at: datetime | None = None


class EventUpdate(BaseModel):
    """Omitted fields are left unchanged."""
    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, max_length=10000)
    starts_at: datetime | None = None


class EventResponse(BaseModel):
    id: str
    organization_id: str | None
    created_by: str
    title: str
    description: str | None = None
    starts_at: datetime | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class CommentResponse(BaseModel):
    id: str
    event_id: str
    created_by: str
    content: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class CommentUpdate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)


class ReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    review_text: str | None = Field(None, max_length=5000)
    is_anonymous: bool = False


class ReviewUpdate(BaseModel):
    """Omitted fields are left unchanged."""
    rating: int | None = Field(None, ge=1, le=5)
    review_text: str | None = Field(None, max_length=5000)
    is_anonymous: bool | None = None


class ReviewResponse(BaseModel):
    """Anonymous reviews are returned without their author."""
    id: str
    event_id: str
    created_by: str | None = None
    rating: int
    review_text: str | None = None
    is_anonymous: bool
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
