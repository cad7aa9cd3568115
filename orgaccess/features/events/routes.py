"""
Event, comment and review routes.

Management actions accept the creator of the instance, and for events and
comment moderation also a member holding the matching organization
permission; see the AccessRequirement declared on each route.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orgaccess.core.database.engine import get_db
from orgaccess.core.errors import ResourceNotFound, ReviewConflict
from orgaccess.features.events.models import Event, EventComment, EventReview
from orgaccess.features.events.schemas import (
    EventCreate,
    EventUpdate,
    EventResponse,
    CommentCreate,
    CommentUpdate,
    CommentResponse,
    ReviewCreate,
    ReviewUpdate,
    ReviewResponse,
)
from orgaccess.features.permissions.catalog import Permission
from orgaccess.features.permissions.dependencies import (
    AccessContext,
    require_permission,
    require_resource_access,
)
from orgaccess.features.permissions.ownership import AccessRequirement
from orgaccess.features.users.dependencies import get_current_user_id
from orgaccess.utils import get_logger


log = get_logger(__name__)

router = APIRouter()
organization_router = APIRouter()
comment_router = APIRouter()
review_router = APIRouter()


UPDATE_EVENT = AccessRequirement(Permission.UPDATE_EVENTS, allow_creator=True)
DELETE_EVENT = AccessRequirement(Permission.DELETE_EVENTS, allow_creator=True)
DELETE_COMMENT = AccessRequirement(Permission.MODERATE_COMMENTS, allow_creator=True)
EDIT_COMMENT = AccessRequirement(allow_creator=True)
MANAGE_REVIEW = AccessRequirement(allow_creator=True)


async def get_event_or_404(
    event_id: str,
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Event:
    result = await db.execute(select(Event).where(Event.id == event_id))
    event = result.scalar_one_or_none()
    if event is None:
        raise ResourceNotFound("Event not found")
    return event


async def get_comment_or_404(
    comment_id: str,
    db: Annotated[AsyncSession, Depends(get_db)]
) -> EventComment:
    result = await db.execute(select(EventComment).where(EventComment.id == comment_id))
    comment = result.scalar_one_or_none()
    if comment is None:
        raise ResourceNotFound("Comment not found")
    return comment


async def get_review_or_404(
    review_id: str,
    db: Annotated[AsyncSession, Depends(get_db)]
) -> EventReview:
    result = await db.execute(select(EventReview).where(EventReview.id == review_id))
    review = result.scalar_one_or_none()
    if review is None:
        raise ResourceNotFound("Review not found")
    return review


def _review_response(review: EventReview) -> ReviewResponse:
    response = ReviewResponse.model_validate(review)
    if review.is_anonymous:
        response.created_by = None
    return response


# Event endpoints
@organization_router.post(
    "/{registry_id}/events", response_model=EventResponse, status_code=status.HTTP_201_CREATED
)
async def create_organization_event(
    event_data: EventCreate,
    access: Annotated[AccessContext, Depends(require_permission(Permission.CREATE_EVENTS))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create an event hosted by the organization."""
    event = Event(**event_data.model_dump(), organization_id=access.organization.id, created_by=access.user_id)
    db.add(event)
    await db.commit()
    await db.refresh(event)
    log.info(f"Event {event.id} created in org {access.organization.id} by {access.user_id}")
    return event


@router.post("", response_model=EventResponse, status_code=status.HTTP_201_CREATED)
async def create_personal_event(
    event_data: EventCreate,
    user_id: Annotated[str, Depends(get_current_user_id)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create an event that belongs to no organization."""
    event = Event(**event_data.model_dump(), created_by=user_id)
    db.add(event)
    await db.commit()
    await db.refresh(event)
    return event


@router.get("/{event_id}", response_model=EventResponse)
async def get_event(
    event: Annotated[Event, Depends(get_event_or_404)]
):
    """Public event detail."""
    return event


@router.patch("/{event_id}", response_model=EventResponse)
async def update_event(
    event_update: EventUpdate,
    event: Annotated[Event, Depends(require_resource_access(get_event_or_404, UPDATE_EVENT))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update an event (creator, or holder of update_events in its organization)."""
    for key, value in event_update.model_dump(exclude_unset=True).items():
        setattr(event, key, value)
    await db.commit()
    await db.refresh(event)
    return event


@router.delete("/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_event(
    event: Annotated[Event, Depends(require_resource_access(get_event_or_404, DELETE_EVENT))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Delete an event (creator, or holder of delete_events in its organization)."""
    await db.delete(event)
    await db.commit()
    return None


# Comment endpoints
@router.post("/{event_id}/comments", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def create_comment(
    comment_data: CommentCreate,
    user_id: Annotated[str, Depends(get_current_user_id)],
    event: Annotated[Event, Depends(get_event_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Comment on an event (any authenticated user)."""
    comment = EventComment(event_id=event.id, created_by=user_id, content=comment_data.content)
    db.add(comment)
    await db.commit()
    await db.refresh(comment)
    return comment


@comment_router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment: Annotated[EventComment, Depends(require_resource_access(get_comment_or_404, DELETE_COMMENT))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Delete a comment (its author, or a moderator of the event's organization)."""
    await db.delete(comment)
    await db.commit()
    return None


@comment_router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_update: CommentUpdate,
    comment: Annotated[EventComment, Depends(require_resource_access(get_comment_or_404, EDIT_COMMENT))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Edit a comment (its author only)."""
    comment.content = comment_update.content
    await db.commit()
    await db.refresh(comment)
    return comment


# Review endpoints
@router.get("/{event_id}/reviews", response_model=list[ReviewResponse])
async def list_reviews(
    event: Annotated[Event, Depends(get_event_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Public list of an event's reviews, newest first."""
    result = await db.execute(
        select(EventReview)
        .where(EventReview.event_id == event.id)
        .order_by(EventReview.created_at.desc(), EventReview.id.desc())
    )
    return [_review_response(review) for review in result.scalars().all()]


@router.post("/{event_id}/reviews", response_model=ReviewResponse, status_code=status.HTTP_201_CREATED)
async def create_review(
    review_data: ReviewCreate,
    user_id: Annotated[str, Depends(get_current_user_id)],
    event: Annotated[Event, Depends(get_event_or_404)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Review an event (any authenticated user, once per event)."""
    existing = await db.execute(
        select(EventReview.id).where(EventReview.event_id == event.id, EventReview.created_by == user_id)
    )
    if existing.first() is not None:
        raise ReviewConflict()

    review = EventReview(event_id=event.id, created_by=user_id, **review_data.model_dump())
    db.add(review)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ReviewConflict()
    await db.refresh(review)
    log.info(f"Review {review.id} on event {event.id} by {user_id}")
    return _review_response(review)


@review_router.put("/{review_id}", response_model=ReviewResponse)
async def update_review(
    review_update: ReviewUpdate,
    review: Annotated[EventReview, Depends(require_resource_access(get_review_or_404, MANAGE_REVIEW))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update a review (its author only)."""
    for key, value in review_update.model_dump(exclude_unset=True).items():
        # review_text may be cleared; rating and is_anonymous may not
        if value is None and key != "review_text":
            continue
        setattr(review, key, value)
    await db.commit()
    await db.refresh(review)
    return _review_response(review)


@review_router.delete("/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_review(
    review: Annotated[EventReview, Depends(require_resource_access(get_review_or_404, MANAGE_REVIEW))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Delete a review (its author only)."""
    await db.delete(review)
    await db.commit()
    return None
