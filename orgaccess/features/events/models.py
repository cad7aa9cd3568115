"""
Event, comment and review models.

All three record their creator in ``created_by``; the creator may always manage
their own instance regardless of organization role.
"""
from datetime import datetime
from sqlalchemy import String, ForeignKey, Text, DateTime, Integer, Boolean, CheckConstraint, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgaccess.core.database.base import Base, TimestampMixin, generate_ulid


class Event(Base, TimestampMixin):
    """
    Community event, optionally hosted by an organization.

    Events without an organization can only be managed by their creator.
    """
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    organization_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    created_by: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id"),
        nullable=False,
        index=True
    )

    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    starts_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Removed with the event; loaded only when the event is deleted
    comments: Mapped[list["EventComment"]] = relationship(
        "EventComment", back_populates="event", cascade="all, delete-orphan"
    )
    reviews: Mapped[list["EventReview"]] = relationship(
        "EventReview", back_populates="event", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Event(id={self.id}, title={self.title!r}, org_id={self.organization_id})>"


class EventComment(Base, TimestampMixin):
    """Comment on an event; belongs to the event's organization."""
    __tablename__ = "event_comments"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    event_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    created_by: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id"),
        nullable=False,
        index=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)

    event: Mapped["Event"] = relationship("Event", back_populates="comments", lazy="selectin")

    @property
    def organization_id(self) -> str | None:
        return self.event.organization_id if self.event is not None else None

    def __repr__(self) -> str:
        return f"<EventComment(id={self.id}, event_id={self.event_id})>"


class EventReview(Base, TimestampMixin):
    """
    Rating of an event by one user.

    Only the reviewer manages a review; organization roles grant nothing here.
    """
    __tablename__ = "event_reviews"
    __table_args__ = (
        UniqueConstraint("event_id", "created_by", name="uq_event_reviews_reviewer"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_event_reviews_rating"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    event_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("events.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    created_by: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id"),
        nullable=False,
        index=True
    )
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    review_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    event: Mapped["Event"] = relationship("Event", back_populates="reviews", lazy="selectin")

    @property
    def organization_id(self) -> str | None:
        return self.event.organization_id if self.event is not None else None

    def __repr__(self) -> str:
        return f"<EventReview(id={self.id}, event_id={self.event_id}, rating={self.rating})>"
