"""
Organization and membership models.

Every organization has exactly one owner (``owner_id``) who holds every
permission without a role. Other users relate to an organization through
an ``OrganizationMember`` row that may carry one role.
"""
from datetime import datetime, timezone
from sqlalchemy import String, ForeignKey, Boolean, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgaccess.core.database.base import Base, TimestampMixin, generate_ulid


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Organization(Base, TimestampMixin):
    """
    Organization (the tenant owning roles, members and events).

    Routes address organizations by their external registry id; the ULID
    ``id`` stays internal.
    """
    __tablename__ = "organizations"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # External identifier (uppercase alphanumeric, 1-20 characters)
    registry_id: Mapped[str] = mapped_column(String(20), unique=True, nullable=False, index=True)

    name: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    owner_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id"),
        nullable=False,
        index=True
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, registry_id={self.registry_id!r})>"


class OrganizationMember(Base, TimestampMixin):
    """
    Membership of one user in one organization.

    ``role_id`` is nullable: a member without a role is valid and only
    receives the configured no-role permissions.
    """
    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_organization_members_user"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    user_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    role_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("organization_roles.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow, nullable=False)

    role: Mapped["Role"] = relationship(  # type: ignore
        "Role",
        lazy="selectin"
    )
    user: Mapped["User"] = relationship(  # type: ignore
        "User",
        lazy="selectin"
    )

    def __repr__(self) -> str:
        return f"<OrganizationMember(org_id={self.organization_id}, user_id={self.user_id}, role_id={self.role_id})>"
