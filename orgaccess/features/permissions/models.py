"""
Role and audit models for organization-scoped RBAC.

- Roles belong to exactly one organization and carry a set of catalog
  permissions (one ``role_permissions`` row per granted permission)
- Role names are unique per organization, compared case-insensitively
- Audit entries record every role and membership mutation
"""
from typing import Any, Dict, Iterable
from sqlalchemy import String, ForeignKey, JSON, Text, Integer, Boolean, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orgaccess.core.database.base import Base, TimestampMixin, generate_ulid
from orgaccess.features.permissions.catalog import Permission, is_valid_permission
from orgaccess.utils import get_logger


log = get_logger(__name__)


def normalize_role_name(name: str) -> str:
    """Comparison key for role-name uniqueness."""
    return name.strip().casefold()


class RolePermission(Base):
    """A single permission granted by a role."""
    __tablename__ = "role_permissions"

    role_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organization_roles.id", ondelete="CASCADE"),
        primary_key=True
    )
    permission: Mapped[str] = mapped_column(String(100), primary_key=True)

    def __repr__(self) -> str:
        return f"<RolePermission(role_id={self.role_id}, permission={self.permission})>"


class Role(Base, TimestampMixin):
    """
    Named bundle of permissions inside one organization.

    Examples: Admin, Member, Event Coordinator
    """
    __tablename__ = "organization_roles"
    __table_args__ = (
        UniqueConstraint("organization_id", "normalized_name", name="uq_organization_roles_name"),
    )

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    organization_id: Mapped[str] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    name: Mapped[str] = mapped_column(String(50), nullable=False)
    normalized_name: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Higher rank = more privileged; members may only manage lower ranks
    rank: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # System roles (Admin, Member) are seeded with the organization and cannot be deleted
    is_system_role: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    # Insertion order within the organization
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    permission_rows: Mapped[list["RolePermission"]] = relationship(
        "RolePermission",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def permissions(self) -> frozenset[Permission]:
        """Catalog permissions granted by this role."""
        granted = set()
        for row in self.permission_rows:
            if is_valid_permission(row.permission):
                granted.add(Permission(row.permission))
            else:
                # Denied until removed; verify_stored_permissions rejects it at startup
                log.error(f"Role {self.id} carries unknown permission {row.permission!r}; not granted")
        return frozenset(granted)

    def set_permissions(self, permissions: Iterable[Permission]) -> None:
        """Replace the permission set, touching only rows that change."""
        wanted = {Permission(p).value for p in permissions}
        self.permission_rows = [row for row in self.permission_rows if row.permission in wanted]
        present = {row.permission for row in self.permission_rows}
        for value in sorted(wanted - present):
            self.permission_rows.append(RolePermission(permission=value))

    def rename(self, name: str) -> None:
        self.name = name.strip()
        self.normalized_name = normalize_role_name(name)

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name!r}, org_id={self.organization_id})>"


class AuditLog(Base, TimestampMixin):
    """
    Audit log for role and membership changes.

    Tracks who did what, when, and in which organization.
    """
    __tablename__ = "audit_logs"

    id: Mapped[str] = mapped_column(String(26), primary_key=True, default=generate_ulid)

    # Actor
    user_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Action details
    action: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    resource_id: Mapped[str | None] = mapped_column(String(26), nullable=True, index=True)

    organization_id: Mapped[str | None] = mapped_column(
        String(26),
        ForeignKey("organizations.id", ondelete="CASCADE"),
        nullable=True,
        index=True
    )
    details: Mapped[Dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<AuditLog(id={self.id}, user_id={self.user_id}, action={self.action}, resource={self.resource_type})>"
