"""
Membership resolution.

Maps (user, organization) to one of three outcomes:

- ``Owner``: the organization's designated owner (bypasses roles entirely)
- ``Member``: an active membership, with or without a role
- ``NotAMember``: anything else

The result is a snapshot taken from a single query; nothing is cached.
"""
from dataclasses import dataclass
from typing import Union
from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from orgaccess.core.errors import OrganizationNotFound
from orgaccess.features.organizations.models import Organization, OrganizationMember
from orgaccess.features.permissions.catalog import Permission
from orgaccess.features.permissions.models import Role  # noqa: F401  (registers the mapper)


@dataclass(frozen=True)
class Owner:
    user_id: str
    organization_id: str


@dataclass(frozen=True)
class Member:
    user_id: str
    organization_id: str
    membership_id: str
    role_id: str | None = None
    role_name: str | None = None
    role_rank: int | None = None
    role_permissions: frozenset[Permission] = frozenset()

    @property
    def has_role(self) -> bool:
        return self.role_id is not None


@dataclass(frozen=True)
class NotAMember:
    user_id: str
    organization_id: str


MembershipResolution = Union[Owner, Member, NotAMember]


async def resolve_membership(
    db: AsyncSession,
    user_id: str,
    organization_id: str
) -> MembershipResolution:
    """
    Resolve how ``user_id`` relates to ``organization_id``.

    Args:
        db: Database session
        user_id: Authenticated user id
        organization_id: Internal organization id

    Returns:
        Owner, Member or NotAMember

    Raises:
        OrganizationNotFound: If the organization does not exist
    """
    stmt = (
        select(Organization.owner_id, OrganizationMember)
        .outerjoin(
            OrganizationMember,
            and_(
                OrganizationMember.organization_id == Organization.id,
                OrganizationMember.user_id == user_id,
                OrganizationMember.is_active.is_(True),
            )
        )
        .where(Organization.id == organization_id)
        # Always re-read rows already present in the session
        .execution_options(populate_existing=True)
    )
    result = await db.execute(stmt)
    row = result.first()

    if row is None:
        raise OrganizationNotFound()

    owner_id, membership = row

    if owner_id == user_id:
        return Owner(user_id=user_id, organization_id=organization_id)

    if membership is None:
        return NotAMember(user_id=user_id, organization_id=organization_id)

    role = membership.role
    if role is None:
        return Member(
            user_id=user_id,
            organization_id=organization_id,
            membership_id=membership.id,
        )

    return Member(
        user_id=user_id,
        organization_id=organization_id,
        membership_id=membership.id,
        role_id=role.id,
        role_name=role.name,
        role_rank=role.rank,
        role_permissions=role.permissions,
    )
