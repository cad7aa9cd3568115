"""
Membership mutations: add, assign role, remove.
"""
from typing import Optional, Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgaccess.core.database.engine import transaction
from orgaccess.core.errors import MembershipConflict, ResourceNotFound
from orgaccess.features.organizations.models import Organization, OrganizationMember
from orgaccess.features.permissions.audit import record_audit
from orgaccess.features.permissions.roles import get_role
from orgaccess.features.users.models import User
from orgaccess.utils import get_logger


log = get_logger(__name__)


async def get_membership(
    db: AsyncSession,
    organization_id: str,
    user_id: str,
    include_inactive: bool = False
) -> Optional[OrganizationMember]:
    stmt = (
        select(OrganizationMember)
        .where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        )
        .execution_options(populate_existing=True)
    )
    if not include_inactive:
        stmt = stmt.where(OrganizationMember.is_active.is_(True))
    result = await db.execute(stmt)
    return result.scalar_one_or_none()


async def list_members(db: AsyncSession, organization_id: str) -> Sequence[OrganizationMember]:
    result = await db.execute(
        select(OrganizationMember)
        .where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.is_active.is_(True),
        )
        .order_by(OrganizationMember.joined_at, OrganizationMember.id)
    )
    return result.scalars().all()


async def add_member(
    db: AsyncSession,
    organization: Organization,
    user_id: str,
    role_id: Optional[str] = None,
    actor_id: Optional[str] = None
) -> OrganizationMember:
    """
    Add a user to an organization, optionally with a role.

    A previously removed (inactive) membership is reactivated.

    Raises:
        ResourceNotFound: If the user does not exist
        RoleNotFound: If ``role_id`` is not a role of this organization
        MembershipConflict: If the user is already an active member
    """
    user = await db.get(User, user_id)
    if user is None:
        raise ResourceNotFound("User not found")

    if role_id is not None:
        await get_role(db, organization.id, role_id)

    membership = await get_membership(db, organization.id, user_id, include_inactive=True)
    if membership is not None and membership.is_active:
        raise MembershipConflict("User is already a member of this organization")

    async with transaction(db):
        if membership is None:
            membership = OrganizationMember(
                organization_id=organization.id,
                user_id=user_id,
                role_id=role_id,
            )
            db.add(membership)
        else:
            membership.is_active = True
            membership.role_id = role_id
        await db.flush()
        record_audit(db, actor_id, "add_member", "member", membership.id, organization.id,
                     {"user_id": user_id, "role_id": role_id})

    # Reload so the role relationship reflects role_id
    return await get_membership(db, organization.id, user_id)


async def assign_role(
    db: AsyncSession,
    organization: Organization,
    user_id: str,
    role_id: Optional[str],
    actor_id: Optional[str] = None
) -> OrganizationMember:
    """
    Set (or clear, with ``role_id=None``) the role of a member.

    Raises:
        MembershipConflict: If the user is the organization owner
        ResourceNotFound: If the user is not an active member
        RoleNotFound: If ``role_id`` is not a role of this organization
    """
    if user_id == organization.owner_id:
        raise MembershipConflict("The organization owner does not hold a role")

    membership = await get_membership(db, organization.id, user_id)
    if membership is None:
        raise ResourceNotFound("Member not found")

    if role_id is not None:
        await get_role(db, organization.id, role_id)

    previous = membership.role_id
    async with transaction(db):
        membership.role_id = role_id
        record_audit(db, actor_id, "assign_role", "member", membership.id, organization.id,
                     {"user_id": user_id, "previous_role_id": previous, "role_id": role_id})

    return await get_membership(db, organization.id, user_id)


async def remove_member(
    db: AsyncSession,
    organization: Organization,
    user_id: str,
    actor_id: Optional[str] = None
) -> None:
    """
    Remove a member from an organization (the membership becomes inactive
    and loses its role).

    Raises:
        MembershipConflict: If the user is the organization owner
        ResourceNotFound: If the user is not an active member
    """
    if user_id == organization.owner_id:
        raise MembershipConflict("The organization owner cannot be removed")

    membership = await get_membership(db, organization.id, user_id)
    if membership is None:
        raise ResourceNotFound("Member not found")

    # Rows are kept inactive so a later re-add reuses them
    async with transaction(db):
        membership.is_active = False
        membership.role_id = None
        record_audit(db, actor_id, "remove_member", "member", membership.id, organization.id,
                     {"user_id": user_id})

    log.info(f"Removed user {user_id} from org {organization.id}")
