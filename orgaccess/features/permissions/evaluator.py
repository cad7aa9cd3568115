"""
Permission evaluation.

The single place that decides whether a resolved membership grants a
permission. ``evaluate`` is pure; ``has_permission`` adds the lookup.
"""
from sqlalchemy.ext.asyncio import AsyncSession

from orgaccess.core import config
from orgaccess.features.permissions.catalog import Permission, list_permissions, parse_permissions
from orgaccess.features.permissions.models import Role
from orgaccess.features.permissions.resolver import (
    MembershipResolution,
    Owner,
    Member,
    NotAMember,
    resolve_membership,
)
from orgaccess.utils import get_logger


log = get_logger(__name__)

# Granted to members that hold no role. Unknown names stop the process here.
NO_ROLE_PERMISSIONS: frozenset[Permission] = parse_permissions(config.NO_ROLE_PERMISSIONS)


def effective_permissions(
    resolution: MembershipResolution,
    no_role_permissions: frozenset[Permission] = NO_ROLE_PERMISSIONS
) -> frozenset[Permission]:
    """Every permission the resolved user holds in the organization."""
    if isinstance(resolution, Owner):
        return list_permissions()
    if isinstance(resolution, Member):
        if resolution.has_role:
            return resolution.role_permissions
        return no_role_permissions
    return frozenset()


def evaluate(
    resolution: MembershipResolution,
    permission: Permission,
    no_role_permissions: frozenset[Permission] = NO_ROLE_PERMISSIONS
) -> bool:
    """
    Decide ``permission`` for an already resolved membership.

    1. Owner: always granted
    2. Not a member: always denied
    3. Member with a role: granted iff the role carries the permission
    4. Member without a role: granted iff the permission is in the no-role allow-list
    """
    if isinstance(resolution, Owner):
        return True
    if isinstance(resolution, NotAMember):
        return False
    if resolution.has_role:
        return permission in resolution.role_permissions
    return permission in no_role_permissions


async def has_permission(
    db: AsyncSession,
    user_id: str,
    organization_id: str,
    permission: Permission
) -> bool:
    """
    Check if a user holds a permission in an organization.

    Database errors propagate; they are never turned into a denial.
    """
    resolution = await resolve_membership(db, user_id, organization_id)
    granted = evaluate(resolution, permission)
    log.debug(
        f"{type(resolution).__name__} {user_id} "
        f"{'granted' if granted else 'denied'} {permission.value} in org {organization_id}"
    )
    return granted


def outranks(resolution: MembershipResolution, role: Role | None) -> bool:
    """
    Whether the resolved user may manage members holding ``role``.

    Owners manage everyone; members need a strictly higher role rank.
    A missing role ranks below every role.
    """
    if isinstance(resolution, Owner):
        return True
    if not isinstance(resolution, Member) or not resolution.has_role:
        return False
    if role is None:
        return True
    return resolution.role_rank > role.rank
