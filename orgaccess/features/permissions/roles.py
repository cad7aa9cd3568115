"""
Role store: organization-scoped role CRUD.

Every mutation runs in one transaction together with its audit entry.
Deleting a role clears it from all memberships in the same transaction,
so members fall back to "no role" instead of pointing at a missing row.
"""
from typing import Any, Dict, Iterable, List, Optional, Sequence
from sqlalchemy import select, update, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orgaccess.core.database.engine import transaction
from orgaccess.core.errors import RoleNameConflict, RoleNotFound, RoleProtected
from orgaccess.features.organizations.models import OrganizationMember
from orgaccess.features.permissions.audit import record_audit
from orgaccess.features.permissions.catalog import (
    DEFAULT_ROLE_CONFIGS,
    Permission,
    UnknownPermissionError,
    is_valid_permission,
    parse_permissions,
)
from orgaccess.features.permissions.models import Role, RolePermission, normalize_role_name
from orgaccess.utils import get_logger


log = get_logger(__name__)


async def _name_taken(
    db: AsyncSession,
    organization_id: str,
    name: str,
    exclude_role_id: Optional[str] = None
) -> bool:
    stmt = select(Role.id).where(
        Role.organization_id == organization_id,
        Role.normalized_name == normalize_role_name(name),
    )
    if exclude_role_id is not None:
        stmt = stmt.where(Role.id != exclude_role_id)
    result = await db.execute(stmt)
    return result.first() is not None


async def _next_position(db: AsyncSession, organization_id: str) -> int:
    result = await db.execute(
        select(func.max(Role.position)).where(Role.organization_id == organization_id)
    )
    current = result.scalar_one_or_none()
    return 0 if current is None else current + 1


async def _add_role(
    db: AsyncSession,
    organization_id: str,
    name: str,
    permissions: Iterable[Permission],
    description: Optional[str],
    rank: int,
    is_system_role: bool
) -> Role:
    role = Role(
        organization_id=organization_id,
        description=description,
        rank=rank,
        is_system_role=is_system_role,
        position=await _next_position(db, organization_id),
    )
    role.rename(name)
    role.set_permissions(parse_permissions(permissions))
    db.add(role)
    await db.flush()
    return role


def _audit_details(role: Role) -> Dict[str, Any]:
    return {
        "name": role.name,
        "rank": role.rank,
        "permissions": sorted(p.value for p in role.permissions),
    }


async def create_role(
    db: AsyncSession,
    organization_id: str,
    name: str,
    permissions: Iterable[Permission],
    description: Optional[str] = None,
    rank: int = 0,
    actor_id: Optional[str] = None
) -> Role:
    """
    Create a role in an organization.

    Raises:
        RoleNameConflict: If the organization already has a role with this
            name (case-insensitive)
    """
    if await _name_taken(db, organization_id, name):
        raise RoleNameConflict()

    try:
        async with transaction(db):
            role = await _add_role(db, organization_id, name, permissions, description, rank, False)
            record_audit(db, actor_id, "create", "role", role.id, organization_id, _audit_details(role))
    except IntegrityError:
        # Lost a race against a concurrent create with the same name
        raise RoleNameConflict()

    await db.refresh(role)
    log.info(f"Created role {role.id} ({role.name!r}) in org {organization_id}")
    return role


async def create_default_roles(
    db: AsyncSession,
    organization_id: str
) -> List[Role]:
    """
    Seed the system roles of a new organization.

    Flushes only; the caller owns the transaction.
    """
    roles = []
    for config in DEFAULT_ROLE_CONFIGS:
        role = await _add_role(
            db,
            organization_id,
            config["name"],
            config["permissions"],
            config["description"],
            config["rank"],
            True,
        )
        roles.append(role)
    return roles


async def get_role(db: AsyncSession, organization_id: str, role_id: str) -> Role:
    """
    Load a role scoped to an organization.

    Raises:
        RoleNotFound: If the role does not exist or belongs to another organization
    """
    result = await db.execute(
        select(Role)
        .where(Role.id == role_id, Role.organization_id == organization_id)
        .execution_options(populate_existing=True)
    )
    role = result.scalar_one_or_none()
    if role is None:
        raise RoleNotFound()
    return role


async def list_roles(db: AsyncSession, organization_id: str) -> Sequence[Role]:
    """Roles of an organization in creation order."""
    result = await db.execute(
        select(Role)
        .where(Role.organization_id == organization_id)
        .order_by(Role.position, Role.id)
    )
    return result.scalars().all()


async def update_role(
    db: AsyncSession,
    organization_id: str,
    role_id: str,
    patch: Dict[str, Any],
    actor_id: Optional[str] = None
) -> Role:
    """
    Apply a partial update to a role.

    ``patch`` may contain ``name``, ``description``, ``rank`` and
    ``permissions`` (replaces the whole set).

    Raises:
        RoleNotFound: If the role is missing or outside the organization
        RoleNameConflict: If the new name is taken in the organization
    """
    role = await get_role(db, organization_id, role_id)

    name = patch.get("name")
    if name is not None and normalize_role_name(name) != role.normalized_name:
        if await _name_taken(db, organization_id, name, exclude_role_id=role.id):
            raise RoleNameConflict()

    try:
        async with transaction(db):
            if name is not None:
                role.rename(name)
            if "description" in patch:
                role.description = patch["description"]
            if patch.get("rank") is not None:
                role.rank = patch["rank"]
            if patch.get("permissions") is not None:
                role.set_permissions(parse_permissions(patch["permissions"]))
            await db.flush()
            record_audit(db, actor_id, "update", "role", role.id, organization_id, _audit_details(role))
    except IntegrityError:
        raise RoleNameConflict()

    await db.refresh(role)
    log.info(f"Updated role {role.id} in org {organization_id}")
    return role


async def delete_role(
    db: AsyncSession,
    organization_id: str,
    role_id: str,
    actor_id: Optional[str] = None
) -> None:
    """
    Delete a role and detach it from every membership, atomically.

    Raises:
        RoleNotFound: If the role is missing or outside the organization
        RoleProtected: If the role is a system role
    """
    role = await get_role(db, organization_id, role_id)
    if role.is_system_role:
        raise RoleProtected()

    async with transaction(db):
        result = await db.execute(
            update(OrganizationMember)
            .where(OrganizationMember.role_id == role.id)
            .values(role_id=None)
        )
        cleared = result.rowcount
        await db.delete(role)
        record_audit(
            db, actor_id, "delete", "role", role_id, organization_id,
            {"name": role.name, "members_cleared": cleared}
        )

    log.info(f"Deleted role {role_id} in org {organization_id}; cleared {cleared} membership(s)")


async def verify_stored_permissions(db: AsyncSession) -> None:
    """
    Check that every stored role permission is in the catalog.

    Run at startup so a catalog entry removed from code while still granted
    in the database stops the process instead of silently granting less.

    Raises:
        UnknownPermissionError: Listing every offending (role, permission) pair
    """
    result = await db.execute(select(RolePermission.role_id, RolePermission.permission).distinct())
    unknown = sorted(
        (role_id, permission)
        for role_id, permission in result.all()
        if not is_valid_permission(permission)
    )
    if unknown:
        pairs = ", ".join(f"{role_id}:{permission}" for role_id, permission in unknown)
        raise UnknownPermissionError(f"Roles grant permissions outside the catalog: {pairs}")
