"""
Organization feature routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy import select, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from orgaccess.core.database.engine import get_db, transaction
from orgaccess.core.errors import InvalidRequest, PermissionDenied
from orgaccess.features.events.models import Event
from orgaccess.features.organizations.dependencies import resolve_organization
from orgaccess.features.organizations.membership import (
    add_member,
    assign_role,
    get_membership,
    list_members,
    remove_member,
)
from orgaccess.features.organizations.models import Organization, OrganizationMember
from orgaccess.features.organizations.schemas import (
    OrganizationCreate,
    OrganizationPublic,
    OrganizationResponse,
    MemberAdd,
    MemberListResponse,
    MemberResponse,
    RoleAssignment,
    OrganizationAnalytics,
)
from orgaccess.features.permissions.audit import list_audit_logs, record_audit
from orgaccess.features.permissions.catalog import Permission
from orgaccess.features.permissions.dependencies import AccessContext, require_permission
from orgaccess.features.permissions.evaluator import effective_permissions, outranks
from orgaccess.features.permissions.models import Role
from orgaccess.features.permissions.resolver import Member, Owner
from orgaccess.features.permissions.roles import create_default_roles, get_role
from orgaccess.features.permissions.schemas import AuditLogResponse, MyPermissionsResponse
from orgaccess.features.users.dependencies import get_current_user
from orgaccess.features.users.models import User
from orgaccess.utils import get_logger


log = get_logger(__name__)
router = APIRouter(tags=["organizations"])


def _member_response(membership: OrganizationMember, organization: Organization) -> MemberResponse:
    response = MemberResponse.model_validate(membership)
    response.is_owner = membership.user_id == organization.owner_id
    return response


# Organization endpoints
@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
async def create_organization(
    org_data: OrganizationCreate,
    user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create an organization owned by the caller, with its default roles."""
    existing = await db.execute(
        select(Organization.id).where(Organization.registry_id == org_data.registry_id)
    )
    if existing.first() is not None:
        raise InvalidRequest("Organization with this registry id already exists")

    try:
        async with transaction(db):
            organization = Organization(**org_data.model_dump(), owner_id=user.id)
            db.add(organization)
            await db.flush()

            db.add(OrganizationMember(organization_id=organization.id, user_id=user.id))
            await create_default_roles(db, organization.id)
            record_audit(db, user.id, "create", "organization", organization.id, organization.id,
                         {"registry_id": organization.registry_id})
    except IntegrityError:
        raise InvalidRequest("Organization with this registry id already exists")

    await db.refresh(organization)
    log.info(f"Created organization {organization.registry_id} owned by {user.id}")
    return organization


@router.get("/{registry_id}", response_model=OrganizationPublic)
async def get_organization(
    organization: Annotated[Organization, Depends(resolve_organization)]
):
    """Public organization profile."""
    return organization


@router.get("/{registry_id}/permissions/me", response_model=MyPermissionsResponse)
async def get_my_permissions(
    access: Annotated[AccessContext, Depends(require_permission())]
):
    """Effective permissions of the caller (members and owner)."""
    resolution = access.resolution
    return MyPermissionsResponse(
        organization_id=access.organization.id,
        is_owner=isinstance(resolution, Owner),
        is_member=isinstance(resolution, (Owner, Member)),
        role_id=resolution.role_id if isinstance(resolution, Member) else None,
        role_name=resolution.role_name if isinstance(resolution, Member) else None,
        permissions=sorted(effective_permissions(resolution), key=lambda p: p.value),
    )


# Member endpoints
@router.get("/{registry_id}/members", response_model=MemberListResponse)
async def get_members(
    access: Annotated[AccessContext, Depends(require_permission(Permission.VIEW_MEMBERS))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List active members with their roles."""
    members = await list_members(db, access.organization.id)
    return {"members": [_member_response(m, access.organization) for m in members]}


@router.post("/{registry_id}/members", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_organization_member(
    member: MemberAdd,
    access: Annotated[AccessContext, Depends(require_permission(Permission.MANAGE_MEMBERS))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Add a user to the organization, optionally with a role below the caller's rank."""
    if member.role_id is not None:
        role = await get_role(db, access.organization.id, member.role_id)
        if not outranks(access.resolution, role):
            raise PermissionDenied()

    membership = await add_member(
        db, access.organization, member.user_id, member.role_id, actor_id=access.user_id
    )
    return _member_response(membership, access.organization)


@router.put("/{registry_id}/members/{user_id}/role", response_model=MemberResponse)
async def assign_member_role(
    user_id: str,
    assignment: RoleAssignment,
    access: Annotated[AccessContext, Depends(require_permission(Permission.ASSIGN_ROLES))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """
    Assign or clear a member's role.

    Non-owners may only manage members ranked below them and may only hand
    out roles ranked below their own.
    """
    organization = access.organization
    target = await get_membership(db, organization.id, user_id)
    new_role = await get_role(db, organization.id, assignment.role_id) if assignment.role_id else None

    if target is not None and not outranks(access.resolution, target.role):
        raise PermissionDenied()
    if new_role is not None and not outranks(access.resolution, new_role):
        raise PermissionDenied()

    membership = await assign_role(db, organization, user_id, assignment.role_id, actor_id=access.user_id)
    return _member_response(membership, organization)


@router.delete("/{registry_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_organization_member(
    user_id: str,
    access: Annotated[AccessContext, Depends(require_permission(Permission.REMOVE_MEMBERS))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Remove a member. The owner cannot be removed."""
    target = await get_membership(db, access.organization.id, user_id)
    if target is not None and user_id != access.user_id and not outranks(access.resolution, target.role):
        raise PermissionDenied()

    await remove_member(db, access.organization, user_id, actor_id=access.user_id)
    return None


# Reporting endpoints
@router.get("/{registry_id}/analytics", response_model=OrganizationAnalytics)
async def get_organization_analytics(
    access: Annotated[AccessContext, Depends(require_permission(Permission.VIEW_ANALYTICS))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Member, role and event counts for the organization."""
    organization_id = access.organization.id

    member_rows = await db.execute(
        select(Role.name, func.count(OrganizationMember.id))
        .select_from(OrganizationMember)
        .outerjoin(Role, Role.id == OrganizationMember.role_id)
        .where(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.is_active.is_(True),
        )
        .group_by(Role.name)
    )
    distribution = {}
    without_role = 0
    for role_name, count in member_rows.all():
        if role_name is None:
            without_role = count
        else:
            distribution[role_name] = count

    role_count = await db.scalar(
        select(func.count(Role.id)).where(Role.organization_id == organization_id)
    )
    event_count = await db.scalar(
        select(func.count(Event.id)).where(Event.organization_id == organization_id)
    )

    return OrganizationAnalytics(
        organization_id=organization_id,
        member_count=without_role + sum(distribution.values()),
        members_without_role=without_role,
        role_count=role_count or 0,
        event_count=event_count or 0,
        role_distribution=distribution,
    )


@router.get("/{registry_id}/audit-logs", response_model=list[AuditLogResponse])
async def get_audit_logs(
    access: Annotated[AccessContext, Depends(require_permission(Permission.VIEW_REPORTS))],
    db: Annotated[AsyncSession, Depends(get_db)],
    skip: int = 0,
    limit: int = 100
):
    """Role and membership changes, newest first."""
    return await list_audit_logs(db, access.organization.id, skip=skip, limit=min(limit, 500))
