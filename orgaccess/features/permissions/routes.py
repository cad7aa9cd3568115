"""
Permission catalog and role management routes.
"""
from typing import Annotated
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from orgaccess.core.database.engine import get_db
from orgaccess.features.permissions.catalog import Permission, list_permissions
from orgaccess.features.permissions.dependencies import AccessContext, require_permission
from orgaccess.features.permissions import roles as role_store
from orgaccess.features.permissions.schemas import (
    PermissionCatalogResponse,
    RoleCreate,
    RoleUpdate,
    RoleResponse,
    RoleListResponse,
)


catalog_router = APIRouter()
router = APIRouter()


# ============================================================================
# Catalog Routes
# ============================================================================

@catalog_router.get("", response_model=PermissionCatalogResponse)
async def get_available_permissions():
    """List every permission a role can grant (public)."""
    return {"permissions": sorted(list_permissions(), key=lambda p: p.value)}


# ============================================================================
# Role Routes
# ============================================================================

@router.get("/{registry_id}/roles", response_model=RoleListResponse)
async def list_roles(
    access: Annotated[AccessContext, Depends(require_permission())],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """List the organization's roles in creation order (members only)."""
    roles = await role_store.list_roles(db, access.organization.id)
    return {"roles": roles}


@router.post("/{registry_id}/roles", response_model=RoleResponse, status_code=status.HTTP_201_CREATED)
async def create_role(
    role: RoleCreate,
    access: Annotated[AccessContext, Depends(require_permission(Permission.CREATE_ROLES))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Create a role."""
    return await role_store.create_role(
        db,
        access.organization.id,
        name=role.name,
        permissions=role.permissions,
        description=role.description,
        rank=role.rank,
        actor_id=access.user_id,
    )


@router.get("/{registry_id}/roles/{role_id}", response_model=RoleResponse)
async def get_role(
    role_id: str,
    access: Annotated[AccessContext, Depends(require_permission())],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Get a role with its permissions (members only)."""
    return await role_store.get_role(db, access.organization.id, role_id)


@router.put("/{registry_id}/roles/{role_id}", response_model=RoleResponse)
async def update_role(
    role_id: str,
    role_update: RoleUpdate,
    access: Annotated[AccessContext, Depends(require_permission(Permission.UPDATE_ROLES))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Update a role's name, description, rank or permission set."""
    return await role_store.update_role(
        db,
        access.organization.id,
        role_id,
        role_update.model_dump(exclude_unset=True),
        actor_id=access.user_id,
    )


@router.delete("/{registry_id}/roles/{role_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_role(
    role_id: str,
    access: Annotated[AccessContext, Depends(require_permission(Permission.DELETE_ROLES))],
    db: Annotated[AsyncSession, Depends(get_db)]
):
    """Delete a role; members holding it are left without a role."""
    await role_store.delete_role(db, access.organization.id, role_id, actor_id=access.user_id)
    return None
