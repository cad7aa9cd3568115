"""
Pydantic schemas for the permission catalog, roles and audit logs.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Set
from pydantic import BaseModel, Field, ConfigDict, field_validator

from orgaccess.features.permissions.catalog import Permission


# ============================================================================
# Catalog Schemas
# ============================================================================

class PermissionCatalogResponse(BaseModel):
    """All permissions a role can grant."""
    permissions: List[Permission]


class MyPermissionsResponse(BaseModel):
    """Effective permissions of the caller in one organization."""
    organization_id: str
    is_owner: bool
    is_member: bool
    role_id: Optional[str] = None
    role_name: Optional[str] = None
    permissions: List[Permission]


# ============================================================================
# Role Schemas
# ============================================================================

class RoleBase(BaseModel):
    """Base role schema."""
    name: str = Field(..., min_length=1, max_length=50, description="Role name, unique per organization")
    description: Optional[str] = Field(None, max_length=1000, description="Role description")


def _check_role_name(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Role name must not be blank")
    if not v.replace(" ", "").replace("_", "").replace("-", "").isalnum():
        raise ValueError("Role name must contain only letters, digits, spaces, underscores, and hyphens")
    return v


class RoleCreate(RoleBase):
    """Schema for creating a new role."""
    rank: int = Field(0, ge=0, le=99, description="Higher rank manages lower ranks")
    permissions: Set[Permission] = Field(default_factory=set, description="Granted catalog permissions")

    @field_validator("name")
    @classmethod
    def name_format(cls, v: str) -> str:
        """Validate role name format."""
        return _check_role_name(v)


class RoleUpdate(BaseModel):
    """Schema for updating a role. Omitted fields are left unchanged."""
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=1000)
    rank: Optional[int] = Field(None, ge=0, le=99)
    permissions: Optional[Set[Permission]] = None

    @field_validator("name")
    @classmethod
    def name_format(cls, v: Optional[str]) -> Optional[str]:
        return _check_role_name(v) if v is not None else v


class RoleResponse(RoleBase):
    """Schema for role response."""
    id: str
    organization_id: str
    rank: int
    is_system_role: bool
    permissions: List[Permission]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_validator("permissions", mode="before")
    @classmethod
    def sorted_permissions(cls, v):
        return sorted(v, key=lambda p: p.value if isinstance(p, Permission) else str(p))


class RoleListResponse(BaseModel):
    roles: List[RoleResponse]


# ============================================================================
# Audit Log Schemas
# ============================================================================

class AuditLogResponse(BaseModel):
    """Schema for audit log response."""
    id: str
    user_id: Optional[str]
    action: str
    resource_type: str
    resource_id: Optional[str]
    organization_id: Optional[str]
    details: Optional[Dict[str, Any]]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
