"""
Pydantic schemas for organization-related requests and responses.
"""
from datetime import datetime
from pydantic import BaseModel, Field

from orgaccess.features.users.schemas import UserPublic


# Organization Schemas
class OrganizationBase(BaseModel):
    """Base organization schema."""
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)


class OrganizationCreate(OrganizationBase):
    """Schema for creating an organization; the caller becomes its owner."""
    registry_id: str = Field(
        ...,
        pattern="^[A-Z0-9]{1,20}$",
        description="External identifier, uppercase alphanumeric (1-20 characters)"
    )


class OrganizationPublic(OrganizationBase):
    """Public organization profile."""
    registry_id: str
    owner_id: str
    created_at: datetime

    model_config = {"from_attributes": True}


class OrganizationResponse(OrganizationPublic):
    """Organization as returned to its creator."""
    id: str
    is_active: bool
    updated_at: datetime


# Member Schemas
class MemberAdd(BaseModel):
    """Add an existing user to the organization."""
    user_id: str = Field(..., min_length=1, max_length=26)
    role_id: str | None = Field(None, description="Role to assign; omit for a member without role")


class RoleAssignment(BaseModel):
    """Set or clear (null) a member's role."""
    role_id: str | None = None


class MemberRole(BaseModel):
    id: str
    name: str
    rank: int

    model_config = {"from_attributes": True}


class MemberResponse(BaseModel):
    """Organization member with role."""
    id: str
    user_id: str
    is_owner: bool = False
    role: MemberRole | None = None
    joined_at: datetime
    user: UserPublic | None = None

    model_config = {"from_attributes": True}


class MemberListResponse(BaseModel):
    members: list[MemberResponse]


# Analytics Schemas
class OrganizationAnalytics(BaseModel):
    """Aggregate counts for an organization."""
    organization_id: str
    member_count: int
    members_without_role: int
    role_count: int
    event_count: int
    role_distribution: dict[str, int] = Field(default_factory=dict, description="Role name -> member count")
