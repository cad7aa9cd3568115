"""
Creator-based authorization for resources without roles (events, comments).

Each protected action declares an ``AccessRequirement`` saying how the
creator check composes with the organization permission check.
"""
from dataclasses import dataclass
from typing import Optional, Protocol
from sqlalchemy.ext.asyncio import AsyncSession

from orgaccess.features.permissions.catalog import Permission, parse_permission
from orgaccess.features.permissions.evaluator import has_permission


class OwnedResource(Protocol):
    created_by: str

    @property
    def organization_id(self) -> Optional[str]: ...


def is_owner(user_id: str, resource: OwnedResource) -> bool:
    """True when ``user_id`` created ``resource``."""
    return resource.created_by is not None and resource.created_by == user_id


@dataclass(frozen=True)
class AccessRequirement:
    """
    Declared access rule for one resource action.

    Examples:
        AccessRequirement(Permission.UPDATE_EVENTS, allow_creator=True)
            creator OR update_events holder
        AccessRequirement(Permission.MANAGE_EVENTS, allow_creator=True, require_all=True)
            creator AND manage_events holder
        AccessRequirement(allow_creator=True)
            creator only
    """
    permission: Optional[Permission] = None
    allow_creator: bool = False
    require_all: bool = False

    def __post_init__(self):
        if self.permission is not None:
            object.__setattr__(self, "permission", parse_permission(self.permission))
        if self.permission is None and not self.allow_creator:
            raise ValueError("AccessRequirement needs a permission, the creator path, or both")
        if self.require_all and (self.permission is None or not self.allow_creator):
            raise ValueError("require_all combines the creator path with a permission")


async def authorize_resource(
    db: AsyncSession,
    user_id: str,
    resource: OwnedResource,
    requirement: AccessRequirement
) -> bool:
    """
    Apply ``requirement`` to ``resource`` for ``user_id``.

    Resources outside any organization can only be reached through the
    creator path.
    """
    creator = is_owner(user_id, resource) if requirement.allow_creator else False

    if requirement.permission is None:
        return creator
    if creator and not requirement.require_all:
        return True
    if requirement.require_all and not creator:
        return False

    organization_id = resource.organization_id
    if organization_id is None:
        return False

    return await has_permission(db, user_id, organization_id, requirement.permission)
