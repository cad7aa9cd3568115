"""
Permission resolution feature module.

Implements organization-scoped role-based access control: the permission
catalog, the role store, membership resolution, the permission evaluator,
creator-ownership checks, and the request-gate dependencies built on them.

Usage:
    from orgaccess.features.permissions import Permission, require_permission

    @router.get("/{registry_id}/members")
    async def list_members(
        access: AccessContext = Depends(require_permission(Permission.VIEW_MEMBERS))
    ):
        pass
"""
from .catalog import Permission, is_valid_permission, list_permissions
from .dependencies import AccessContext, require_permission, require_resource_access
from .evaluator import evaluate, has_permission
from .ownership import AccessRequirement, is_owner
from .resolver import Member, NotAMember, Owner, resolve_membership

__all__ = [
    "AccessContext",
    "AccessRequirement",
    "Member",
    "NotAMember",
    "Owner",
    "Permission",
    "evaluate",
    "has_permission",
    "is_owner",
    "is_valid_permission",
    "list_permissions",
    "require_permission",
    "require_resource_access",
    "resolve_membership",
]
