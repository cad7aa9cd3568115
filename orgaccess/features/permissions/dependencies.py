"""
Request gate dependencies.

Each stage is a FastAPI dependency and routes pick the stages they need:

    authenticate        get_current_user_id                      (401)
    resolve org         resolve_organization                     (400/404)
    check permission    require_permission / require_resource_access (403)

Public routes use none of them. Failures are raised as
``AccessControlError`` subclasses and rendered by the handlers registered
in ``orgaccess.core.errors``.
"""
from dataclasses import dataclass
from typing import Annotated, Any, Awaitable, Callable, Optional
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from orgaccess.core.database.engine import get_db
from orgaccess.core.errors import PermissionDenied
from orgaccess.features.organizations.dependencies import resolve_organization
from orgaccess.features.organizations.models import Organization
from orgaccess.features.permissions.catalog import Permission, parse_permission
from orgaccess.features.permissions.evaluator import evaluate
from orgaccess.features.permissions.ownership import AccessRequirement, authorize_resource
from orgaccess.features.permissions.resolver import MembershipResolution, NotAMember, resolve_membership
from orgaccess.features.users.dependencies import get_current_user_id
from orgaccess.utils import get_logger


log = get_logger(__name__)


@dataclass(frozen=True)
class AccessContext:
    """What a protected organization route receives once the gate passed."""
    user_id: str
    organization: Organization
    resolution: MembershipResolution


def require_permission(
    permission: Optional[Permission | str] = None,
) -> Callable[..., Awaitable[AccessContext]]:
    """
    Dependency factory for organization-scoped authorization.

    Usage:
        @router.get("/{registry_id}/members")
        async def list_members(
            access: AccessContext = Depends(require_permission(Permission.VIEW_MEMBERS))
        ):
            pass

    Args:
        permission: Required permission; ``None`` admits any member or the owner

    Returns:
        Async dependency returning the AccessContext

    Raises:
        UnknownPermissionError: At declaration time, for a name outside the catalog
    """
    required = parse_permission(permission) if permission is not None else None

    async def check_permission(
        user_id: Annotated[str, Depends(get_current_user_id)],
        organization: Annotated[Organization, Depends(resolve_organization)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> AccessContext:
        resolution = await resolve_membership(db, user_id, organization.id)

        if required is None:
            allowed = not isinstance(resolution, NotAMember)
        else:
            allowed = evaluate(resolution, required)

        if not allowed:
            log.debug(
                f"Denied {user_id} ({type(resolution).__name__}) "
                f"{required.value if required else 'membership'} in org {organization.id}"
            )
            raise PermissionDenied()

        return AccessContext(user_id=user_id, organization=organization, resolution=resolution)

    return check_permission


def require_resource_access(
    loader: Callable[..., Awaitable[Any]],
    requirement: AccessRequirement,
) -> Callable[..., Awaitable[Any]]:
    """
    Dependency factory for creator-owned resources.

    ``loader`` is itself a dependency returning the resource (or raising
    ResourceNotFound). The returned dependency yields the resource when
    ``requirement`` is met.

    Usage:
        @router.delete("/{event_id}")
        async def delete_event(
            event: Event = Depends(require_resource_access(
                get_event_or_404,
                AccessRequirement(Permission.DELETE_EVENTS, allow_creator=True),
            ))
        ):
            pass
    """

    async def check_resource_access(
        user_id: Annotated[str, Depends(get_current_user_id)],
        resource: Annotated[Any, Depends(loader)],
        db: Annotated[AsyncSession, Depends(get_db)],
    ) -> Any:
        if not await authorize_resource(db, user_id, resource, requirement):
            log.debug(f"Denied {user_id} access to {type(resource).__name__} {getattr(resource, 'id', '?')}")
            raise PermissionDenied()
        return resource

    return check_resource_access
