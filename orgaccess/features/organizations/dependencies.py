"""
Organization-related dependency injection functions.
"""
import re
from typing import Annotated
from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgaccess.core.database.engine import get_db
from orgaccess.core.errors import InvalidRequest, OrganizationNotFound
from orgaccess.features.organizations.models import Organization


REGISTRY_ID_PATTERN = re.compile(r"^[A-Z0-9]{1,20}$")


async def get_organization_by_registry_id(
    db: AsyncSession,
    registry_id: str
) -> Organization:
    """
    Look up an active organization by its external registry id.

    Raises:
        InvalidRequest: If the identifier is malformed
        OrganizationNotFound: If no active organization matches
    """
    if not REGISTRY_ID_PATTERN.match(registry_id):
        raise InvalidRequest(
            "Invalid organization identifier. Must be uppercase alphanumeric, 1-20 characters."
        )

    result = await db.execute(
        select(Organization).where(
            Organization.registry_id == registry_id,
            Organization.is_active.is_(True),
        )
    )
    organization = result.scalar_one_or_none()

    if organization is None:
        raise OrganizationNotFound()

    return organization


async def resolve_organization(
    registry_id: str,
    db: Annotated[AsyncSession, Depends(get_db)]
) -> Organization:
    """
    Request-gate stage: resolve ``{registry_id}`` from the path.

    Usage:
        @router.get("/{registry_id}")
        async def get_org(organization: Organization = Depends(resolve_organization)):
            ...
    """
    return await get_organization_by_registry_id(db, registry_id)
