"""
Audit logging helpers.

Entries are added to the caller's session so they commit (or roll back)
together with the change they describe.
"""
from typing import Any, Dict, Optional, Sequence
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orgaccess.features.permissions.models import AuditLog
from orgaccess.utils import get_logger


log = get_logger(__name__)


def record_audit(
    db: AsyncSession,
    user_id: Optional[str],
    action: str,
    resource_type: str,
    resource_id: Optional[str] = None,
    organization_id: Optional[str] = None,
    details: Optional[Dict[str, Any]] = None
) -> AuditLog:
    """
    Add an audit log entry to the current unit of work.

    Args:
        db: Database session
        user_id: User performing the action
        action: Action performed (e.g., "create", "update", "delete", "assign_role")
        resource_type: Type of resource (e.g., "role", "member")
        resource_id: ID of the resource
        organization_id: Organization context
        details: Additional details

    Returns:
        The pending AuditLog object
    """
    audit_log = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        organization_id=organization_id,
        details=details,
    )
    db.add(audit_log)

    log.info(
        f"Audit: user={user_id} action={action} resource={resource_type}:{resource_id} org={organization_id}"
    )

    return audit_log


async def list_audit_logs(
    db: AsyncSession,
    organization_id: str,
    skip: int = 0,
    limit: int = 100
) -> Sequence[AuditLog]:
    """Most recent audit entries for an organization."""
    stmt = (
        select(AuditLog)
        .where(AuditLog.organization_id == organization_id)
        .order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
        .offset(skip)
        .limit(limit)
    )
    result = await db.execute(stmt)
    return result.scalars().all()
