"""
Permission catalog.

The catalog is code, not data: roles may only carry names defined here.
Referencing an unknown name is a configuration error and raises
``UnknownPermissionError`` as early as possible (import time for settings,
declaration time for route requirements).
"""
from enum import Enum
from typing import Iterable


class UnknownPermissionError(ValueError):
    """Raised when a permission name is not part of the catalog."""


class Permission(str, Enum):
    """
    Defines all permissions an organization role can grant.

    Permissions follow the pattern ACTION_RESOURCE.
    """

    # Organization
    VIEW_ORGANIZATION = "view_organization"
    MANAGE_ORGANIZATION = "manage_organization"
    UPDATE_ORGANIZATION = "update_organization"
    DELETE_ORGANIZATION = "delete_organization"

    # Members
    MANAGE_MEMBERS = "manage_members"
    INVITE_MEMBERS = "invite_members"
    REMOVE_MEMBERS = "remove_members"
    VIEW_MEMBERS = "view_members"

    # Roles
    MANAGE_ROLES = "manage_roles"
    CREATE_ROLES = "create_roles"
    UPDATE_ROLES = "update_roles"
    DELETE_ROLES = "delete_roles"
    ASSIGN_ROLES = "assign_roles"

    # Events
    MANAGE_EVENTS = "manage_events"
    CREATE_EVENTS = "create_events"
    UPDATE_EVENTS = "update_events"
    DELETE_EVENTS = "delete_events"

    # Comments
    MANAGE_COMMENTS = "manage_comments"
    MODERATE_COMMENTS = "moderate_comments"
    DELETE_COMMENTS = "delete_comments"

    # Integrations
    MANAGE_INTEGRATIONS = "manage_integrations"
    UPDATE_RSI_INTEGRATION = "update_rsi_integration"
    UPDATE_DISCORD_INTEGRATION = "update_discord_integration"

    # Analytics and reporting
    VIEW_ANALYTICS = "view_analytics"
    VIEW_REPORTS = "view_reports"

    # HR management
    HR_MANAGER = "hr_manager"
    HR_RECRUITER = "hr_recruiter"
    HR_SUPERVISOR = "hr_supervisor"
    MANAGE_HR_APPLICATIONS = "manage_hr_applications"
    VIEW_HR_APPLICATIONS = "view_hr_applications"
    PROCESS_HR_APPLICATIONS = "process_hr_applications"
    MANAGE_HR_ONBOARDING = "manage_hr_onboarding"
    VIEW_HR_ONBOARDING = "view_hr_onboarding"
    CREATE_ONBOARDING_TEMPLATES = "create_onboarding_templates"
    MANAGE_HR_PERFORMANCE = "manage_hr_performance"
    VIEW_HR_PERFORMANCE = "view_hr_performance"
    CONDUCT_PERFORMANCE_REVIEWS = "conduct_performance_reviews"
    MANAGE_HR_SKILLS = "manage_hr_skills"
    VIEW_HR_SKILLS = "view_hr_skills"
    VERIFY_SKILLS = "verify_skills"
    MANAGE_HR_DOCUMENTS = "manage_hr_documents"
    VIEW_HR_DOCUMENTS = "view_hr_documents"
    UPLOAD_HR_DOCUMENTS = "upload_hr_documents"
    VIEW_HR_ANALYTICS = "view_hr_analytics"
    MANAGE_HR_ANALYTICS = "manage_hr_analytics"


ALL_PERMISSIONS: frozenset[Permission] = frozenset(Permission)


def list_permissions() -> frozenset[Permission]:
    """Return the full catalog."""
    return ALL_PERMISSIONS


def is_valid_permission(name: str) -> bool:
    """Check whether ``name`` is a catalog permission value."""
    return name in Permission._value2member_map_


def parse_permission(name: "str | Permission") -> Permission:
    """
    Convert a permission name to its catalog member.

    Raises:
        UnknownPermissionError: If ``name`` is not in the catalog
    """
    if isinstance(name, Permission):
        return name
    if not is_valid_permission(name):
        raise UnknownPermissionError(f"Unknown permission: {name!r}")
    return Permission(name)


def parse_permissions(names: Iterable["str | Permission"]) -> frozenset[Permission]:
    """Convert many permission names, failing on the first unknown one."""
    return frozenset(parse_permission(name) for name in names)


# ============================================================================
# Default roles created with every organization
# ============================================================================

DEFAULT_ROLE_CONFIGS: tuple[dict, ...] = (
    {
        "name": "Admin",
        "description": "Administrative privileges with most permissions",
        "rank": 80,
        "permissions": frozenset({
            Permission.VIEW_ORGANIZATION,
            Permission.MANAGE_ORGANIZATION,
            Permission.UPDATE_ORGANIZATION,
            Permission.MANAGE_MEMBERS,
            Permission.INVITE_MEMBERS,
            Permission.REMOVE_MEMBERS,
            Permission.VIEW_MEMBERS,
            Permission.MANAGE_ROLES,
            Permission.CREATE_ROLES,
            Permission.UPDATE_ROLES,
            Permission.DELETE_ROLES,
            Permission.ASSIGN_ROLES,
            Permission.MANAGE_EVENTS,
            Permission.CREATE_EVENTS,
            Permission.UPDATE_EVENTS,
            Permission.DELETE_EVENTS,
            Permission.MANAGE_COMMENTS,
            Permission.MODERATE_COMMENTS,
            Permission.DELETE_COMMENTS,
            Permission.MANAGE_INTEGRATIONS,
            Permission.UPDATE_RSI_INTEGRATION,
            Permission.UPDATE_DISCORD_INTEGRATION,
            Permission.VIEW_ANALYTICS,
            Permission.VIEW_REPORTS,
        }),
    },
    {
        "name": "Member",
        "description": "Basic member with limited permissions",
        "rank": 10,
        "permissions": frozenset({
            Permission.VIEW_ORGANIZATION,
            Permission.VIEW_MEMBERS,
            Permission.CREATE_EVENTS,
            Permission.UPDATE_EVENTS,
        }),
    },
)
