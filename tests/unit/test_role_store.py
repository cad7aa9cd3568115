"""
Tests for the organization-scoped role store.
"""
import pytest
from sqlalchemy import select

from orgaccess.core.errors import RoleNameConflict, RoleNotFound, RoleProtected
from orgaccess.features.organizations.models import OrganizationMember
from orgaccess.features.permissions.catalog import Permission, UnknownPermissionError
from orgaccess.features.permissions.models import AuditLog, Role, RolePermission
from orgaccess.features.permissions.resolver import Member, resolve_membership
from orgaccess.features.permissions.roles import (
    create_role,
    delete_role,
    get_role,
    list_roles,
    update_role,
    verify_stored_permissions,
)


class TestCreateRole:
    """Test role creation."""

    async def test_create_role(self, db, community):
        org = community["organization"]
        role = await create_role(
            db, org.id, "Event Lead", {Permission.CREATE_EVENTS, "update_events"},
            description="Runs events", rank=30, actor_id=community["alice"].id
        )
        assert role.name == "Event Lead"
        assert role.organization_id == org.id
        assert role.rank == 30
        assert role.is_system_role is False
        assert role.permissions == frozenset({Permission.CREATE_EVENTS, Permission.UPDATE_EVENTS})

    async def test_name_conflict_is_case_insensitive(self, db, community):
        with pytest.raises(RoleNameConflict):
            await create_role(db, community["organization"].id, "moderator", set())

    async def test_same_name_in_other_org_allowed(self, db, community, make_organization):
        other = await make_organization(community["dave"], "ORG2")
        role = await create_role(db, other.id, "Moderator", set())
        assert role.organization_id == other.id

    async def test_unknown_permission_rejected(self, db, community):
        with pytest.raises(UnknownPermissionError):
            await create_role(db, community["organization"].id, "Pilot", {"fly_spaceship"})

    async def test_create_writes_audit_entry(self, db, community):
        org = community["organization"]
        role = await create_role(db, org.id, "Scribe", set(), actor_id=community["alice"].id)
        result = await db.execute(select(AuditLog).where(AuditLog.resource_id == role.id))
        entry = result.scalar_one()
        assert entry.action == "create"
        assert entry.resource_type == "role"
        assert entry.user_id == community["alice"].id


class TestReadRoles:
    """Test role lookup and listing."""

    async def test_list_roles_in_creation_order(self, db, community):
        roles = await list_roles(db, community["organization"].id)
        assert [r.name for r in roles] == ["Admin", "Member", "Moderator"]

    async def test_get_role_from_other_org_not_found(self, db, community, make_organization):
        other = await make_organization(community["dave"], "ORG2")
        with pytest.raises(RoleNotFound):
            await get_role(db, other.id, community["moderator"].id)


class TestUpdateRole:
    """Test partial role updates."""

    async def test_update_fields(self, db, community):
        org = community["organization"]
        role = await update_role(
            db, org.id, community["moderator"].id,
            {"name": "Mod", "rank": 60, "permissions": {Permission.MODERATE_COMMENTS}}
        )
        assert role.name == "Mod"
        assert role.rank == 60
        assert role.permissions == frozenset({Permission.MODERATE_COMMENTS})

    async def test_permissions_replaced_not_merged(self, db, community):
        org = community["organization"]
        await update_role(db, org.id, community["moderator"].id, {"permissions": {Permission.VIEW_REPORTS}})
        result = await db.execute(
            select(RolePermission.permission).where(RolePermission.role_id == community["moderator"].id)
        )
        assert set(result.scalars().all()) == {Permission.VIEW_REPORTS.value}

    async def test_empty_patch_keeps_role(self, db, community):
        role = await update_role(db, community["organization"].id, community["moderator"].id, {})
        assert role.name == "Moderator"
        assert role.permissions == frozenset({Permission.DELETE_EVENTS})

    async def test_rename_to_existing_name_conflicts(self, db, community):
        with pytest.raises(RoleNameConflict):
            await update_role(db, community["organization"].id, community["moderator"].id, {"name": "ADMIN"})

    async def test_rename_changing_only_case(self, db, community):
        role = await update_role(db, community["organization"].id, community["moderator"].id, {"name": "MODERATOR"})
        assert role.name == "MODERATOR"

    async def test_update_through_other_org_not_found(self, db, community, make_organization):
        other = await make_organization(community["dave"], "ORG2")
        with pytest.raises(RoleNotFound):
            await update_role(db, other.id, community["moderator"].id, {"rank": 1})

    async def test_update_visible_to_resolver(self, db, community):
        org = community["organization"]
        await update_role(db, org.id, community["moderator"].id, {"permissions": {Permission.VIEW_REPORTS}})
        resolution = await resolve_membership(db, community["bob"].id, org.id)
        assert resolution.role_permissions == frozenset({Permission.VIEW_REPORTS})


class TestDeleteRole:
    """Test role deletion."""

    async def test_delete_clears_memberships(self, db, community):
        org = community["organization"]
        await delete_role(db, org.id, community["moderator"].id, actor_id=community["alice"].id)

        with pytest.raises(RoleNotFound):
            await get_role(db, org.id, community["moderator"].id)

        membership = (await db.execute(
            select(OrganizationMember).where(OrganizationMember.user_id == community["bob"].id)
        )).scalar_one()
        assert membership.role_id is None

        resolution = await resolve_membership(db, community["bob"].id, org.id)
        assert isinstance(resolution, Member)
        assert resolution.has_role is False

    async def test_delete_removes_permission_rows(self, db, community):
        await delete_role(db, community["organization"].id, community["moderator"].id)
        result = await db.execute(
            select(RolePermission).where(RolePermission.role_id == community["moderator"].id)
        )
        assert result.first() is None

    async def test_delete_audit_counts_cleared_members(self, db, community):
        await delete_role(db, community["organization"].id, community["moderator"].id)
        entry = (await db.execute(
            select(AuditLog).where(AuditLog.action == "delete", AuditLog.resource_id == community["moderator"].id)
        )).scalar_one()
        assert entry.details["members_cleared"] == 1

    async def test_system_role_protected(self, db, community):
        org = community["organization"]
        admin = (await db.execute(
            select(Role).where(Role.organization_id == org.id, Role.name == "Admin")
        )).scalar_one()
        with pytest.raises(RoleProtected):
            await delete_role(db, org.id, admin.id)

    async def test_delete_missing_role(self, db, community):
        with pytest.raises(RoleNotFound):
            await delete_role(db, community["organization"].id, "01HNOSUCHROLE0000000000000")


class TestStoredPermissionValidation:
    """Test the startup check over stored role permissions."""

    async def test_catalog_permissions_pass(self, db, community):
        await verify_stored_permissions(db)

    async def test_unknown_stored_permission_fails(self, db, community):
        db.add(RolePermission(role_id=community["moderator"].id, permission="retired_permission"))
        await db.commit()

        with pytest.raises(UnknownPermissionError, match="retired_permission"):
            await verify_stored_permissions(db)

    async def test_unknown_stored_permission_grants_nothing(self, db, community):
        db.add(RolePermission(role_id=community["moderator"].id, permission="retired_permission"))
        await db.commit()

        resolution = await resolve_membership(db, community["bob"].id, community["organization"].id)
        assert resolution.role_permissions == frozenset({Permission.DELETE_EVENTS})
