"""
Tests for permission evaluation over resolved memberships.
"""
from types import SimpleNamespace

import pytest

from orgaccess.features.permissions.catalog import Permission, list_permissions
from orgaccess.features.permissions.evaluator import effective_permissions, evaluate, outranks
from orgaccess.features.permissions.resolver import Member, NotAMember, Owner


ORG_ID = "01HORG00000000000000000000"


def member(role_permissions=frozenset(), rank=None, role_id="role-1") -> Member:
    return Member(
        user_id="user-bob",
        organization_id=ORG_ID,
        membership_id="membership-1",
        role_id=role_id,
        role_name="Moderator" if role_id else None,
        role_rank=rank,
        role_permissions=frozenset(role_permissions),
    )


def roleless_member() -> Member:
    return Member(user_id="user-carol", organization_id=ORG_ID, membership_id="membership-2")


class TestEvaluate:
    """Test the four evaluation rules."""

    @pytest.mark.parametrize("permission", list(Permission))
    def test_owner_is_granted_everything(self, permission: Permission):
        assert evaluate(Owner(user_id="user-alice", organization_id=ORG_ID), permission) is True

    @pytest.mark.parametrize("permission", [Permission.VIEW_MEMBERS, Permission.VIEW_ORGANIZATION])
    def test_not_a_member_is_denied_everything(self, permission: Permission):
        """Outsiders are denied even with a generous no-role allow-list."""
        resolution = NotAMember(user_id="user-dave", organization_id=ORG_ID)
        assert evaluate(resolution, permission, no_role_permissions=list_permissions()) is False

    def test_member_with_role_granted_role_permission(self):
        resolution = member({Permission.DELETE_EVENTS})
        assert evaluate(resolution, Permission.DELETE_EVENTS) is True

    def test_member_with_role_denied_other_permission(self):
        resolution = member({Permission.DELETE_EVENTS})
        assert evaluate(resolution, Permission.MANAGE_MEMBERS) is False

    def test_member_with_empty_role_denied(self):
        """A role with no permissions grants nothing, even if the allow-list would."""
        resolution = member(frozenset())
        assert evaluate(resolution, Permission.VIEW_MEMBERS, no_role_permissions=frozenset({Permission.VIEW_MEMBERS})) is False

    def test_member_without_role_denied_by_default(self):
        assert evaluate(roleless_member(), Permission.VIEW_MEMBERS, no_role_permissions=frozenset()) is False

    def test_member_without_role_uses_allow_list(self):
        allow = frozenset({Permission.VIEW_ORGANIZATION})
        assert evaluate(roleless_member(), Permission.VIEW_ORGANIZATION, no_role_permissions=allow) is True
        assert evaluate(roleless_member(), Permission.VIEW_MEMBERS, no_role_permissions=allow) is False


class TestEffectivePermissions:
    """Test the full permission set of a resolution."""

    def test_owner_holds_catalog(self):
        assert effective_permissions(Owner(user_id="u", organization_id=ORG_ID)) == list_permissions()

    def test_member_holds_role_set(self):
        perms = {Permission.CREATE_EVENTS, Permission.VIEW_MEMBERS}
        assert effective_permissions(member(perms)) == frozenset(perms)

    def test_roleless_member_holds_allow_list(self):
        allow = frozenset({Permission.VIEW_ORGANIZATION})
        assert effective_permissions(roleless_member(), no_role_permissions=allow) == allow

    def test_not_a_member_holds_nothing(self):
        assert effective_permissions(NotAMember(user_id="u", organization_id=ORG_ID)) == frozenset()

    def test_effective_permissions_agree_with_evaluate(self):
        resolution = member({Permission.DELETE_EVENTS, Permission.VIEW_REPORTS})
        granted = {p for p in Permission if evaluate(resolution, p)}
        assert granted == effective_permissions(resolution)


class TestOutranks:
    """Test rank comparison used for member management."""

    def test_owner_outranks_any_role(self):
        assert outranks(Owner(user_id="u", organization_id=ORG_ID), SimpleNamespace(rank=99)) is True

    def test_higher_rank_outranks(self):
        assert outranks(member(rank=80), SimpleNamespace(rank=10)) is True

    def test_equal_rank_does_not_outrank(self):
        assert outranks(member(rank=50), SimpleNamespace(rank=50)) is False

    def test_role_outranks_missing_role(self):
        assert outranks(member(rank=0), None) is True

    def test_roleless_member_never_outranks(self):
        assert outranks(roleless_member(), None) is False

    def test_outsider_never_outranks(self):
        assert outranks(NotAMember(user_id="u", organization_id=ORG_ID), None) is False
