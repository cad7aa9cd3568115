"""
Tests for the permission catalog.
"""
import pytest

from orgaccess.features.permissions.catalog import (
    DEFAULT_ROLE_CONFIGS,
    Permission,
    UnknownPermissionError,
    is_valid_permission,
    list_permissions,
    parse_permission,
    parse_permissions,
)


class TestCatalog:
    """Test catalog membership checks."""

    def test_list_permissions_contains_every_member(self):
        """The catalog lists exactly the enum members."""
        assert list_permissions() == frozenset(Permission)

    def test_catalog_values_are_unique_lowercase(self):
        values = [p.value for p in Permission]
        assert len(values) == len(set(values))
        assert all(v == v.lower() for v in values)

    @pytest.mark.parametrize("name", ["view_members", "delete_events", "view_analytics", "view_reports"])
    def test_is_valid_permission_known(self, name: str):
        assert is_valid_permission(name) is True

    @pytest.mark.parametrize("name", ["", "VIEW_MEMBERS", "fly_spaceship", "view_members "])
    def test_is_valid_permission_unknown(self, name: str):
        """Names are matched exactly, including case."""
        assert is_valid_permission(name) is False


class TestParsePermission:
    """Test conversion of names to catalog members."""

    def test_parse_string(self):
        assert parse_permission("manage_roles") is Permission.MANAGE_ROLES

    def test_parse_member_passthrough(self):
        assert parse_permission(Permission.ASSIGN_ROLES) is Permission.ASSIGN_ROLES

    def test_parse_unknown_raises(self):
        with pytest.raises(UnknownPermissionError):
            parse_permission("fly_spaceship")

    def test_unknown_permission_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_permission("nope")

    def test_parse_permissions_deduplicates(self):
        parsed = parse_permissions(["view_members", Permission.VIEW_MEMBERS, "create_events"])
        assert parsed == frozenset({Permission.VIEW_MEMBERS, Permission.CREATE_EVENTS})

    def test_parse_permissions_fails_on_any_unknown(self):
        with pytest.raises(UnknownPermissionError):
            parse_permissions(["view_members", "bogus"])


class TestDefaultRoles:
    """Test the roles seeded into new organizations."""

    def test_default_roles_only_use_catalog_permissions(self):
        for config in DEFAULT_ROLE_CONFIGS:
            assert config["permissions"] <= list_permissions()

    def test_admin_outranks_member(self):
        ranks = {config["name"]: config["rank"] for config in DEFAULT_ROLE_CONFIGS}
        assert ranks["Admin"] > ranks["Member"]
