"""
Tests for analytics and audit log routes.
"""
import pytest

from tests.helpers import auth_headers


class TestAnalytics:
    """Test organization analytics, gated by view_analytics."""

    async def test_owner_views_analytics(self, client, community):
        await client.post("/organizations/ORG1/events", json={"title": "Briefing"}, headers=auth_headers(community["alice"]))

        response = await client.get("/organizations/ORG1/analytics", headers=auth_headers(community["alice"]))
        assert response.status_code == 200
        body = response.json()
        assert body["member_count"] == 3
        assert body["members_without_role"] == 2
        assert body["role_distribution"] == {"Moderator": 1}
        assert body["role_count"] == 3
        assert body["event_count"] == 1

    @pytest.mark.parametrize("who", ["bob", "carol", "dave"])
    async def test_others_denied(self, client, community, who):
        response = await client.get("/organizations/ORG1/analytics", headers=auth_headers(community[who]))
        assert response.status_code == 403

    async def test_role_with_view_analytics_allowed(self, client, community):
        await client.put(
            f"/organizations/ORG1/roles/{community['moderator'].id}",
            json={"permissions": ["view_analytics"]},
            headers=auth_headers(community["alice"]),
        )
        response = await client.get("/organizations/ORG1/analytics", headers=auth_headers(community["bob"]))
        assert response.status_code == 200


class TestAuditLogs:
    """Test audit log listing, gated by view_reports."""

    async def test_owner_reads_audit_log(self, client, community):
        await client.post(
            "/organizations/ORG1/members", json={"user_id": community["dave"].id}, headers=auth_headers(community["alice"])
        )
        response = await client.get("/organizations/ORG1/audit-logs", headers=auth_headers(community["alice"]))
        assert response.status_code == 200
        actions = [entry["action"] for entry in response.json()]
        assert "add_member" in actions
        assert all(entry["organization_id"] == community["organization"].id for entry in response.json())

    async def test_member_denied(self, client, community):
        response = await client.get("/organizations/ORG1/audit-logs", headers=auth_headers(community["bob"]))
        assert response.status_code == 403
