"""HTTP tests for user administration endpoints."""

import pytest

from models import UserRole

pytestmark = pytest.mark.integration


async def _own_id(client) -> int:
    response = await client.get("/api/auth/current-user")
    return response.json()["user"]["id"]


class TestListing:
    async def test_admin_lists_everyone(self, login_as, create_account):
        await create_account("amani")
        admin = await login_as("boss", UserRole.ADMIN)

        response = await admin.get("/api/users")

        assert sorted(u["username"] for u in response.json()) == ["amani", "boss"]

    async def test_staff_list_members_only(self, login_as, create_account):
        await create_account("amani")
        await create_account("baraka")
        coach = await login_as("coach", UserRole.INSTRUCTOR)

        response = await coach.get("/api/users/members")

        assert sorted(u["username"] for u in response.json()) == ["amani", "baraka"]
        assert all(u["role"] == "MEMBER" for u in response.json())

    async def test_instructor_cannot_list_all(self, login_as):
        coach = await login_as("coach", UserRole.INSTRUCTOR)

        response = await coach.get("/api/users")

        assert response.status_code == 403

    async def test_member_cannot_list_members(self, login_as):
        member = await login_as("amani")

        response = await member.get("/api/users/members")

        assert response.status_code == 403

    async def test_counts(self, login_as, create_account):
        await create_account("amani")
        await create_account("baraka")
        await create_account("coach", UserRole.INSTRUCTOR)
        admin = await login_as("boss", UserRole.ADMIN)

        response = await admin.get("/api/users/count")

        assert response.json() == {
            "total": 4,
            "members": 2,
            "instructors": 1,
            "admins": 1,
            "active": 4,
        }


class TestStatus:
    async def test_suspend_member(self, login_as, create_account):
        member_id = await create_account("amani")
        admin = await login_as("boss", UserRole.ADMIN)

        response = await admin.put(
            f"/api/users/{member_id}/status", json={"status": "SUSPENDED"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "SUSPENDED"

    async def test_cannot_change_own_status(self, login_as):
        admin = await login_as("boss", UserRole.ADMIN)
        admin_id = await _own_id(admin)

        response = await admin.put(
            f"/api/users/{admin_id}/status", json={"status": "INACTIVE"}
        )

        assert response.status_code == 400

    async def test_unknown_user(self, login_as):
        admin = await login_as("boss", UserRole.ADMIN)

        response = await admin.put("/api/users/999/status", json={"status": "ACTIVE"})

        assert response.status_code == 404

    async def test_instructor_cannot_change_status(self, login_as, create_account):
        member_id = await create_account("amani")
        coach = await login_as("coach", UserRole.INSTRUCTOR)

        response = await coach.put(
            f"/api/users/{member_id}/status", json={"status": "SUSPENDED"}
        )

        assert response.status_code == 403
