"""Tests for admin user management."""

import pytest
from httpx import AsyncClient

from app.models.user import User, UserRole


@pytest.mark.api
@pytest.mark.asyncio
class TestUserManagement:
    """Admin-only user endpoints."""

    async def test_list_users_as_admin(
        self, client: AsyncClient, admin_headers: dict, ca_user: User, customer_user: User
    ):
        """Admins see every user, paginated."""
        response = await client.get("/api/users/", headers=admin_headers)

        assert response.status_code == 200
        page = response.json()["data"]
        assert page["total"] == 3
        assert page["page"] == 1
        assert page["totalPages"] == 1

    async def test_list_users_filtered_by_role(
        self, client: AsyncClient, admin_headers: dict, ca_user: User, customer_user: User
    ):
        """The role filter narrows the listing."""
        response = await client.get("/api/users/", params={"role": "ca"}, headers=admin_headers)

        items = response.json()["data"]["items"]
        assert [u["id"] for u in items] == [ca_user.id]

    async def test_list_users_search(
        self, client: AsyncClient, admin_headers: dict, customer_user: User
    ):
        """Search matches name or email."""
        response = await client.get(
            "/api/users/", params={"search": "customer@"}, headers=admin_headers
        )

        items = response.json()["data"]["items"]
        assert [u["email"] for u in items] == [customer_user.email]

    async def test_non_admin_forbidden(self, client: AsyncClient, customer_headers: dict):
        """Customers cannot manage users."""
        response = await client.get("/api/users/", headers=customer_headers)

        assert response.status_code == 403
        assert response.json()["code"] == "ACCESS_DENIED"

    async def test_create_ca(self, client: AsyncClient, admin_headers: dict):
        """Admins can create accounts of any role."""
        response = await client.post(
            "/api/users/",
            json={
                "email": "newca@example.com",
                "password": "CaPassword1",
                "fullName": "New CA",
                "role": "ca",
                "isVerified": True,
            },
            headers=admin_headers,
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["role"] == "ca"
        assert data["isVerified"] is True

    async def test_create_duplicate_email(
        self, client: AsyncClient, admin_headers: dict, customer_user: User
    ):
        """Duplicate email is a conflict."""
        response = await client.post(
            "/api/users/",
            json={"email": customer_user.email, "password": "Password123", "fullName": "Dup"},
            headers=admin_headers,
        )

        assert response.status_code == 409

    async def test_get_missing_user(self, client: AsyncClient, admin_headers: dict):
        """Unknown ids are 404."""
        response = await client.get("/api/users/does-not-exist", headers=admin_headers)

        assert response.status_code == 404
        assert response.json()["message"] == "User not found"

    async def test_update_user(self, client: AsyncClient, admin_headers: dict, customer_user: User):
        """Profile fields can be edited."""
        response = await client.patch(
            f"/api/users/{customer_user.id}",
            json={"fullName": "Renamed Customer"},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["fullName"] == "Renamed Customer"

    async def test_change_role(self, client: AsyncClient, admin_headers: dict, customer_user: User):
        """Admins can promote a customer."""
        response = await client.put(
            f"/api/users/{customer_user.id}/role",
            json={"role": UserRole.CA.value},
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["data"]["role"] == "ca"

    async def test_cannot_change_own_role(
        self, client: AsyncClient, admin_headers: dict, admin_user: User
    ):
        """Admins cannot demote themselves."""
        response = await client.put(
            f"/api/users/{admin_user.id}/role",
            json={"role": "customer"},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot change your own role"

    async def test_deactivate_and_activate(
        self,
        client: AsyncClient,
        admin_headers: dict,
        customer_user: User,
        customer_headers: dict,
    ):
        """Deactivation locks the user out until reactivated."""
        response = await client.post(
            f"/api/users/{customer_user.id}/deactivate", headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["isActive"] is False

        locked = await client.get("/api/auth/me", headers=customer_headers)
        assert locked.status_code == 401

        response = await client.post(
            f"/api/users/{customer_user.id}/activate", headers=admin_headers
        )
        assert response.json()["data"]["isActive"] is True

        unlocked = await client.get("/api/auth/me", headers=customer_headers)
        assert unlocked.status_code == 200

    async def test_cannot_deactivate_self(
        self, client: AsyncClient, admin_headers: dict, admin_user: User
    ):
        """Admins cannot deactivate their own account."""
        response = await client.post(
            f"/api/users/{admin_user.id}/deactivate", headers=admin_headers
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Cannot deactivate yourself"
