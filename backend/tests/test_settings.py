"""Tests for admin settings endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.api
@pytest.mark.asyncio
class TestNotificationSettings:
    """Platform notification defaults."""

    async def test_defaults_created_on_first_read(self, client: AsyncClient, admin_headers: dict):
        """The first read returns the stock defaults."""
        response = await client.get("/api/settings/notifications", headers=admin_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["email"] is True
        assert data["sms"] is False
        assert data["push"] is True
        assert data["weeklyReports"] is True

    async def test_partial_update(self, client: AsyncClient, admin_headers: dict):
        """Only the fields sent are changed."""
        response = await client.put(
            "/api/settings/notifications", json={"sms": True}, headers=admin_headers
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["sms"] is True
        assert data["email"] is True

    async def test_admin_only(self, client: AsyncClient, ca_headers: dict):
        """Non-admins are forbidden."""
        response = await client.get("/api/settings/notifications", headers=ca_headers)

        assert response.status_code == 403


@pytest.mark.api
@pytest.mark.asyncio
class TestPricingPlans:
    """Pricing plan administration."""

    async def test_plan_lifecycle(self, client: AsyncClient, admin_headers: dict):
        """Create, update, toggle and delete a plan."""
        created = await client.post(
            "/api/settings/pricing-plans",
            json={"name": "Basic", "price": 999, "features": ["ITR-1 filing"]},
            headers=admin_headers,
        )
        assert created.status_code == 201
        plan_id = created.json()["data"]["id"]
        assert created.json()["data"]["status"] is True

        updated = await client.put(
            f"/api/settings/pricing-plans/{plan_id}",
            json={"price": 1299},
            headers=admin_headers,
        )
        assert updated.json()["data"]["price"] == 1299
        assert updated.json()["data"]["name"] == "Basic"

        toggled = await client.patch(
            f"/api/settings/pricing-plans/{plan_id}/status",
            json={"status": False},
            headers=admin_headers,
        )
        assert toggled.json()["data"]["status"] is False

        deleted = await client.delete(
            f"/api/settings/pricing-plans/{plan_id}", headers=admin_headers
        )
        assert deleted.status_code == 200

        listing = await client.get("/api/settings/pricing-plans", headers=admin_headers)
        assert listing.json()["data"] == []

    async def test_missing_plan(self, client: AsyncClient, admin_headers: dict):
        """Unknown plans are 404."""
        response = await client.put(
            "/api/settings/pricing-plans/missing", json={"price": 1}, headers=admin_headers
        )

        assert response.status_code == 404
        assert response.json()["message"] == "Pricing plan not found"


@pytest.mark.api
@pytest.mark.asyncio
class TestTaxSlabs:
    """Tax slab administration."""

    async def test_list_by_regime_ordered(self, client: AsyncClient, admin_headers: dict):
        """Slabs come back ordered by lower bound and filter by regime."""
        for body in (
            {"regime": "new", "minIncome": 700000, "maxIncome": 1000000, "taxRatePercent": 10},
            {"regime": "new", "minIncome": 300000, "maxIncome": 700000, "taxRatePercent": 5},
            {"regime": "old", "minIncome": 250000, "maxIncome": 500000, "taxRatePercent": 5},
        ):
            response = await client.post("/api/settings/tax-slabs", json=body, headers=admin_headers)
            assert response.status_code == 201

        response = await client.get(
            "/api/settings/tax-slabs", params={"regime": "new"}, headers=admin_headers
        )

        slabs = response.json()["data"]
        assert [s["minIncome"] for s in slabs] == [300000, 700000]

    async def test_max_must_exceed_min(self, client: AsyncClient, admin_headers: dict):
        """Inverted ranges are rejected."""
        response = await client.post(
            "/api/settings/tax-slabs",
            json={"regime": "old", "minIncome": 500000, "maxIncome": 250000, "taxRatePercent": 20},
            headers=admin_headers,
        )

        assert response.status_code == 400
        assert any("maxIncome must be greater than minIncome" in e for e in response.json()["errors"])

    async def test_update_checks_merged_range(self, client: AsyncClient, admin_headers: dict):
        """An update that inverts the stored range is rejected."""
        created = await client.post(
            "/api/settings/tax-slabs",
            json={"regime": "old", "minIncome": 500000, "maxIncome": 1000000, "taxRatePercent": 20},
            headers=admin_headers,
        )
        slab_id = created.json()["data"]["id"]

        response = await client.put(
            f"/api/settings/tax-slabs/{slab_id}",
            json={"maxIncome": 400000},
            headers=admin_headers,
        )

        assert response.status_code == 400


@pytest.mark.api
@pytest.mark.asyncio
class TestAdminRolesAndSaveAll:
    """Admin role emails and the combined save."""

    async def test_update_admin_roles(self, client: AsyncClient, admin_headers: dict):
        """Role emails are upserted with their fixed permissions."""
        body = {"superAdminEmail": "Boss@Example.com", "supportAdminEmail": "help@example.com"}
        await client.put("/api/settings/admin-roles", json=body, headers=admin_headers)
        response = await client.put("/api/settings/admin-roles", json=body, headers=admin_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["superAdminEmail"] == "boss@example.com"
        assert data["supportAdminEmail"] == "help@example.com"
        assert len(data["roles"]) == 2
        permissions = {r["roleName"]: r["permissions"] for r in data["roles"]}
        assert permissions["super_admin"] == ["all"]

    async def test_save_all(self, client: AsyncClient, admin_headers: dict):
        """Every section is applied in one request."""
        response = await client.post(
            "/api/settings/save-all",
            json={
                "notifications": {"weeklyReports": False},
                "pricingPlans": [
                    {"name": "Basic", "price": 999},
                    {"name": "Premium", "price": 2999, "features": ["CA review"]},
                ],
                "taxSlabs": [
                    {"regime": "new", "minIncome": 0, "maxIncome": 300000, "taxRatePercent": 0},
                ],
                "adminRoles": {
                    "superAdminEmail": "boss@example.com",
                    "supportAdminEmail": "help@example.com",
                },
            },
            headers=admin_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["notifications"] == "updated"
        assert data["pricingPlans"] == "2 plans updated"
        assert data["taxSlabs"] == "1 slabs updated"
        assert data["adminRoles"] == "updated"

        plans = await client.get("/api/settings/pricing-plans", headers=admin_headers)
        assert len(plans.json()["data"]) == 2
        notifications = await client.get("/api/settings/notifications", headers=admin_headers)
        assert notifications.json()["data"]["weeklyReports"] is False

    async def test_save_all_rolls_back_on_error(self, client: AsyncClient, admin_headers: dict):
        """A failing section leaves earlier sections unapplied."""
        response = await client.post(
            "/api/settings/save-all",
            json={
                "notifications": {"sms": True},
                "pricingPlans": [{"id": "missing", "name": "Ghost", "price": 1}],
            },
            headers=admin_headers,
        )

        assert response.status_code == 404

        notifications = await client.get("/api/settings/notifications", headers=admin_headers)
        assert notifications.json()["data"]["sms"] is False
