"""
Role visibility tests.

Staff users see the sales and inventory views only, their own sales and
payments, no stock batches, no purchase orders and no financial totals.
Deleting partners, orders and sales is reserved to managers.
"""

import pytest

from stockpile.models import ROLE_MANAGER, ROLE_STAFF
from stockpile.services import visibility_service


def _login(client, email, password="12345678"):
    response = client.post("/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.get_data(as_text=True)
    return response.json, {"Authorization": f"Bearer {response.json['token']}"}


@pytest.fixture
def seeded_staff(client, seeded):
    return _login(client, "staff@example.com")


@pytest.fixture
def seeded_manager(client, seeded):
    return _login(client, "manager@example.com")


# =============================================================================
# VIEW RESOLUTION
# =============================================================================

class TestViews:

    def test_manager_views(self):
        assert visibility_service.visible_views(ROLE_MANAGER) == [
            "dashboard", "inventory", "partners", "procurement", "sales", "finance", "activity", "admin",
        ]

    def test_staff_views(self):
        assert visibility_service.visible_views(ROLE_STAFF) == ["sales", "inventory"]

    @pytest.mark.parametrize("role,requested,expected", [
        (ROLE_MANAGER, "finance", "finance"),
        (ROLE_MANAGER, "bogus", "dashboard"),
        (ROLE_MANAGER, None, "dashboard"),
        (ROLE_STAFF, "inventory", "inventory"),
        (ROLE_STAFF, "finance", "sales"),
        (ROLE_STAFF, "dashboard", "sales"),
    ])
    def test_resolve_view(self, role, requested, expected):
        assert visibility_service.resolve_view(role, requested) == expected

    def test_staff_capabilities(self):
        caps = visibility_service.capabilities(ROLE_STAFF)
        assert not any(caps.values())

    def test_login_returns_views(self, client, seeded_staff):
        profile, _ = seeded_staff
        assert profile["views"] == ["sales", "inventory"]
        assert profile["defaultView"] == "sales"
        assert profile["capabilities"]["showStockBatches"] is False


# =============================================================================
# DATA PROJECTION
# =============================================================================

class TestStaffProjection:

    def test_dashboard(self, client, seeded_staff):
        profile, headers = seeded_staff

        data = client.get("/dashboard", headers=headers).json

        assert [s["id"] for s in data["sales"]] == ["s3"]
        assert data["sales"][0]["managerId"] == profile["user"]["id"]
        assert data["pos"] == []
        assert data["batches"] == []
        assert data["payments"] == []
        assert len(data["products"]) == 4
        assert data["metrics"]["totalSalesRevenue"] is None
        assert data["metrics"]["totalStockCount"] == 0

    def test_inventory_hides_batches_but_not_stock(self, client, seeded_staff):
        _, headers = seeded_staff

        data = client.get("/inventory", headers=headers).json

        assert data["batches"] == []
        assert data["stock"] == {"p1": 35, "p2": 100, "p3": 5}

    def test_sales_list_and_lookup(self, client, seeded_staff):
        _, headers = seeded_staff

        assert [s["id"] for s in client.get("/sales", headers=headers).json] == ["s3"]
        assert client.get("/sales/s3", headers=headers).status_code == 200
        assert client.get("/sales/s1", headers=headers).status_code == 404
        assert client.get("/sales/s1/invoice", headers=headers).status_code == 404

    def test_no_purchase_orders(self, client, seeded_staff):
        _, headers = seeded_staff

        assert client.get("/procurement", headers=headers).json == []
        assert client.get("/procurement/po1", headers=headers).status_code == 404

    def test_finance(self, client, seeded_staff):
        _, headers = seeded_staff

        assert client.get("/finance", headers=headers).json == []
        summary = client.get("/finance/summary", headers=headers).json
        assert summary == {"totalInflow": None, "totalOutflow": None, "net": None, "count": 0}

    def test_new_sale_is_attributed_to_staff(self, client, seeded_staff):
        profile, headers = seeded_staff

        response = client.post("/sales", json={
            "customerId": "cust1",
            "items": [{"productId": "p2", "quantity": 2, "unitPrice": 25}],
        }, headers=headers)

        assert response.status_code == 201
        assert response.json["managerId"] == profile["user"]["id"]
        assert len(client.get("/sales", headers=headers).json) == 2


# =============================================================================
# WRITE RESTRICTIONS
# =============================================================================

class TestStaffWrites:

    def test_cannot_replace_foreign_sale(self, client, seeded_staff, seeded_manager):
        _, staff_headers = seeded_staff
        _, manager_headers = seeded_manager

        response = client.put("/sales/s1", json={
            "customerId": "cust1",
            "items": [{"productId": "p2", "quantity": 1, "unitPrice": 1}],
        }, headers=staff_headers)

        assert response.status_code == 404
        assert response.json["code"] == "NOT_FOUND"
        stored = client.get("/sales/s1", headers=manager_headers).json
        assert stored["totalAmount"] == 2400
        assert stored["version"] == 1

    def test_cannot_overwrite_foreign_sale_through_post(self, client, seeded_staff, seeded_manager):
        _, staff_headers = seeded_staff
        _, manager_headers = seeded_manager

        response = client.post("/sales", json={"id": "s2", "customerId": "cust2"}, headers=staff_headers)

        assert response.status_code == 404
        assert client.get("/sales/s2", headers=manager_headers).json["totalAmount"] == 6000

    def test_can_replace_own_sale(self, client, seeded_staff):
        profile, headers = seeded_staff

        response = client.put("/sales/s3", json={
            "customerId": "cust3",
            "items": [{"productId": "p2", "quantity": 2, "unitPrice": 25}],
        }, headers=headers)

        assert response.status_code == 200
        assert response.json["totalAmount"] == 50
        assert response.json["managerId"] == profile["user"]["id"]

    def test_cannot_replace_foreign_payment(self, client, seeded_staff):
        _, headers = seeded_staff

        response = client.put("/finance/pay2", json={
            "referenceId": "s1",
            "referenceType": "sale",
            "amount": 1,
        }, headers=headers)

        assert response.status_code == 404

    def test_cannot_complete_purchase_order(self, client, seeded_staff, seeded_manager):
        _, staff_headers = seeded_staff
        _, manager_headers = seeded_manager

        response = client.put("/procurement/po2", json={
            "providerId": "pr2",
            "status": "completed",
            "items": [{"productId": "p3", "quantity": 10, "unitPrice": 100}],
        }, headers=staff_headers)

        assert response.status_code == 403
        assert response.json["code"] == "FORBIDDEN"
        assert client.get("/procurement/po2", headers=manager_headers).json["status"] == "pending"
        assert len(client.get("/dashboard", headers=manager_headers).json["batches"]) == 4

    def test_cannot_create_purchase_order(self, client, seeded_staff, seeded_manager):
        _, staff_headers = seeded_staff
        _, manager_headers = seeded_manager

        response = client.post("/procurement", json={"providerId": "pr1"}, headers=staff_headers)

        assert response.status_code == 403
        assert len(client.get("/procurement", headers=manager_headers).json) == 2

    def test_can_write(self, manager, staff):
        assert visibility_service.can_write(manager, "po") is True
        assert visibility_service.can_write(staff, "po") is False
        assert visibility_service.can_write(staff, "sale") is True
        assert visibility_service.can_write(staff, "batch") is True


class TestManagerProjection:

    def test_dashboard(self, client, seeded_manager):
        _, headers = seeded_manager

        data = client.get("/dashboard", headers=headers).json

        assert len(data["sales"]) == 3
        assert len(data["pos"]) == 2
        assert len(data["batches"]) == 4
        assert len(data["payments"]) == 3
        assert {m["email"] for m in data["managers"]} == {"manager@example.com", "staff@example.com"}

    def test_finance_summary(self, client, seeded_manager):
        _, headers = seeded_manager

        summary = client.get("/finance/summary", headers=headers).json

        assert summary == {"totalInflow": 5400, "totalOutflow": 19000, "net": -13600, "count": 3}


# =============================================================================
# DELETE RESTRICTIONS
# =============================================================================

class TestDeleteRestrictions:

    @pytest.mark.parametrize("path", [
        "/partners/provider/pr1",
        "/partners/customer/cust1",
        "/procurement/po1",
        "/sales/s3",
    ])
    def test_staff_cannot_delete(self, client, seeded_staff, path):
        _, headers = seeded_staff

        response = client.delete(path, headers=headers)

        assert response.status_code == 403
        assert response.json["code"] == "FORBIDDEN"

    def test_staff_can_delete_catalog_records(self, client, seeded_staff):
        _, headers = seeded_staff

        response = client.delete("/inventory/product/p4", headers=headers)

        assert response.status_code == 200
        assert response.json["deleted"] is True

    def test_manager_can_delete_partner(self, client, seeded_manager):
        _, headers = seeded_manager

        response = client.delete("/partners/provider/pr3", headers=headers)

        assert response.status_code == 200
        assert response.json == {"success": True, "deleted": True}

    def test_staff_blocked_from_admin(self, client, seeded_staff):
        _, headers = seeded_staff

        response = client.get("/admin", headers=headers)

        assert response.status_code == 403
        assert response.json["code"] == "MANAGER_REQUIRED"
