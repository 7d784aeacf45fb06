"""
Dashboard metrics and activity feed tests.

The seeded dataset yields 13 activity events: 3 sales, 2 purchase orders,
1 stock reception (po1), 4 batches and 3 payments.
"""

from datetime import datetime

import pytest

from stockpile.services import record_service, reporting_service
from stockpile.services.reporting_service import ReportError


SEEDED_EVENTS = 13


def _login(client, email):
    response = client.post("/auth/login", json={"email": email, "password": "12345678"})
    return {"Authorization": f"Bearer {response.json['token']}"}


@pytest.fixture
def seeded_manager(client, seeded):
    return _login(client, "manager@example.com")


# =============================================================================
# DASHBOARD
# =============================================================================

class TestDashboardMetrics:

    def test_seeded_metrics(self, client, seeded_manager):
        metrics = client.get("/dashboard", headers=seeded_manager).json["metrics"]

        assert metrics == {
            "totalStockCount": 140,
            "totalSalesRevenue": 8450,
            "lowStockItems": 1,
            "pendingOrders": 1,
        }

    def test_threshold_is_configurable(self):
        data = {"batches": [{"quantity": 3}, {"quantity": 12}, {}], "sales": [], "pos": []}

        metrics = reporting_service.dashboard_metrics(data, low_stock_threshold=20, show_financials=False)

        assert metrics["lowStockItems"] == 3
        assert metrics["totalStockCount"] == 15
        assert metrics["totalSalesRevenue"] is None


# =============================================================================
# ACTIVITY FEED
# =============================================================================

class TestActivityFeed:

    def test_all_events_newest_first(self, client, seeded_manager):
        feed = client.get("/activity", headers=seeded_manager).json

        assert feed["total"] == SEEDED_EVENTS
        assert feed["page"] == 1
        assert feed["pageSize"] == 20
        assert feed["totalPages"] == 1
        dates = [e["date"] for e in feed["items"]]
        assert dates == sorted(dates, reverse=True)
        assert feed["items"][0]["key"] == "sale-s3"
        assert feed["items"][0]["responsible"] == "Staff"

    def test_event_shape(self, client, seeded_manager):
        items = client.get("/activity?type=stockReceived", headers=seeded_manager).json["items"]

        assert items == [{
            "key": "po-received-po1",
            "date": "2024-01-20",
            "type": "stockReceived",
            "title": "Stock received",
            "description": "Order #PO1 received",
            "nav": "procurement",
            "managerId": items[0]["managerId"],
            "productsDetail": "-",
            "items": [],
            "responsible": "Manager",
        }]

    @pytest.mark.parametrize("event_type,count", [
        ("sale", 3),
        ("purchaseOrder", 2),
        ("batch", 4),
        ("paymentIn", 2),
        ("paymentOut", 1),
        ("saleUpdated", 0),
        ("all", SEEDED_EVENTS),
    ])
    def test_type_filter(self, client, seeded_manager, event_type, count):
        feed = client.get(f"/activity?type={event_type}", headers=seeded_manager).json
        assert feed["total"] == count

    def test_events_without_responsible(self, client, seeded_manager):
        feed = client.get("/activity?responsible=__none__", headers=seeded_manager).json

        assert feed["total"] == 4
        assert {e["type"] for e in feed["items"]} == {"batch"}
        assert all(e["responsible"] is None for e in feed["items"])

    def test_responsible_filter(self, client, seeded_manager, seeded):
        staff_id = next(
            u["id"] for u in client.get("/admin", headers=seeded_manager).json if u["role"] == "staff"
        )

        feed = client.get(f"/activity?responsible={staff_id}", headers=seeded_manager).json

        assert [e["key"] for e in feed["items"]] == ["sale-s3"]

    def test_text_search(self, client, seeded_manager):
        feed = client.get("/activity?q=ACME", headers=seeded_manager).json

        assert [e["key"] for e in feed["items"]] == ["sale-s1"]

    def test_date_range(self, client, seeded_manager, manager_headers):
        assert client.get("/activity?range=last7Days", headers=seeded_manager).json["total"] == 0

        client.put("/sales/s2", json={
            "customerId": "cust2", "initiationDate": "2024-02-12", "amountPaid": 6000,
        }, headers=manager_headers)

        feed = client.get("/activity?range=last7Days", headers=seeded_manager).json
        assert [e["key"] for e in feed["items"]] == ["sale-updated-s2"]
        assert feed["items"][0]["title"] == "Sale updated"

    def test_invalid_filters(self, client, seeded_manager):
        assert client.get("/activity?type=refund", headers=seeded_manager).status_code == 400
        assert client.get("/activity?range=forever", headers=seeded_manager).status_code == 400

    def test_staff_only_sees_own_events(self, client, seeded):
        headers = _login(client, "staff@example.com")

        feed = client.get("/activity", headers=headers).json

        assert [e["key"] for e in feed["items"]] == ["sale-s3"]


class TestPagination:

    def test_pages_and_clamping(self, client, seeded_manager, manager):
        for i in range(25):
            record_service.save_record(
                "batch", {"productId": "p2", "quantity": 1, "entryDate": "2023-01-01"}, record_id=f"extra{i:02d}",
            )

        second = client.get("/activity?page=2", headers=seeded_manager).json
        beyond = client.get("/activity?page=9", headers=seeded_manager).json

        assert second["total"] == SEEDED_EVENTS + 25
        assert second["totalPages"] == 2
        assert len(second["items"]) == SEEDED_EVENTS + 25 - 20
        assert beyond["page"] == 2
        assert beyond["items"] == second["items"]

    def test_page_zero_is_first_page(self, client, seeded_manager):
        assert client.get("/activity?page=0", headers=seeded_manager).json["page"] == 1


class TestRanges:

    def test_unknown_range(self):
        with pytest.raises(ReportError):
            reporting_service.range_start("lastDecade")

    def test_all_has_no_start(self):
        assert reporting_service.range_start("all") is None
        assert reporting_service.range_start(None) is None

    def test_months_back_clamps_day(self):
        start = reporting_service._months_back(datetime(2026, 5, 31, 12, 0), 3)
        assert start == datetime(2026, 2, 28, 12, 0)

    def test_months_back_crosses_year(self):
        start = reporting_service._months_back(datetime(2026, 1, 15), 12)
        assert start == datetime(2025, 1, 15)
