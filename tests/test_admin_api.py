from datetime import datetime, timedelta, timezone

import pytest
from bson import ObjectId

from admin import get_order_repository
from database import get_orders_db
from main import app
from tests.conftest import make_order


class SpyRepository:
    def __init__(self):
        self.calls = []

    def update_batch(self, order_ids, fields):
        self.calls.append((order_ids, fields))
        raise AssertionError("store must not be touched")


class TestBulkUpdate:
    def test_updates_every_order(self, client, orders_db, admin_headers):
        ids = [make_order(orders_db), make_order(orders_db), make_order(orders_db)]
        untouched = make_order(orders_db)
        res = client.patch("/api/admin/orders/bulk-update", headers=admin_headers,
                           json={"orderIds": ids[:2], "status": "shipped"})
        assert res.status_code == 200
        assert res.json() == {"success": True, "message": "2 orders updated successfully"}
        for oid in ids[:2]:
            doc = orders_db["orders"].find_one({"_id": ObjectId(oid)})
            assert doc["status"] == "shipped"
            assert "updated_at" in doc
        assert orders_db["orders"].find_one({"_id": ObjectId(ids[2])})["status"] == "pending"
        assert orders_db["orders"].find_one({"_id": ObjectId(untouched)})["status"] == "pending"

    @pytest.mark.parametrize("body", [
        {"orderIds": [], "status": "shipped"},
        {"orderIds": "abc", "status": "shipped"},
        {"status": "shipped"},
        {"orderIds": ["64b7f0c2a1b2c3d4e5f60718"]},
        {"orderIds": ["64b7f0c2a1b2c3d4e5f60718"], "status": "   "},
        {"orderIds": [""], "status": "shipped"},
    ])
    def test_invalid_input_is_400_and_store_untouched(self, client, admin_headers, body):
        spy = SpyRepository()
        app.dependency_overrides[get_order_repository] = lambda: spy
        res = client.patch("/api/admin/orders/bulk-update", headers=admin_headers, json=body)
        assert res.status_code == 400
        assert res.json()["success"] is False
        assert spy.calls == []

    def test_empty_list_error_names_field(self, client, admin_headers):
        res = client.patch("/api/admin/orders/bulk-update", headers=admin_headers,
                           json={"orderIds": [], "status": "shipped"})
        assert res.json()["error"].startswith("orderIds")

    def test_unknown_id_rejects_whole_batch(self, client, orders_db, admin_headers):
        known = make_order(orders_db)
        unknown = str(ObjectId())
        res = client.patch("/api/admin/orders/bulk-update", headers=admin_headers,
                           json={"orderIds": [known, unknown], "status": "delivered"})
        assert res.status_code == 404
        assert unknown in res.json()["error"]
        assert orders_db["orders"].find_one({"_id": ObjectId(known)})["status"] == "pending"

    def test_malformed_id_is_400(self, client, orders_db, admin_headers):
        known = make_order(orders_db)
        res = client.patch("/api/admin/orders/bulk-update", headers=admin_headers,
                           json={"orderIds": [known, "not-an-id"], "status": "delivered"})
        assert res.status_code == 400
        assert orders_db["orders"].find_one({"_id": ObjectId(known)})["status"] == "pending"

    def test_requires_session(self, client, orders_db):
        oid = make_order(orders_db)
        res = client.patch("/api/admin/orders/bulk-update", json={"orderIds": [oid], "status": "shipped"})
        assert res.status_code == 401
        assert orders_db["orders"].find_one({"_id": ObjectId(oid)})["status"] == "pending"


class TestSingleUpdate:
    def test_partial_update(self, client, orders_db, admin_headers):
        oid = make_order(orders_db)
        res = client.patch(f"/api/admin/orders/{oid}", headers=admin_headers,
                           json={"trackingNumber": "TRK123", "paymentStatus": "paid", "status": ""})
        assert res.status_code == 200
        assert res.json()["success"] is True
        doc = orders_db["orders"].find_one({"_id": ObjectId(oid)})
        assert doc["tracking_number"] == "TRK123"
        assert doc["payment_status"] == "paid"
        assert doc["status"] == "pending"
        assert "updated_at" in doc

    def test_unknown_order_is_404(self, client, admin_headers):
        res = client.patch(f"/api/admin/orders/{ObjectId()}", headers=admin_headers, json={"status": "shipped"})
        assert res.status_code == 404

    def test_invalid_id_is_400(self, client, admin_headers):
        res = client.patch("/api/admin/orders/xyz", headers=admin_headers, json={"status": "shipped"})
        assert res.status_code == 400


class TestCustomersSummary:
    def test_groups_orders_by_customer(self, client, orders_db, admin_headers):
        make_order(orders_db, user_id="u1", total=100, created_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
        make_order(orders_db, user_id="u1", total=300, created_at=datetime(2026, 1, 5, tzinfo=timezone.utc))
        make_order(orders_db, user_id="u2", user_name="Ravi", user_email="ravi@example.com", total=50,
                   created_at=datetime(2026, 1, 3, tzinfo=timezone.utc))
        make_order(orders_db, user_id=None, user_email=None, total=999)
        make_order(orders_db, user_id="u2", user_name="Ravi", user_email="ravi@example.com",
                   total=None, pricing={"total": 25})

        res = client.get("/api/admin/customers-summary", headers=admin_headers)
        assert res.status_code == 200
        assert res.headers["cache-control"] == "no-store, max-age=0"
        body = res.json()
        customers = {c["id"]: c for c in body["customers"]}
        assert customers["u1"]["totalOrders"] == 2
        assert customers["u1"]["totalSpent"] == 400
        assert customers["u1"]["averageOrderValue"] == 200
        assert customers["u1"]["lastOrderDate"].startswith("2026-01-05T00:00:00")
        assert customers["u2"]["totalSpent"] == 75
        assert body["stats"] == {"total": 2, "totalRevenue": 475}

    def test_only_recent_window_is_aggregated(self, client, orders_db, admin_headers):
        for day in range(1, 29):
            for hour in range(8):
                make_order(orders_db, user_id=f"u{day}", total=1,
                           created_at=datetime(2026, 2, day, hour, tzinfo=timezone.utc))
        body = client.get("/api/admin/customers-summary", headers=admin_headers).json()
        assert sum(c["totalOrders"] for c in body["customers"]) == 200
        # oldest days fall out of the window
        assert "u1" not in {c["id"] for c in body["customers"]}

    def test_empty_store(self, client, admin_headers):
        body = client.get("/api/admin/customers-summary", headers=admin_headers).json()
        assert body == {"success": True, "customers": [], "stats": {"total": 0, "totalRevenue": 0}}


def test_list_orders_newest_first_with_stats(client, orders_db, admin_headers):
    make_order(orders_db, status="shipped", total=10, created_at=datetime(2026, 1, 1, tzinfo=timezone.utc))
    newest = make_order(orders_db, total=5, created_at=datetime(2026, 1, 9, tzinfo=timezone.utc))
    body = client.get("/api/admin/orders?limit=10", headers=admin_headers).json()
    assert body["orders"][0]["id"] == newest
    assert body["stats"]["total"] == 2
    assert body["stats"]["shipped"] == 1
    assert body["stats"]["pending"] == 1
    assert body["stats"]["revenue"] == 15


def test_missing_orders_store_is_500(client, admin_headers):
    app.dependency_overrides[get_orders_db] = lambda: None
    res = client.get("/api/admin/orders")
    assert res.status_code == 500
    assert res.json()["error"] == "Database not initialized"


class TestDashboardStats:
    def test_current_period_against_previous(self, client, orders_db, catalog_db, admin_headers):
        now = datetime.now(timezone.utc)
        make_order(orders_db, user_id="u1", total=300, created_at=now - timedelta(days=1))
        make_order(orders_db, user_id="u1", total=100, created_at=now - timedelta(days=2))
        make_order(orders_db, user_id="u2", total=None, pricing={"total": 200}, created_at=now - timedelta(days=3))
        make_order(orders_db, user_id="u3", total=300, created_at=now - timedelta(days=10))
        make_order(orders_db, user_id="u4", total=5000, created_at=now - timedelta(days=40))
        catalog_db["products"].insert_many([{"name": "Oak Table"}, {"name": "Teak Chair"}])

        res = client.get("/api/admin/stats", headers=admin_headers)
        assert res.status_code == 200
        body = res.json()
        assert body["range"] == "7d"
        stats = body["stats"]
        assert stats["totalRevenue"] == 600
        assert stats["totalOrders"] == 3
        assert stats["totalCustomers"] == 2
        assert stats["averageOrderValue"] == 200
        assert stats["revenueChange"] == 100
        assert stats["totalProducts"] == 2
        assert sum(d["orders"] for d in stats["revenueByDate"]) == 3

    def test_longer_range(self, client, orders_db, admin_headers):
        now = datetime.now(timezone.utc)
        make_order(orders_db, total=50, created_at=now - timedelta(days=20))
        stats = client.get("/api/admin/stats?range=30d", headers=admin_headers).json()["stats"]
        assert stats["totalOrders"] == 1
        assert stats["revenueChange"] == 100

    def test_unknown_range_is_400(self, client, admin_headers):
        assert client.get("/api/admin/stats?range=1y", headers=admin_headers).status_code == 400

    def test_requires_session(self, client):
        assert client.get("/api/admin/stats").status_code == 401
