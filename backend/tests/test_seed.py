"""
Seeding and system endpoint tests.
"""

from stockpile.services import auth_service, kv_store, record_service, seed_service


class TestSeed:

    def test_seed_writes_sample_dataset(self, client, public_headers):
        response = client.post("/seed", headers=public_headers)

        assert response.status_code == 200
        assert response.json == {"success": True, "count": 26}
        assert len(record_service.list_records("product")) == 4
        assert len(record_service.list_records("batch")) == 4
        assert seed_service.is_seeded()

    def test_second_seed_is_a_no_op(self, client, public_headers, seeded, manager_headers):
        client.post("/inventory/category", json={"id": "c9", "name": "Mine"}, headers=manager_headers)

        response = client.post("/seed", headers=public_headers)

        assert response.json["message"] == "Already seeded"
        assert record_service.find_record("category", "c9") is not None
        assert kv_store.count_by_prefix("category:") == 4

    def test_force_resets_records(self, client, public_headers, seeded, manager_headers):
        client.post("/inventory/category", json={"id": "c9", "name": "Mine"}, headers=manager_headers)
        client.put("/inventory/product/p1", json={"name": "Renamed", "categoryId": "c1"}, headers=manager_headers)

        response = client.post("/seed?force=true", headers=public_headers)

        assert response.json["count"] == 26
        assert record_service.find_record("category", "c9") is None
        product = record_service.get_record("product", "p1")
        assert product["name"] == "Laptop Pro X"
        assert product["version"] == 1

    def test_demo_users_and_manager_ids(self, client, seeded):
        manager = auth_service.find_user_by_email("manager@example.com")
        staff = auth_service.find_user_by_email("staff@example.com")

        assert manager.role == "manager"
        assert staff.role == "staff"
        assert record_service.get_record("sale", "s1")["managerId"] == manager.id
        assert record_service.get_record("sale", "s3")["managerId"] == staff.id
        assert record_service.get_record("payment", "pay1")["managerId"] == manager.id

    def test_demo_login(self, client, seeded):
        response = client.post("/auth/login", json={"email": "manager@example.com", "password": "12345678"})
        assert response.status_code == 200

    def test_reseed_keeps_existing_accounts(self, client, public_headers, seeded):
        before = auth_service.find_user_by_email("staff@example.com").id

        client.post("/seed?force=true", headers=public_headers)

        assert auth_service.find_user_by_email("staff@example.com").id == before
        assert len(auth_service.list_users()) == 2

    def test_seeded_records_carry_their_date(self, seeded):
        assert record_service.get_record("sale", "s2")["updatedAt"] == "2024-02-12"

    def test_manager_session_can_seed(self, client, manager_headers):
        assert client.post("/seed", headers=manager_headers).json["count"] == 26

    def test_seed_requires_key(self, client):
        assert client.post("/seed").status_code == 401
        assert client.post("/seed", headers={"Authorization": "Bearer wrong"}).status_code == 401


class TestHealth:

    def test_health(self, client, public_headers, seeded):
        response = client.get("/health", headers=public_headers)

        assert response.status_code == 200
        assert response.json["status"] == "ok"
        assert response.json["database"]["details"]["seeded"] is True
        assert response.json["database"]["details"]["users"] == 2

    def test_health_requires_key(self, client):
        assert client.get("/health").status_code == 401
