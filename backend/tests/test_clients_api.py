"""
Client and payment API tests (TestClient, in-memory database).
"""
import sys
from pathlib import Path

# Ensure backend root is on path
backend_root = Path(__file__).resolve().parent.parent
if str(backend_root) not in sys.path:
    sys.path.insert(0, str(backend_root))


def _create_client(client, **overrides):
    payload = {"name": "Meena Pillai", "email": "meena@pillai.in", "userId": "u1"}
    payload.update(overrides)
    response = client.post("/api/clients/create", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


def _create_payment(client, client_id, **overrides):
    payload = {"amount": 2500, "date": "2026-03-01", "method": "UPI", "userId": "u1"}
    payload.update(overrides)
    return client.post(f"/api/clients/{client_id}/payments", json=payload)


class TestClients:

    def test_create_and_list(self, client, memory_db):
        created = _create_client(client, organizationId="org1")
        _create_client(client, name="Other Firm Client", organizationId="org2")
        _create_client(client, name="Legacy Client")

        response = client.get("/api/clients/list", params={"userId": "u1", "organizationId": "org1"})

        assert response.status_code == 200
        names = [c["name"] for c in response.json()]
        assert names == ["Meena Pillai", "Legacy Client"]
        assert created["phone"] == ""

    def test_blank_email_allowed(self, client, memory_db):
        assert _create_client(client, email="")["email"] == ""

    def test_invalid_email_rejected(self, client, memory_db):
        response = client.post("/api/clients/create", json={"name": "Meena", "email": "meena@", "userId": "u1"})

        assert response.status_code == 400
        assert response.json()["details"]["fields"][0]["field"] == "email"

    def test_get_client_ownership(self, client, memory_db):
        client_id = _create_client(client)["id"]

        assert client.get(f"/api/clients/{client_id}", params={"userId": "u1"}).status_code == 200
        assert client.get(f"/api/clients/{client_id}", params={"userId": "u2"}).status_code == 403
        assert client.get("/api/clients/CLI-NOPE", params={"userId": "u1"}).status_code == 404

    def test_update_merges(self, client, memory_db):
        client_id = _create_client(client, phone="98450 00000")["id"]

        response = client.patch(f"/api/clients/{client_id}", json={"userId": "u1", "address": "MG Road"})

        assert response.status_code == 200
        body = response.json()
        assert body["address"] == "MG Road"
        assert body["phone"] == "98450 00000"

    def test_cross_user_update_forbidden(self, client, memory_db):
        client_id = _create_client(client)["id"]

        response = client.patch(f"/api/clients/{client_id}", json={"userId": "u2", "name": "Changed"})

        assert response.status_code == 403

    def test_migrate_clients(self, client, memory_db, seed_organization):
        seed_organization("org1")
        _create_client(client)

        response = client.post("/api/clients/migrate", json={"userId": "u1", "organizationId": "org1"})

        assert response.json() == {"message": "Successfully migrated 1 client(s)", "migrated": 1}


class TestPayments:

    def test_payments_listed_newest_first(self, client, memory_db):
        client_id = _create_client(client)["id"]
        _create_payment(client, client_id, date="2026-01-15")
        _create_payment(client, client_id, date="2026-04-01")
        _create_payment(client, client_id, date="2026-02-20")

        response = client.get(f"/api/clients/{client_id}/payments", params={"userId": "u1"})

        assert [p["date"] for p in response.json()] == ["2026-04-01", "2026-02-20", "2026-01-15"]

    def test_payment_inherits_client_organization(self, client, memory_db):
        client_id = _create_client(client, organizationId="org1")["id"]

        response = _create_payment(client, client_id)

        assert response.status_code == 201
        body = response.json()
        assert body["clientId"] == client_id
        assert body["organizationId"] == "org1"
        assert body["amount"] == 2500

    def test_payment_on_foreign_client_forbidden(self, client, memory_db):
        client_id = _create_client(client)["id"]

        assert _create_payment(client, client_id, userId="u2").status_code == 403

    def test_non_positive_amount_rejected(self, client, memory_db):
        client_id = _create_client(client)["id"]

        assert _create_payment(client, client_id, amount=-10).status_code == 400

    def test_update_and_delete_payment(self, client, memory_db):
        client_id = _create_client(client)["id"]
        payment_id = _create_payment(client, client_id).json()["id"]

        updated = client.patch(f"/api/clients/payments/{payment_id}", json={"userId": "u1", "amount": 3000})
        assert updated.status_code == 200
        assert updated.json()["amount"] == 3000
        assert updated.json()["method"] == "UPI"

        assert client.delete(f"/api/clients/payments/{payment_id}", params={"userId": "u2"}).status_code == 403
        deleted = client.delete(f"/api/clients/payments/{payment_id}", params={"userId": "u1"})
        assert deleted.json() == {"success": True}
        assert memory_db.payments.docs == []

    def test_delete_client_cascades_to_payments(self, client, memory_db):
        client_id = _create_client(client)["id"]
        _create_payment(client, client_id)
        _create_payment(client, client_id, date="2026-03-02")

        response = client.delete(f"/api/clients/{client_id}", params={"userId": "u1"})

        assert response.status_code == 200
        assert response.json() == {"success": True, "paymentsDeleted": 2}
        assert memory_db.payments.docs == []
        assert memory_db.clients.docs == []

    def test_failed_cascade_reports_aggregate_error(self, client, memory_db):
        client_id = _create_client(client)["id"]
        _create_payment(client, client_id)
        _create_payment(client, client_id, date="2026-03-02")

        async def broken_delete(query):
            raise RuntimeError("disk full")

        memory_db.payments.delete_one = broken_delete

        response = client.delete(f"/api/clients/{client_id}", params={"userId": "u1"})

        assert response.status_code == 500
        body = response.json()
        assert body["error"] == "Internal"
        assert body["details"] == {"failed": 2, "total": 2}
        assert len(memory_db.clients.docs) == 1
