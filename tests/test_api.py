"""HTTP tests for the back-office routers over an in-memory store."""

import asyncio
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from backoffice.api.deps import get_account_store
from backoffice.config import get_settings
from backoffice.app import app
from backoffice.models import ReconciliationItem, ReconciliationReason

ALICE_ACC = "ACC-1700000000001-ALICE1"
BOB_ACC = "ACC-1700000000002-BOB002"


@pytest.fixture
def client(store):
    app.dependency_overrides[get_account_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def holders(store, make_holder):
    """Alice and Bob, seeded outside the app's event loop."""
    alice = asyncio.run(make_holder(store, "Alice Adams", "500.00", ALICE_ACC))
    bob = asyncio.run(make_holder(store, "Bob Brown", "100.00", BOB_ACC))
    return alice, bob


@pytest.fixture
def admin_headers(admin_token):
    return {"X-Admin-Token": admin_token}


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}


class TestCustomerTransfer:
    def test_success(self, client, store, holders):
        alice, bob = holders
        resp = client.post(
            "/api/customer/transfer",
            json={
                "userId": str(alice.user_id),
                "recipientAccountNumber": BOB_ACC,
                "amount": 50,
                "description": "dinner",
            },
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["message"] == "Transfer completed successfully"
        assert body["referenceNumber"].startswith("TXN-")
        assert body["amount"] == 50.0
        assert body["recipient"] == "Bob Brown"
        assert body["recipientAccount"] == BOB_ACC
        assert body["balances"] == {"sender": 450.0, "recipient": 150.0}

        legs = [t for t in store.transactions if t.reference_number == body["referenceNumber"]]
        assert len(legs) == 2

    def test_recipient_number_is_trimmed(self, client, holders):
        alice, _ = holders
        resp = client.post(
            "/api/customer/transfer",
            json={"userId": str(alice.user_id), "recipientAccountNumber": f"  {BOB_ACC} ", "amount": "10.00"},
        )
        assert resp.status_code == 200
        assert resp.json()["recipientAccount"] == BOB_ACC

    @pytest.mark.parametrize(
        "amount, status, message",
        [
            (0, 400, "Invalid transfer amount. Must be greater than 0."),
            (-5, 400, "Invalid transfer amount. Must be greater than 0."),
            ("abc", 400, "Invalid transfer amount. Must be greater than 0."),
            (0.5, 400, "Minimum transfer amount is $1.00"),
            (1000, 400, "Insufficient balance"),
            (1e30, 400, "Transfer amount cannot exceed $9,999,999,999,999.99"),
            ("1e30", 400, "Transfer amount cannot exceed $9,999,999,999,999.99"),
        ],
    )
    def test_rejected_amounts(self, client, store, holders, amount, status, message):
        alice, bob = holders
        resp = client.post(
            "/api/customer/transfer",
            json={"userId": str(alice.user_id), "recipientAccountNumber": BOB_ACC, "amount": amount},
        )
        assert resp.status_code == status
        assert resp.json() == {"error": message}
        assert store.accounts[alice.account_id].balance == alice.balance
        assert store.accounts[bob.account_id].balance == bob.balance
        assert store.transactions == []

    def test_unknown_recipient(self, client, holders):
        alice, _ = holders
        resp = client.post(
            "/api/customer/transfer",
            json={"userId": str(alice.user_id), "recipientAccountNumber": "ACC-0-NOPE00", "amount": 10},
        )
        assert resp.status_code == 404
        assert resp.json() == {"error": "Recipient account not found"}

    def test_unknown_sender(self, client, holders):
        resp = client.post(
            "/api/customer/transfer",
            json={"userId": str(uuid4()), "recipientAccountNumber": BOB_ACC, "amount": 10},
        )
        assert resp.status_code == 404
        assert resp.json() == {"error": "Sender account not found"}

    def test_same_account(self, client, holders):
        alice, _ = holders
        resp = client.post(
            "/api/customer/transfer",
            json={"userId": str(alice.user_id), "recipientAccountNumber": ALICE_ACC, "amount": 10},
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Cannot transfer money to the same account"}

    def test_limits_enforced_when_enabled(self, client, store, holders, monkeypatch):
        monkeypatch.setattr(get_settings(), "enforce_transfer_limits", True)
        alice, _ = holders
        payload = {"userId": str(alice.user_id), "recipientAccountNumber": BOB_ACC, "amount": 10}
        for _ in range(5):
            assert client.post("/api/customer/transfer", json=payload).status_code == 200

        resp = client.post("/api/customer/transfer", json=payload)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Too many transactions. Maximum 5 per minute."}
        assert str(store.accounts[alice.account_id].balance) == "450.00"

    def test_missing_fields_fail_validation(self, client, holders):
        resp = client.post("/api/customer/transfer", json={"amount": 10})
        assert resp.status_code == 422


class TestRecipientLookup:
    def test_found(self, client, holders):
        resp = client.get("/api/customer/transfer", params={"accountNumber": BOB_ACC})
        assert resp.status_code == 200
        assert resp.json() == {
            "found": True,
            "accountNumber": BOB_ACC,
            "accountType": "checking",
            "recipientName": "Bob Brown",
        }

    def test_not_found(self, client, holders):
        resp = client.get("/api/customer/transfer", params={"accountNumber": "ACC-0-NOPE00"})
        assert resp.status_code == 200
        assert resp.json() == {"found": False, "message": "Account not found"}

    def test_balance_is_not_exposed(self, client, holders):
        body = client.get("/api/customer/transfer", params={"accountNumber": BOB_ACC}).json()
        assert "balance" not in body


class TestAdminEndpoints:
    def test_requires_token(self, client, holders):
        payload = {"senderAccountNumber": ALICE_ACC, "recipientAccountNumber": BOB_ACC, "amount": 10}
        assert client.post("/api/admin/transfer", json=payload).status_code == 401
        assert (
            client.post("/api/admin/transfer", json=payload, headers={"X-Admin-Token": "wrong"}).status_code
            == 401
        )
        assert client.get("/api/admin/reconciliation").status_code == 401

    def test_token_prefix_is_rejected(self, client, admin_token):
        resp = client.get("/api/admin/reconciliation", headers={"X-Admin-Token": admin_token[:-1]})
        assert resp.status_code == 401

    def test_unset_token_locks_admin_routes(self, client, monkeypatch, admin_headers):
        monkeypatch.setattr(get_settings(), "admin_token", None)
        assert client.get("/api/admin/reconciliation", headers=admin_headers).status_code == 401
        assert client.get("/api/admin/reconciliation", headers={"X-Admin-Token": ""}).status_code == 401

    def test_admin_transfer(self, client, store, holders, admin_headers):
        alice, bob = holders
        resp = client.post(
            "/api/admin/transfer",
            json={"senderAccountNumber": ALICE_ACC, "recipientAccountNumber": BOB_ACC, "amount": 125.5},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["balances"] == {"sender": 374.5, "recipient": 225.5}
        assert str(store.accounts[alice.account_id].balance) == "374.50"

    def test_open_account_for_new_holder(self, client, store, admin_headers):
        resp = client.post(
            "/api/admin/accounts",
            json={"fullName": "Carol Chen", "email": "carol@example.com", "initialDeposit": 25},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        body = resp.json()
        assert body["account_number"].startswith("ACC-")
        assert body["balance"] == 25.0
        assert body["status"] == "active"

        txs = client.get(f"/api/accounts/{body['account_number']}/transactions").json()
        assert [t["description"] for t in txs] == ["Initial deposit"]
        assert txs[0]["entry_type"] == "credit"

    def test_open_account_unknown_holder(self, client, admin_headers):
        resp = client.post("/api/admin/accounts", json={"userId": str(uuid4())}, headers=admin_headers)
        assert resp.status_code == 404
        assert resp.json() == {"error": "Account holder not found"}

    def test_open_account_negative_deposit(self, client, admin_headers):
        resp = client.post(
            "/api/admin/accounts", json={"fullName": "Dan", "initialDeposit": -1}, headers=admin_headers
        )
        assert resp.status_code == 400

    def test_open_account_oversized_deposit(self, client, admin_headers):
        resp = client.post(
            "/api/admin/accounts", json={"fullName": "Eve", "initialDeposit": "1e30"}, headers=admin_headers
        )
        assert resp.status_code == 400
        assert resp.json() == {"error": "Initial deposit cannot exceed $9,999,999,999,999.99"}

    def test_reconciliation_queue(self, client, store, admin_headers):
        item = ReconciliationItem(
            item_id=uuid4(),
            reference_number="TXN-1-ABCDEFGHI",
            reason=ReconciliationReason.COMPENSATION_FAILED,
            details={"amount": "10.00"},
        )
        asyncio.run(store.record_reconciliation(item))

        resp = client.get("/api/admin/reconciliation", headers=admin_headers)
        assert resp.status_code == 200
        [row] = resp.json()
        assert row["reference_number"] == "TXN-1-ABCDEFGHI"
        assert row["reason"] == "compensation_failed"
        assert row["status"] == "open"

        resolved = client.get("/api/admin/reconciliation", params={"status": "resolved"}, headers=admin_headers)
        assert resolved.json() == []


class TestAccountEndpoints:
    def test_get_account(self, client, holders):
        resp = client.get(f"/api/accounts/{ALICE_ACC}")
        assert resp.status_code == 200
        assert resp.json()["balance"] == 500.0

    def test_unknown_account(self, client):
        resp = client.get("/api/accounts/ACC-0-NOPE00")
        assert resp.status_code == 404
        assert resp.json() == {"detail": "Account not found"}

    def test_transactions_newest_first(self, client, holders):
        alice, _ = holders
        for amount in (10, 20):
            client.post(
                "/api/customer/transfer",
                json={"userId": str(alice.user_id), "recipientAccountNumber": BOB_ACC, "amount": amount},
            )
        txs = client.get(f"/api/accounts/{BOB_ACC}/transactions", params={"limit": 1}).json()
        assert len(txs) == 1
        assert txs[0]["amount"] == 20.0
        assert txs[0]["description"] == "Transfer from Alice Adams"
        assert txs[0]["metadata"]["sender_account"] == ALICE_ACC


class TestInsightEndpoints:
    def test_anomalies(self, client):
        days = [{"date": f"2024-01-{i + 1:02d}", "count": c, "amount": 0} for i, c in enumerate([10] * 6 + [100])]
        resp = client.post("/api/insights/anomalies", json={"days": days})
        assert resp.status_code == 200
        [anomaly] = resp.json()
        assert anomaly["severity"] == "critical"

    def test_forecast_insufficient(self, client):
        resp = client.post("/api/insights/forecast", json={"months": []})
        assert resp.status_code == 200
        assert resp.json()["confidence"] == 0

    def test_activity(self, client):
        history = [{"date": "2024-01-01", "count": 5}, {"date": "2024-01-02", "count": 10}]
        resp = client.post("/api/insights/activity", json={"history": history})
        assert resp.status_code == 200
        assert resp.json()["metadata"]["trend"] == "increasing"

    def test_churn(self, client):
        resp = client.post(
            "/api/insights/churn",
            json={
                "customers": [{"customer_id": "c1", "name": "Quiet", "balance": 20000}],
                "asOf": "2024-03-01T00:00:00",
            },
        )
        assert resp.status_code == 200
        assert [i["title"] for i in resp.json()] == ["High-Value Customer Churn Risk"]

    def test_recommendations(self, client):
        resp = client.post(
            "/api/insights/recommendations",
            json={"transactions": [{"date": "2024-01-01T09:30:00"}], "customers": []},
        )
        assert resp.status_code == 200
        assert resp.json()[0]["metadata"]["peakHour"] == 9

    def test_fraud_score(self, client):
        resp = client.post(
            "/api/insights/fraud-score",
            json={
                "transaction": {
                    "transaction_id": "t1",
                    "type": "withdrawal",
                    "amount": 10000,
                    "balance_after": 500,
                    "date": "2024-03-01T04:00:00",
                },
                "customer": {"customer_id": "c1", "name": "Fresh", "balance": 10000, "created_at": "2024-02-28T00:00:00"},
                "asOf": "2024-03-01T12:00:00",
            },
        )
        assert resp.status_code == 200
        body = resp.json()
        assert body["is_fraud"] is True
        assert body["severity"] == "critical"
        assert body["alerts"][0]["type"] == "unusual_transaction"

    def test_suspicious_activity(self, client):
        txs = [{"date": "2024-02-28T10:00:00", "amount": 9500} for _ in range(3)]
        resp = client.post(
            "/api/insights/suspicious-activity",
            json={"customer": {"customer_id": "c1", "name": "Split"}, "transactions": txs, "asOf": "2024-03-01T00:00:00"},
        )
        assert resp.status_code == 200
        [alert] = resp.json()
        assert alert["metadata"]["pattern"] == "structuring"

    def test_risk_score(self, client):
        resp = client.post(
            "/api/insights/risk-score",
            json={
                "customer": {"customer_id": "c1", "name": "New", "kyc_status": "pending", "created_at": "2024-02-20T00:00:00"},
                "asOf": "2024-03-01T00:00:00",
            },
        )
        assert resp.status_code == 200
        assert resp.json() == {"customerId": "c1", "riskScore": 50}
