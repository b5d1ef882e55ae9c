from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from ..core.db import set_executor
from ..main import app


@pytest.fixture
def client(executor) -> TestClient:
    set_executor(executor)

    with TestClient(app) as test_client:
        yield test_client

    set_executor(None)


def _account(client: TestClient, initial: str = "5000.00", **overrides) -> dict:
    payload = {"user_id": "user-1", "name": "Checking", "type": "savings", "initial_balance": initial}
    payload.update(overrides)
    response = client.post("/accounts", json=payload)
    assert response.status_code == 201
    return response.json()


def _pouch(client: TestClient, name: str = "Groceries") -> dict:
    response = client.post("/pouches", json={"user_id": "user-1", "name": name})
    assert response.status_code == 201
    return response.json()


def test_health_reports_every_shard(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert set(body["shards"]) == {"users", "accounts", "transactions", "pouches", "transfers"}


def test_transaction_lifecycle(client: TestClient) -> None:
    account = _account(client)
    pouch = _pouch(client)

    created = client.post(
        "/transactions",
        json={
            "user_id": "user-1",
            "account_id": account["id"],
            "amount": "100.00",
            "type": "EXPENSE",
            "pouch_id": pouch["id"],
        },
    )
    assert created.status_code == 201
    txn_id = created.json()["id"]

    updated = client.patch(f"/transactions/{txn_id}", json={"amount": "150.00"})
    assert updated.status_code == 200
    assert Decimal(updated.json()["amount"]) == Decimal("150.00")
    assert Decimal(client.get(f"/pouches/{pouch['id']}").json()["balance"]) == Decimal("-150.00")

    listed = client.get("/transactions", params={"user_id": "user-1", "pouch_id": pouch["id"]})
    assert listed.json()["total"] == 1

    deleted = client.delete(f"/transactions/{txn_id}")
    assert deleted.status_code == 204
    assert client.get(f"/transactions/{txn_id}").status_code == 404
    balance = client.get(f"/accounts/{account['id']}").json()["current_balance"]
    assert Decimal(balance) == Decimal("5000.00")


def test_error_mapping(client: TestClient) -> None:
    account = _account(client)

    assert client.get("/accounts/missing").status_code == 404

    oversplit = client.post(
        "/transactions",
        json={
            "user_id": "user-1",
            "account_id": account["id"],
            "amount": "10.00",
            "type": "EXPENSE",
            "splits": [{"pouch_id": "p-1", "amount": "20.00"}],
        },
    )
    assert oversplit.status_code == 400

    not_positive = client.post(
        "/transactions",
        json={"user_id": "user-1", "account_id": account["id"], "amount": "0", "type": "EXPENSE"},
    )
    assert not_positive.status_code == 422

    assert client.get("/transactions", params={"user_id": "user-1", "limit": 501}).status_code == 422


def test_duplicate_share_is_a_conflict(client: TestClient) -> None:
    pouch = _pouch(client, "Trip")

    first = client.post(f"/pouches/{pouch['id']}/shares", json={"user_id": "user-2", "role": "editor"})
    second = client.post(f"/pouches/{pouch['id']}/shares", json={"user_id": "user-2", "role": "viewer"})

    assert first.status_code == 201
    assert second.status_code == 409


def test_transfer_and_cancel(client: TestClient) -> None:
    source = _account(client, "1000.00")
    dest = _account(client, "0.00", name="Savings")

    created = client.post(
        "/transfers",
        json={
            "user_id": "user-1",
            "from_account_id": source["id"],
            "to_account_id": dest["id"],
            "amount": "125.50",
        },
    )
    assert created.status_code == 201
    assert Decimal(client.get(f"/accounts/{dest['id']}").json()["current_balance"]) == Decimal("125.50")

    cancelled = client.post(f"/transfers/{created.json()['id']}/cancel")
    assert cancelled.json()["status"] == "cancelled"
    again = client.post(f"/transfers/{created.json()['id']}/cancel")
    assert again.status_code == 400


def test_goal_routes(client: TestClient) -> None:
    created = client.post(
        "/goals",
        json={
            "user_id": "user-1",
            "title": "Laptop",
            "target_amount": "1200.00",
            "target_date": "2099-01-01",
        },
    )
    assert created.status_code == 201
    goal_id = created.json()["id"]

    patched = client.patch(f"/goals/{goal_id}", json={"current_amount": "1200.00"})
    assert patched.json()["is_achieved"] is True
    assert Decimal(patched.json()["monthly_contribution"]) == Decimal("0")

    assert client.delete(f"/goals/{goal_id}").status_code == 204
    assert client.get(f"/goals/{goal_id}").status_code == 404


def test_admin_routes(client: TestClient) -> None:
    migrations = client.get("/admin/migrations").json()
    assert migrations["transactions"]["current_version"] == 3
    assert migrations["users"]["pending"] == []

    seeds = client.get("/admin/seeds").json()
    assert seeds["users"]["pending"] == [1]

    _account(client, "10.00")
    report = client.post("/admin/verify", params={"user_id": "user-1"}).json()
    assert report == {"discrepancies": [], "repaired": False}
