import uuid

import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session

from ..core import db as core_db
from ..core.db import get_session, set_engine
from ..main import app

@pytest.fixture
def client(sqlite_engine) -> TestClient:
    original_engine = core_db.engine
    set_engine(sqlite_engine)

    def _get_session_override():
        with Session(sqlite_engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session_override

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
    set_engine(original_engine)


def _open_account(client: TestClient, owner_name: str, balance: int) -> str:
    response = client.post("/accounts", json={"owner_name": owner_name, "balance": balance})
    assert response.status_code == 201
    return response.json()["id"]

def _balance(client: TestClient, account_id: str) -> int:
    return client.get(f"/accounts/{account_id}").json()["balance"]


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"status": "ok"}


def test_create_and_read_transfer(client: TestClient) -> None:
    alice = _open_account(client, "Alice", 100)
    bob = _open_account(client, "Bob", 50)

    created = client.post(
        f"/accounts/{alice}/transfers",
        json={"receiver_id": bob, "amount": 30, "description": "rent", "type": "debit"},
    )
    assert created.status_code == 201
    transfer_id = created.json()["id"]

    read = client.get(f"/accounts/{alice}/transfers/{transfer_id}")
    assert read.status_code == 200
    body = read.json()
    assert body["sender_id"] == alice
    assert body["receiver_id"] == bob
    assert body["amount"] == 30
    assert body["description"] == "rent"
    assert body["type"] == "debit"

    assert _balance(client, alice) == 70
    assert _balance(client, bob) == 80


def test_insufficient_balance_leaves_balances(client: TestClient) -> None:
    alice = _open_account(client, "Alice", 70)
    bob = _open_account(client, "Bob", 80)

    response = client.post(
        f"/accounts/{alice}/transfers",
        json={"receiver_id": bob, "amount": 200, "type": "debit"},
    )
    assert response.status_code == 409
    assert _balance(client, alice) == 70
    assert _balance(client, bob) == 80


def test_update_then_delete_transfer(client: TestClient) -> None:
    alice = _open_account(client, "Alice", 100)
    bob = _open_account(client, "Bob", 50)
    transfer_id = client.post(
        f"/accounts/{alice}/transfers",
        json={"receiver_id": bob, "amount": 30, "type": "debit"},
    ).json()["id"]

    updated = client.put(f"/transfers/{transfer_id}", json={"receiver_id": bob, "amount": 50})
    assert updated.status_code == 200
    assert updated.json()["amount"] == 50
    assert _balance(client, alice) == 50
    assert _balance(client, bob) == 100

    deleted = client.delete(f"/transfers/{transfer_id}")
    assert deleted.status_code == 204
    assert _balance(client, alice) == 100
    assert _balance(client, bob) == 50

    again = client.delete(f"/transfers/{transfer_id}")
    assert again.status_code == 404


def test_update_moves_transfer_to_new_receiver(client: TestClient) -> None:
    alice = _open_account(client, "Alice", 100)
    bob = _open_account(client, "Bob", 0)
    carol = _open_account(client, "Carol", 0)
    transfer_id = client.post(
        f"/accounts/{alice}/transfers",
        json={"receiver_id": bob, "amount": 40, "type": "gift"},
    ).json()["id"]

    response = client.put(f"/transfers/{transfer_id}", json={"receiver_id": carol, "amount": 25})
    assert response.status_code == 200
    assert response.json()["receiver_id"] == carol
    assert [_balance(client, a) for a in (alice, bob, carol)] == [75, 0, 25]


def test_read_is_limited_to_sender(client: TestClient) -> None:
    alice = _open_account(client, "Alice", 100)
    bob = _open_account(client, "Bob", 0)
    carol = _open_account(client, "Carol", 0)
    transfer_id = client.post(
        f"/accounts/{alice}/transfers",
        json={"receiver_id": bob, "amount": 10, "type": "debit"},
    ).json()["id"]

    assert client.get(f"/accounts/{carol}/transfers/{transfer_id}").status_code == 404
    assert client.get(f"/accounts/{bob}/transfers/{transfer_id}").status_code == 404


def test_unknown_receiver_returns_404(client: TestClient) -> None:
    alice = _open_account(client, "Alice", 100)

    response = client.post(
        f"/accounts/{alice}/transfers",
        json={"receiver_id": str(uuid.uuid4()), "amount": 10, "type": "debit"},
    )
    assert response.status_code == 404
    assert _balance(client, alice) == 100


def test_non_positive_amount_rejected(client: TestClient) -> None:
    alice = _open_account(client, "Alice", 100)
    bob = _open_account(client, "Bob", 0)

    response = client.post(
        f"/accounts/{alice}/transfers",
        json={"receiver_id": bob, "amount": 0, "type": "debit"},
    )
    assert response.status_code == 422
    assert _balance(client, alice) == 100


def test_create_transfer_idempotency(client: TestClient) -> None:
    alice = _open_account(client, "Alice", 100)
    bob = _open_account(client, "Bob", 0)
    key = str(uuid.uuid4())
    payload = {"receiver_id": bob, "amount": 40, "type": "debit"}

    first = client.post(f"/accounts/{alice}/transfers", json=payload, headers={"Idempotency-Key": key})
    second = client.post(f"/accounts/{alice}/transfers", json=payload, headers={"Idempotency-Key": key})
    assert first.status_code == 201
    assert second.status_code == 201
    assert first.json() == second.json()
    assert _balance(client, alice) == 60

    mismatch = client.post(
        f"/accounts/{alice}/transfers",
        json={**payload, "amount": 41},
        headers={"Idempotency-Key": key},
    )
    assert mismatch.status_code == 409
    assert _balance(client, alice) == 60
