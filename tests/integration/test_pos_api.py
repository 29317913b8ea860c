"""Integration tests for the register endpoints via TestClient."""

import pytest

STAFF = {"X-User-Id": "staff-001", "X-User-Role": "staff", "X-User-Name": "Ana Cruz"}
OTHER_STAFF = {"X-User-Id": "staff-002", "X-User-Role": "staff"}


@pytest.fixture()
def shift(client):
    response = client.post("/pos/shifts", json={"register_id": "REG-1", "opening_cash": 1000}, headers=STAFF)
    assert response.status_code == 201, response.json()
    return response.json()["data"]


@pytest.fixture()
def sale(client, shift, product_ids):
    mug, tee = product_ids
    response = client.post(
        "/pos/sales",
        json={
            "items": [{"product_id": mug, "quantity": 2}, {"product_id": tee, "quantity": 1}],
            "payments": [{"method": "cash", "amount": 504.0}],
            "cash_received": 1000,
        },
        headers=STAFF,
    )
    assert response.status_code == 201, response.json()
    return response.json()["data"]


def test_sale_returns_receipt_and_change(sale):
    assert sale["change_given"] == 496.0
    assert sale["receipt"]["total"] == 504.0
    assert sale["receipt"]["served_by"] == "Ana Cruz"


def test_sale_without_shift_is_400(client, product_ids):
    response = client.post(
        "/pos/sales",
        json={
            "items": [{"product_id": product_ids[0], "quantity": 1}],
            "payments": [{"method": "card", "amount": 112}],
        },
        headers=OTHER_STAFF,
    )

    assert response.status_code == 400
    assert response.json()["error"] == "No active shift. Please clock in first."


def test_lookup_and_refund(client, sale, product_ids):
    mug, _ = product_ids
    receipt_number = sale["receipt"]["receipt_number"]

    found = client.get(f"/pos/transactions/{receipt_number}", headers=STAFF)
    refund = client.post(
        f"/pos/transactions/{sale['transaction_id']}/refund",
        json={"items": [{"product_id": mug, "quantity": 1, "condition": "damaged"}]},
        headers=STAFF,
    )
    after = client.get(f"/pos/transactions/{receipt_number}", headers=STAFF)

    assert found.status_code == 200
    assert refund.status_code == 200
    assert refund.json()["data"]["refund_amount"] == 100.0
    assert after.status_code == 409


def test_receipt_endpoint(client, sale):
    response = client.get(f"/pos/receipts/{sale['order_id']}", headers=STAFF)

    assert response.json()["data"]["receipt_number"] == sale["receipt"]["receipt_number"]


def test_clock_out(client, sale, shift):
    response = client.post(f"/pos/shifts/{shift['id']}/close", json={"closing_cash": 1504}, headers=STAFF)

    assert response.status_code == 200
    assert response.json()["data"]["cash_difference"] == 0.0
    assert client.get("/pos/shifts/active", headers=STAFF).json()["data"] is None
