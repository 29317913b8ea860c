"""Integration tests for the online storefront endpoints via TestClient."""

import pytest

from storefront.services import payments

CUSTOMER = {"X-User-Id": "cust-001", "X-User-Role": "customer", "X-User-Email": "juan@example.com"}
STAFF = {"X-User-Id": "staff-001", "X-User-Role": "staff", "X-User-Name": "Ana Cruz"}
ADMIN = {"X-User-Id": "admin-001", "X-User-Role": "admin"}

ADDRESS = {
    "full_name": "Juan dela Cruz",
    "phone": "09171234567",
    "address_line1": "123 Rizal Street",
    "city": "Quezon City",
    "postal_code": "1100",
}


@pytest.fixture()
def address_id(client):
    response = client.post("/account/addresses", json=ADDRESS, headers=CUSTOMER)
    assert response.status_code == 201
    return response.json()["data"]["address_id"]


@pytest.fixture()
def placed_order(client, product_ids, address_id):
    mug, tee = product_ids
    client.post("/cart/items", json={"product_id": mug, "quantity": 2}, headers=CUSTOMER)
    client.post("/cart/items", json={"product_id": tee, "quantity": 1}, headers=CUSTOMER)
    response = client.post(
        "/checkout",
        json={"shipping_address_id": address_id, "payment_method": "gcash"},
        headers=CUSTOMER,
    )
    assert response.status_code == 201, response.json()
    return response.json()["data"]


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "domain": "storefront"}


class TestEnvelope:
    def test_success_shape(self, client):
        body = client.get("/cart", headers=CUSTOMER).json()

        assert body["success"] is True
        assert body["error"] is None
        assert body["code"] is None

    def test_anonymous_is_401(self, client):
        response = client.get("/cart")

        assert response.status_code == 401
        assert response.json()["code"] == "UNAUTHORIZED"

    def test_unknown_role_is_anonymous(self, client):
        assert client.get("/cart", headers={"X-User-Id": "u1", "X-User-Role": "wizard"}).status_code == 401

    def test_forbidden_is_403(self, client):
        response = client.post(
            "/products", json={"name": "Mug", "sku": "MUG-9", "base_price": 1.0}, headers=CUSTOMER
        )

        assert response.status_code == 403

    def test_not_found_is_404(self, client):
        assert client.get("/products/missing", headers=CUSTOMER).status_code == 404

    def test_conflict_is_409(self, client, product_ids):
        response = client.post(
            "/products", json={"name": "Mug again", "sku": "MUG-001", "base_price": 1.0}, headers=ADMIN
        )

        assert response.status_code == 409

    def test_bad_body_is_422(self, client):
        assert client.post("/cart/items", json={"quantity": 1}, headers=CUSTOMER).status_code == 422


class TestCheckoutFlow:
    def test_checkout(self, client, placed_order):
        assert placed_order["order_number"].startswith("ORD-")

        order = client.get(f"/orders/{placed_order['order_id']}", headers=CUSTOMER).json()["data"]
        assert (order["subtotal"], order["tax"], order["total"]) == (450.0, 54.0, 504.0)
        assert client.get("/cart", headers=CUSTOMER).json()["data"]["lines"] == []

    def test_insufficient_stock_is_400(self, client, product_ids, address_id):
        mug, _ = product_ids
        client.post("/cart/items", json={"product_id": mug, "quantity": 5}, headers=CUSTOMER)
        client.post(
            "/admin/inventory/adjustments",
            json={"product_id": mug, "adjustment": -3, "reason": "Damaged"},
            headers=STAFF,
        )

        response = client.post(
            "/checkout", json={"shipping_address_id": address_id, "payment_method": "gcash"}, headers=CUSTOMER
        )

        assert response.status_code == 400
        assert response.json()["error"] == 'Product "Coffee Mug" only has 2 items in stock'
        assert client.get("/orders/mine", headers=CUSTOMER).json()["data"] == []

    def test_cart_line_update_and_remove(self, client, product_ids):
        mug, _ = product_ids
        line_id = client.post("/cart/items", json={"product_id": mug}, headers=CUSTOMER).json()["data"]["line_id"]

        assert client.patch(f"/cart/items/{line_id}", json={"quantity": 3}, headers=CUSTOMER).status_code == 200
        assert client.delete(f"/cart/items/{line_id}", headers=CUSTOMER).status_code == 200
        assert client.delete(f"/cart/items/{line_id}", headers=CUSTOMER).status_code == 404

    def test_my_orders(self, client, placed_order):
        orders = client.get("/orders/mine", headers=CUSTOMER).json()["data"]

        assert [o["order_number"] for o in orders] == [placed_order["order_number"]]

    def test_customer_cancel(self, client, placed_order):
        response = client.post(
            f"/orders/{placed_order['order_id']}/cancel", json={"reason": "Found it cheaper"}, headers=CUSTOMER
        )

        assert response.status_code == 200
        assert response.json()["data"] == {"status": "cancelled"}


class TestAdministration:
    def test_fulfilment(self, client, placed_order):
        order_id = placed_order["order_id"]

        processing = client.patch(f"/admin/orders/{order_id}/status", json={"status": "processing"}, headers=STAFF)
        assert processing.is_success
        shipped = client.post(f"/admin/orders/{order_id}/tracking", json={"tracking_number": "LBC-1"}, headers=STAFF)

        assert shipped.json()["data"] == {"status": "shipped"}
        listed = client.get("/admin/orders", params={"status": "shipped"}, headers=STAFF).json()["data"]
        assert [o["id"] for o in listed] == [order_id]

    def test_invalid_transition_is_400(self, client, placed_order):
        response = client.patch(
            f"/admin/orders/{placed_order['order_id']}/status", json={"status": "delivered"}, headers=STAFF
        )

        assert response.status_code == 400

    def test_customer_cannot_administer(self, client, placed_order):
        assert client.get("/admin/orders", headers=CUSTOMER).status_code == 403

    def test_movements(self, client, product_ids, placed_order):
        mug, _ = product_ids

        movements = client.get(f"/admin/inventory/{mug}/movements", headers=STAFF).json()["data"]

        assert [m["reference_id"] for m in movements] == [placed_order["order_number"]]

    def test_payment_proof_and_verification(self, client, admin, placed_order):
        proof = client.post(
            "/payments/proofs",
            json={"order_id": placed_order["order_id"], "image_url": "https://cdn.example.com/p.jpg"},
            headers=CUSTOMER,
        ).json()["data"]
        payments.extract_payment_data(admin, proof["payment_proof_id"], "GC-55555", 504.0, "gcash")

        verified = client.post("/payments/verify", json={"reference_number": "GC-55555"}, headers=STAFF)
        again = client.post("/payments/verify", json={"reference_number": "GC-55555"}, headers=STAFF)

        assert verified.status_code == 200
        assert again.status_code == 409


class TestCatalogueEndpoints:
    def test_search(self, client, product_ids):
        response = client.get("/products", params={"q": "tee", "sort_by": "price-asc"})

        body = response.json()["data"]
        assert response.status_code == 200
        assert [p["name"] for p in body["products"]] == ["Cotton Tee"]
        assert body["meta"]["total"] == 1

    def test_by_slug(self, client, product_ids):
        mug, _ = product_ids

        assert client.get("/products/slug/coffee-mug").json()["data"]["id"] == mug
        assert client.get("/products/slug/teapot").status_code == 404

    def test_update_and_delete(self, client, product_ids):
        mug, _ = product_ids

        updated = client.patch(f"/products/{mug}", json={"base_price": 110.0}, headers=STAFF)
        forbidden = client.delete(f"/products/{mug}", headers=STAFF)
        deleted = client.delete(f"/products/{mug}", headers=ADMIN)

        assert updated.json()["data"]["base_price"] == 110.0
        assert forbidden.status_code == 403
        assert deleted.status_code == 200
        assert client.get(f"/products/{mug}").status_code == 404

    def test_variant_stock(self, client, product_ids):
        _, tee = product_ids
        variant = client.post(f"/products/{tee}/variants", json={"sku": "TEE-001-M"}, headers=ADMIN).json()["data"]

        response = client.post(
            f"/products/{tee}/variants/stock",
            json={"updates": [{"variant_id": variant["variant_id"], "quantity": 7, "operation": "add"}]},
            headers=STAFF,
        )

        assert response.json()["data"] == [{"variant_id": variant["variant_id"], "success": True, "new_quantity": 7}]


class TestReturnEndpoints:
    @pytest.fixture()
    def delivered_order(self, client, placed_order):
        order_id = placed_order["order_id"]
        client.patch(f"/admin/orders/{order_id}/payment-status", json={"payment_status": "paid"}, headers=STAFF)
        client.patch(f"/admin/orders/{order_id}/status", json={"status": "processing"}, headers=STAFF)
        client.post(f"/admin/orders/{order_id}/tracking", json={"tracking_number": "LBC-1"}, headers=STAFF)
        client.patch(f"/admin/orders/{order_id}/status", json={"status": "delivered"}, headers=STAFF)
        return client.get(f"/orders/{order_id}", headers=CUSTOMER).json()["data"]

    def test_request_approve_refund(self, client, product_ids, delivered_order):
        mug, _ = product_ids
        item = next(i for i in delivered_order["items"] if i["product_id"] == mug)

        requested = client.post(
            "/returns",
            json={
                "order_id": delivered_order["id"],
                "items": [{"order_item_id": item["id"], "quantity": 1, "reason": "Handle arrived chipped"}],
            },
            headers=CUSTOMER,
        )
        return_id = requested.json()["data"]["return_id"]
        pending = client.get("/returns/pending", headers=STAFF).json()["data"]
        approved = client.post(f"/returns/{return_id}/approve", json={}, headers=STAFF)
        refunded = client.post(f"/returns/{return_id}/refund", json={"refund_method": "cash"}, headers=ADMIN)

        assert requested.status_code == 201
        assert pending["meta"]["total"] == 1
        assert approved.status_code == 200
        assert refunded.json()["data"]["refund_amount"] == 100.0
        assert client.get(f"/products/{mug}").json()["data"]["stock_quantity"] == 4

    def test_short_reason_is_422(self, client, delivered_order):
        item = delivered_order["items"][0]
        line = {"order_item_id": item["id"], "quantity": 1, "reason": "Bad"}

        response = client.post("/returns", json={"order_id": delivered_order["id"], "items": [line]}, headers=CUSTOMER)

        assert response.status_code == 422

    def test_reject_needs_staff(self, client, delivered_order):
        response = client.post("/returns/anything/reject", json={"reason": "Item shows signs of use"}, headers=CUSTOMER)

        assert response.status_code == 403
