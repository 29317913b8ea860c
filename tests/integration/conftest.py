import pytest
from fastapi.testclient import TestClient

from storefront.api.app import create_app

ADMIN = {"X-User-Id": "admin-001", "X-User-Role": "admin"}


@pytest.fixture()
def client():
    return TestClient(create_app(init_domain=False, setup_logging=False))


@pytest.fixture()
def product_ids(client):
    """Coffee Mug (100.00, 5 in stock) and Cotton Tee (250.00, 3 in stock)."""
    ids = []
    for name, sku, price, stock in (("Coffee Mug", "MUG-001", 100.0, 5), ("Cotton Tee", "TEE-001", 250.0, 3)):
        response = client.post(
            "/products",
            json={"name": name, "sku": sku, "base_price": price, "stock_quantity": stock},
            headers=ADMIN,
        )
        assert response.status_code == 201, response.json()
        ids.append(response.json()["data"]["product_id"])
    return ids
