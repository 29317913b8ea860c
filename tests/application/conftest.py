"""Seed data shared by the service-level tests."""

import pytest

from storefront.services import cart as cart_service
from storefront.services import pos as pos_service


@pytest.fixture()
def mug_id(make_product):
    return make_product(name="Coffee Mug", base_price=100.0, stock_quantity=5, sku="MUG-001")


@pytest.fixture()
def tee_id(make_product):
    return make_product(name="Cotton Tee", base_price=250.0, stock_quantity=3, sku="TEE-001")


@pytest.fixture()
def filled_cart(customer, mug_id, tee_id):
    """Coffee Mug x2 and Cotton Tee x1 in the customer's cart."""
    assert cart_service.add_to_cart(customer, mug_id, quantity=2).success
    assert cart_service.add_to_cart(customer, tee_id, quantity=1).success
    return customer


@pytest.fixture()
def open_shift(staff):
    result = pos_service.clock_in(staff, register_id="REG-1", opening_cash=1000)
    assert result.success, result.error
    return result.data
