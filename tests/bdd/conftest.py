"""Shared BDD fixtures and step definitions for the storefront."""

import pytest
from protean.utils.globals import current_domain
from pytest_bdd import given, parsers, then

from storefront.catalogue.product import Product


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def products():
    """Product ids by name, filled in by Given steps."""
    return {}


@pytest.fixture()
def outcome():
    """Container for the ActionResult of the When step."""
    return {"result": None}


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a product "{name}" priced at {price:f} with {stock:d} in stock'))
def _(products, make_product, name, price, stock):
    products[name] = make_product(name=name, base_price=price, stock_quantity=stock)


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{name}" has {stock:d} in stock'))
def _(products, name, stock):
    assert current_domain.repository_for(Product).get(products[name]).stock_quantity == stock


@then(parsers.cfparse('the operation fails with "{code}"'))
def _(outcome, code):
    result = outcome["result"]
    assert result.success is False
    assert result.code.value == code


@then(parsers.cfparse("the error is '{message}'"))
def _(outcome, message):
    assert outcome["result"].error == message
