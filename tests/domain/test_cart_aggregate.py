import pytest
from protean.exceptions import ValidationError

from storefront.cart.cart import Cart
from storefront.cart.events import CartCleared
from storefront.shared.errors import InsufficientStock, NotFound


@pytest.fixture()
def cart():
    return Cart.create(customer_id="cust-001")


def test_new_cart_is_empty(cart):
    assert cart.is_empty


def test_adding_same_product_merges_lines(cart):
    cart.add_line("prod-1", None, 2, available=10, max_quantity=100)
    cart.add_line("prod-1", None, 3, available=10, max_quantity=100)

    assert len(cart.lines) == 1
    assert cart.lines[0].quantity == 5


def test_different_variants_are_separate_lines(cart):
    cart.add_line("prod-1", "var-m", 1, available=10, max_quantity=100)
    cart.add_line("prod-1", "var-l", 1, available=10, max_quantity=100)

    assert len(cart.lines) == 2


def test_merged_quantity_is_checked_against_stock(cart):
    cart.add_line("prod-1", None, 4, available=5, max_quantity=100, product_name="Tee")

    with pytest.raises(InsufficientStock, match='"Tee" only has 5'):
        cart.add_line("prod-1", None, 2, available=5, max_quantity=100, product_name="Tee")
    assert cart.lines[0].quantity == 4


def test_quantity_limit(cart):
    with pytest.raises(ValidationError):
        cart.add_line("prod-1", None, 101, available=500, max_quantity=100)


def test_quantity_must_be_positive(cart):
    with pytest.raises(ValidationError):
        cart.add_line("prod-1", None, 0, available=5, max_quantity=100)


def test_update_quantity(cart):
    line = cart.add_line("prod-1", None, 1, available=5, max_quantity=100)
    cart.update_line_quantity(line.id, 3, available=5, max_quantity=100)

    assert cart.line(line.id).quantity == 3


def test_update_unknown_line(cart):
    with pytest.raises(NotFound, match="Cart item not found"):
        cart.update_line_quantity("missing", 1, available=5, max_quantity=100)


def test_remove_line(cart):
    line = cart.add_line("prod-1", None, 1, available=5, max_quantity=100)
    cart.remove_line(line.id)

    assert cart.is_empty


def test_clear_removes_everything(cart):
    cart.add_line("prod-1", None, 1, available=5, max_quantity=100)
    cart.add_line("prod-2", None, 2, available=5, max_quantity=100)

    assert cart.clear() == 2
    assert cart.is_empty
    assert isinstance(cart._events[-1], CartCleared)


def test_clearing_empty_cart_is_a_no_op(cart):
    assert cart.clear() == 0
    assert not any(isinstance(e, CartCleared) for e in cart._events)
