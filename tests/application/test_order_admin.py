import pytest
from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditLog
from storefront.catalogue.product import Product
from storefront.services import checkout, orders
from storefront.shared.errors import ErrorCode


@pytest.fixture()
def order_id(filled_cart, address_id):
    return checkout.create_order_from_cart(filled_cart, address_id, "gcash").data["order_id"]


def test_customers_cannot_list_orders(customer):
    assert orders.list_orders(customer).code == ErrorCode.FORBIDDEN


def test_list_filters_by_status(staff, order_id):
    assert len(orders.list_orders(staff, status="pending").data) == 1
    assert orders.list_orders(staff, status="shipped").data == []


def test_fulfilment_path(staff, order_id, customer):
    assert orders.update_order_status(staff, order_id, "processing").data == {"status": "processing"}
    assert orders.assign_tracking_number(staff, order_id, "LBC-0001").data == {"status": "shipped"}
    assert orders.update_order_status(staff, order_id, "delivered").data == {"status": "delivered"}

    details = checkout.get_order_details(customer, order_id).data
    assert details["tracking_number"] == "LBC-0001"
    assert [h["to_status"] for h in details["history"]] == ["pending", "processing", "shipped", "delivered"]


def test_invalid_transition(staff, order_id):
    result = orders.update_order_status(staff, order_id, "delivered")

    assert result.code == ErrorCode.VALIDATION_ERROR
    assert result.error == "Cannot change order status from pending to delivered"


def test_unknown_status_value(staff, order_id):
    assert orders.update_order_status(staff, order_id, "teleported").code == ErrorCode.VALIDATION_ERROR


def test_tracking_number_is_required(staff, order_id):
    orders.update_order_status(staff, order_id, "processing")

    assert orders.assign_tracking_number(staff, order_id, "   ").code == ErrorCode.VALIDATION_ERROR


def test_staff_cancel_of_processing_order_restocks(staff, order_id, mug_id, tee_id):
    orders.update_order_status(staff, order_id, "processing")

    result = orders.cancel_order(staff, order_id, reason="Customer called to cancel")

    assert result.data == {"status": "cancelled"}
    products = current_domain.repository_for(Product)
    assert products.get(mug_id).stock_quantity == 5
    assert products.get(tee_id).stock_quantity == 3


def test_cancel_via_status_update_restocks(staff, order_id, mug_id):
    orders.update_order_status(staff, order_id, "cancelled", notes="Fraud check failed")

    assert current_domain.repository_for(Product).get(mug_id).stock_quantity == 5


def test_cancelled_order_cannot_be_cancelled_again(staff, order_id):
    orders.cancel_order(staff, order_id, reason="Duplicate")

    assert orders.cancel_order(staff, order_id, reason="Duplicate").code == ErrorCode.CONFLICT


def test_payment_status_update(staff, order_id):
    assert orders.update_payment_status(staff, order_id, "paid").data == {"payment_status": "paid"}
    assert orders.update_payment_status(staff, order_id, "failed").code == ErrorCode.VALIDATION_ERROR


def test_every_change_is_audited(staff, order_id):
    orders.update_order_status(staff, order_id, "processing", notes="Packed")
    orders.update_payment_status(staff, order_id, "paid")

    actions = sorted(log.action for log in current_domain.repository_for(AuditLog).for_entity("order", order_id))
    assert actions == ["create", "status_change", "update"]
