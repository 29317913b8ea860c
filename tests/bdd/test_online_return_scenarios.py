"""BDD tests for online returns."""

from pytest_bdd import given, parsers, scenarios, then, when

from storefront.services import cart as cart_service
from storefront.services import checkout, orders, returns

scenarios("features/online_returns.feature")


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse('the customer received {first_qty:d} of "{first}" and {second_qty:d} of "{second}"'),
    target_fixture="order",
)
def _(customer, staff, address_id, products, first_qty, first, second_qty, second):
    cart_service.add_to_cart(customer, products[first], quantity=first_qty)
    cart_service.add_to_cart(customer, products[second], quantity=second_qty)
    order_id = checkout.create_order_from_cart(customer, address_id, "gcash").data["order_id"]
    orders.update_payment_status(staff, order_id, "paid")
    orders.update_order_status(staff, order_id, "processing")
    orders.assign_tracking_number(staff, order_id, "LBC-0001")
    orders.update_order_status(staff, order_id, "delivered")
    return checkout.get_order_details(customer, order_id).data


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the customer returns {quantity:d} of "{name}" because "{reason}"'))
def _(customer, order, products, outcome, quantity, name, reason):
    item = next(i for i in order["items"] if i["product_id"] == products[name])
    outcome["result"] = returns.request_return(
        customer, order["id"], [{"order_item_id": item["id"], "quantity": quantity, "reason": reason}]
    )
    outcome["requested"] = outcome["result"].data


@when("staff approve the return")
def _(staff, outcome):
    outcome["result"] = returns.approve_return(staff, outcome["requested"]["return_id"])


@when(parsers.cfparse('staff reject the return because "{reason}"'))
def _(staff, outcome, reason):
    outcome["result"] = returns.reject_return(staff, outcome["requested"]["return_id"], reason)


@when("an administrator refunds the return")
def _(admin, outcome):
    outcome["result"] = returns.process_return_refund(admin, outcome["requested"]["return_id"])


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the return is worth {amount:f}"))
def _(outcome, amount):
    assert outcome["result"].success, outcome["result"].error
    assert outcome["requested"]["refund_amount"] == amount
