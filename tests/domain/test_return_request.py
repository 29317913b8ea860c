from datetime import UTC, datetime, timedelta

import pytest

from storefront.inventory.ledger import ResolvedLine
from storefront.order.order import Order
from storefront.returns.events import ReturnRefunded, ReturnRequested
from storefront.returns.return_request import RefundStatus, ReturnRequest, ReturnStatus
from storefront.shared.errors import Conflict, InvalidRequest
from storefront.shared.pricing import PricedLine, compute_totals

REASON = "Colour differs from the photos"


def _delivered_order():
    lines = [
        ResolvedLine("prod-a", None, 2, 100.0, "Mug", "MUG-1", {}),
        ResolvedLine("prod-b", "var-1", 3, 250.0, "Tee", "TEE-1-M", {"size": "M"}, discount=75.0),
    ]
    priced = [PricedLine(line.unit_price, line.quantity, line.discount) for line in lines]
    order = Order.place(
        order_number="ORD-20260101-00001",
        lines=lines,
        totals=compute_totals(priced, tax_rate="0.12"),
        payment_method="gcash",
        customer_id="cust-001",
    )
    order.mark_processing()
    order.ship(tracking_number="LBC-0001")
    order.deliver()
    return order


@pytest.fixture()
def order():
    return _delivered_order()


def _item(order, product_id):
    return next(item for item in order.items if item.product_id == product_id)


def _request(order, *lines, **kwargs):
    return ReturnRequest.request(order, list(lines), "refund", window_days=30, **kwargs)


class TestRequest:
    def test_prices_from_the_recorded_subtotal(self, order):
        tee = _item(order, "prod-b")

        return_request = _request(order, {"order_item_id": tee.id, "quantity": 1, "reason": REASON})

        assert return_request.refund_amount == 225.0
        assert return_request.items[0].variant_id == "var-1"
        assert isinstance(return_request._events[-1], ReturnRequested)

    def test_repeated_items_are_merged(self, order):
        mug = _item(order, "prod-a")
        line = {"order_item_id": mug.id, "quantity": 1, "reason": REASON}

        return_request = _request(order, line, line)

        assert [(i.quantity, i.amount) for i in return_request.items] == [(2, 200.0)]

    def test_quantity_counts_earlier_returns(self, order):
        mug = _item(order, "prod-a")

        with pytest.raises(InvalidRequest, match="exceeds ordered quantity"):
            _request(
                order,
                {"order_item_id": mug.id, "quantity": 1, "reason": REASON},
                already_returned={str(mug.id): 2},
            )

    def test_order_must_be_delivered(self):
        lines = [ResolvedLine("prod-a", None, 1, 100.0, "Mug", "MUG-1", {})]
        order = Order.place(
            order_number="ORD-20260101-00002",
            lines=lines,
            totals=compute_totals([PricedLine(100.0, 1)], tax_rate="0.12"),
            payment_method="gcash",
            customer_id="cust-001",
        )

        with pytest.raises(InvalidRequest, match="completed orders"):
            _request(order, {"order_item_id": order.items[0].id, "quantity": 1, "reason": REASON})

    def test_window_is_measured_from_the_order_date(self, order):
        order.created_at = datetime.now(UTC) - timedelta(days=10)
        mug = _item(order, "prod-a")
        line = {"order_item_id": mug.id, "quantity": 1, "reason": REASON}

        with pytest.raises(InvalidRequest, match=r"expired \(7 days"):
            ReturnRequest.request(order, [line], "refund", window_days=7)

    def test_reason_must_be_detailed(self, order):
        mug = _item(order, "prod-a")

        with pytest.raises(InvalidRequest):
            _request(order, {"order_item_id": mug.id, "quantity": 1, "reason": "Bad"})


@pytest.fixture()
def return_request(order):
    mug = _item(order, "prod-a")
    return _request(order, {"order_item_id": mug.id, "quantity": 2, "reason": REASON})


class TestReview:
    def test_approve(self, return_request):
        return_request.approve("staff-001", notes="Unopened")

        assert return_request.status == ReturnStatus.APPROVED.value
        assert return_request.reviewed_by == "staff-001"

    def test_cannot_reject_an_approved_return(self, return_request):
        return_request.approve("staff-001")

        with pytest.raises(Conflict):
            return_request.reject("staff-001", "Changed our minds about this")

    def test_reject_records_reason(self, return_request):
        return_request.reject("staff-001", "  Item shows signs of heavy use  ")

        assert return_request.status == ReturnStatus.REJECTED.value
        assert return_request.rejection_reason == "Item shows signs of heavy use"


class TestRefund:
    def test_defaults_to_the_priced_amount(self, return_request):
        return_request.approve("staff-001")

        assert return_request.refund("admin-001", "cash") == 200.0
        assert return_request.refund_status == RefundStatus.REFUNDED.value
        assert isinstance(return_request._events[-1], ReturnRefunded)

    def test_partial_amount(self, return_request):
        return_request.approve("staff-001")

        assert return_request.refund("admin-001", "store_credit", amount=150) == 150.0

    def test_needs_approval(self, return_request):
        with pytest.raises(InvalidRequest, match="approved before"):
            return_request.refund("admin-001", "cash")

    def test_paid_once(self, return_request):
        return_request.approve("staff-001")
        return_request.refund("admin-001", "cash")

        with pytest.raises(Conflict, match="already been processed"):
            return_request.refund("admin-001", "cash")

    def test_amount_must_be_positive(self, return_request):
        return_request.approve("staff-001")

        with pytest.raises(InvalidRequest):
            return_request.refund("admin-001", "cash", amount=0)
