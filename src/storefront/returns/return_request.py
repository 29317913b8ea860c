"""ReturnRequest aggregate — a customer asking to send delivered items back.

Status machine:
    requested → approved → (refunded)
    requested → rejected
Only requested returns can be approved or rejected. A refund is paid once,
and only on an approved return; ``refund_status`` tracks it separately.

Each returned line is priced from the order item's recorded subtotal, so a
line discount is shared across its units and tax is not refunded.
"""

import time
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.order.order import OrderStatus
from storefront.returns.events import ReturnApproved, ReturnRefunded, ReturnRejected, ReturnRequested
from storefront.shared.errors import Conflict, InvalidRequest
from storefront.shared.pricing import to_money

MIN_REASON_LENGTH = 10


class ReturnStatus(Enum):
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"


class RefundStatus(Enum):
    PENDING = "pending"
    REFUNDED = "refunded"


class ReturnMethod(Enum):
    REFUND = "refund"
    EXCHANGE = "exchange"
    STORE_CREDIT = "store_credit"


class RefundMethod(Enum):
    ORIGINAL = "original"
    STORE_CREDIT = "store_credit"
    CASH = "cash"


def _require_reason(reason, message):
    if len((reason or "").strip()) < MIN_REASON_LENGTH:
        raise InvalidRequest(message)
    return reason.strip()


@storefront.entity(part_of="ReturnRequest")
class ReturnItem:
    order_item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    product_name = String(max_length=255)
    quantity = Integer(required=True, min_value=1)
    amount = Float(required=True, min_value=0.0)
    reason = Text(required=True)


@storefront.aggregate
class ReturnRequest:
    return_number = String(required=True, max_length=50)
    order_id = Identifier(required=True)
    order_number = String(max_length=50)
    customer_id = Identifier(required=True)
    status = String(choices=ReturnStatus, default=ReturnStatus.REQUESTED.value)
    return_method = String(choices=ReturnMethod, default=ReturnMethod.REFUND.value)
    refund_amount = Float(default=0.0)
    refund_status = String(choices=RefundStatus, default=RefundStatus.PENDING.value)
    refund_method = String(choices=RefundMethod)
    refunded_amount = Float()
    additional_notes = Text()
    admin_notes = Text()
    rejection_reason = Text()
    reviewed_by = Identifier()
    reviewed_at = DateTime()
    refunded_by = Identifier()
    refunded_at = DateTime()
    items = HasMany(ReturnItem)
    created_at = DateTime()

    @classmethod
    def request(cls, order, lines, return_method, window_days, already_returned=None, notes=None):
        """Open a return for a delivered ``order``.

        ``lines`` are ``{"order_item_id", "quantity", "reason"}`` dicts; repeated
        items are summed. ``already_returned`` maps order item ids to quantities
        held by the customer's earlier, unrejected returns.
        """
        if order.status != OrderStatus.DELIVERED.value:
            raise InvalidRequest("Returns can only be requested for completed orders")

        now = datetime.now(UTC)
        if order.created_at and now - order.created_at > timedelta(days=window_days):
            raise InvalidRequest(f"Return window has expired ({window_days} days from order date)")
        if not lines:
            raise InvalidRequest("Select at least one item to return")

        requested: dict[str, int] = {}
        reasons: dict[str, str] = {}
        for line in lines:
            item_id = str(line["order_item_id"])
            requested[item_id] = requested.get(item_id, 0) + int(line["quantity"])
            reasons.setdefault(item_id, _require_reason(line.get("reason"), "Each item needs a return reason"))

        ordered = {str(item.id): item for item in order.items}
        already_returned = already_returned or {}

        return_request = cls(
            return_number=f"RET-{int(time.time() * 1000)}",
            order_id=str(order.id),
            order_number=order.order_number,
            customer_id=str(order.customer_id),
            return_method=ReturnMethod(return_method).value,
            additional_notes=notes,
            created_at=now,
        )
        total = to_money(0)
        for item_id, quantity in requested.items():
            item = ordered.get(item_id)
            if item is None:
                raise InvalidRequest("Invalid order items")
            if quantity + already_returned.get(item_id, 0) > item.quantity:
                raise InvalidRequest("Return quantity exceeds ordered quantity")

            amount = to_money(to_money(item.subtotal) * quantity / item.quantity)
            total += amount
            return_request.add_items(
                ReturnItem(
                    order_item_id=item_id,
                    product_id=str(item.product_id),
                    variant_id=str(item.variant_id) if item.variant_id else None,
                    product_name=item.product_name,
                    quantity=quantity,
                    amount=float(amount),
                    reason=reasons[item_id],
                )
            )
        return_request.refund_amount = float(total)

        return_request.raise_(
            ReturnRequested(
                return_id=str(return_request.id),
                return_number=return_request.return_number,
                order_id=str(order.id),
                customer_id=str(order.customer_id),
                item_count=len(requested),
                refund_amount=return_request.refund_amount,
                requested_at=now,
            )
        )
        return return_request

    def _ensure_requested(self):
        if self.status != ReturnStatus.REQUESTED.value:
            raise Conflict("Return has already been processed")

    def approve(self, approved_by, notes=None):
        self._ensure_requested()
        self.status = ReturnStatus.APPROVED.value
        self.reviewed_by = approved_by
        self.reviewed_at = datetime.now(UTC)
        self.admin_notes = notes

        self.raise_(
            ReturnApproved(
                return_id=str(self.id),
                order_id=str(self.order_id),
                approved_by=str(approved_by),
                approved_at=self.reviewed_at,
            )
        )

    def reject(self, rejected_by, reason):
        reason = _require_reason(reason, "Please provide a detailed rejection reason")
        self._ensure_requested()
        self.status = ReturnStatus.REJECTED.value
        self.reviewed_by = rejected_by
        self.reviewed_at = datetime.now(UTC)
        self.rejection_reason = reason

        self.raise_(
            ReturnRejected(
                return_id=str(self.id),
                order_id=str(self.order_id),
                reason=reason,
                rejected_by=str(rejected_by),
            )
        )

    def refund(self, refunded_by, refund_method, amount=None) -> float:
        """Pay out the refund. ``amount`` defaults to the priced return."""
        if self.status != ReturnStatus.APPROVED.value:
            raise InvalidRequest("Return must be approved before processing refund")
        if self.refund_status == RefundStatus.REFUNDED.value:
            raise Conflict("Refund has already been processed")

        final = to_money(amount if amount is not None else self.refund_amount)
        if final <= 0:
            raise InvalidRequest("Refund amount must be greater than zero")
        if final > to_money(self.refund_amount):
            raise InvalidRequest(f"Refund amount cannot exceed {to_money(self.refund_amount)}")

        self.refund_status = RefundStatus.REFUNDED.value
        self.refund_method = RefundMethod(refund_method).value
        self.refunded_amount = float(final)
        self.refunded_by = refunded_by
        self.refunded_at = datetime.now(UTC)

        self.raise_(
            ReturnRefunded(
                return_id=str(self.id),
                order_id=str(self.order_id),
                refund_method=self.refund_method,
                amount=self.refunded_amount,
                refunded_by=str(refunded_by),
                refunded_at=self.refunded_at,
            )
        )
        return self.refunded_amount

    def to_dict_view(self) -> dict:
        return {
            "id": str(self.id),
            "return_number": self.return_number,
            "order_id": str(self.order_id),
            "order_number": self.order_number,
            "customer_id": str(self.customer_id),
            "status": self.status,
            "return_method": self.return_method,
            "refund_amount": self.refund_amount,
            "refund_status": self.refund_status,
            "refund_method": self.refund_method,
            "refunded_amount": self.refunded_amount,
            "additional_notes": self.additional_notes,
            "admin_notes": self.admin_notes,
            "rejection_reason": self.rejection_reason,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "items": [
                {
                    "id": str(item.id),
                    "order_item_id": str(item.order_item_id),
                    "product_id": str(item.product_id),
                    "variant_id": str(item.variant_id) if item.variant_id else None,
                    "product_name": item.product_name,
                    "quantity": item.quantity,
                    "amount": item.amount,
                    "reason": item.reason,
                }
                for item in self.items
            ],
        }


@storefront.repository(part_of=ReturnRequest)
class ReturnRequestRepository:
    def for_customer(self, customer_id, page=1, page_size=10):
        return (
            self._dao.query.filter(customer_id=str(customer_id))
            .order_by("-created_at")
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

    def pending(self, page=1, page_size=20):
        """Oldest requests first, so the queue is worked in order."""
        return (
            self._dao.query.filter(status=ReturnStatus.REQUESTED.value)
            .order_by("created_at")
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

    def for_order(self, order_id) -> list:
        return self._dao.query.filter(order_id=str(order_id)).limit(None).all().items

    def returned_quantities(self, order_id) -> dict:
        """Quantities per order item held by the order's unrejected returns."""
        quantities: dict[str, int] = {}
        for return_request in self.for_order(order_id):
            if return_request.status == ReturnStatus.REJECTED.value:
                continue
            for item in return_request.items:
                key = str(item.order_item_id)
                quantities[key] = quantities.get(key, 0) + item.quantity
        return quantities
