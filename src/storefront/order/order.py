"""Order aggregate — what was bought, at what price, and where it is now.

Items and the shipping address are snapshots taken when the order is placed;
later catalogue or address-book edits never reach them. Every status change
is appended to ``history``.

Status machine:
    pending → processing → shipped → delivered
    pending/processing → cancelled
Delivered and cancelled are terminal. Payment progress is tracked separately
in ``payment_status``.
"""

import json
from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from storefront.domain import storefront
from storefront.order.events import OrderCancelled, OrderPlaced, OrderStatusChanged, PaymentStatusChanged
from storefront.shared.errors import Conflict, InvalidRequest
from storefront.shared.pricing import line_subtotal, to_money


class OrderStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    UNPAID = "unpaid"
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class PaymentMethod(Enum):
    GCASH = "gcash"
    MAYA = "maya"
    BANK_TRANSFER = "bank_transfer"
    CASH_ON_DELIVERY = "cash_on_delivery"
    CASH = "cash"
    CARD = "card"


# Methods a customer can choose at online checkout
ONLINE_PAYMENT_METHODS = {
    PaymentMethod.GCASH,
    PaymentMethod.MAYA,
    PaymentMethod.BANK_TRANSFER,
    PaymentMethod.CASH_ON_DELIVERY,
}


class SalesChannel(Enum):
    ONLINE = "online"
    POS = "pos"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.PROCESSING, OrderStatus.CANCELLED},
    OrderStatus.PROCESSING: {OrderStatus.SHIPPED, OrderStatus.CANCELLED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

_CUSTOMER_CANCELLABLE = {OrderStatus.PENDING}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.UNPAID: {PaymentStatus.PENDING, PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PENDING, PaymentStatus.PAID},
    PaymentStatus.PAID: {PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),
}


@storefront.value_object(part_of="Order")
class ShippingAddress:
    """Delivery address as it was when the order was placed."""

    full_name = String(required=True, max_length=255)
    phone = String(required=True, max_length=30)
    address_line1 = String(required=True, max_length=255)
    address_line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state_province = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(required=True, max_length=100)


@storefront.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    product_name = String(required=True, max_length=255)
    variant_attributes = Text()  # JSON snapshot
    sku = String(required=True, max_length=50)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    discount = Float(default=0.0)
    subtotal = Float(required=True, min_value=0.0)


@storefront.entity(part_of="Order")
class OrderStatusChange:
    from_status = String(max_length=20)
    to_status = String(required=True, max_length=20)
    notes = Text()
    changed_by = Identifier()
    changed_at = DateTime()


@storefront.aggregate
class Order:
    order_number = String(required=True, max_length=50)
    customer_id = Identifier()  # Empty for anonymous walk-in POS sales
    channel = String(choices=SalesChannel, default=SalesChannel.ONLINE.value)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.UNPAID.value)
    payment_method = String(max_length=50)
    subtotal = Float(default=0.0)
    tax = Float(default=0.0)
    shipping_cost = Float(default=0.0)
    discount = Float(default=0.0)
    total = Float(default=0.0)
    shipping_address = ValueObject(ShippingAddress)
    customer_notes = Text()
    tracking_number = String(max_length=100)
    cancellation_reason = Text()
    items = HasMany(OrderItem)
    history = HasMany(OrderStatusChange)
    created_at = DateTime()
    updated_at = DateTime()
    paid_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()

    @invariant.post
    def subtotal_must_match_items(self):
        items_total = sum((to_money(item.subtotal) for item in self.items), to_money(0))
        if self.items and items_total != to_money(self.subtotal):
            raise ValidationError({"subtotal": ["Order subtotal does not match its items"]})

    @invariant.post
    def total_must_not_be_negative(self):
        if (self.total or 0) < 0:
            raise ValidationError({"total": ["Order total cannot be negative"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        lines,
        totals,
        payment_method,
        customer_id=None,
        shipping_address=None,
        customer_notes=None,
        channel=SalesChannel.ONLINE,
        status=OrderStatus.PENDING,
        payment_status=PaymentStatus.UNPAID,
        placed_by=None,
    ):
        """Create an order from resolved lines and computed totals.

        ``lines`` are ``ResolvedLine`` snapshots; ``totals`` is an ``OrderTotals``.
        """
        if not lines:
            raise InvalidRequest("An order needs at least one item")

        now = datetime.now(UTC)
        items = [
            OrderItem(
                product_id=line.product_id,
                variant_id=line.variant_id,
                product_name=line.product_name,
                variant_attributes=json.dumps(line.variant_attributes) if line.variant_attributes else None,
                sku=line.sku,
                quantity=line.quantity,
                unit_price=float(to_money(line.unit_price)),
                discount=float(to_money(line.discount)),
                subtotal=float(line_subtotal(line.unit_price, line.quantity, line.discount)),
            )
            for line in lines
        ]
        history = [
            OrderStatusChange(
                from_status=None,
                to_status=status.value,
                notes="Order placed",
                changed_by=placed_by,
                changed_at=now,
            )
        ]

        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            channel=channel.value,
            status=status.value,
            payment_status=payment_status.value,
            payment_method=payment_method,
            shipping_address=shipping_address,
            customer_notes=customer_notes,
            items=items,
            history=history,
            created_at=now,
            updated_at=now,
            paid_at=now if payment_status == PaymentStatus.PAID else None,
            **totals.as_floats(),
        )

        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                order_number=order_number,
                customer_id=str(customer_id) if customer_id else None,
                channel=channel.value,
                item_count=sum(item.quantity for item in items),
                subtotal=order.subtotal,
                tax=order.tax,
                total=order.total,
                payment_method=payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Status machine
    # -------------------------------------------------------------------
    def can_transition_to(self, target: OrderStatus) -> bool:
        return target in _VALID_TRANSITIONS[OrderStatus(self.status)]

    def _transition(self, target: OrderStatus, changed_by=None, notes=None):
        current = OrderStatus(self.status)
        if current == target:
            raise Conflict(f"Order is already {current.value}")
        if not self.can_transition_to(target):
            raise InvalidRequest(f"Cannot change order status from {current.value} to {target.value}")

        now = datetime.now(UTC)
        self.status = target.value
        self.updated_at = now
        self.add_history(
            OrderStatusChange(
                from_status=current.value,
                to_status=target.value,
                notes=notes,
                changed_by=changed_by,
                changed_at=now,
            )
        )

        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                from_status=current.value,
                to_status=target.value,
                changed_by=str(changed_by) if changed_by else None,
                changed_at=now,
            )
        )
        return now

    def mark_processing(self, changed_by=None, notes=None):
        self._transition(OrderStatus.PROCESSING, changed_by, notes)

    def ship(self, tracking_number=None, changed_by=None, notes=None):
        if tracking_number:
            self.tracking_number = tracking_number
        self.shipped_at = self._transition(OrderStatus.SHIPPED, changed_by, notes)

    def deliver(self, changed_by=None, notes=None):
        self.delivered_at = self._transition(OrderStatus.DELIVERED, changed_by, notes)

    def cancel(self, reason=None, cancelled_by=None, by_customer=False):
        current = OrderStatus(self.status)
        if current == OrderStatus.CANCELLED:
            raise Conflict("Order is already cancelled")
        if by_customer and current not in _CUSTOMER_CANCELLABLE:
            raise InvalidRequest("Only pending orders can be cancelled")

        self.cancelled_at = self._transition(OrderStatus.CANCELLED, cancelled_by, reason)
        self.cancellation_reason = reason

        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                order_number=self.order_number,
                previous_status=current.value,
                reason=reason,
                cancelled_by=str(cancelled_by) if cancelled_by else None,
                cancelled_at=self.cancelled_at,
            )
        )

    def change_status(self, target: OrderStatus, changed_by=None, notes=None):
        """Move to ``target`` through the dedicated transition method."""
        if target == OrderStatus.PROCESSING:
            self.mark_processing(changed_by, notes)
        elif target == OrderStatus.SHIPPED:
            self.ship(changed_by=changed_by, notes=notes)
        elif target == OrderStatus.DELIVERED:
            self.deliver(changed_by, notes)
        elif target == OrderStatus.CANCELLED:
            self.cancel(reason=notes, cancelled_by=changed_by)
        else:
            raise InvalidRequest(f"Cannot change order status to {target.value}")

    # -------------------------------------------------------------------
    # Payment status
    # -------------------------------------------------------------------
    def change_payment_status(self, target: PaymentStatus):
        current = PaymentStatus(self.payment_status)
        if current == target:
            return
        if target not in _PAYMENT_TRANSITIONS[current]:
            raise InvalidRequest(f"Cannot change payment status from {current.value} to {target.value}")

        now = datetime.now(UTC)
        self.payment_status = target.value
        if target == PaymentStatus.PAID:
            self.paid_at = now
        self.updated_at = now

        self.raise_(
            PaymentStatusChanged(
                order_id=str(self.id),
                from_status=current.value,
                to_status=target.value,
                changed_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Views
    # -------------------------------------------------------------------
    def to_dict_view(self, include_items=True) -> dict:
        data = {
            "id": str(self.id),
            "order_number": self.order_number,
            "customer_id": str(self.customer_id) if self.customer_id else None,
            "channel": self.channel,
            "status": self.status,
            "payment_status": self.payment_status,
            "payment_method": self.payment_method,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "shipping_cost": self.shipping_cost,
            "discount": self.discount,
            "total": self.total,
            "tracking_number": self.tracking_number,
            "customer_notes": self.customer_notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
        if include_items:
            data["shipping_address"] = self.shipping_address.to_dict() if self.shipping_address else None
            data["items"] = [
                {
                    "id": str(item.id),
                    "product_id": str(item.product_id),
                    "variant_id": str(item.variant_id) if item.variant_id else None,
                    "product_name": item.product_name,
                    "variant_attributes": json.loads(item.variant_attributes) if item.variant_attributes else None,
                    "sku": item.sku,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "subtotal": item.subtotal,
                }
                for item in self.items
            ]
            data["history"] = [
                {
                    "from_status": change.from_status,
                    "to_status": change.to_status,
                    "notes": change.notes,
                    "changed_by": str(change.changed_by) if change.changed_by else None,
                    "changed_at": change.changed_at.isoformat() if change.changed_at else None,
                }
                for change in sorted(self.history, key=lambda c: c.changed_at)
            ]
        return data


@storefront.repository(part_of=Order)
class OrderRepository:
    def for_customer(self, customer_id) -> list:
        return self._dao.query.filter(customer_id=str(customer_id)).order_by("-created_at").all().items

    def has_ordered(self, product_id, variant_id=None) -> bool:
        """True once any order, online or POS, carries the product (or that variant)."""
        for order in self._dao.query.limit(None).all().items:
            for item in order.items:
                if str(item.product_id) != str(product_id):
                    continue
                if variant_id is None or str(item.variant_id or "") == str(variant_id):
                    return True
        return False

    def search(self, status=None, payment_status=None, channel=None) -> list:
        filters = {}
        if status:
            filters["status"] = status
        if payment_status:
            filters["payment_status"] = payment_status
        if channel:
            filters["channel"] = channel
        query = self._dao.query.filter(**filters) if filters else self._dao.query
        return query.order_by("-created_at").all().items
