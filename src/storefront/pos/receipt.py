"""Receipts — the printable record of a sale, stored once per order."""

import json
from datetime import UTC, datetime

from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.config import get_settings
from storefront.domain import storefront
from storefront.order.order import Order
from storefront.pos.transaction import register_number
from storefront.shared.repository import fetch


def build_receipt(order, receipt_number, payments=None, cash_received=None, change=None, served_by="Staff") -> dict:
    """Receipt payload for ``order``; ``payments`` defaults to one payment of the total."""
    items = []
    for item in order.items:
        attributes = json.loads(item.variant_attributes) if item.variant_attributes else {}
        items.append(
            {
                "name": item.product_name,
                "variant_label": " / ".join(str(v) for v in attributes.values()) or None,
                "quantity": item.quantity,
                "price": item.unit_price,
                "subtotal": item.subtotal,
            }
        )

    return {
        "receipt_number": receipt_number,
        "order_number": order.order_number,
        "items": items,
        "subtotal": order.subtotal,
        "tax": order.tax,
        "total": order.total,
        "currency": get_settings().currency,
        "payments": payments or [{"method": order.payment_method or "cash", "amount": order.total}],
        "cash_received": cash_received,
        "change": change,
        "timestamp": (order.created_at or datetime.now(UTC)).isoformat(),
        "served_by": served_by,
    }


@storefront.aggregate
class Receipt:
    order_id = Identifier(required=True)
    receipt_number = String(required=True, max_length=50)
    receipt_data = Text(required=True)  # JSON
    created_at = DateTime()

    @classmethod
    def issue(cls, order_id, data: dict):
        return cls(
            order_id=order_id,
            receipt_number=data["receipt_number"],
            receipt_data=json.dumps(data),
            created_at=datetime.now(UTC),
        )

    @property
    def data(self) -> dict:
        return json.loads(self.receipt_data)


@storefront.repository(part_of=Receipt)
class ReceiptRepository:
    def for_order(self, order_id):
        receipts = self._dao.query.filter(order_id=str(order_id)).all().items
        return receipts[0] if receipts else None


@storefront.command(part_of="Receipt")
class GenerateReceipt:
    order_id = Identifier(required=True)
    served_by = String(max_length=255)


@storefront.command_handler(part_of=Receipt)
class ReceiptHandler:
    @handle(GenerateReceipt)
    def generate_receipt(self, command):
        repo = current_domain.repository_for(Receipt)
        existing = repo.for_order(command.order_id)
        if existing is not None:
            return existing.data

        order = fetch(Order, command.order_id, "Order not found")
        data = build_receipt(order, register_number("RCP"), served_by=command.served_by or "Staff")
        repo.add(Receipt.issue(order.id, data))
        return data
