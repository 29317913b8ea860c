"""PosTransaction aggregate — a completed register sale and its refund state."""

import json
import secrets
import time
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.shared.errors import Conflict, InvalidRequest
from storefront.shared.pricing import line_subtotal, to_money


class TransactionStatus(Enum):
    COMPLETED = "completed"
    REFUNDED = "refunded"


def register_number(prefix: str) -> str:
    """``<prefix>-<epoch millis>-<suffix>``, unique across registers."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(3).upper()}"


@dataclass(frozen=True)
class RefundedQuantity:
    product_id: str
    variant_id: str | None
    quantity: int
    amount: Decimal
    reason: str | None = None


def refund_total(refunded) -> float:
    return float(to_money(sum((line.amount for line in refunded), to_money(0))))


@storefront.entity(part_of="PosTransaction")
class PosTransactionItem:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    unit_price = Float(required=True, min_value=0.0)
    discount = Float(default=0.0)
    subtotal = Float(required=True)


@storefront.aggregate
class PosTransaction:
    transaction_number = String(required=True, max_length=50)
    receipt_number = String(required=True, max_length=50)
    order_id = Identifier()
    shift_id = Identifier()
    staff_id = Identifier(required=True)
    customer_id = Identifier()
    subtotal = Float(required=True)
    tax = Float(required=True)
    total = Float(required=True)
    payment_method = String(max_length=50)  # Largest split
    payments = Text()  # JSON: [{"method", "amount"}]
    cash_received = Float()
    change_given = Float()
    status = String(choices=TransactionStatus, default=TransactionStatus.COMPLETED.value)
    notes = Text()
    return_number = String(max_length=50)
    refunded_amount = Float(default=0.0)
    items = HasMany(PosTransactionItem)
    created_at = DateTime()
    refunded_at = DateTime()

    @classmethod
    def record(
        cls,
        order,
        lines,
        payments,
        staff_id,
        shift_id=None,
        customer_id=None,
        cash_received=None,
        change_given=None,
        notes=None,
    ):
        primary = max(payments, key=lambda p: p["amount"])
        return cls(
            transaction_number=register_number("TXN"),
            receipt_number=register_number("RCP"),
            order_id=order.id,
            shift_id=shift_id,
            staff_id=staff_id,
            customer_id=customer_id,
            subtotal=order.subtotal,
            tax=order.tax,
            total=order.total,
            payment_method=primary["method"],
            payments=json.dumps(payments),
            cash_received=cash_received,
            change_given=change_given,
            notes=notes,
            items=[
                PosTransactionItem(
                    product_id=line.product_id,
                    variant_id=line.variant_id,
                    product_name=line.product_name,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    discount=line.discount,
                    subtotal=float(line_subtotal(line.unit_price, line.quantity, line.discount)),
                )
                for line in lines
            ],
            created_at=datetime.now(UTC),
        )

    @property
    def is_refunded(self) -> bool:
        return self.status == TransactionStatus.REFUNDED.value

    def _sold_key(self, product_id, variant_id=None) -> tuple:
        """The (product, variant) a refund line refers to.

        The variant may be left out only when the product was sold in one form.
        """
        keys = {
            (str(item.product_id), str(item.variant_id) if item.variant_id else None)
            for item in self.items
            if str(item.product_id) == str(product_id)
        }
        if not keys:
            raise InvalidRequest("Product not found in this transaction.")
        if variant_id:
            key = (str(product_id), str(variant_id))
            if key not in keys:
                raise InvalidRequest("Variant not found in this transaction.")
            return key
        if len(keys) > 1:
            raise InvalidRequest("This product was sold in more than one variant. Choose the variant to refund.")
        return next(iter(keys))

    def _sold_items(self, key) -> list[PosTransactionItem]:
        product_id, variant_id = key
        return [
            item
            for item in self.items
            if str(item.product_id) == product_id and (str(item.variant_id) if item.variant_id else None) == variant_id
        ]

    def plan_refund(self, refund_items) -> list[RefundedQuantity]:
        """Match requested refund lines to what was sold.

        Quantities asked for the same product/variant are summed before they
        are compared to the quantity sold. Each line is refunded at its
        recorded subtotal, so line discounts are prorated; tax is not returned.
        """
        if self.is_refunded:
            raise Conflict("This transaction has already been refunded.")
        if not refund_items:
            raise InvalidRequest("Select at least one item to refund.")

        requested: dict[tuple, int] = {}
        reasons: dict[tuple, str | None] = {}
        for line in refund_items:
            quantity = int(line["quantity"])
            if quantity < 1:
                raise InvalidRequest("Refund quantity must be at least 1.")
            key = self._sold_key(line["product_id"], line.get("variant_id"))
            requested[key] = requested.get(key, 0) + quantity
            reasons.setdefault(key, line.get("reason"))

        refunded = []
        for key, quantity in requested.items():
            sold_items = self._sold_items(key)
            sold = sum(item.quantity for item in sold_items)
            if quantity > sold:
                raise InvalidRequest(f"Refund quantity ({quantity}) exceeds sold quantity ({sold}).")

            amount = to_money(0)
            remaining = quantity
            for item in sold_items:
                taken = min(remaining, item.quantity)
                amount += to_money(item.subtotal) * taken / item.quantity
                remaining -= taken
                if not remaining:
                    break
            refunded.append(RefundedQuantity(key[0], key[1], quantity, to_money(amount), reasons[key]))
        return refunded

    def mark_refunded(self, return_number, amount, notes=None):
        if self.is_refunded:
            raise Conflict("This transaction has already been refunded.")
        self.status = TransactionStatus.REFUNDED.value
        self.return_number = return_number
        self.refunded_amount = amount
        self.refunded_at = datetime.now(UTC)
        self.notes = f"Refunded via {return_number}" + (f": {notes}" if notes else "")

    def to_dict_view(self) -> dict:
        return {
            "id": str(self.id),
            "transaction_number": self.transaction_number,
            "receipt_number": self.receipt_number,
            "order_id": str(self.order_id) if self.order_id else None,
            "status": self.status,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "payment_method": self.payment_method,
            "payments": json.loads(self.payments) if self.payments else [],
            "cash_received": self.cash_received,
            "change_given": self.change_given,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "items": [
                {
                    "id": str(item.id),
                    "product_id": str(item.product_id),
                    "variant_id": str(item.variant_id) if item.variant_id else None,
                    "product_name": item.product_name,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "subtotal": item.subtotal,
                }
                for item in self.items
            ],
        }


@storefront.repository(part_of=PosTransaction)
class PosTransactionRepository:
    def by_receipt_or_transaction_number(self, number):
        found = self._dao.query.filter(receipt_number=number).all().items
        if not found:
            found = self._dao.query.filter(transaction_number=number).all().items
        return found[0] if found else None
