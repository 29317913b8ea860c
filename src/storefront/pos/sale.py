"""POS sale — command and handler.

A register sale is priced like an online order, paid with one or more
split payments, and written in one unit of work: the order, the register
transaction, stock decrements with their ledger rows, shift totals, the
receipt and an audit row.
"""

import json
from enum import Enum

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditAction, AuditEntityType, record_audit
from storefront.config import get_settings
from storefront.domain import logger, storefront
from storefront.inventory.ledger import StockLedger
from storefront.order.numbering import generate_order_number
from storefront.order.order import Order, OrderStatus, PaymentStatus, SalesChannel
from storefront.pos.receipt import Receipt, build_receipt
from storefront.pos.shift import StaffShift
from storefront.pos.transaction import PosTransaction
from storefront.shared.errors import InvalidRequest
from storefront.shared.pricing import PricedLine, compute_totals, to_money

PAYMENT_TOLERANCE = to_money("0.01")


class PosPaymentMethod(Enum):
    CASH = "cash"
    CARD = "card"
    GCASH = "gcash"
    MAYA = "maya"


@storefront.command(part_of="PosTransaction")
class RecordPosSale:
    staff_id = Identifier(required=True)
    shift_id = Identifier()
    customer_id = Identifier()
    items = Text(required=True)  # JSON: [{"product_id", "variant_id", "quantity", "discount"}]
    payments = Text(required=True)  # JSON: [{"method", "amount"}]
    cash_received = Float()
    notes = Text()
    served_by = String(max_length=255)
    ip_address = String(max_length=64)


def _parse_payments(raw) -> list[dict]:
    payments = json.loads(raw) if isinstance(raw, str) else raw
    if not payments:
        raise InvalidRequest("At least one payment is required")

    parsed = []
    for payment in payments:
        try:
            method = PosPaymentMethod(payment["method"])
        except (KeyError, ValueError) as exc:
            raise InvalidRequest(f"Unsupported payment method: {payment.get('method')}") from exc
        amount = to_money(payment.get("amount"))
        if amount <= 0:
            raise InvalidRequest("Payment amounts must be greater than zero")
        parsed.append({"method": method.value, "amount": float(amount)})
    return parsed


def settle_payments(payments: list[dict], total, cash_received=None) -> tuple[float | None, float | None, float]:
    """Check split payments cover ``total``. Returns ``(cash_received, change, cash_portion)``."""
    paid = sum((to_money(p["amount"]) for p in payments), to_money(0))
    total = to_money(total)
    if abs(paid - total) > PAYMENT_TOLERANCE:
        raise InvalidRequest(f"Payment total ({paid}) does not match order total ({total})")

    cash_portion = sum(
        (to_money(p["amount"]) for p in payments if p["method"] == PosPaymentMethod.CASH.value),
        to_money(0),
    )
    if not cash_portion:
        return None, None, 0.0

    received = to_money(cash_received) if cash_received is not None else cash_portion
    if received < cash_portion:
        raise InvalidRequest("Insufficient cash received")
    return float(received), float(received - cash_portion), float(cash_portion)


@storefront.command_handler(part_of=PosTransaction)
class PosSaleHandler:
    @handle(RecordPosSale)
    def record_sale(self, command):
        settings = get_settings()
        items = json.loads(command.items) if isinstance(command.items, str) else command.items
        if not items:
            raise InvalidRequest("Add at least one item to the sale")
        payments = _parse_payments(command.payments)

        ledger = StockLedger(performed_by=command.staff_id)
        lines = ledger.resolve(
            [(i["product_id"], i.get("variant_id"), int(i["quantity"]), i.get("discount") or 0) for i in items]
        )
        totals = compute_totals(
            [PricedLine(line.unit_price, line.quantity, line.discount) for line in lines],
            tax_rate=settings.tax_rate,
        )
        cash_received, change, cash_portion = settle_payments(payments, totals.total, command.cash_received)

        order_number = generate_order_number()
        order = Order.place(
            order_number=order_number,
            lines=lines,
            totals=totals,
            payment_method=max(payments, key=lambda p: p["amount"])["method"],
            customer_id=command.customer_id,
            customer_notes=command.notes,
            channel=SalesChannel.POS,
            status=OrderStatus.PROCESSING,
            payment_status=PaymentStatus.PAID,
            placed_by=command.staff_id,
        )

        ledger.reference_id = order_number
        for line in lines:
            ledger.take(line.product_id, line.variant_id, line.quantity, reason=f"POS sale {order_number}")

        transaction = PosTransaction.record(
            order,
            lines,
            payments,
            staff_id=command.staff_id,
            shift_id=command.shift_id,
            customer_id=command.customer_id,
            cash_received=cash_received,
            change_given=change,
            notes=command.notes,
        )

        if command.shift_id:
            shift_repo = current_domain.repository_for(StaffShift)
            shift = shift_repo.get(command.shift_id)
            shift.record_sale(order.total, cash_amount=cash_portion)
            shift_repo.add(shift)

        receipt_data = build_receipt(
            order,
            transaction.receipt_number,
            payments=payments,
            cash_received=cash_received,
            change=change,
            served_by=command.served_by or "Staff",
        )

        current_domain.repository_for(Order).add(order)
        current_domain.repository_for(PosTransaction).add(transaction)
        current_domain.repository_for(Receipt).add(Receipt.issue(order.id, receipt_data))
        ledger.commit()
        record_audit(
            AuditAction.CREATE,
            AuditEntityType.ORDER,
            entity_id=order.id,
            user_id=command.staff_id,
            new_value={
                "order_number": order_number,
                "transaction_number": transaction.transaction_number,
                "total": order.total,
                "channel": order.channel,
            },
            ip_address=command.ip_address,
        )

        logger.info(
            "POS sale recorded",
            order_number=order_number,
            transaction_number=transaction.transaction_number,
            total=order.total,
            staff_id=str(command.staff_id),
        )
        return {
            "order_id": str(order.id),
            "order_number": order_number,
            "transaction_id": str(transaction.id),
            "transaction_number": transaction.transaction_number,
            "receipt": receipt_data,
            "change_given": change,
        }
