"""Point-of-sale operations: shifts, sales, refunds, parked orders and receipts.

Staff must have an open shift to ring up sales or refunds; admins may work
the register without one.
"""

import json

from protean.utils.globals import current_domain
from pydantic import BaseModel, Field

from storefront.identity.context import RequestContext
from storefront.pos.parking import DiscardParkedOrder, ParkedOrder, ParkOrder, load_parked_order
from storefront.pos.receipt import GenerateReceipt
from storefront.pos.refund import ProcessPosRefund
from storefront.pos.sale import RecordPosSale
from storefront.pos.shift import StaffShift
from storefront.pos.shifts import ClockIn, ClockOut
from storefront.pos.transaction import PosTransaction
from storefront.shared.errors import Conflict, InvalidRequest, NotFound
from storefront.shared.results import ok, with_error_handling


class SaleLine(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1)
    discount: float = Field(default=0, ge=0)


class SplitPayment(BaseModel):
    method: str
    amount: float = Field(gt=0)


class RefundLine(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1)
    reason: str | None = None
    condition: str | None = None


def require_clocked_in(ctx: RequestContext):
    """The caller and their open shift; admins may have no shift."""
    actor = ctx.require_staff()
    shift = current_domain.repository_for(StaffShift).open_for(actor.user_id)
    if shift is None and not actor.is_admin:
        raise InvalidRequest("No active shift. Please clock in first.")
    return actor, shift


def _served_by(actor) -> str:
    return actor.display_name or actor.email or "Staff"


@with_error_handling
def clock_in(ctx: RequestContext, register_id, opening_cash):
    actor = ctx.require_staff()
    shift = current_domain.process(
        ClockIn(staff_id=actor.user_id, register_id=register_id, opening_cash=opening_cash),
        asynchronous=False,
    )
    return ok(shift, "Clocked in successfully")


@with_error_handling
def clock_out(ctx: RequestContext, shift_id, closing_cash, notes=None):
    actor = ctx.require_staff()
    shift = current_domain.process(
        ClockOut(shift_id=shift_id, staff_id=actor.user_id, closing_cash=closing_cash, notes=notes),
        asynchronous=False,
    )
    return ok(shift, "Clocked out successfully")


@with_error_handling
def get_active_shift(ctx: RequestContext):
    actor = ctx.require_staff()
    shift = current_domain.repository_for(StaffShift).open_for(actor.user_id)
    return ok(shift.to_dict_view() if shift else None)


@with_error_handling
def create_pos_sale(ctx: RequestContext, items, payments, cash_received=None, customer_id=None, notes=None):
    actor, shift = require_clocked_in(ctx)
    lines = [SaleLine.model_validate(item) for item in items]
    splits = [SplitPayment.model_validate(payment) for payment in payments]
    if not lines:
        raise InvalidRequest("Add at least one item to the sale")

    result = current_domain.process(
        RecordPosSale(
            staff_id=actor.user_id,
            shift_id=shift.id if shift else None,
            customer_id=customer_id,
            items=json.dumps([line.model_dump() for line in lines]),
            payments=json.dumps([split.model_dump() for split in splits]),
            cash_received=cash_received,
            notes=notes,
            served_by=_served_by(actor),
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok(result, "Order created successfully")


@with_error_handling
def lookup_pos_transaction(ctx: RequestContext, receipt_number):
    """Find a sale by receipt number, or by transaction number as a fallback."""
    ctx.require_staff()
    number = (receipt_number or "").strip()
    transaction = current_domain.repository_for(PosTransaction).by_receipt_or_transaction_number(number)
    if transaction is None:
        raise NotFound("Transaction not found. Check the receipt number and try again.")
    if transaction.is_refunded:
        raise Conflict("This transaction has already been fully refunded.")
    return ok(transaction.to_dict_view())


@with_error_handling
def process_pos_refund(ctx: RequestContext, transaction_id, items, notes=None):
    actor, shift = require_clocked_in(ctx)
    lines = [RefundLine.model_validate(item) for item in items]
    result = current_domain.process(
        ProcessPosRefund(
            transaction_id=transaction_id,
            items=json.dumps([line.model_dump() for line in lines]),
            notes=notes,
            processed_by=actor.user_id,
            shift_id=shift.id if shift else None,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok(result, f"Refund processed successfully: {result['return_number']}")


@with_error_handling
def generate_receipt(ctx: RequestContext, order_id):
    actor = ctx.require_staff()
    receipt = current_domain.process(
        GenerateReceipt(order_id=order_id, served_by=_served_by(actor)),
        asynchronous=False,
    )
    return ok(receipt)


@with_error_handling
def park_order(ctx: RequestContext, cart, customer_name=None, customer_phone=None, notes=None):
    actor = ctx.require_staff()
    parked_id = current_domain.process(
        ParkOrder(
            staff_id=actor.user_id,
            cart=json.dumps(cart),
            customer_name=customer_name,
            customer_phone=customer_phone,
            notes=notes,
        ),
        asynchronous=False,
    )
    return ok({"parked_order_id": parked_id}, "Order parked")


@with_error_handling
def list_parked_orders(ctx: RequestContext):
    ctx.require_staff()
    parked = current_domain.repository_for(ParkedOrder).unexpired()
    return ok([p.to_dict_view() for p in parked])


@with_error_handling
def retrieve_parked_order(ctx: RequestContext, parked_order_id):
    ctx.require_staff()
    return ok(load_parked_order(parked_order_id).to_dict_view())


@with_error_handling
def delete_parked_order(ctx: RequestContext, parked_order_id):
    ctx.require_staff()
    current_domain.process(DiscardParkedOrder(parked_order_id=parked_order_id), asynchronous=False)
    return ok(message="Parked order deleted")
