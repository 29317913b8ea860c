"""Online returns — request, review and refund commands with their handler.

Approving a return puts the items back on the shelf with ``return`` ledger
rows. Refunding the last outstanding unit of a paid order moves the order's
payment status to refunded.
"""

import json

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditAction, AuditEntityType, record_audit
from storefront.config import get_settings
from storefront.domain import logger, storefront
from storefront.inventory.ledger import StockLedger
from storefront.order.order import Order, PaymentStatus
from storefront.returns.return_request import RefundStatus, ReturnRequest
from storefront.shared.errors import NotFound
from storefront.shared.repository import fetch


@storefront.command(part_of="ReturnRequest")
class RequestReturn:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    items = Text(required=True)  # JSON: [{"order_item_id", "quantity", "reason"}]
    return_method = String(required=True, max_length=20)
    additional_notes = Text()
    ip_address = String(max_length=64)


@storefront.command(part_of="ReturnRequest")
class ApproveReturn:
    return_id = Identifier(required=True)
    approved_by = Identifier(required=True)
    notes = Text()
    ip_address = String(max_length=64)


@storefront.command(part_of="ReturnRequest")
class RejectReturn:
    return_id = Identifier(required=True)
    rejected_by = Identifier(required=True)
    reason = Text()
    ip_address = String(max_length=64)


@storefront.command(part_of="ReturnRequest")
class ProcessReturnRefund:
    return_id = Identifier(required=True)
    refund_method = String(required=True, max_length=20)
    amount = Float()
    refunded_by = Identifier(required=True)
    ip_address = String(max_length=64)


def _fully_refunded(order, return_requests) -> bool:
    refunded: dict[str, int] = {}
    for return_request in return_requests:
        if return_request.refund_status != RefundStatus.REFUNDED.value:
            continue
        for item in return_request.items:
            key = str(item.order_item_id)
            refunded[key] = refunded.get(key, 0) + item.quantity
    return all(refunded.get(str(item.id), 0) >= item.quantity for item in order.items)


@storefront.command_handler(part_of=ReturnRequest)
class ReturnWorkflowHandler:
    @handle(RequestReturn)
    def request_return(self, command):
        order = fetch(Order, command.order_id, "Order not found")
        if str(order.customer_id or "") != str(command.customer_id):
            raise NotFound("Order not found")

        repo = current_domain.repository_for(ReturnRequest)
        return_request = ReturnRequest.request(
            order,
            json.loads(command.items),
            command.return_method,
            window_days=get_settings().return_window_days,
            already_returned=repo.returned_quantities(order.id),
            notes=command.additional_notes,
        )
        record_audit(
            AuditAction.REQUEST_RETURN,
            AuditEntityType.RETURN,
            entity_id=return_request.id,
            user_id=command.customer_id,
            new_value={
                "order_id": str(order.id),
                "items": json.loads(command.items),
                "return_method": return_request.return_method,
            },
            ip_address=command.ip_address,
        )
        repo.add(return_request)

        logger.info(
            "Return requested",
            return_number=return_request.return_number,
            order_number=order.order_number,
            refund_amount=return_request.refund_amount,
        )
        return {
            "return_id": str(return_request.id),
            "return_number": return_request.return_number,
            "refund_amount": return_request.refund_amount,
        }

    @handle(ApproveReturn)
    def approve_return(self, command):
        return_request = fetch(ReturnRequest, command.return_id, "Return not found")
        return_request.approve(command.approved_by, notes=command.notes)

        ledger = StockLedger(performed_by=command.approved_by, reference_id=return_request.return_number)
        for item in return_request.items:
            ledger.put_back(
                item.product_id,
                item.variant_id,
                item.quantity,
                reason=f"Return {return_request.return_number}",
            )

        record_audit(
            AuditAction.APPROVE_RETURN,
            AuditEntityType.RETURN,
            entity_id=return_request.id,
            user_id=command.approved_by,
            old_value={"status": "requested"},
            new_value={"status": return_request.status, "notes": command.notes},
            ip_address=command.ip_address,
        )
        ledger.commit()
        current_domain.repository_for(ReturnRequest).add(return_request)

    @handle(RejectReturn)
    def reject_return(self, command):
        return_request = fetch(ReturnRequest, command.return_id, "Return not found")
        return_request.reject(command.rejected_by, command.reason)

        record_audit(
            AuditAction.REJECT_RETURN,
            AuditEntityType.RETURN,
            entity_id=return_request.id,
            user_id=command.rejected_by,
            old_value={"status": "requested"},
            new_value={"status": return_request.status, "reason": return_request.rejection_reason},
            ip_address=command.ip_address,
        )
        current_domain.repository_for(ReturnRequest).add(return_request)

    @handle(ProcessReturnRefund)
    def process_refund(self, command):
        repo = current_domain.repository_for(ReturnRequest)
        return_request = fetch(ReturnRequest, command.return_id, "Return not found")
        amount = return_request.refund(command.refunded_by, command.refund_method, command.amount)

        order = fetch(Order, return_request.order_id, "Order not found")
        others = [r for r in repo.for_order(order.id) if str(r.id) != str(return_request.id)]
        if order.payment_status == PaymentStatus.PAID.value and _fully_refunded(order, [*others, return_request]):
            order.change_payment_status(PaymentStatus.REFUNDED)
            current_domain.repository_for(Order).add(order)

        record_audit(
            AuditAction.PROCESS_REFUND,
            AuditEntityType.RETURN,
            entity_id=return_request.id,
            user_id=command.refunded_by,
            new_value={"refund_method": return_request.refund_method, "refund_amount": amount},
            ip_address=command.ip_address,
        )
        repo.add(return_request)

        logger.info("Return refunded", return_number=return_request.return_number, amount=amount)
        return {"return_number": return_request.return_number, "refund_amount": amount}
