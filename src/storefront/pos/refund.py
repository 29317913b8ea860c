"""POS refund — command and handler.

Refunded quantities go back on the shelf with a ``return`` ledger row each,
the transaction is marked refunded and the refund is added to the current
shift. The audit row is the record of the refund itself.
"""

import json
import time

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditAction, AuditEntityType, record_audit
from storefront.domain import logger, storefront
from storefront.inventory.ledger import StockLedger
from storefront.pos.shift import StaffShift
from storefront.pos.transaction import PosTransaction, refund_total
from storefront.shared.repository import fetch


@storefront.command(part_of="PosTransaction")
class ProcessPosRefund:
    transaction_id = Identifier(required=True)
    items = Text(required=True)  # JSON: [{"product_id", "variant_id", "quantity", "reason", "condition"}]
    notes = Text()
    processed_by = Identifier(required=True)
    shift_id = Identifier()
    ip_address = String(max_length=64)


@storefront.command_handler(part_of=PosTransaction)
class PosRefundHandler:
    @handle(ProcessPosRefund)
    def process_refund(self, command):
        refund_items = json.loads(command.items) if isinstance(command.items, str) else command.items
        transaction = fetch(PosTransaction, command.transaction_id, "Transaction not found.")

        refunded = transaction.plan_refund(refund_items)
        refund_amount = refund_total(refunded)
        return_number = f"RET-POS-{int(time.time() * 1000)}"

        ledger = StockLedger(performed_by=command.processed_by, reference_id=return_number)
        for line in refunded:
            ledger.put_back(
                line.product_id,
                line.variant_id,
                line.quantity,
                reason=line.reason or f"POS refund {return_number}",
            )

        transaction.mark_refunded(return_number, refund_amount, notes=command.notes)

        if command.shift_id:
            shift_repo = current_domain.repository_for(StaffShift)
            shift = shift_repo.get(command.shift_id)
            shift.record_refund(refund_amount)
            shift_repo.add(shift)

        record_audit(
            AuditAction.PROCESS_REFUND,
            AuditEntityType.RETURN,
            entity_id=transaction.id,
            user_id=command.processed_by,
            new_value={
                "return_number": return_number,
                "receipt_number": transaction.receipt_number or transaction.transaction_number,
                "refund_amount": refund_amount,
                "refund_items": refund_items,
                "notes": command.notes,
                "processed_by": str(command.processed_by),
            },
            ip_address=command.ip_address,
        )
        current_domain.repository_for(PosTransaction).add(transaction)
        ledger.commit()

        logger.info(
            "POS refund processed",
            transaction_id=str(transaction.id),
            return_number=return_number,
            refund_amount=refund_amount,
        )
        return {"return_number": return_number, "refund_amount": refund_amount}
