"""Order cancellation — command and handler.

Cancelling puts every item back on the shelf and writes a ``return`` stock
movement per item, in the same unit of work as the status change.
"""

from protean import handle
from protean.fields import Boolean, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditAction, AuditEntityType, record_audit
from storefront.domain import logger, storefront
from storefront.inventory.ledger import StockLedger
from storefront.order.order import Order
from storefront.shared.errors import Forbidden, InvalidRequest
from storefront.shared.repository import fetch


@storefront.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = Text()
    cancelled_by = Identifier(required=True)
    by_customer = Boolean(default=False)
    ip_address = String(max_length=64)


def restock_order_items(order, performed_by=None):
    ledger = StockLedger(performed_by=performed_by, reference_id=order.order_number)
    for item in order.items:
        ledger.put_back(
            item.product_id,
            item.variant_id,
            item.quantity,
            reason=f"Order {order.order_number} cancelled",
        )
    ledger.commit()
    return ledger.movements


@storefront.command_handler(part_of=Order)
class CancelOrderHandler:
    @handle(CancelOrder)
    def cancel_order(self, command):
        order = fetch(Order, command.order_id, "Order not found")
        if command.by_customer:
            if str(order.customer_id) != str(command.cancelled_by):
                raise Forbidden("You do not have access to this order")
            if len((command.reason or "").strip()) < 5:
                raise InvalidRequest("Please provide a reason of at least 5 characters")

        previous = order.status
        order.cancel(reason=command.reason, cancelled_by=command.cancelled_by, by_customer=command.by_customer)
        restock_order_items(order, performed_by=command.cancelled_by)

        record_audit(
            AuditAction.STATUS_CHANGE,
            AuditEntityType.ORDER,
            entity_id=order.id,
            user_id=command.cancelled_by,
            old_value={"status": previous},
            new_value={"status": order.status, "reason": command.reason},
            ip_address=command.ip_address,
        )
        current_domain.repository_for(Order).add(order)
        logger.info("Order cancelled", order_id=str(order.id), order_number=order.order_number)
        return order.status
