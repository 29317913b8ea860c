"""Order status updates by staff — commands and handler."""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditAction, AuditEntityType, record_audit
from storefront.domain import logger, storefront
from storefront.order.cancellation import restock_order_items
from storefront.order.order import Order, OrderStatus, PaymentStatus
from storefront.shared.errors import InvalidRequest
from storefront.shared.repository import fetch


@storefront.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, choices=OrderStatus)
    notes = Text()
    changed_by = Identifier(required=True)
    ip_address = String(max_length=64)


@storefront.command(part_of="Order")
class AssignTrackingNumber:
    order_id = Identifier(required=True)
    tracking_number = String(required=True, max_length=100)
    changed_by = Identifier(required=True)
    ip_address = String(max_length=64)


@storefront.command(part_of="Order")
class UpdatePaymentStatus:
    order_id = Identifier(required=True)
    payment_status = String(required=True, choices=PaymentStatus)
    changed_by = Identifier(required=True)
    ip_address = String(max_length=64)


@storefront.command_handler(part_of=Order)
class OrderFulfillmentHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        order = fetch(Order, command.order_id, "Order not found")
        previous = order.status
        target = OrderStatus(command.status)

        if target == OrderStatus.CANCELLED:
            order.cancel(reason=command.notes, cancelled_by=command.changed_by)
            restock_order_items(order, performed_by=command.changed_by)
        else:
            order.change_status(target, changed_by=command.changed_by, notes=command.notes)

        record_audit(
            AuditAction.STATUS_CHANGE,
            AuditEntityType.ORDER,
            entity_id=order.id,
            user_id=command.changed_by,
            old_value={"status": previous},
            new_value={"status": order.status, "notes": command.notes},
            ip_address=command.ip_address,
        )
        current_domain.repository_for(Order).add(order)
        logger.info("Order status changed", order_id=str(order.id), from_status=previous, to_status=order.status)
        return order.status

    @handle(AssignTrackingNumber)
    def assign_tracking_number(self, command):
        tracking_number = (command.tracking_number or "").strip()
        if not tracking_number:
            raise InvalidRequest("Tracking number is required")

        order = fetch(Order, command.order_id, "Order not found")
        previous = order.status
        order.ship(tracking_number=tracking_number, changed_by=command.changed_by, notes="Tracking number assigned")

        record_audit(
            AuditAction.STATUS_CHANGE,
            AuditEntityType.ORDER,
            entity_id=order.id,
            user_id=command.changed_by,
            old_value={"status": previous},
            new_value={"status": order.status, "tracking_number": tracking_number},
            ip_address=command.ip_address,
        )
        current_domain.repository_for(Order).add(order)
        return order.status

    @handle(UpdatePaymentStatus)
    def update_payment_status(self, command):
        order = fetch(Order, command.order_id, "Order not found")
        previous = order.payment_status
        order.change_payment_status(PaymentStatus(command.payment_status))

        record_audit(
            AuditAction.UPDATE,
            AuditEntityType.ORDER,
            entity_id=order.id,
            user_id=command.changed_by,
            old_value={"payment_status": previous},
            new_value={"payment_status": order.payment_status},
            ip_address=command.ip_address,
        )
        current_domain.repository_for(Order).add(order)
        return order.payment_status
