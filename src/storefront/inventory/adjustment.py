"""Manual stock adjustment — command and handler."""

from protean import handle
from protean.fields import Identifier, Integer, String

from storefront.audit.audit_log import AuditAction, AuditEntityType, record_audit
from storefront.domain import storefront
from storefront.inventory.ledger import StockLedger
from storefront.inventory.movement import StockMovement
from storefront.shared.errors import InvalidRequest


@storefront.command(part_of="StockMovement")
class AdjustStock:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    adjustment = Integer(required=True)
    reason = String(required=True, max_length=500)
    performed_by = Identifier(required=True)
    ip_address = String(max_length=64)


@storefront.command_handler(part_of=StockMovement)
class AdjustStockHandler:
    @handle(AdjustStock)
    def adjust_stock(self, command):
        if len((command.reason or "").strip()) < 3:
            raise InvalidRequest("Reason must be at least 3 characters")

        ledger = StockLedger(performed_by=command.performed_by)
        movement = ledger.adjust(
            command.product_id,
            command.variant_id,
            command.adjustment,
            reason=command.reason.strip(),
        )
        record_audit(
            AuditAction.STOCK_ADJUSTMENT,
            AuditEntityType.VARIANT if command.variant_id else AuditEntityType.PRODUCT,
            entity_id=command.variant_id or command.product_id,
            user_id=command.performed_by,
            old_value={"stock_quantity": movement.previous_quantity},
            new_value={
                "stock_quantity": movement.new_quantity,
                "adjustment": command.adjustment,
                "reason": command.reason.strip(),
            },
            ip_address=command.ip_address,
        )
        ledger.commit()
        return movement.to_dict_view()
