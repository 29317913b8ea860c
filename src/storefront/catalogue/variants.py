"""Variant management — update, removal and bulk stock counts.

Bulk stock updates go through the stock ledger, so every changed counter
gets an ``adjustment`` movement. A bad line is reported in the results and
does not stop the others.
"""

import json

from protean import handle
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditAction, AuditEntityType, record_audit
from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.inventory.ledger import StockLedger
from storefront.order.order import Order
from storefront.shared.errors import Conflict, InvalidRequest, NotFound, StorefrontError
from storefront.shared.repository import fetch

STOCK_OPERATIONS = ("set", "add", "subtract")


@storefront.command(part_of="Product")
class UpdateVariant:
    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    sku = String(max_length=50)
    attributes = Text()  # JSON object
    price = Float(min_value=0.0)
    is_active = Boolean()
    updated_by = Identifier(required=True)
    ip_address = String(max_length=64)


@storefront.command(part_of="Product")
class RemoveVariant:
    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    removed_by = Identifier(required=True)
    ip_address = String(max_length=64)


@storefront.command(part_of="Product")
class BulkUpdateVariantStock:
    product_id = Identifier(required=True)
    updates = Text(required=True)  # JSON: [{"variant_id", "quantity", "operation"}]
    updated_by = Identifier(required=True)
    ip_address = String(max_length=64)


def stock_change(current: int, operation: str, quantity: int) -> int:
    """Counter change for one bulk line. Subtracting never goes below zero."""
    if operation not in STOCK_OPERATIONS:
        raise InvalidRequest(f"Unknown stock operation: {operation}")
    if quantity < 0:
        raise InvalidRequest("Quantity cannot be negative")
    if operation == "set":
        return quantity - current
    if operation == "add":
        return quantity
    return -min(quantity, current)


def _variant_view(variant) -> dict:
    return {
        "sku": variant.sku,
        "attributes": variant.attribute_map,
        "price": variant.price,
        "is_active": variant.is_active,
    }


@storefront.command_handler(part_of=Product)
class ManageVariantsHandler:
    @handle(UpdateVariant)
    def update_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = fetch(Product, command.product_id, "Product not found")
        variant = product.variant(command.variant_id)
        before = _variant_view(variant)

        if command.sku and any(v.sku == command.sku and str(v.id) != str(variant.id) for v in product.variants):
            raise Conflict("SKU already exists")

        product.update_variant(
            command.variant_id,
            sku=command.sku,
            attributes=json.loads(command.attributes) if command.attributes else None,
            price=command.price,
            is_active=command.is_active,
        )
        record_audit(
            AuditAction.UPDATE,
            AuditEntityType.VARIANT,
            entity_id=variant.id,
            user_id=command.updated_by,
            old_value=before,
            new_value=_variant_view(variant),
            ip_address=command.ip_address,
        )
        repo.add(product)
        return _variant_view(variant)

    @handle(RemoveVariant)
    def remove_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = fetch(Product, command.product_id, "Product not found")
        variant = product.variant(command.variant_id)

        if current_domain.repository_for(Order).has_ordered(product.id, variant.id):
            raise Conflict("Cannot delete variant that has been ordered. Deactivate it instead.")

        product.remove_variant(variant.id)
        record_audit(
            AuditAction.DELETE,
            AuditEntityType.VARIANT,
            entity_id=variant.id,
            user_id=command.removed_by,
            old_value=_variant_view(variant),
            ip_address=command.ip_address,
        )
        repo.add(product)

    @handle(BulkUpdateVariantStock)
    def bulk_update_stock(self, command):
        updates = json.loads(command.updates) if isinstance(command.updates, str) else command.updates
        if not updates:
            raise InvalidRequest("Provide at least one stock update")

        ledger = StockLedger(performed_by=command.updated_by, reference_id=f"BULK-{command.product_id}")
        product = ledger.product(command.product_id)

        results = []
        for update in updates:
            variant_id = update.get("variant_id")
            try:
                if not variant_id:
                    raise NotFound("Product variant not found")
                current = product.available(variant_id)
                change = stock_change(current, update.get("operation", "set"), int(update.get("quantity", 0)))
                if change:
                    ledger.adjust(product.id, variant_id, change, reason="Bulk stock update")
            except StorefrontError as exc:
                results.append({"variant_id": variant_id, "success": False, "error": exc.message})
                continue
            results.append({"variant_id": variant_id, "success": True, "new_quantity": product.available(variant_id)})

        record_audit(
            AuditAction.STOCK_ADJUSTMENT,
            AuditEntityType.PRODUCT,
            entity_id=product.id,
            user_id=command.updated_by,
            new_value={"updates": updates, "results": results},
            ip_address=command.ip_address,
        )
        ledger.commit()
        return results
