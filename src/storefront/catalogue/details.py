"""Product details and removal — commands and handler."""

from protean import handle
from protean.fields import Boolean, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditAction, AuditEntityType, record_audit
from storefront.cart.cart import Cart
from storefront.catalogue.product import Product
from storefront.domain import storefront
from storefront.inventory.movement import StockMovement
from storefront.order.order import Order
from storefront.shared.errors import InvalidRequest
from storefront.shared.repository import fetch


@storefront.command(part_of="Product")
class UpdateProductDetails:
    product_id = Identifier(required=True)
    name = String(max_length=255)
    description = Text()
    base_price = Float(min_value=0.0)
    is_active = Boolean()
    updated_by = Identifier(required=True)
    ip_address = String(max_length=64)


@storefront.command(part_of="Product")
class DeleteProduct:
    product_id = Identifier(required=True)
    deleted_by = Identifier(required=True)
    ip_address = String(max_length=64)


def _details(product) -> dict:
    return {
        "name": product.name,
        "slug": product.slug,
        "description": product.description,
        "base_price": product.base_price,
        "is_active": product.is_active,
    }


@storefront.command_handler(part_of=Product)
class ManageProductDetailsHandler:
    @handle(UpdateProductDetails)
    def update_details(self, command):
        repo = current_domain.repository_for(Product)
        product = fetch(Product, command.product_id, "Product not found")
        before = _details(product)

        product.update_details(
            name=command.name,
            description=command.description,
            base_price=command.base_price,
            is_active=command.is_active,
        )
        product.slug = repo.unique_slug(product)

        record_audit(
            AuditAction.UPDATE,
            AuditEntityType.PRODUCT,
            entity_id=product.id,
            user_id=command.updated_by,
            old_value=before,
            new_value=_details(product),
            ip_address=command.ip_address,
        )
        repo.add(product)
        return _details(product)

    @handle(DeleteProduct)
    def delete_product(self, command):
        product = fetch(Product, command.product_id, "Product not found")

        if current_domain.repository_for(Cart).holding(product.id):
            raise InvalidRequest(
                "Cannot delete product: It is currently in customer carts. Remove it from all carts first."
            )
        if current_domain.repository_for(Order).has_ordered(product.id):
            raise InvalidRequest(
                "Cannot delete product: It has been ordered. Products with order history cannot be deleted."
            )
        if current_domain.repository_for(StockMovement).for_product(product.id):
            raise InvalidRequest(
                "Cannot delete product: It has stock movement history. Clear stock movements first."
            )

        record_audit(
            AuditAction.DELETE,
            AuditEntityType.PRODUCT,
            entity_id=product.id,
            user_id=command.deleted_by,
            old_value={**_details(product), "sku": product.sku},
            ip_address=command.ip_address,
        )
        current_domain.repository_for(Product)._dao.delete(product)
