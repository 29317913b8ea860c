"""Cart line management — commands and handler."""

import json

from protean import handle
from protean.fields import Identifier, Integer, Text
from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.catalogue.product import Product
from storefront.config import get_settings
from storefront.domain import logger, storefront
from storefront.shared.errors import InvalidRequest, NotFound
from storefront.shared.repository import fetch


@storefront.command(part_of="Cart")
class AddToCart:
    customer_id = Identifier(required=True)
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True)


@storefront.command(part_of="Cart")
class UpdateCartLineQuantity:
    customer_id = Identifier(required=True)
    line_id = Identifier(required=True)
    quantity = Integer(required=True)


@storefront.command(part_of="Cart")
class RemoveCartLine:
    customer_id = Identifier(required=True)
    line_id = Identifier(required=True)


@storefront.command(part_of="Cart")
class ClearCart:
    customer_id = Identifier(required=True)


@storefront.command(part_of="Cart")
class MergeGuestCart:
    customer_id = Identifier(required=True)
    lines = Text(required=True)  # JSON: [{"product_id", "variant_id", "quantity"}]


def _cart_for(customer_id, create=False):
    cart = current_domain.repository_for(Cart).for_customer(customer_id)
    if cart is None and create:
        cart = Cart.create(customer_id=customer_id)
    return cart


@storefront.command_handler(part_of=Cart)
class CartLinesHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        product = fetch(Product, command.product_id, "Product not found")
        product.ensure_sellable(command.variant_id)

        cart = _cart_for(command.customer_id, create=True)
        line = cart.add_line(
            product_id=command.product_id,
            variant_id=command.variant_id,
            quantity=command.quantity,
            available=product.available(command.variant_id),
            max_quantity=get_settings().max_cart_quantity,
            product_name=product.display_name(command.variant_id),
        )
        current_domain.repository_for(Cart).add(cart)
        return str(line.id)

    @handle(UpdateCartLineQuantity)
    def update_quantity(self, command):
        cart = _cart_for(command.customer_id)
        if cart is None:
            raise NotFound("Cart item not found")

        line = cart.line(command.line_id)
        product = fetch(Product, line.product_id, "Product not found")
        cart.update_line_quantity(
            line_id=command.line_id,
            quantity=command.quantity,
            available=product.available(line.variant_id),
            max_quantity=get_settings().max_cart_quantity,
            product_name=product.display_name(line.variant_id),
        )
        current_domain.repository_for(Cart).add(cart)

    @handle(RemoveCartLine)
    def remove_line(self, command):
        cart = _cart_for(command.customer_id)
        if cart is None:
            raise NotFound("Cart item not found")
        cart.remove_line(command.line_id)
        current_domain.repository_for(Cart).add(cart)

    @handle(ClearCart)
    def clear_cart(self, command):
        cart = _cart_for(command.customer_id)
        if cart is None:
            return 0
        removed = cart.clear()
        if removed:
            current_domain.repository_for(Cart).add(cart)
        return removed

    @handle(MergeGuestCart)
    def merge_guest_cart(self, command):
        """Fold guest lines into the customer's cart, capping each at stock."""
        guest_lines = json.loads(command.lines) if isinstance(command.lines, str) else command.lines
        cart = _cart_for(command.customer_id, create=True)
        max_quantity = get_settings().max_cart_quantity

        merged = skipped = 0
        for item in guest_lines or []:
            variant_id = item.get("variant_id") or None
            try:
                product = fetch(Product, item["product_id"])
                product.ensure_sellable(variant_id)
                available = product.available(variant_id)
            except (NotFound, InvalidRequest):
                skipped += 1
                continue

            existing = cart.line_for(product.id, variant_id)
            room = min(available, max_quantity) - (existing.quantity if existing else 0)
            quantity = min(int(item.get("quantity", 1)), room)
            if quantity < 1:
                skipped += 1
                continue
            cart.add_line(product.id, variant_id, quantity, available, max_quantity, product.display_name(variant_id))
            merged += 1

        current_domain.repository_for(Cart).add(cart)
        logger.info("Guest cart merged", customer_id=str(command.customer_id), merged=merged, skipped=skipped)
        return {"merged": merged, "skipped": skipped}
