"""Cart operations for signed-in customers."""

import json

from protean.utils.globals import current_domain

from storefront.cart.cart import Cart
from storefront.cart.items import AddToCart, ClearCart, MergeGuestCart, RemoveCartLine, UpdateCartLineQuantity
from storefront.catalogue.product import Product
from storefront.config import get_settings
from storefront.identity.context import RequestContext
from storefront.shared.errors import NotFound
from storefront.shared.pricing import PricedLine, compute_totals, line_subtotal
from storefront.shared.repository import fetch
from storefront.shared.results import ok, with_error_handling


def _lines_view(cart) -> dict:
    lines = []
    for line in cart.lines if cart else []:
        try:
            product = fetch(Product, line.product_id)
            variant = product.variant(line.variant_id)
        except NotFound:
            continue
        unit_price = product.unit_price(line.variant_id)
        lines.append(
            {
                "id": str(line.id),
                "product_id": str(line.product_id),
                "variant_id": str(line.variant_id) if line.variant_id else None,
                "name": product.name,
                "sku": product.line_sku(line.variant_id),
                "attributes": variant.attribute_map if variant is not None else {},
                "quantity": line.quantity,
                "unit_price": unit_price,
                "line_total": float(line_subtotal(unit_price, line.quantity)),
                "available": product.available(line.variant_id),
            }
        )

    totals = compute_totals(
        [PricedLine(line["unit_price"], line["quantity"]) for line in lines],
        tax_rate=get_settings().tax_rate,
    )
    return {
        "cart_id": str(cart.id) if cart else None,
        "lines": lines,
        "item_count": sum(line["quantity"] for line in lines),
        "currency": get_settings().currency,
        **totals.as_floats(),
    }


@with_error_handling
def get_cart(ctx: RequestContext):
    actor = ctx.require_actor()
    cart = current_domain.repository_for(Cart).for_customer(actor.user_id)
    return ok(_lines_view(cart))


@with_error_handling
def add_to_cart(ctx: RequestContext, product_id, quantity=1, variant_id=None):
    actor = ctx.require_actor()
    line_id = current_domain.process(
        AddToCart(customer_id=actor.user_id, product_id=product_id, variant_id=variant_id, quantity=quantity),
        asynchronous=False,
    )
    return ok({"line_id": line_id}, "Added to cart")


@with_error_handling
def update_cart_item_quantity(ctx: RequestContext, line_id, quantity):
    actor = ctx.require_actor()
    current_domain.process(
        UpdateCartLineQuantity(customer_id=actor.user_id, line_id=line_id, quantity=quantity),
        asynchronous=False,
    )
    return ok(message="Cart updated")


@with_error_handling
def remove_from_cart(ctx: RequestContext, line_id):
    actor = ctx.require_actor()
    current_domain.process(RemoveCartLine(customer_id=actor.user_id, line_id=line_id), asynchronous=False)
    return ok(message="Item removed from cart")


@with_error_handling
def clear_cart(ctx: RequestContext):
    actor = ctx.require_actor()
    removed = current_domain.process(ClearCart(customer_id=actor.user_id), asynchronous=False)
    return ok({"removed": removed}, "Cart cleared")


@with_error_handling
def merge_guest_cart(ctx: RequestContext, lines: list[dict]):
    actor = ctx.require_actor()
    result = current_domain.process(
        MergeGuestCart(customer_id=actor.user_id, lines=json.dumps(lines)),
        asynchronous=False,
    )
    return ok(result, "Cart merged")
