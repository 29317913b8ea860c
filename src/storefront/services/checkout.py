"""Checkout and customer order operations."""

from protean.utils.globals import current_domain
from pydantic import BaseModel, Field

from storefront.checkout.placement import PlaceOrder
from storefront.identity.context import RequestContext
from storefront.order.cancellation import CancelOrder
from storefront.order.order import Order
from storefront.shared.repository import fetch
from storefront.shared.results import ok, with_error_handling


class CheckoutInput(BaseModel):
    shipping_address_id: str = Field(min_length=1)
    payment_method: str = Field(min_length=1)
    customer_notes: str | None = Field(default=None, max_length=1000)


@with_error_handling
def create_order_from_cart(ctx: RequestContext, shipping_address_id, payment_method, customer_notes=None):
    """Place an order from everything in the caller's cart."""
    actor = ctx.require_actor()
    data = CheckoutInput(
        shipping_address_id=shipping_address_id,
        payment_method=payment_method,
        customer_notes=customer_notes,
    )
    result = current_domain.process(
        PlaceOrder(
            customer_id=actor.user_id,
            shipping_address_id=data.shipping_address_id,
            payment_method=data.payment_method,
            customer_notes=data.customer_notes,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok(result, "Order created successfully")


@with_error_handling
def get_my_orders(ctx: RequestContext):
    actor = ctx.require_actor()
    orders = current_domain.repository_for(Order).for_customer(actor.user_id)
    return ok([order.to_dict_view(include_items=False) for order in orders])


@with_error_handling
def get_order_details(ctx: RequestContext, order_id):
    order = fetch(Order, order_id, "Order not found")
    ctx.require_owner_or_staff(order.customer_id)
    return ok(order.to_dict_view())


@with_error_handling
def cancel_my_order(ctx: RequestContext, order_id, reason):
    actor = ctx.require_actor()
    status = current_domain.process(
        CancelOrder(
            order_id=order_id,
            reason=reason,
            cancelled_by=actor.user_id,
            by_customer=True,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok({"status": status}, "Order cancelled successfully")
