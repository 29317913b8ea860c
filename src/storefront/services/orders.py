"""Order administration for staff."""

from protean.utils.globals import current_domain

from storefront.identity.context import RequestContext
from storefront.order.cancellation import CancelOrder
from storefront.order.fulfillment import AssignTrackingNumber, UpdateOrderStatus, UpdatePaymentStatus
from storefront.order.order import Order
from storefront.shared.results import ok, with_error_handling


@with_error_handling
def list_orders(ctx: RequestContext, status=None, payment_status=None, channel=None):
    ctx.require_staff()
    orders = current_domain.repository_for(Order).search(
        status=status,
        payment_status=payment_status,
        channel=channel,
    )
    return ok([order.to_dict_view(include_items=False) for order in orders])


@with_error_handling
def update_order_status(ctx: RequestContext, order_id, status, notes=None):
    actor = ctx.require_staff()
    new_status = current_domain.process(
        UpdateOrderStatus(
            order_id=order_id,
            status=status,
            notes=notes,
            changed_by=actor.user_id,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok({"status": new_status}, "Order status updated")


@with_error_handling
def assign_tracking_number(ctx: RequestContext, order_id, tracking_number):
    actor = ctx.require_staff()
    new_status = current_domain.process(
        AssignTrackingNumber(
            order_id=order_id,
            tracking_number=tracking_number,
            changed_by=actor.user_id,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok({"status": new_status}, "Tracking number assigned")


@with_error_handling
def update_payment_status(ctx: RequestContext, order_id, payment_status):
    actor = ctx.require_staff()
    new_status = current_domain.process(
        UpdatePaymentStatus(
            order_id=order_id,
            payment_status=payment_status,
            changed_by=actor.user_id,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok({"payment_status": new_status}, "Payment status updated")


@with_error_handling
def cancel_order(ctx: RequestContext, order_id, reason=None):
    actor = ctx.require_staff()
    status = current_domain.process(
        CancelOrder(order_id=order_id, reason=reason, cancelled_by=actor.user_id, ip_address=ctx.ip_address),
        asynchronous=False,
    )
    return ok({"status": status}, "Order cancelled")
