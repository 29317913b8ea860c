"""Stock adjustments and the movement ledger."""

from protean.utils.globals import current_domain

from storefront.identity.context import RequestContext
from storefront.inventory.adjustment import AdjustStock
from storefront.inventory.movement import StockMovement
from storefront.shared.results import ok, with_error_handling


@with_error_handling
def adjust_stock(ctx: RequestContext, product_id, adjustment, reason, variant_id=None):
    actor = ctx.require_staff()
    movement = current_domain.process(
        AdjustStock(
            product_id=product_id,
            variant_id=variant_id,
            adjustment=adjustment,
            reason=reason,
            performed_by=actor.user_id,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok(movement, "Stock adjusted successfully")


@with_error_handling
def get_stock_movements(ctx: RequestContext, product_id, variant_id=None):
    ctx.require_staff()
    movements = current_domain.repository_for(StockMovement).for_product(product_id, variant_id)
    return ok([movement.to_dict_view() for movement in movements])
