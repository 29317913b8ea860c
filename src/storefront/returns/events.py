"""Domain events for the ReturnRequest aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="ReturnRequest")
class ReturnRequested:
    __version__ = "v1"

    return_id = Identifier(required=True)
    return_number = String(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    item_count = Integer(required=True)
    refund_amount = Float(required=True)
    requested_at = DateTime()


@storefront.event(part_of="ReturnRequest")
class ReturnApproved:
    __version__ = "v1"

    return_id = Identifier(required=True)
    order_id = Identifier(required=True)
    approved_by = Identifier()
    approved_at = DateTime()


@storefront.event(part_of="ReturnRequest")
class ReturnRejected:
    __version__ = "v1"

    return_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String()
    rejected_by = Identifier()


@storefront.event(part_of="ReturnRequest")
class ReturnRefunded:
    __version__ = "v1"

    return_id = Identifier(required=True)
    order_id = Identifier(required=True)
    refund_method = String(required=True)
    amount = Float(required=True)
    refunded_by = Identifier()
    refunded_at = DateTime()
