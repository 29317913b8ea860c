"""Checkout — turn a customer's cart into an order in one unit of work.

The handler validates every cart line against current stock, snapshots the
items and shipping address onto a new order, decrements stock with a ledger
row per line and empties the cart. Any failure rolls all of it back, so a
failed checkout leaves no order, no stock change and an untouched cart.
"""

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditAction, AuditEntityType, record_audit
from storefront.cart.cart import Cart
from storefront.config import get_settings
from storefront.domain import logger, storefront
from storefront.identity.address import CustomerAddress
from storefront.inventory.ledger import StockLedger
from storefront.order.numbering import generate_order_number
from storefront.order.order import ONLINE_PAYMENT_METHODS, Order, PaymentMethod
from storefront.shared.errors import InvalidRequest
from storefront.shared.pricing import PricedLine, compute_totals


@storefront.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    shipping_address_id = Identifier(required=True)
    payment_method = String(required=True, max_length=50)
    customer_notes = Text()
    ip_address = String(max_length=64)


def _checkout_payment_method(value) -> PaymentMethod:
    try:
        method = PaymentMethod(value)
    except ValueError:
        method = None
    if method not in ONLINE_PAYMENT_METHODS:
        raise InvalidRequest(f"Unsupported payment method: {value}")
    return method


@storefront.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        settings = get_settings()
        payment_method = _checkout_payment_method(command.payment_method)

        cart_repo = current_domain.repository_for(Cart)
        cart = cart_repo.for_customer(command.customer_id)
        if cart is None or cart.is_empty:
            raise InvalidRequest("Your cart is empty")

        address = current_domain.repository_for(CustomerAddress).owned_by(
            command.shipping_address_id,
            command.customer_id,
        )

        ledger = StockLedger(performed_by=command.customer_id)
        lines = ledger.resolve([(line.product_id, line.variant_id, line.quantity) for line in cart.lines])
        totals = compute_totals(
            [PricedLine(line.unit_price, line.quantity) for line in lines],
            tax_rate=settings.tax_rate,
        )

        order_number = generate_order_number()
        order = Order.place(
            order_number=order_number,
            lines=lines,
            totals=totals,
            payment_method=payment_method.value,
            customer_id=command.customer_id,
            shipping_address=address.snapshot(),
            customer_notes=command.customer_notes,
            placed_by=command.customer_id,
        )

        ledger.reference_id = order_number
        for line in lines:
            ledger.take(line.product_id, line.variant_id, line.quantity, reason=f"Order {order_number}")

        cart.clear()

        current_domain.repository_for(Order).add(order)
        ledger.commit()
        cart_repo.add(cart)
        record_audit(
            AuditAction.CREATE,
            AuditEntityType.ORDER,
            entity_id=order.id,
            user_id=command.customer_id,
            new_value={"order_number": order_number, "total": order.total, "channel": order.channel},
            ip_address=command.ip_address,
        )

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order_number,
            customer_id=str(command.customer_id),
            total=order.total,
        )
        return {"order_id": str(order.id), "order_number": order_number}
