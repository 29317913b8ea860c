"""Cart aggregate — one per customer, holding lines until checkout.

Lines are keyed by product and variant: adding the same pair again merges
into the existing line. Stock limits are checked by the caller, which passes
in what is available so the cart stays free of catalogue lookups.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer

from storefront.cart.events import CartCleared, CartLineAdded, CartLineQuantityUpdated, CartLineRemoved
from storefront.domain import storefront
from storefront.shared.errors import InsufficientStock, NotFound


@storefront.entity(part_of="Cart")
class CartLine:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@storefront.aggregate
class Cart:
    customer_id = Identifier(required=True)
    lines = HasMany(CartLine)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, customer_id):
        now = datetime.now(UTC)
        return cls(customer_id=customer_id, created_at=now, updated_at=now)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def line_for(self, product_id, variant_id=None):
        return next(
            (
                line
                for line in self.lines
                if str(line.product_id) == str(product_id) and str(line.variant_id or "") == str(variant_id or "")
            ),
            None,
        )

    def line(self, line_id):
        line = next((line for line in self.lines if str(line.id) == str(line_id)), None)
        if line is None:
            raise NotFound("Cart item not found")
        return line

    @staticmethod
    def _check_quantity(quantity, max_quantity):
        if quantity < 1:
            raise ValidationError({"quantity": ["Quantity must be at least 1"]})
        if quantity > max_quantity:
            raise ValidationError({"quantity": [f"Quantity cannot exceed {max_quantity}"]})

    def add_line(self, product_id, variant_id, quantity, available, max_quantity, product_name="Product"):
        """Add a line, or merge into the existing one for the same product/variant."""
        self._check_quantity(quantity, max_quantity)
        existing = self.line_for(product_id, variant_id)
        new_quantity = quantity + (existing.quantity if existing else 0)
        if new_quantity > available:
            raise InsufficientStock(product_name, available)
        self._check_quantity(new_quantity, max_quantity)

        now = datetime.now(UTC)
        if existing:
            existing.quantity = new_quantity
            line = existing
        else:
            line = CartLine(product_id=product_id, variant_id=variant_id, quantity=quantity, added_at=now)
            self.add_lines(line)
        self.updated_at = now

        self.raise_(
            CartLineAdded(
                cart_id=str(self.id),
                line_id=str(line.id),
                product_id=str(product_id),
                variant_id=str(variant_id) if variant_id else None,
                quantity=quantity,
            )
        )
        return line

    def update_line_quantity(self, line_id, quantity, available, max_quantity, product_name="Product"):
        self._check_quantity(quantity, max_quantity)
        line = self.line(line_id)
        if quantity > available:
            raise InsufficientStock(product_name, available)

        previous = line.quantity
        line.quantity = quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartLineQuantityUpdated(
                cart_id=str(self.id),
                line_id=str(line.id),
                previous_quantity=previous,
                new_quantity=quantity,
            )
        )
        return line

    def remove_line(self, line_id):
        line = self.line(line_id)
        self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartLineRemoved(cart_id=str(self.id), line_id=str(line.id), product_id=str(line.product_id)))

    def clear(self) -> int:
        """Remove every line. Clearing an empty cart is a no-op."""
        removed = len(self.lines)
        if not removed:
            return 0
        for line in list(self.lines):
            self.remove_lines(line)
        self.updated_at = datetime.now(UTC)

        self.raise_(CartCleared(cart_id=str(self.id), customer_id=str(self.customer_id), lines_removed=removed))
        return removed


@storefront.repository(part_of=Cart)
class CartRepository:
    def for_customer(self, customer_id):
        carts = self._dao.query.filter(customer_id=str(customer_id)).all().items
        return carts[0] if carts else None

    def holding(self, product_id) -> list:
        """Carts with at least one line for the product."""
        carts = self._dao.query.limit(None).all().items
        return [cart for cart in carts if any(str(line.product_id) == str(product_id) for line in cart.lines)]
