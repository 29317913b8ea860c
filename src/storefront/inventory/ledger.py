"""StockLedger — stock mutations for a single command handler run.

Products are loaded once and shared by every line that touches them, so two
lines for the same product see each other's decrements. Nothing is persisted
until ``commit()``, which adds the products and their movement rows to the
handler's unit of work.
"""

from dataclasses import dataclass

import structlog
from protean.utils.globals import current_domain

from storefront.catalogue.product import Product
from storefront.inventory.movement import MovementType, StockMovement
from storefront.shared.errors import InsufficientStock
from storefront.shared.repository import fetch

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class ResolvedLine:
    """A requested line checked against the catalogue."""

    product_id: str
    variant_id: str | None
    quantity: int
    unit_price: float
    product_name: str
    sku: str
    variant_attributes: dict
    discount: float = 0.0


class StockLedger:
    def __init__(self, performed_by=None, reference_id=None):
        self.performed_by = performed_by
        self.reference_id = reference_id
        self._products: dict[str, Product] = {}
        self._movements: list[StockMovement] = []

    @property
    def movements(self) -> list[StockMovement]:
        return list(self._movements)

    def product(self, product_id) -> Product:
        key = str(product_id)
        if key not in self._products:
            self._products[key] = fetch(Product, key, "Product not found")
        return self._products[key]

    def resolve(self, lines) -> list[ResolvedLine]:
        """Check every ``(product_id, variant_id, quantity[, discount])`` line.

        Quantities for the same product/variant are summed before comparing to
        stock. Raises ``InsufficientStock`` naming the first short product.
        """
        requested: dict[tuple, int] = {}
        resolved = []
        for line in lines:
            product_id, variant_id, quantity = str(line[0]), line[1] or None, int(line[2])
            discount = float(line[3]) if len(line) > 3 and line[3] else 0.0
            product = self.product(product_id)
            product.ensure_sellable(variant_id)

            key = (product_id, str(variant_id) if variant_id else None)
            requested[key] = requested.get(key, 0) + quantity
            available = product.available(variant_id)
            if requested[key] > available:
                raise InsufficientStock(product.display_name(variant_id), available)

            variant = product.variant(variant_id)
            resolved.append(
                ResolvedLine(
                    product_id=product_id,
                    variant_id=str(variant_id) if variant_id else None,
                    quantity=quantity,
                    unit_price=product.unit_price(variant_id),
                    product_name=product.name,
                    sku=product.line_sku(variant_id),
                    variant_attributes=variant.attribute_map if variant is not None else {},
                    discount=discount,
                )
            )
        return resolved

    def _record(self, product, variant_id, movement_type, levels, reason):
        previous, new = levels
        movement = StockMovement.record(
            product_id=product.id,
            variant_id=variant_id,
            movement_type=movement_type,
            previous_quantity=previous,
            new_quantity=new,
            reference_id=self.reference_id,
            reason=reason,
            performed_by=self.performed_by,
        )
        self._movements.append(movement)
        return movement

    def take(self, product_id, variant_id, quantity, reason=None):
        product = self.product(product_id)
        levels = product.take_stock(quantity, variant_id=variant_id, reason=reason)
        return self._record(product, variant_id, MovementType.STOCK_OUT, levels, reason)

    def put_back(self, product_id, variant_id, quantity, reason=None):
        product = self.product(product_id)
        levels = product.restock(quantity, variant_id=variant_id, reason=reason)
        return self._record(product, variant_id, MovementType.RETURN, levels, reason)

    def adjust(self, product_id, variant_id, change, reason=None):
        product = self.product(product_id)
        levels = product.adjust_stock(change, variant_id=variant_id, reason=reason)
        return self._record(product, variant_id, MovementType.ADJUSTMENT, levels, reason)

    def commit(self):
        product_repo = current_domain.repository_for(Product)
        movement_repo = current_domain.repository_for(StockMovement)
        for product in self._products.values():
            product_repo.add(product)
        for movement in self._movements:
            movement_repo.add(movement)

        if self._movements:
            logger.info(
                "Stock movements recorded",
                reference_id=self.reference_id,
                movement_count=len(self._movements),
            )
