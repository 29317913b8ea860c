"""StockMovement aggregate — the append-only stock ledger.

Every change to a product or variant counter writes one row recording the
signed change, the counter before and after, and what caused it.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Identifier, Integer, String

from storefront.domain import storefront


class MovementType(Enum):
    STOCK_IN = "stock_in"
    STOCK_OUT = "stock_out"
    ADJUSTMENT = "adjustment"
    RETURN = "return"


@storefront.aggregate
class StockMovement:
    product_id = Identifier(required=True)
    variant_id = Identifier()
    movement_type = String(required=True, choices=MovementType)
    quantity_change = Integer(required=True)
    previous_quantity = Integer(required=True, min_value=0)
    new_quantity = Integer(required=True, min_value=0)
    reference_id = String(max_length=100)  # Order, transaction or return number
    reason = String(max_length=500)
    performed_by = Identifier()
    created_at = DateTime()

    @classmethod
    def record(
        cls,
        product_id,
        movement_type,
        previous_quantity,
        new_quantity,
        variant_id=None,
        reference_id=None,
        reason=None,
        performed_by=None,
    ):
        return cls(
            product_id=str(product_id),
            variant_id=str(variant_id) if variant_id else None,
            movement_type=movement_type.value,
            quantity_change=new_quantity - previous_quantity,
            previous_quantity=previous_quantity,
            new_quantity=new_quantity,
            reference_id=str(reference_id) if reference_id else None,
            reason=reason,
            performed_by=str(performed_by) if performed_by else None,
            created_at=datetime.now(UTC),
        )

    def to_dict_view(self) -> dict:
        return {
            "id": str(self.id),
            "product_id": str(self.product_id),
            "variant_id": str(self.variant_id) if self.variant_id else None,
            "movement_type": self.movement_type,
            "quantity_change": self.quantity_change,
            "previous_quantity": self.previous_quantity,
            "new_quantity": self.new_quantity,
            "reference_id": self.reference_id,
            "reason": self.reason,
            "performed_by": str(self.performed_by) if self.performed_by else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


@storefront.repository(part_of=StockMovement)
class StockMovementRepository:
    def for_product(self, product_id, variant_id=None) -> list:
        filters = {"product_id": str(product_id)}
        if variant_id:
            filters["variant_id"] = str(variant_id)
        return self._dao.query.filter(**filters).order_by("-created_at").all().items

    def for_reference(self, reference_id) -> list:
        return self._dao.query.filter(reference_id=str(reference_id)).all().items
