"""Order pricing — the single place subtotal, tax and total are computed.

Amounts are carried as ``Decimal`` and rounded half-up to centavos; the
aggregates store the resulting floats. Callers always pass the tax rate, the
configured store rate normally comes from ``get_settings().tax_rate``.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def to_money(value) -> Decimal:
    if isinstance(value, Decimal):
        amount = value
    else:
        amount = Decimal(str(value or 0))
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class PricedLine:
    unit_price: Decimal | float
    quantity: int
    discount: Decimal | float = 0

    @property
    def subtotal(self) -> Decimal:
        return to_money(to_money(self.unit_price) * self.quantity - to_money(self.discount))


@dataclass(frozen=True)
class OrderTotals:
    subtotal: Decimal
    tax: Decimal
    shipping_cost: Decimal
    discount: Decimal
    total: Decimal

    def as_floats(self) -> dict:
        return {
            "subtotal": float(self.subtotal),
            "tax": float(self.tax),
            "shipping_cost": float(self.shipping_cost),
            "discount": float(self.discount),
            "total": float(self.total),
        }


def line_subtotal(unit_price, quantity: int, discount=0) -> Decimal:
    return PricedLine(unit_price, quantity, discount).subtotal


def compute_totals(
    lines: Iterable[PricedLine],
    *,
    tax_rate: Decimal | float | str,
    shipping_cost=0,
    discount=0,
) -> OrderTotals:
    """Price a set of lines.

    Tax is charged on the subtotal after the order-level discount; shipping is
    added untaxed.
    """
    rate = Decimal(str(tax_rate))
    if not Decimal("0") <= rate < Decimal("1"):
        raise ValueError(f"Tax rate must be between 0 and 1, got {rate}")

    lines = list(lines)
    for line in lines:
        if line.quantity < 1:
            raise ValueError("Line quantity must be at least 1")
        if to_money(line.unit_price) < 0:
            raise ValueError("Unit price cannot be negative")

    subtotal = sum((line.subtotal for line in lines), Decimal("0.00"))
    discount = to_money(discount)
    if discount > subtotal:
        raise ValueError("Discount cannot exceed the subtotal")
    shipping = to_money(shipping_cost)
    tax = to_money((subtotal - discount) * rate)
    total = to_money(subtotal - discount + tax + shipping)

    return OrderTotals(subtotal=subtotal, tax=tax, shipping_cost=shipping, discount=discount, total=total)
