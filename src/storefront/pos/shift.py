"""StaffShift aggregate — one register session for one staff member.

A shift is opened with a counted cash float and closed with a counted
drawer; the difference against what the drawer should hold is recorded.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from storefront.domain import storefront
from storefront.shared.errors import Conflict, InvalidRequest
from storefront.shared.pricing import to_money


class ShiftStatus(Enum):
    OPEN = "open"
    CLOSED = "closed"


@storefront.aggregate
class StaffShift:
    staff_id = Identifier(required=True)
    register_id = String(required=True, max_length=100)
    status = String(choices=ShiftStatus, default=ShiftStatus.OPEN.value)
    opening_cash = Float(required=True, min_value=0.0)
    total_sales = Float(default=0.0)
    cash_sales = Float(default=0.0)
    total_refunds = Float(default=0.0)
    transaction_count = Integer(default=0)
    expected_cash = Float()
    closing_cash = Float()
    cash_difference = Float()
    notes = Text()
    clock_in = DateTime()
    clock_out = DateTime()

    @classmethod
    def open(cls, staff_id, register_id, opening_cash):
        if opening_cash is None or opening_cash <= 0:
            raise InvalidRequest("Opening cash must be greater than zero")
        return cls(
            staff_id=staff_id,
            register_id=register_id,
            opening_cash=float(to_money(opening_cash)),
            status=ShiftStatus.OPEN.value,
            clock_in=datetime.now(UTC),
        )

    @property
    def is_open(self) -> bool:
        return self.status == ShiftStatus.OPEN.value

    def _ensure_open(self):
        if not self.is_open:
            raise Conflict("Already clocked out")

    def record_sale(self, amount, cash_amount=0):
        self._ensure_open()
        self.total_sales = float(to_money(self.total_sales) + to_money(amount))
        self.cash_sales = float(to_money(self.cash_sales) + to_money(cash_amount))
        self.transaction_count = (self.transaction_count or 0) + 1

    def record_refund(self, amount):
        self._ensure_open()
        self.total_refunds = float(to_money(self.total_refunds) + to_money(amount))

    def drawer_expectation(self):
        """Cash the drawer should hold: float plus cash taken, less refunds paid out."""
        return to_money(self.opening_cash) + to_money(self.cash_sales) - to_money(self.total_refunds)

    def close(self, closing_cash, notes=None):
        self._ensure_open()
        if closing_cash is None or closing_cash < 0:
            raise InvalidRequest("Closing cash cannot be negative")

        expected = self.drawer_expectation()
        self.expected_cash = float(expected)
        self.closing_cash = float(to_money(closing_cash))
        self.cash_difference = float(to_money(closing_cash) - expected)
        self.notes = notes
        self.status = ShiftStatus.CLOSED.value
        self.clock_out = datetime.now(UTC)

    def to_dict_view(self) -> dict:
        return {
            "id": str(self.id),
            "staff_id": str(self.staff_id),
            "register_id": self.register_id,
            "status": self.status,
            "opening_cash": self.opening_cash,
            "total_sales": self.total_sales,
            "cash_sales": self.cash_sales,
            "total_refunds": self.total_refunds,
            "transaction_count": self.transaction_count,
            "expected_cash": self.expected_cash,
            "closing_cash": self.closing_cash,
            "cash_difference": self.cash_difference,
            "clock_in": self.clock_in.isoformat() if self.clock_in else None,
            "clock_out": self.clock_out.isoformat() if self.clock_out else None,
        }


@storefront.repository(part_of=StaffShift)
class StaffShiftRepository:
    def open_for(self, staff_id):
        shifts = self._dao.query.filter(staff_id=str(staff_id), status=ShiftStatus.OPEN.value).all().items
        return shifts[0] if shifts else None
