import re
from datetime import UTC, datetime

from storefront.order import numbering
from storefront.order.numbering import generate_order_number


def test_sequential_per_day():
    day = datetime(2026, 3, 14, tzinfo=UTC)

    assert generate_order_number(day) == "ORD-20260314-00001"
    assert generate_order_number(day) == "ORD-20260314-00002"


def test_counter_restarts_each_day():
    generate_order_number(datetime(2026, 3, 14, tzinfo=UTC))

    assert generate_order_number(datetime(2026, 3, 15, tzinfo=UTC)) == "ORD-20260315-00001"


def test_falls_back_to_timestamp(monkeypatch):
    def broken(day):
        raise RuntimeError("sequence table locked")

    monkeypatch.setattr(numbering, "_next_sequence_value", broken)

    assert re.fullmatch(r"ORD-\d{13}", generate_order_number())
