"""Order numbers — ``<PREFIX>-<YYYYMMDD>-<NNNNN>`` from a per-day counter.

The counter row is read and bumped inside the caller's unit of work, so a
rolled-back checkout does not burn a number. If the counter cannot be read
the number falls back to ``<PREFIX>-<epoch millis>``.
"""

import time
from datetime import UTC, datetime

import structlog
from protean.fields import Integer, String
from protean.utils.globals import current_domain

from storefront.config import get_settings
from storefront.domain import storefront

logger = structlog.get_logger(__name__)


@storefront.aggregate
class OrderSequence:
    day = String(required=True, max_length=8)  # YYYYMMDD
    last_value = Integer(default=0, min_value=0)

    def next_value(self) -> int:
        self.last_value = (self.last_value or 0) + 1
        return self.last_value


@storefront.repository(part_of=OrderSequence)
class OrderSequenceRepository:
    def for_day(self, day: str):
        sequences = self._dao.query.filter(day=day).all().items
        return sequences[0] if sequences else None


def _next_sequence_value(day: str) -> int:
    repo = current_domain.repository_for(OrderSequence)
    sequence = repo.for_day(day) or OrderSequence(day=day, last_value=0)
    value = sequence.next_value()
    repo.add(sequence)
    return value


def generate_order_number(now: datetime | None = None, prefix: str | None = None) -> str:
    prefix = prefix or get_settings().order_number_prefix
    now = now or datetime.now(UTC)
    day = now.strftime("%Y%m%d")
    try:
        return f"{prefix}-{day}-{_next_sequence_value(day):05d}"
    except Exception:  # noqa: BLE001 - numbering must not block a sale
        logger.warning("Order sequence unavailable, using timestamp order number", exc_info=True)
        return f"{prefix}-{int(time.time() * 1000)}"
