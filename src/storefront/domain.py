"""Storefront domain — catalogue, carts, online checkout and the POS register.

A single domain holds every aggregate so that checkout, POS sales and refunds
can change products, carts, orders and the stock ledger in one unit of work.
"""

from protean.domain import Domain

from storefront.utils.logging import get_logger

logger = get_logger(__name__)

# Domain Composition Root
storefront = Domain(name="storefront")
