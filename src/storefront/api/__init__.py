"""Storefront API package."""

from storefront.api.routes import (
    account_router,
    admin_router,
    cart_router,
    order_router,
    payment_router,
    pos_router,
    product_router,
)

__all__ = [
    "account_router",
    "admin_router",
    "cart_router",
    "order_router",
    "payment_router",
    "pos_router",
    "product_router",
]
