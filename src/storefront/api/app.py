"""Storefront FastAPI application.

Usage:
    uvicorn storefront.api.app:create_app --factory --host 0.0.0.0 --port 8000
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from storefront.api.routes import (
    account_router,
    admin_router,
    cart_router,
    order_router,
    payment_router,
    pos_router,
    product_router,
    returns_router,
)
from storefront.domain import storefront
from storefront.utils.logging import add_context, clear_context, configure_logging


def create_app(init_domain: bool = True, setup_logging: bool = True) -> FastAPI:
    """Build the API. Tests pass ``init_domain=False`` once the domain is initialised."""
    if setup_logging:
        configure_logging()
    if init_domain:
        storefront.init()

    app = FastAPI(
        title="Storefront API",
        description="Online storefront and point-of-sale checkout",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def domain_context_middleware(request: Request, call_next):
        """Push the storefront domain context for each request."""
        clear_context()
        add_context(
            path=request.url.path,
            method=request.method,
            user_id=request.headers.get("X-User-Id"),
        )
        with storefront.domain_context():
            response = await call_next(request)
        return response

    app.include_router(product_router)
    app.include_router(cart_router)
    app.include_router(order_router)
    app.include_router(admin_router)
    app.include_router(account_router)
    app.include_router(pos_router)
    app.include_router(payment_router)
    app.include_router(returns_router)

    @app.get("/health")
    async def health():
        return JSONResponse(content={"status": "ok", "domain": storefront.name})

    return app
