"""FastAPI routes for the Storefront API.

Every route delegates to a service function and returns its ActionResult
as the response body, with the HTTP status derived from the error code.
"""

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import JSONResponse

from storefront.api.schemas import (
    AddressRequest,
    AddToCartRequest,
    AddVariantRequest,
    ApproveReturnBody,
    AssignTrackingRequest,
    BulkStockRequest,
    CancelOrderRequest,
    CheckoutRequest,
    ClockInRequest,
    ClockOutRequest,
    CreateProductRequest,
    MergeGuestCartRequest,
    PasswordChangeConfirmBody,
    PasswordChangeRequestBody,
    PosRefundRequest,
    PosSaleRequest,
    RejectReturnBody,
    ReturnRefundBody,
    ReturnRequestBody,
    StockAdjustmentRequest,
    SubmitPaymentProofRequest,
    UpdateCartLineRequest,
    UpdateOrderStatusRequest,
    UpdatePaymentStatusRequest,
    UpdateProductRequest,
    UpdateVariantRequest,
    VerifyPaymentRequest,
)
from storefront.identity.context import RequestContext, Role
from storefront.services import account, cart, catalogue, checkout, inventory, orders, payments, pos, returns
from storefront.shared.errors import ErrorCode
from storefront.shared.results import ActionResult

_STATUS_FOR_CODE = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.UNAUTHORIZED: 401,
    ErrorCode.FORBIDDEN: 403,
    ErrorCode.CONFLICT: 409,
    ErrorCode.SERVER_ERROR: 500,
}


def request_context(
    request: Request,
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
    x_user_email: str | None = Header(default=None),
    x_user_name: str | None = Header(default=None),
) -> RequestContext:
    """Build the caller from headers set by the upstream auth gateway."""
    ip_address = request.client.host if request.client else None
    if not x_user_id:
        return RequestContext.anonymous(ip_address=ip_address)
    try:
        role = Role((x_user_role or Role.CUSTOMER.value).lower())
    except ValueError:
        return RequestContext.anonymous(ip_address=ip_address)
    return RequestContext.for_user(
        x_user_id,
        role,
        email=x_user_email,
        display_name=x_user_name,
        ip_address=ip_address,
    )


def respond(result: ActionResult, success_status: int = 200) -> JSONResponse:
    status_code = success_status if result.success else _STATUS_FOR_CODE.get(result.code, 500)
    return JSONResponse(status_code=status_code, content=result.model_dump(mode="json"))


# ---------------------------------------------------------------------------
# Catalogue Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


@product_router.post("", status_code=201)
async def create_product(body: CreateProductRequest, ctx: RequestContext = Depends(request_context)):
    return respond(catalogue.create_product(ctx, **body.model_dump()), 201)


@product_router.get("")
async def search_products(
    q: str | None = None,
    price_min: float | None = None,
    price_max: float | None = None,
    in_stock_only: bool = False,
    sort_by: str = "newest",
    page: int = 1,
    page_size: int = 20,
    include_inactive: bool = False,
    ctx: RequestContext = Depends(request_context),
):
    return respond(
        catalogue.search_products(
            ctx,
            query=q,
            price_min=price_min,
            price_max=price_max,
            in_stock_only=in_stock_only,
            sort_by=sort_by,
            page=page,
            page_size=page_size,
            include_inactive=include_inactive,
        )
    )


@product_router.get("/slug/{slug}")
async def get_product_by_slug(slug: str, ctx: RequestContext = Depends(request_context)):
    return respond(catalogue.get_product_by_slug(ctx, slug))


@product_router.get("/{product_id}")
async def get_product(product_id: str, ctx: RequestContext = Depends(request_context)):
    return respond(catalogue.get_product(ctx, product_id))


@product_router.patch("/{product_id}")
async def update_product(product_id: str, body: UpdateProductRequest, ctx: RequestContext = Depends(request_context)):
    return respond(catalogue.update_product(ctx, product_id, **body.model_dump()))


@product_router.delete("/{product_id}")
async def delete_product(product_id: str, ctx: RequestContext = Depends(request_context)):
    return respond(catalogue.delete_product(ctx, product_id))


@product_router.post("/{product_id}/variants", status_code=201)
async def add_variant(product_id: str, body: AddVariantRequest, ctx: RequestContext = Depends(request_context)):
    return respond(catalogue.add_variant(ctx, product_id, **body.model_dump()), 201)


@product_router.patch("/{product_id}/variants/{variant_id}")
async def update_variant(
    product_id: str, variant_id: str, body: UpdateVariantRequest, ctx: RequestContext = Depends(request_context)
):
    return respond(catalogue.update_variant(ctx, product_id, variant_id, **body.model_dump()))


@product_router.delete("/{product_id}/variants/{variant_id}")
async def delete_variant(product_id: str, variant_id: str, ctx: RequestContext = Depends(request_context)):
    return respond(catalogue.delete_variant(ctx, product_id, variant_id))


@product_router.post("/{product_id}/variants/stock")
async def bulk_update_variant_stock(
    product_id: str, body: BulkStockRequest, ctx: RequestContext = Depends(request_context)
):
    updates = [update.model_dump() for update in body.updates]
    return respond(catalogue.bulk_update_variant_stock(ctx, product_id, updates))


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(prefix="/cart", tags=["cart"])


@cart_router.get("")
async def get_cart(ctx: RequestContext = Depends(request_context)):
    return respond(cart.get_cart(ctx))


@cart_router.post("/items", status_code=201)
async def add_cart_item(body: AddToCartRequest, ctx: RequestContext = Depends(request_context)):
    return respond(cart.add_to_cart(ctx, body.product_id, body.quantity, body.variant_id), 201)


@cart_router.patch("/items/{line_id}")
async def update_cart_item(line_id: str, body: UpdateCartLineRequest, ctx: RequestContext = Depends(request_context)):
    return respond(cart.update_cart_item_quantity(ctx, line_id, body.quantity))


@cart_router.delete("/items/{line_id}")
async def remove_cart_item(line_id: str, ctx: RequestContext = Depends(request_context)):
    return respond(cart.remove_from_cart(ctx, line_id))


@cart_router.delete("")
async def clear_cart(ctx: RequestContext = Depends(request_context)):
    return respond(cart.clear_cart(ctx))


@cart_router.post("/merge")
async def merge_guest_cart(body: MergeGuestCartRequest, ctx: RequestContext = Depends(request_context)):
    return respond(cart.merge_guest_cart(ctx, [line.model_dump() for line in body.lines]))


# ---------------------------------------------------------------------------
# Checkout & Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(tags=["orders"])


@order_router.post("/checkout", status_code=201)
async def place_order(body: CheckoutRequest, ctx: RequestContext = Depends(request_context)):
    result = checkout.create_order_from_cart(
        ctx,
        shipping_address_id=body.shipping_address_id,
        payment_method=body.payment_method,
        customer_notes=body.customer_notes,
    )
    return respond(result, 201)


@order_router.get("/orders/mine")
async def my_orders(ctx: RequestContext = Depends(request_context)):
    return respond(checkout.get_my_orders(ctx))


@order_router.get("/orders/{order_id}")
async def order_details(order_id: str, ctx: RequestContext = Depends(request_context)):
    return respond(checkout.get_order_details(ctx, order_id))


@order_router.post("/orders/{order_id}/cancel")
async def cancel_my_order(order_id: str, body: CancelOrderRequest, ctx: RequestContext = Depends(request_context)):
    return respond(checkout.cancel_my_order(ctx, order_id, body.reason))


# ---------------------------------------------------------------------------
# Order Administration Router
# ---------------------------------------------------------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"])


@admin_router.get("/orders")
async def list_orders(
    status: str | None = None,
    payment_status: str | None = None,
    channel: str | None = None,
    ctx: RequestContext = Depends(request_context),
):
    return respond(orders.list_orders(ctx, status=status, payment_status=payment_status, channel=channel))


@admin_router.patch("/orders/{order_id}/status")
async def update_order_status(
    order_id: str, body: UpdateOrderStatusRequest, ctx: RequestContext = Depends(request_context)
):
    return respond(orders.update_order_status(ctx, order_id, body.status, body.notes))


@admin_router.post("/orders/{order_id}/tracking")
async def assign_tracking(order_id: str, body: AssignTrackingRequest, ctx: RequestContext = Depends(request_context)):
    return respond(orders.assign_tracking_number(ctx, order_id, body.tracking_number))


@admin_router.patch("/orders/{order_id}/payment-status")
async def update_payment_status(
    order_id: str, body: UpdatePaymentStatusRequest, ctx: RequestContext = Depends(request_context)
):
    return respond(orders.update_payment_status(ctx, order_id, body.payment_status))


@admin_router.post("/inventory/adjustments")
async def adjust_stock(body: StockAdjustmentRequest, ctx: RequestContext = Depends(request_context)):
    return respond(inventory.adjust_stock(ctx, body.product_id, body.adjustment, body.reason, body.variant_id))


@admin_router.get("/inventory/{product_id}/movements")
async def stock_movements(product_id: str, ctx: RequestContext = Depends(request_context)):
    return respond(inventory.get_stock_movements(ctx, product_id))


# ---------------------------------------------------------------------------
# Account Router
# ---------------------------------------------------------------------------
account_router = APIRouter(prefix="/account", tags=["account"])


@account_router.post("/addresses", status_code=201)
async def add_address(body: AddressRequest, ctx: RequestContext = Depends(request_context)):
    return respond(account.add_address(ctx, **body.model_dump()), 201)


@account_router.get("/addresses")
async def list_addresses(ctx: RequestContext = Depends(request_context)):
    return respond(account.list_addresses(ctx))


@account_router.post("/password/request")
async def request_password_change(body: PasswordChangeRequestBody, ctx: RequestContext = Depends(request_context)):
    return respond(account.request_password_change(ctx, body.current_password))


@account_router.post("/password/confirm")
async def confirm_password_change(body: PasswordChangeConfirmBody, ctx: RequestContext = Depends(request_context)):
    return respond(account.confirm_password_change(ctx, **body.model_dump()))


# ---------------------------------------------------------------------------
# POS Router
# ---------------------------------------------------------------------------
pos_router = APIRouter(prefix="/pos", tags=["pos"])


@pos_router.post("/shifts", status_code=201)
async def clock_in(body: ClockInRequest, ctx: RequestContext = Depends(request_context)):
    return respond(pos.clock_in(ctx, body.register_id, body.opening_cash), 201)


@pos_router.get("/shifts/active")
async def active_shift(ctx: RequestContext = Depends(request_context)):
    return respond(pos.get_active_shift(ctx))


@pos_router.post("/shifts/{shift_id}/close")
async def clock_out(shift_id: str, body: ClockOutRequest, ctx: RequestContext = Depends(request_context)):
    return respond(pos.clock_out(ctx, shift_id, body.closing_cash, body.notes))


@pos_router.post("/sales", status_code=201)
async def create_sale(body: PosSaleRequest, ctx: RequestContext = Depends(request_context)):
    result = pos.create_pos_sale(
        ctx,
        items=[item.model_dump() for item in body.items],
        payments=[payment.model_dump() for payment in body.payments],
        cash_received=body.cash_received,
        customer_id=body.customer_id,
        notes=body.notes,
    )
    return respond(result, 201)


@pos_router.get("/transactions/{receipt_number}")
async def lookup_transaction(receipt_number: str, ctx: RequestContext = Depends(request_context)):
    return respond(pos.lookup_pos_transaction(ctx, receipt_number))


@pos_router.post("/transactions/{transaction_id}/refund")
async def refund_transaction(
    transaction_id: str, body: PosRefundRequest, ctx: RequestContext = Depends(request_context)
):
    return respond(pos.process_pos_refund(ctx, transaction_id, [i.model_dump() for i in body.items], body.notes))


@pos_router.get("/receipts/{order_id}")
async def receipt(order_id: str, ctx: RequestContext = Depends(request_context)):
    return respond(pos.generate_receipt(ctx, order_id))


# ---------------------------------------------------------------------------
# Payments Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/proofs", status_code=201)
async def submit_payment_proof(body: SubmitPaymentProofRequest, ctx: RequestContext = Depends(request_context)):
    return respond(payments.submit_payment_proof(ctx, body.order_id, body.image_url, body.reference_number), 201)


@payment_router.post("/verify")
async def verify_payment(body: VerifyPaymentRequest, ctx: RequestContext = Depends(request_context)):
    return respond(payments.verify_payment(ctx, body.reference_number))


# ---------------------------------------------------------------------------
# Returns Router
# ---------------------------------------------------------------------------
returns_router = APIRouter(prefix="/returns", tags=["returns"])


@returns_router.post("", status_code=201)
async def request_return(body: ReturnRequestBody, ctx: RequestContext = Depends(request_context)):
    result = returns.request_return(
        ctx,
        body.order_id,
        [item.model_dump() for item in body.items],
        return_method=body.return_method,
        additional_notes=body.additional_notes,
    )
    return respond(result, 201)


@returns_router.get("/mine")
async def my_returns(page: int = 1, page_size: int = 10, ctx: RequestContext = Depends(request_context)):
    return respond(returns.get_my_returns(ctx, page, page_size))


@returns_router.get("/pending")
async def pending_returns(page: int = 1, page_size: int = 20, ctx: RequestContext = Depends(request_context)):
    return respond(returns.get_pending_returns(ctx, page, page_size))


@returns_router.post("/{return_id}/approve")
async def approve_return(return_id: str, body: ApproveReturnBody, ctx: RequestContext = Depends(request_context)):
    return respond(returns.approve_return(ctx, return_id, body.notes))


@returns_router.post("/{return_id}/reject")
async def reject_return(return_id: str, body: RejectReturnBody, ctx: RequestContext = Depends(request_context)):
    return respond(returns.reject_return(ctx, return_id, body.reason))


@returns_router.post("/{return_id}/refund")
async def refund_return(return_id: str, body: ReturnRefundBody, ctx: RequestContext = Depends(request_context)):
    return respond(returns.process_return_refund(ctx, return_id, body.refund_method, body.amount))
