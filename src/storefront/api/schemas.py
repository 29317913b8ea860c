"""Pydantic request schemas for the Storefront API.

These are the external contracts; handlers translate them into service calls.
"""

from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------
class CreateProductRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    sku: str = Field(min_length=1, max_length=50)
    base_price: float = Field(ge=0)
    stock_quantity: int = Field(default=0, ge=0)
    description: str | None = None


class AddVariantRequest(BaseModel):
    sku: str = Field(min_length=1, max_length=50)
    attributes: dict[str, str] = Field(default_factory=dict)
    price: float | None = Field(default=None, ge=0)
    stock_quantity: int = Field(default=0, ge=0)


class UpdateProductRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    base_price: float | None = Field(default=None, ge=0)
    is_active: bool | None = None


class UpdateVariantRequest(BaseModel):
    sku: str | None = Field(default=None, min_length=1, max_length=50)
    attributes: dict[str, str] | None = None
    price: float | None = Field(default=None, ge=0)
    is_active: bool | None = None


class VariantStockUpdate(BaseModel):
    variant_id: str
    quantity: int = Field(ge=0)
    operation: Literal["set", "add", "subtract"] = "set"


class BulkStockRequest(BaseModel):
    updates: list[VariantStockUpdate] = Field(min_length=1)


# ---------------------------------------------------------------------------
# Cart & checkout
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = 1

    model_config = {
        "json_schema_extra": {
            "examples": [{"product_id": "prod-001", "variant_id": None, "quantity": 2}],
        }
    }


class UpdateCartLineRequest(BaseModel):
    quantity: int


class GuestCartLine(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1)


class MergeGuestCartRequest(BaseModel):
    lines: list[GuestCartLine]


class CheckoutRequest(BaseModel):
    shipping_address_id: str
    payment_method: str
    customer_notes: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [{"shipping_address_id": "addr-001", "payment_method": "gcash", "customer_notes": None}],
        }
    }


class CancelOrderRequest(BaseModel):
    reason: str | None = None


# ---------------------------------------------------------------------------
# Order administration
# ---------------------------------------------------------------------------
class UpdateOrderStatusRequest(BaseModel):
    status: str
    notes: str | None = None


class AssignTrackingRequest(BaseModel):
    tracking_number: str


class UpdatePaymentStatusRequest(BaseModel):
    payment_status: str


# ---------------------------------------------------------------------------
# Account
# ---------------------------------------------------------------------------
class AddressRequest(BaseModel):
    label: str | None = None
    full_name: str
    phone: str
    address_line1: str
    address_line2: str | None = None
    city: str
    state_province: str | None = None
    postal_code: str
    country: str = "Philippines"
    is_default: bool = False


class PasswordChangeRequestBody(BaseModel):
    current_password: str


class PasswordChangeConfirmBody(BaseModel):
    token: str
    code: str
    new_password: str
    confirm_password: str


# ---------------------------------------------------------------------------
# Point of sale
# ---------------------------------------------------------------------------
class ClockInRequest(BaseModel):
    register_id: str
    opening_cash: float


class ClockOutRequest(BaseModel):
    closing_cash: float
    notes: str | None = None


class PosSaleLine(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int = Field(ge=1)
    discount: float = Field(default=0, ge=0)


class PosPayment(BaseModel):
    method: str
    amount: float


class PosSaleRequest(BaseModel):
    items: list[PosSaleLine]
    payments: list[PosPayment]
    cash_received: float | None = None
    customer_id: str | None = None
    notes: str | None = None


class PosRefundLine(BaseModel):
    product_id: str
    variant_id: str | None = None
    quantity: int
    reason: str | None = None
    condition: str | None = None


class PosRefundRequest(BaseModel):
    items: list[PosRefundLine]
    notes: str | None = None


# ---------------------------------------------------------------------------
# Payments & inventory
# ---------------------------------------------------------------------------
class SubmitPaymentProofRequest(BaseModel):
    order_id: str
    image_url: str
    reference_number: str | None = None


class VerifyPaymentRequest(BaseModel):
    reference_number: str


class StockAdjustmentRequest(BaseModel):
    product_id: str
    variant_id: str | None = None
    adjustment: int
    reason: str


# ---------------------------------------------------------------------------
# Returns
# ---------------------------------------------------------------------------
class ReturnLineBody(BaseModel):
    order_item_id: str
    quantity: int = Field(ge=1)
    reason: str = Field(min_length=10, max_length=500)


class ReturnRequestBody(BaseModel):
    order_id: str
    items: list[ReturnLineBody] = Field(min_length=1)
    return_method: Literal["refund", "exchange", "store_credit"] = "refund"
    additional_notes: str | None = Field(default=None, max_length=1000)


class ApproveReturnBody(BaseModel):
    notes: str | None = None


class RejectReturnBody(BaseModel):
    reason: str


class ReturnRefundBody(BaseModel):
    refund_method: Literal["original", "store_credit", "cash"] = "original"
    amount: float | None = Field(default=None, gt=0)
