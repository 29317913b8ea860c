"""Customer account operations: saved addresses and password change."""

from protean.utils.globals import current_domain
from pydantic import BaseModel, Field, model_validator

from storefront.config import get_settings
from storefront.identity.address import AddAddress, CustomerAddress
from storefront.identity.context import RequestContext
from storefront.identity.password import ConfirmPasswordChange, RequestPasswordChange
from storefront.shared.errors import InvalidRequest
from storefront.shared.results import ok, with_error_handling


class AddressInput(BaseModel):
    label: str | None = Field(default=None, max_length=50)
    full_name: str = Field(min_length=2, max_length=255)
    phone: str = Field(min_length=7, max_length=30)
    address_line1: str = Field(min_length=3, max_length=255)
    address_line2: str | None = Field(default=None, max_length=255)
    city: str = Field(min_length=2, max_length=100)
    state_province: str | None = Field(default=None, max_length=100)
    postal_code: str = Field(min_length=3, max_length=20)
    country: str = Field(default="Philippines", max_length=100)
    is_default: bool = False


class NewPasswordInput(BaseModel):
    token: str = Field(min_length=1)
    code: str = Field(min_length=4, max_length=12)
    new_password: str
    confirm_password: str

    @model_validator(mode="after")
    def passwords_match(self):
        if self.new_password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


@with_error_handling
def add_address(ctx: RequestContext, **fields):
    actor = ctx.require_actor()
    data = AddressInput(**fields)
    address_id = current_domain.process(
        AddAddress(customer_id=actor.user_id, **data.model_dump()),
        asynchronous=False,
    )
    return ok({"address_id": address_id}, "Address saved")


@with_error_handling
def list_addresses(ctx: RequestContext):
    actor = ctx.require_actor()
    addresses = current_domain.repository_for(CustomerAddress).for_customer(actor.user_id)
    return ok([address.to_dict_view() for address in addresses])


@with_error_handling
def request_password_change(ctx: RequestContext, current_password):
    """Check the current password and send a one-time code to the account email."""
    actor = ctx.require_actor()
    if not current_password:
        raise InvalidRequest("Current password is required")
    result = current_domain.process(
        RequestPasswordChange(user_id=actor.user_id, email=actor.email, current_password=current_password),
        asynchronous=False,
    )
    return ok(result, "Verification code sent to your email")


@with_error_handling
def confirm_password_change(ctx: RequestContext, token, code, new_password, confirm_password):
    actor = ctx.require_actor()
    data = NewPasswordInput(token=token, code=code, new_password=new_password, confirm_password=confirm_password)
    minimum = get_settings().min_password_length
    if len(data.new_password) < minimum:
        raise InvalidRequest(f"Password must be at least {minimum} characters")

    changed = current_domain.process(
        ConfirmPasswordChange(
            user_id=actor.user_id,
            token=data.token,
            code=data.code,
            new_password=data.new_password,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    if not changed:
        raise InvalidRequest("Invalid verification code")
    return ok(message="Password changed successfully")
