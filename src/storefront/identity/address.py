"""CustomerAddress aggregate — a customer's saved delivery addresses."""

from datetime import UTC, datetime

from protean import handle
from protean.fields import Boolean, DateTime, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.order.order import ShippingAddress
from storefront.shared.errors import NotFound


@storefront.aggregate
class CustomerAddress:
    customer_id = Identifier(required=True)
    label = String(max_length=50)
    full_name = String(required=True, max_length=255)
    phone = String(required=True, max_length=30)
    address_line1 = String(required=True, max_length=255)
    address_line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state_province = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(default="Philippines", max_length=100)
    is_default = Boolean(default=False)
    created_at = DateTime()

    def snapshot(self) -> ShippingAddress:
        return ShippingAddress(
            full_name=self.full_name,
            phone=self.phone,
            address_line1=self.address_line1,
            address_line2=self.address_line2,
            city=self.city,
            state_province=self.state_province,
            postal_code=self.postal_code,
            country=self.country,
        )

    def to_dict_view(self) -> dict:
        return {
            "id": str(self.id),
            "label": self.label,
            "is_default": self.is_default,
            **self.snapshot().to_dict(),
        }


@storefront.repository(part_of=CustomerAddress)
class CustomerAddressRepository:
    def for_customer(self, customer_id) -> list:
        return self._dao.query.filter(customer_id=str(customer_id)).all().items

    def owned_by(self, address_id, customer_id):
        """The address, only if it belongs to ``customer_id``."""
        addresses = self._dao.query.filter(id=str(address_id), customer_id=str(customer_id)).all().items
        if not addresses:
            raise NotFound("Shipping address not found")
        return addresses[0]


@storefront.command(part_of="CustomerAddress")
class AddAddress:
    customer_id = Identifier(required=True)
    label = String(max_length=50)
    full_name = String(required=True, max_length=255)
    phone = String(required=True, max_length=30)
    address_line1 = String(required=True, max_length=255)
    address_line2 = String(max_length=255)
    city = String(required=True, max_length=100)
    state_province = String(max_length=100)
    postal_code = String(required=True, max_length=20)
    country = String(default="Philippines", max_length=100)
    is_default = Boolean(default=False)


@storefront.command_handler(part_of=CustomerAddress)
class CustomerAddressHandler:
    @handle(AddAddress)
    def add_address(self, command):
        repo = current_domain.repository_for(CustomerAddress)
        existing = repo.for_customer(command.customer_id)
        # The first address becomes the default
        is_default = bool(command.is_default) or not existing
        if is_default:
            for address in existing:
                if address.is_default:
                    address.is_default = False
                    repo.add(address)

        address = CustomerAddress(
            customer_id=command.customer_id,
            label=command.label,
            full_name=command.full_name,
            phone=command.phone,
            address_line1=command.address_line1,
            address_line2=command.address_line2,
            city=command.city,
            state_province=command.state_province,
            postal_code=command.postal_code,
            country=command.country or "Philippines",
            is_default=is_default,
            created_at=datetime.now(UTC),
        )
        repo.add(address)
        return str(address.id)
