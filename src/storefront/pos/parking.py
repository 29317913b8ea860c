"""Parked orders — a register cart set aside to be picked up later."""

import json
from datetime import UTC, datetime, timedelta

from protean import handle
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.config import get_settings
from storefront.domain import storefront
from storefront.shared.errors import InvalidRequest, NotFound
from storefront.shared.repository import fetch


@storefront.aggregate
class ParkedOrder:
    staff_id = Identifier(required=True)
    customer_name = String(max_length=255)
    customer_phone = String(max_length=30)
    cart_data = Text(required=True)  # JSON: list of cart lines
    notes = Text()
    created_at = DateTime()
    expires_at = DateTime()

    @classmethod
    def park(cls, staff_id, cart, customer_name=None, customer_phone=None, notes=None, ttl_hours=24):
        if not cart:
            raise InvalidRequest("Cannot park an empty cart")
        now = datetime.now(UTC)
        return cls(
            staff_id=staff_id,
            customer_name=customer_name,
            customer_phone=customer_phone,
            cart_data=json.dumps(cart),
            notes=notes,
            created_at=now,
            expires_at=now + timedelta(hours=ttl_hours),
        )

    def is_expired(self, now=None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at

    def to_dict_view(self) -> dict:
        return {
            "id": str(self.id),
            "staff_id": str(self.staff_id),
            "customer_name": self.customer_name,
            "customer_phone": self.customer_phone,
            "cart": json.loads(self.cart_data),
            "notes": self.notes,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "expires_at": self.expires_at.isoformat() if self.expires_at else None,
        }


@storefront.repository(part_of=ParkedOrder)
class ParkedOrderRepository:
    def unexpired(self, now=None) -> list:
        now = now or datetime.now(UTC)
        parked = self._dao.query.order_by("-created_at").all().items
        return [p for p in parked if not p.is_expired(now)]


@storefront.command(part_of="ParkedOrder")
class ParkOrder:
    staff_id = Identifier(required=True)
    cart = Text(required=True)  # JSON
    customer_name = String(max_length=255)
    customer_phone = String(max_length=30)
    notes = Text()


@storefront.command(part_of="ParkedOrder")
class DiscardParkedOrder:
    parked_order_id = Identifier(required=True)


@storefront.command_handler(part_of=ParkedOrder)
class ParkedOrderHandler:
    @handle(ParkOrder)
    def park_order(self, command):
        cart = json.loads(command.cart) if isinstance(command.cart, str) else command.cart
        parked = ParkedOrder.park(
            staff_id=command.staff_id,
            cart=cart,
            customer_name=command.customer_name,
            customer_phone=command.customer_phone,
            notes=command.notes,
            ttl_hours=get_settings().parked_order_ttl_hours,
        )
        current_domain.repository_for(ParkedOrder).add(parked)
        return str(parked.id)

    @handle(DiscardParkedOrder)
    def discard(self, command):
        parked = fetch(ParkedOrder, command.parked_order_id, "Parked order not found")
        current_domain.repository_for(ParkedOrder)._dao.delete(parked)


def load_parked_order(parked_order_id):
    parked = fetch(ParkedOrder, parked_order_id, "Parked order not found")
    if parked.is_expired():
        raise NotFound("Parked order has expired")
    return parked
