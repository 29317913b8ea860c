"""Product aggregate — sellable items, their variants and on-hand stock.

A product without variants keeps its own ``stock_quantity``; a product with
variants sells, prices and counts stock per variant. Stock counters never go
below zero: every decrement re-checks availability at the moment it happens.
"""

import json
import re
from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Integer, String, Text

from storefront.catalogue.events import (
    ProductCreated,
    ProductDetailsUpdated,
    StockLevelChanged,
    VariantAdded,
    VariantRemoved,
    VariantUpdated,
)
from storefront.domain import storefront
from storefront.shared.errors import InsufficientStock, InvalidRequest, NotFound


def slugify(value: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", value.lower()).strip("-")


@storefront.entity(part_of="Product")
class ProductVariant:
    sku = String(required=True, max_length=50)
    attributes = Text()  # JSON, e.g. {"size": "M", "color": "Red"}
    price = Float(min_value=0.0)  # Overrides the product's base price when set
    stock_quantity = Integer(default=0, min_value=0)
    is_active = Boolean(default=True)

    @property
    def attribute_map(self) -> dict:
        return json.loads(self.attributes) if self.attributes else {}


@storefront.aggregate
class Product:
    name = String(required=True, max_length=255)
    slug = String(max_length=255)
    sku = String(required=True, max_length=50)
    description = Text()
    base_price = Float(required=True, min_value=0.0)
    stock_quantity = Integer(default=0, min_value=0)
    has_variants = Boolean(default=False)
    is_active = Boolean(default=True)
    in_stock = Boolean(default=False)  # Any sellable stock, kept current for catalogue filters
    variants = HasMany(ProductVariant)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def variant_skus_must_be_unique(self):
        skus = [v.sku for v in self.variants]
        if len(skus) != len(set(skus)):
            raise ValidationError({"variants": ["Variant SKUs must be unique within a product"]})

    @classmethod
    def create(cls, name, sku, base_price, stock_quantity=0, description=None, has_variants=False):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            slug=slugify(name),
            sku=sku,
            description=description,
            base_price=base_price,
            stock_quantity=stock_quantity,
            has_variants=has_variants,
            created_at=now,
            updated_at=now,
        )
        product._refresh_in_stock()
        product.raise_(
            ProductCreated(
                product_id=str(product.id),
                sku=sku,
                name=name,
                base_price=base_price,
                stock_quantity=stock_quantity,
                created_at=now,
            )
        )
        return product

    def add_variant(self, sku, attributes=None, price=None, stock_quantity=0):
        variant = ProductVariant(
            sku=sku,
            attributes=json.dumps(attributes or {}),
            price=price,
            stock_quantity=stock_quantity,
        )
        self.add_variants(variant)
        self.has_variants = True
        self._refresh_in_stock()
        self.updated_at = datetime.now(UTC)

        self.raise_(
            VariantAdded(
                product_id=str(self.id),
                variant_id=str(variant.id),
                sku=sku,
                price=price,
                stock_quantity=stock_quantity,
            )
        )
        return variant

    def update_details(self, name=None, description=None, base_price=None, is_active=None):
        if name is not None:
            self.name = name
            self.slug = slugify(name)
        if description is not None:
            self.description = description
        if base_price is not None:
            self.base_price = base_price
        if is_active is not None:
            self.is_active = is_active

        self.updated_at = datetime.now(UTC)

        self.raise_(
            ProductDetailsUpdated(
                product_id=str(self.id),
                name=self.name,
                slug=self.slug,
                base_price=self.base_price,
                is_active=self.is_active,
                updated_at=self.updated_at,
            )
        )

    def update_variant(self, variant_id, sku=None, attributes=None, price=None, is_active=None):
        variant = self.variant(variant_id)
        if variant is None:
            raise NotFound("Product variant not found")

        if sku is not None:
            variant.sku = sku
        if attributes is not None:
            variant.attributes = json.dumps(attributes)
        if price is not None:
            variant.price = price
        if is_active is not None:
            variant.is_active = is_active
        self._refresh_in_stock()
        self.updated_at = datetime.now(UTC)

        self.raise_(
            VariantUpdated(
                product_id=str(self.id),
                variant_id=str(variant.id),
                sku=variant.sku,
                price=variant.price,
                is_active=variant.is_active,
            )
        )
        return variant

    def remove_variant(self, variant_id):
        variant = self.variant(variant_id)
        if variant is None:
            raise NotFound("Product variant not found")

        self.remove_variants(variant)
        self.has_variants = len(self.variants) > 0
        self._refresh_in_stock()
        self.updated_at = datetime.now(UTC)

        self.raise_(VariantRemoved(product_id=str(self.id), variant_id=str(variant.id), sku=variant.sku))

    def _refresh_in_stock(self):
        if self.has_variants:
            self.in_stock = any(v.is_active and (v.stock_quantity or 0) > 0 for v in self.variants)
        else:
            self.in_stock = (self.stock_quantity or 0) > 0

    # -------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------
    def variant(self, variant_id):
        if not variant_id:
            return None
        variant = next((v for v in self.variants if str(v.id) == str(variant_id)), None)
        if variant is None:
            raise NotFound("Product variant not found")
        return variant

    def _stock_holder(self, variant_id):
        """The record whose counter tracks stock for this line."""
        if variant_id:
            return self.variant(variant_id)
        if self.has_variants:
            raise InvalidRequest(f'Please select a variant for "{self.name}"')
        return self

    def available(self, variant_id=None) -> int:
        return self._stock_holder(variant_id).stock_quantity or 0

    def unit_price(self, variant_id=None) -> float:
        variant = self.variant(variant_id)
        if variant is not None and variant.price is not None:
            return variant.price
        return self.base_price

    def display_name(self, variant_id=None) -> str:
        variant = self.variant(variant_id)
        if variant is None:
            return self.name
        values = "/".join(str(v) for v in variant.attribute_map.values())
        return f"{self.name} ({values})" if values else self.name

    def line_sku(self, variant_id=None) -> str:
        variant = self.variant(variant_id)
        return variant.sku if variant is not None else self.sku

    def ensure_sellable(self, variant_id=None):
        if not self.is_active:
            raise InvalidRequest(f'Product "{self.name}" is not available')
        variant = self.variant(variant_id)
        if variant is not None and not variant.is_active:
            raise InvalidRequest(f'Variant "{variant.sku}" is not available')
        self._stock_holder(variant_id)

    # -------------------------------------------------------------------
    # Stock counters
    # -------------------------------------------------------------------
    def _set_stock(self, holder, variant_id, new_quantity, reason):
        previous = holder.stock_quantity or 0
        holder.stock_quantity = new_quantity
        self._refresh_in_stock()
        now = datetime.now(UTC)
        self.updated_at = now

        self.raise_(
            StockLevelChanged(
                product_id=str(self.id),
                variant_id=str(variant_id) if variant_id else None,
                previous_quantity=previous,
                new_quantity=new_quantity,
                reason=reason,
                changed_at=now,
            )
        )
        return previous, new_quantity

    def take_stock(self, quantity: int, variant_id=None, reason=None):
        """Decrement stock only if enough is on hand. Returns ``(previous, new)``."""
        if quantity < 1:
            raise InvalidRequest("Quantity must be at least 1")
        holder = self._stock_holder(variant_id)
        available = holder.stock_quantity or 0
        if quantity > available:
            raise InsufficientStock(self.display_name(variant_id), available)
        return self._set_stock(holder, variant_id, available - quantity, reason)

    def restock(self, quantity: int, variant_id=None, reason=None):
        if quantity < 1:
            raise InvalidRequest("Quantity must be at least 1")
        holder = self._stock_holder(variant_id)
        return self._set_stock(holder, variant_id, (holder.stock_quantity or 0) + quantity, reason)

    def adjust_stock(self, change: int, variant_id=None, reason=None):
        if change == 0:
            raise InvalidRequest("Adjustment cannot be zero")
        holder = self._stock_holder(variant_id)
        new_quantity = (holder.stock_quantity or 0) + change
        if new_quantity < 0:
            raise InvalidRequest("Stock cannot be negative")
        return self._set_stock(holder, variant_id, new_quantity, reason)
