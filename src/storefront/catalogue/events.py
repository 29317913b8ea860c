"""Domain events for the Product aggregate."""

from protean.fields import Boolean, DateTime, Float, Identifier, Integer, String

from storefront.domain import storefront


@storefront.event(part_of="Product")
class ProductCreated:
    __version__ = "v1"

    product_id = Identifier(required=True)
    sku = String(required=True)
    name = String(required=True)
    base_price = Float(required=True)
    stock_quantity = Integer()
    created_at = DateTime()


@storefront.event(part_of="Product")
class VariantAdded:
    __version__ = "v1"

    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    sku = String(required=True)
    price = Float()
    stock_quantity = Integer()


@storefront.event(part_of="Product")
class StockLevelChanged:
    __version__ = "v1"

    product_id = Identifier(required=True)
    variant_id = Identifier()
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)
    reason = String()
    changed_at = DateTime()


@storefront.event(part_of="Product")
class ProductDetailsUpdated:
    __version__ = "v1"

    product_id = Identifier(required=True)
    name = String(required=True)
    slug = String()
    base_price = Float(required=True)
    is_active = Boolean()
    updated_at = DateTime()


@storefront.event(part_of="Product")
class VariantUpdated:
    __version__ = "v1"

    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    sku = String(required=True)
    price = Float()
    is_active = Boolean()


@storefront.event(part_of="Product")
class VariantRemoved:
    __version__ = "v1"

    product_id = Identifier(required=True)
    variant_id = Identifier(required=True)
    sku = String()
