"""Catalogue operations."""

import json
from typing import Literal

from protean.utils.globals import current_domain
from pydantic import BaseModel, Field

from storefront.catalogue.details import DeleteProduct, UpdateProductDetails
from storefront.catalogue.management import AddVariant, CreateProduct
from storefront.catalogue.product import Product
from storefront.catalogue.variants import BulkUpdateVariantStock, RemoveVariant, UpdateVariant
from storefront.identity.context import RequestContext
from storefront.services.audit import pagination_meta
from storefront.shared.errors import InvalidRequest, NotFound
from storefront.shared.repository import fetch
from storefront.shared.results import ok, with_error_handling

MIN_QUERY_LENGTH = 2
MAX_PAGE_SIZE = 100


class StockUpdate(BaseModel):
    variant_id: str
    quantity: int = Field(ge=0)
    operation: Literal["set", "add", "subtract"] = "set"


def product_view(product) -> dict:
    return {
        "id": str(product.id),
        "name": product.name,
        "slug": product.slug,
        "sku": product.sku,
        "description": product.description,
        "base_price": product.base_price,
        "stock_quantity": product.stock_quantity,
        "has_variants": product.has_variants,
        "is_active": product.is_active,
        "in_stock": product.in_stock,
        "variants": [
            {
                "id": str(v.id),
                "sku": v.sku,
                "attributes": v.attribute_map,
                "price": v.price if v.price is not None else product.base_price,
                "stock_quantity": v.stock_quantity,
                "is_active": v.is_active,
            }
            for v in product.variants
        ],
    }


def _check_page(page, page_size):
    if page < 1 or not 1 <= page_size <= MAX_PAGE_SIZE:
        raise InvalidRequest(f"Page must be positive and page size between 1 and {MAX_PAGE_SIZE}")


def _visible(ctx: RequestContext, include_inactive: bool) -> bool:
    """Inactive products are listed for staff only."""
    if include_inactive:
        ctx.require_staff()
    return include_inactive


@with_error_handling
def create_product(ctx: RequestContext, name, sku, base_price, stock_quantity=0, description=None):
    ctx.require_admin()
    product_id = current_domain.process(
        CreateProduct(
            name=name,
            sku=sku,
            base_price=base_price,
            stock_quantity=stock_quantity,
            description=description,
        ),
        asynchronous=False,
    )
    return ok({"product_id": product_id}, "Product created successfully")


@with_error_handling
def add_variant(ctx: RequestContext, product_id, sku, attributes=None, price=None, stock_quantity=0):
    ctx.require_admin()
    variant_id = current_domain.process(
        AddVariant(
            product_id=product_id,
            sku=sku,
            attributes=json.dumps(attributes or {}),
            price=price,
            stock_quantity=stock_quantity,
        ),
        asynchronous=False,
    )
    return ok({"variant_id": variant_id}, "Variant added successfully")


@with_error_handling
def get_product(ctx: RequestContext, product_id):
    return ok(product_view(fetch(Product, product_id, "Product not found")))


@with_error_handling
def get_product_by_slug(ctx: RequestContext, slug):
    product = current_domain.repository_for(Product).find_by_slug(slug)
    visible = product is not None and (product.is_active or (ctx.actor is not None and ctx.actor.is_staff))
    if not visible:
        raise NotFound("Product not found")
    return ok(product_view(product))


@with_error_handling
def search_products(
    ctx: RequestContext,
    query=None,
    price_min=None,
    price_max=None,
    in_stock_only=False,
    sort_by="newest",
    page=1,
    page_size=20,
    include_inactive=False,
):
    _check_page(page, page_size)
    query = (query or "").strip()
    results = current_domain.repository_for(Product).search(
        query=query if len(query) >= MIN_QUERY_LENGTH else None,
        price_min=price_min,
        price_max=price_max,
        in_stock_only=in_stock_only,
        include_inactive=_visible(ctx, include_inactive),
        sort_by=sort_by,
        page=page,
        page_size=page_size,
    )
    return ok(
        {
            "products": [product_view(product) for product in results.items],
            "meta": pagination_meta(page, page_size, results.total),
        }
    )


def list_products(ctx: RequestContext, page=1, page_size=20, include_inactive=False):
    """Newest first, no filters."""
    return search_products(ctx, page=page, page_size=page_size, include_inactive=include_inactive)


@with_error_handling
def update_product(ctx: RequestContext, product_id, name=None, description=None, base_price=None, is_active=None):
    actor = ctx.require_staff()
    product = current_domain.process(
        UpdateProductDetails(
            product_id=product_id,
            name=name,
            description=description,
            base_price=base_price,
            is_active=is_active,
            updated_by=actor.user_id,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok(product, "Product updated successfully")


@with_error_handling
def delete_product(ctx: RequestContext, product_id):
    actor = ctx.require_admin()
    current_domain.process(
        DeleteProduct(product_id=product_id, deleted_by=actor.user_id, ip_address=ctx.ip_address),
        asynchronous=False,
    )
    return ok(None, "Product deleted successfully")


@with_error_handling
def update_variant(ctx: RequestContext, product_id, variant_id, sku=None, attributes=None, price=None, is_active=None):
    actor = ctx.require_staff()
    variant = current_domain.process(
        UpdateVariant(
            product_id=product_id,
            variant_id=variant_id,
            sku=sku,
            attributes=json.dumps(attributes) if attributes is not None else None,
            price=price,
            is_active=is_active,
            updated_by=actor.user_id,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok(variant, "Variant updated successfully")


@with_error_handling
def delete_variant(ctx: RequestContext, product_id, variant_id):
    actor = ctx.require_admin()
    current_domain.process(
        RemoveVariant(
            product_id=product_id,
            variant_id=variant_id,
            removed_by=actor.user_id,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok(None, "Variant deleted successfully")


@with_error_handling
def bulk_update_variant_stock(ctx: RequestContext, product_id, updates):
    actor = ctx.require_staff()
    lines = [StockUpdate.model_validate(update) for update in updates]
    results = current_domain.process(
        BulkUpdateVariantStock(
            product_id=product_id,
            updates=json.dumps([line.model_dump() for line in lines]),
            updated_by=actor.user_id,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok(results, "Stock updated")
