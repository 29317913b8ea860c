"""Catalogue management — commands and handler for products and variants."""

import json

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain
from protean.utils.query import Q

from storefront.catalogue.product import Product, slugify
from storefront.domain import storefront
from storefront.shared.errors import Conflict, InvalidRequest
from storefront.shared.repository import fetch

SORT_ORDERS = {
    "newest": "-created_at",
    "price-asc": "base_price",
    "price-desc": "-base_price",
    "name-asc": "name",
    "name-desc": "-name",
}


@storefront.command(part_of="Product")
class CreateProduct:
    name = String(required=True, max_length=255)
    sku = String(required=True, max_length=50)
    base_price = Float(required=True, min_value=0.0)
    stock_quantity = Integer(default=0, min_value=0)
    description = Text()


@storefront.command(part_of="Product")
class AddVariant:
    product_id = Identifier(required=True)
    sku = String(required=True, max_length=50)
    attributes = Text()  # JSON object
    price = Float(min_value=0.0)
    stock_quantity = Integer(default=0, min_value=0)


@storefront.repository(part_of=Product)
class ProductRepository:
    def find_by_sku(self, sku):
        items = self._dao.query.filter(sku=sku).all().items
        return items[0] if items else None

    def find_by_slug(self, slug):
        items = self._dao.query.filter(slug=slug).all().items
        return items[0] if items else None

    def unique_slug(self, product) -> str:
        """The product's slug, suffixed with its SKU when another product holds it."""
        holder = self.find_by_slug(product.slug)
        if holder is None or str(holder.id) == str(product.id):
            return product.slug
        return f"{product.slug}-{slugify(product.sku)}"

    def search(
        self,
        query=None,
        price_min=None,
        price_max=None,
        in_stock_only=False,
        include_inactive=False,
        sort_by="newest",
        page=1,
        page_size=20,
    ):
        """One page of matching products as a ``ResultSet`` (``items`` and ``total``)."""
        if sort_by not in SORT_ORDERS:
            raise InvalidRequest(f"Unknown sort order: {sort_by}")

        products = self._dao.query
        if not include_inactive:
            products = products.filter(is_active=True)
        if query:
            products = products.filter(Q(name__icontains=query) | Q(sku__icontains=query))
        if price_min is not None:
            products = products.filter(base_price__gte=price_min)
        if price_max is not None:
            products = products.filter(base_price__lte=price_max)
        if in_stock_only:
            products = products.filter(in_stock=True)

        return products.order_by(SORT_ORDERS[sort_by]).offset((page - 1) * page_size).limit(page_size).all()


@storefront.command_handler(part_of=Product)
class ProductManagementHandler:
    @handle(CreateProduct)
    def create_product(self, command):
        repo = current_domain.repository_for(Product)
        if repo.find_by_sku(command.sku) is not None:
            raise Conflict(f'A product with SKU "{command.sku}" already exists')

        product = Product.create(
            name=command.name,
            sku=command.sku,
            base_price=command.base_price,
            stock_quantity=command.stock_quantity or 0,
            description=command.description,
        )
        product.slug = repo.unique_slug(product)
        repo.add(product)
        return str(product.id)

    @handle(AddVariant)
    def add_variant(self, command):
        repo = current_domain.repository_for(Product)
        product = fetch(Product, command.product_id, "Product not found")
        if any(v.sku == command.sku for v in product.variants):
            raise Conflict("SKU already exists")

        attributes = json.loads(command.attributes) if command.attributes else {}
        variant = product.add_variant(
            sku=command.sku,
            attributes=attributes,
            price=command.price,
            stock_quantity=command.stock_quantity or 0,
        )
        repo.add(product)
        return str(variant.id)
