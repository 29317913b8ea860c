import pytest

from storefront.services import audit, catalogue, checkout
from storefront.services import cart as cart_service
from storefront.services import inventory as inventory_service
from storefront.shared.errors import ErrorCode


def test_admin_creates_product(admin):
    result = catalogue.create_product(admin, "Coffee Mug", "MUG-001", 100.0, stock_quantity=5)

    assert result.success, result.error
    product = catalogue.get_product(admin, result.data["product_id"]).data
    assert product["slug"] == "coffee-mug"
    assert product["stock_quantity"] == 5


def test_duplicate_sku(admin):
    catalogue.create_product(admin, "Coffee Mug", "MUG-001", 100.0)

    result = catalogue.create_product(admin, "Tea Mug", "MUG-001", 90.0)

    assert result.code == ErrorCode.CONFLICT


def test_staff_cannot_create_products(staff):
    assert catalogue.create_product(staff, "Coffee Mug", "MUG-001", 100.0).code == ErrorCode.FORBIDDEN


def test_negative_price_is_rejected(admin):
    assert catalogue.create_product(admin, "Coffee Mug", "MUG-001", -1).code == ErrorCode.VALIDATION_ERROR


def test_variant_falls_back_to_base_price(admin, make_product):
    product_id = make_product(base_price=500.0)

    catalogue.add_variant(admin, product_id, "V-S", attributes={"size": "S"}, stock_quantity=2)

    product = catalogue.get_product(admin, product_id).data
    assert product["has_variants"] is True
    assert product["variants"][0]["price"] == 500.0


def test_unknown_product(customer):
    result = catalogue.get_product(customer, "missing")

    assert result.code == ErrorCode.NOT_FOUND
    assert result.error == "Product not found"


class TestBrowsing:
    @pytest.fixture()
    def shelf(self, make_product):
        return {
            "mug": make_product(name="Coffee Mug", base_price=100.0, stock_quantity=5, sku="MUG-001"),
            "tee": make_product(name="Cotton Tee", base_price=250.0, stock_quantity=0, sku="TEE-001"),
            "jar": make_product(name="Glass Jar", base_price=80.0, stock_quantity=2, sku="JAR-001"),
        }

    def test_list_is_paginated(self, customer, shelf):
        first = catalogue.list_products(customer, page=1, page_size=2).data
        second = catalogue.list_products(customer, page=2, page_size=2).data

        assert len(first["products"]) == 2
        assert len(second["products"]) == 1
        assert first["meta"]["total"] == 3
        assert first["meta"]["has_next_page"] is True

    def test_search_matches_name_or_sku(self, customer, shelf):
        by_name = catalogue.search_products(customer, query="mug").data["products"]
        by_sku = catalogue.search_products(customer, query="jar-0").data["products"]

        assert [p["name"] for p in by_name] == ["Coffee Mug"]
        assert [p["name"] for p in by_sku] == ["Glass Jar"]

    def test_one_letter_query_is_ignored(self, customer, shelf):
        assert catalogue.search_products(customer, query="m").data["meta"]["total"] == 3

    def test_price_range_and_sort(self, customer, shelf):
        products = catalogue.search_products(customer, price_min=80, price_max=250, sort_by="price-desc").data

        assert [p["base_price"] for p in products["products"]] == [250.0, 100.0, 80.0]

    def test_in_stock_only(self, customer, shelf):
        products = catalogue.search_products(customer, in_stock_only=True, sort_by="name-asc").data["products"]

        assert [p["name"] for p in products] == ["Coffee Mug", "Glass Jar"]

    def test_variant_products_are_in_stock_through_their_variants(self, admin, customer, make_product):
        product_id = make_product(name="Graphic Tee", base_price=250.0, stock_quantity=0)
        catalogue.add_variant(admin, product_id, "GT-S", attributes={"size": "S"}, stock_quantity=1)

        products = catalogue.search_products(customer, in_stock_only=True).data["products"]

        assert [p["id"] for p in products] == [product_id]

    def test_unknown_sort_order(self, customer, shelf):
        assert catalogue.search_products(customer, sort_by="rating").code == ErrorCode.VALIDATION_ERROR

    def test_inactive_products_are_hidden_from_customers(self, staff, customer, shelf):
        catalogue.update_product(staff, shelf["tee"], is_active=False)

        assert catalogue.list_products(customer).data["meta"]["total"] == 2
        assert catalogue.list_products(staff, include_inactive=True).data["meta"]["total"] == 3
        assert catalogue.list_products(customer, include_inactive=True).code == ErrorCode.FORBIDDEN

    def test_product_by_slug(self, customer, staff, shelf):
        assert catalogue.get_product_by_slug(customer, "glass-jar").data["id"] == shelf["jar"]

        catalogue.update_product(staff, shelf["jar"], is_active=False)

        assert catalogue.get_product_by_slug(customer, "glass-jar").code == ErrorCode.NOT_FOUND
        assert catalogue.get_product_by_slug(staff, "glass-jar").success

    def test_same_name_gets_a_distinct_slug(self, admin, make_product):
        make_product(name="Coffee Mug", sku="MUG-001")
        second = make_product(name="Coffee Mug", sku="MUG-002")

        assert catalogue.get_product(admin, second).data["slug"] == "coffee-mug-mug-002"


class TestProductUpdates:
    def test_staff_update_details(self, staff, admin, mug_id):
        result = catalogue.update_product(staff, mug_id, name="Stoneware Mug", base_price=120.0)

        assert result.success, result.error
        product = catalogue.get_product(staff, mug_id).data
        assert (product["name"], product["slug"], product["base_price"]) == ("Stoneware Mug", "stoneware-mug", 120.0)

        logs = audit.get_audit_logs(admin, "product", mug_id).data
        assert logs[0]["action"] == "update"
        assert logs[0]["old_value"]["base_price"] == 100.0
        assert logs[0]["new_value"]["base_price"] == 120.0

    def test_customers_cannot_update(self, customer, mug_id):
        assert catalogue.update_product(customer, mug_id, name="Free Mug").code == ErrorCode.FORBIDDEN

    def test_negative_price(self, staff, mug_id):
        assert catalogue.update_product(staff, mug_id, base_price=-5).code == ErrorCode.VALIDATION_ERROR

    def test_admin_deletes_unused_product(self, admin, mug_id):
        assert catalogue.delete_product(admin, mug_id).success

        assert catalogue.get_product(admin, mug_id).code == ErrorCode.NOT_FOUND
        assert audit.get_audit_logs(admin, "product", mug_id).data[0]["action"] == "delete"

    def test_staff_cannot_delete(self, staff, mug_id):
        assert catalogue.delete_product(staff, mug_id).code == ErrorCode.FORBIDDEN

    def test_product_in_a_cart_is_kept(self, admin, customer, mug_id):
        cart_service.add_to_cart(customer, mug_id, quantity=1)

        result = catalogue.delete_product(admin, mug_id)

        assert result.code == ErrorCode.VALIDATION_ERROR
        assert result.error.startswith("Cannot delete product: It is currently in customer carts")

    def test_ordered_product_is_kept(self, admin, filled_cart, address_id, mug_id):
        checkout.create_order_from_cart(filled_cart, address_id, "gcash")

        result = catalogue.delete_product(admin, mug_id)

        assert result.error.startswith("Cannot delete product: It has been ordered")
        assert catalogue.get_product(admin, mug_id).success

    def test_product_with_stock_history_is_kept(self, admin, staff, mug_id):
        inventory_service.adjust_stock(staff, mug_id, 2, "Supplier delivery")

        result = catalogue.delete_product(admin, mug_id)

        assert result.error.startswith("Cannot delete product: It has stock movement history")


class TestVariantManagement:
    @pytest.fixture()
    def tee(self, admin, make_product):
        product_id = make_product(name="Graphic Tee", base_price=250.0, stock_quantity=0)
        small = catalogue.add_variant(admin, product_id, "GT-S", attributes={"size": "S"}, stock_quantity=4)
        medium = catalogue.add_variant(admin, product_id, "GT-M", attributes={"size": "M"}, stock_quantity=1)
        return {"id": product_id, "small": small.data["variant_id"], "medium": medium.data["variant_id"]}

    def _variant(self, ctx, tee, key):
        product = catalogue.get_product(ctx, tee["id"]).data
        return next(v for v in product["variants"] if v["id"] == tee[key])

    def test_duplicate_sku_on_add(self, admin, tee):
        assert catalogue.add_variant(admin, tee["id"], "GT-S").code == ErrorCode.CONFLICT

    def test_update_variant(self, staff, tee):
        result = catalogue.update_variant(staff, tee["id"], tee["small"], price=230.0, attributes={"size": "Small"})

        assert result.success, result.error
        variant = self._variant(staff, tee, "small")
        assert variant["price"] == 230.0
        assert variant["attributes"] == {"size": "Small"}

    def test_update_to_taken_sku(self, staff, tee):
        result = catalogue.update_variant(staff, tee["id"], tee["small"], sku="GT-M")

        assert result.code == ErrorCode.CONFLICT
        assert result.error == "SKU already exists"

    def test_unknown_variant(self, staff, tee):
        assert catalogue.update_variant(staff, tee["id"], "missing", price=1.0).code == ErrorCode.NOT_FOUND

    def test_delete_unordered_variant(self, admin, tee):
        assert catalogue.delete_variant(admin, tee["id"], tee["medium"]).success

        product = catalogue.get_product(admin, tee["id"]).data
        assert [v["id"] for v in product["variants"]] == [tee["small"]]
        assert product["has_variants"] is True

    def test_ordered_variant_is_kept(self, admin, customer, address_id, tee):
        cart_service.add_to_cart(customer, tee["id"], quantity=1, variant_id=tee["medium"])
        checkout.create_order_from_cart(customer, address_id, "gcash")

        result = catalogue.delete_variant(admin, tee["id"], tee["medium"])

        assert result.code == ErrorCode.CONFLICT
        assert result.error == "Cannot delete variant that has been ordered. Deactivate it instead."
        assert catalogue.update_variant(admin, tee["id"], tee["medium"], is_active=False).success

    def test_bulk_stock_update(self, staff, tee):
        result = catalogue.bulk_update_variant_stock(
            staff,
            tee["id"],
            [
                {"variant_id": tee["small"], "quantity": 10, "operation": "set"},
                {"variant_id": tee["medium"], "quantity": 5, "operation": "subtract"},
            ],
        )

        assert result.success, result.error
        assert [(r["success"], r["new_quantity"]) for r in result.data] == [(True, 10), (True, 0)]
        assert self._variant(staff, tee, "small")["stock_quantity"] == 10

        movements = inventory_service.get_stock_movements(staff, tee["id"]).data
        assert sorted(m["quantity_change"] for m in movements) == [-1, 6]
        assert {m["movement_type"] for m in movements} == {"adjustment"}

    def test_bulk_stock_reports_bad_lines(self, staff, tee):
        result = catalogue.bulk_update_variant_stock(
            staff,
            tee["id"],
            [
                {"variant_id": "missing", "quantity": 3, "operation": "add"},
                {"variant_id": tee["medium"], "quantity": 3, "operation": "add"},
            ],
        )

        assert result.data[0] == {"variant_id": "missing", "success": False, "error": "Product variant not found"}
        assert result.data[1]["new_quantity"] == 4

    def test_unchanged_count_writes_no_movement(self, staff, tee):
        catalogue.bulk_update_variant_stock(staff, tee["id"], [{"variant_id": tee["small"], "quantity": 4}])

        assert inventory_service.get_stock_movements(staff, tee["id"]).data == []

    def test_customers_cannot_bulk_update(self, customer, tee):
        result = catalogue.bulk_update_variant_stock(customer, tee["id"], [{"variant_id": tee["small"], "quantity": 1}])

        assert result.code == ErrorCode.FORBIDDEN
