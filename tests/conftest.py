import os
from pathlib import Path

import pytest


def pytest_addoption(parser):
    parser.addoption(
        "--env",
        action="store",
        default="test",
        help="Config environment to run tests on",
    )


def pytest_sessionstart(session):
    """Pytest hook to run before collecting tests.

    Initialise the storefront domain and push its domain_context, so the domain can be referred to elsewhere as
    `current_domain`
    """
    os.environ["PROTEAN_ENV"] = session.config.option.env

    from storefront.api import routes  # noqa: F401  registers every command and handler before init()
    from storefront.domain import storefront

    storefront.init()
    storefront.domain_context().push()


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))

        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/bdd/" in test_path:
            item.add_marker(pytest.mark.bdd)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)
            if not any(m.name == "fast" for m in item.iter_markers()):
                item.add_marker(pytest.mark.slow)


@pytest.fixture(scope="session", autouse=True)
def setup_db(request):
    from storefront.domain import storefront
    from storefront.utils.db import drop_db, setup_db

    setup_db(storefront)

    yield

    drop_db(storefront)


@pytest.fixture(autouse=True)
def run_around_tests():
    """Fixture to automatically cleanup infrastructure after every test"""
    yield

    from protean import current_domain
    from storefront.config import reset_settings
    from storefront.identity.auth import reset_auth_provider
    from storefront.identity.otp import reset_otp_sender

    # Clear all databases
    for _, provider in current_domain.providers.items():
        provider._data_reset()

    # Drain event stores
    current_domain.event_store.store._data_reset()

    reset_settings()
    reset_auth_provider()
    reset_otp_sender()


# ---------------------------------------------------------------------------
# Callers
# ---------------------------------------------------------------------------
@pytest.fixture()
def customer():
    from storefront.identity.context import RequestContext, Role

    return RequestContext.for_user("cust-001", Role.CUSTOMER, email="juan@example.com")


@pytest.fixture()
def other_customer():
    from storefront.identity.context import RequestContext, Role

    return RequestContext.for_user("cust-002", Role.CUSTOMER, email="maria@example.com")


@pytest.fixture()
def staff():
    from storefront.identity.context import RequestContext, Role

    return RequestContext.for_user("staff-001", Role.STAFF, display_name="Ana Cruz")


@pytest.fixture()
def admin():
    from storefront.identity.context import RequestContext, Role

    return RequestContext.for_user("admin-001", Role.ADMIN)


@pytest.fixture()
def anonymous():
    from storefront.identity.context import RequestContext

    return RequestContext.anonymous()


# ---------------------------------------------------------------------------
# Catalogue and address seeds
# ---------------------------------------------------------------------------
@pytest.fixture()
def make_product():
    """Factory: create a product through the command pipeline and return its id."""
    from protean import current_domain
    from storefront.catalogue.management import CreateProduct

    counter = {"n": 0}

    def _make(name="Widget", base_price=100.0, stock_quantity=10, sku=None):
        counter["n"] += 1
        return current_domain.process(
            CreateProduct(
                name=name,
                sku=sku or f"SKU-{counter['n']:03d}",
                base_price=base_price,
                stock_quantity=stock_quantity,
            ),
            asynchronous=False,
        )

    return _make


@pytest.fixture()
def make_variant():
    import json

    from protean import current_domain
    from storefront.catalogue.management import AddVariant

    def _make(product_id, sku, attributes=None, price=None, stock_quantity=5):
        return current_domain.process(
            AddVariant(
                product_id=product_id,
                sku=sku,
                attributes=json.dumps(attributes or {}),
                price=price,
                stock_quantity=stock_quantity,
            ),
            asynchronous=False,
        )

    return _make


@pytest.fixture()
def address_id(customer):
    from protean import current_domain
    from storefront.identity.address import AddAddress

    return current_domain.process(
        AddAddress(
            customer_id=customer.actor.user_id,
            full_name="Juan dela Cruz",
            phone="09171234567",
            address_line1="123 Rizal Street",
            city="Quezon City",
            postal_code="1100",
            country="Philippines",
        ),
        asynchronous=False,
    )
