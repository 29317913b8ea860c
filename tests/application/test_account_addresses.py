from storefront.services import account
from storefront.shared.errors import ErrorCode

ADDRESS = {
    "full_name": "Maria Santos",
    "phone": "09181234567",
    "address_line1": "45 Mabini Avenue",
    "city": "Makati",
    "postal_code": "1200",
}


def test_first_address_becomes_default(other_customer):
    account.add_address(other_customer, **ADDRESS)

    addresses = account.list_addresses(other_customer).data
    assert len(addresses) == 1
    assert addresses[0]["is_default"] is True
    assert addresses[0]["country"] == "Philippines"


def test_new_default_replaces_old(other_customer):
    account.add_address(other_customer, **ADDRESS)
    account.add_address(other_customer, **{**ADDRESS, "label": "Office", "is_default": True})

    defaults = [a["label"] for a in account.list_addresses(other_customer).data if a["is_default"]]
    assert defaults == ["Office"]


def test_invalid_address(other_customer):
    result = account.add_address(other_customer, **{**ADDRESS, "phone": "12"})

    assert result.code == ErrorCode.VALIDATION_ERROR
    assert "phone" in result.error


def test_addresses_are_private(customer, other_customer, address_id):
    assert account.list_addresses(other_customer).data == []
    assert len(account.list_addresses(customer).data) == 1
