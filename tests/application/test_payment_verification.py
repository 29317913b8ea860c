import pytest

from storefront.services import cart as cart_service
from storefront.services import checkout, payments
from storefront.shared.errors import ErrorCode


@pytest.fixture()
def order_id(filled_cart, address_id):
    return checkout.create_order_from_cart(filled_cart, address_id, "gcash").data["order_id"]


@pytest.fixture()
def proof_id(customer, order_id):
    result = payments.submit_payment_proof(customer, order_id, "https://cdn.example.com/proofs/1.jpg")
    assert result.success, result.error
    return result.data["payment_proof_id"]


@pytest.fixture()
def extracted(admin, proof_id):
    result = payments.extract_payment_data(admin, proof_id, "GC-1234567890", 504.0, "gcash")
    assert result.success, result.error
    return proof_id


def test_submitting_proof_marks_payment_pending(customer, order_id, proof_id):
    assert checkout.get_order_details(customer, order_id).data["payment_status"] == "pending"


def test_cannot_submit_for_someone_elses_order(other_customer, order_id):
    result = payments.submit_payment_proof(other_customer, order_id, "https://cdn.example.com/proofs/2.jpg")

    assert result.code == ErrorCode.FORBIDDEN


def test_pending_queue(staff, proof_id):
    assert [p["id"] for p in payments.get_pending_payment_proofs(staff).data] == [proof_id]


class TestExtraction:
    def test_only_admins(self, staff, proof_id):
        result = payments.extract_payment_data(staff, proof_id, "GC-1234567890", 504.0, "gcash")

        assert result.code == ErrorCode.FORBIDDEN

    @pytest.mark.parametrize(
        "reference, amount, method",
        [("GC1", 504.0, "gcash"), ("GC-1234567890", 0, "gcash"), ("GC-1234567890", 504.0, "g")],
    )
    def test_field_rules(self, admin, proof_id, reference, amount, method):
        result = payments.extract_payment_data(admin, proof_id, reference, amount, method)

        assert result.code == ErrorCode.VALIDATION_ERROR

    def test_reference_cannot_be_reused(self, admin, customer, filled_cart, address_id, extracted, mug_id):
        cart_service.add_to_cart(customer, mug_id, quantity=1)
        second_order = checkout.create_order_from_cart(customer, address_id, "gcash").data["order_id"]
        second_proof = payments.submit_payment_proof(customer, second_order, "https://cdn.example.com/p.jpg").data

        result = payments.extract_payment_data(
            admin, second_proof["payment_proof_id"], "GC-1234567890", 112.0, "gcash"
        )

        assert result.code == ErrorCode.CONFLICT

    def test_duplicate_check(self, staff, extracted):
        assert payments.check_duplicate_payment(staff, "GC-1234567890").data["is_duplicate"] is True
        assert payments.check_duplicate_payment(staff, "GC-0000000000").data["is_duplicate"] is False


class TestVerification:
    def test_verify_marks_order_paid_and_processing(self, staff, customer, order_id, extracted):
        result = payments.verify_payment(staff, " GC-1234567890 ")

        assert result.success, result.error
        assert result.data["order_id"] == order_id
        details = checkout.get_order_details(customer, order_id).data
        assert (details["status"], details["payment_status"]) == ("processing", "paid")

    def test_second_scan_is_a_duplicate(self, staff, admin, extracted):
        payments.verify_payment(staff, "GC-1234567890")

        result = payments.verify_payment(staff, "GC-1234567890")

        assert result.code == ErrorCode.CONFLICT
        results = [log["result"] for log in payments.get_payment_verification_logs(admin).data]
        assert sorted(results) == ["duplicate", "success"]

    def test_unknown_reference_is_logged(self, staff, admin):
        result = payments.verify_payment(staff, "GC-9999999999")

        assert result.code == ErrorCode.NOT_FOUND
        logs = payments.get_payment_verification_logs(admin, reference_number="GC-9999999999").data
        assert [log["result"] for log in logs] == ["not_found"]

    def test_customers_cannot_verify(self, customer, extracted):
        assert payments.verify_payment(customer, "GC-1234567890").code == ErrorCode.FORBIDDEN


class TestRejection:
    def test_reject_marks_payment_failed(self, staff, customer, order_id, proof_id):
        result = payments.reject_payment_proof(staff, proof_id, "Screenshot is unreadable")

        assert result.success, result.error
        assert checkout.get_order_details(customer, order_id).data["payment_status"] == "failed"
        assert payments.get_pending_payment_proofs(staff).data == []

    def test_reason_must_be_descriptive(self, staff, proof_id):
        assert payments.reject_payment_proof(staff, proof_id, "bad").code == ErrorCode.VALIDATION_ERROR

    def test_verified_proof_cannot_be_rejected(self, staff, extracted):
        payments.verify_payment(staff, "GC-1234567890")

        assert payments.reject_payment_proof(staff, extracted, "Changed our mind here").code == ErrorCode.CONFLICT
