"""Payment proof submission and verification — commands and handler."""

from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditAction, AuditEntityType, record_audit
from storefront.domain import logger, storefront
from storefront.order.order import Order, OrderStatus, PaymentStatus
from storefront.payments.proof import PaymentProof, PaymentVerificationLog, VerificationResult
from storefront.shared.errors import Conflict, Forbidden, InvalidRequest, NotFound
from storefront.shared.repository import fetch


class ProofNotFound(NotFound):
    def __init__(self, reference_number):
        super().__init__(f'No payment proof found for reference "{reference_number}"')


class AlreadyVerified(Conflict):
    def __init__(self, proof_id):
        self.proof_id = proof_id
        super().__init__("This payment has already been verified")


@storefront.command(part_of="PaymentProof")
class SubmitPaymentProof:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    image_url = String(required=True, max_length=1000)
    reference_number = String(max_length=100)


@storefront.command(part_of="PaymentProof")
class ExtractPaymentData:
    payment_proof_id = Identifier(required=True)
    reference_number = String(required=True, max_length=100)
    amount = Float(required=True)
    payment_method = String(required=True, max_length=50)
    extracted_by = Identifier(required=True)


@storefront.command(part_of="PaymentProof")
class VerifyPayment:
    reference_number = String(required=True, max_length=100)
    staff_id = Identifier(required=True)
    ip_address = String(max_length=64)


@storefront.command(part_of="PaymentProof")
class RejectPaymentProof:
    payment_proof_id = Identifier(required=True)
    reason = Text(required=True)
    rejected_by = Identifier(required=True)
    ip_address = String(max_length=64)


@storefront.command(part_of="PaymentProof")
class LogVerificationAttempt:
    reference_number = String(required=True, max_length=100)
    staff_id = Identifier(required=True)
    result = String(required=True, choices=VerificationResult)
    payment_proof_id = Identifier()


@storefront.command_handler(part_of=PaymentProof)
class PaymentProofHandler:
    @handle(SubmitPaymentProof)
    def submit(self, command):
        order = fetch(Order, command.order_id, "Order not found")
        if str(order.customer_id) != str(command.customer_id):
            raise Forbidden("You do not have access to this order")
        if order.payment_status == PaymentStatus.PAID.value:
            raise Conflict("This order has already been paid")

        proof = PaymentProof.submit(
            order_id=order.id,
            customer_id=command.customer_id,
            image_url=command.image_url,
            reference_number=command.reference_number,
        )
        order.change_payment_status(PaymentStatus.PENDING)

        current_domain.repository_for(PaymentProof).add(proof)
        current_domain.repository_for(Order).add(order)
        return str(proof.id)

    @handle(ExtractPaymentData)
    def extract(self, command):
        reference_number = (command.reference_number or "").strip()
        if not 5 <= len(reference_number) <= 100:
            raise InvalidRequest("Reference number must be between 5 and 100 characters")
        if command.amount is None or command.amount <= 0:
            raise InvalidRequest("Amount must be greater than zero")
        if not 2 <= len((command.payment_method or "").strip()) <= 50:
            raise InvalidRequest("Payment method must be between 2 and 50 characters")

        repo = current_domain.repository_for(PaymentProof)
        duplicate = repo.by_reference(reference_number)
        if duplicate is not None and str(duplicate.id) != str(command.payment_proof_id):
            raise Conflict("This reference number has already been used")

        proof = fetch(PaymentProof, command.payment_proof_id, "Payment proof not found")
        proof.extract(reference_number, command.amount, command.payment_method, command.extracted_by)
        repo.add(proof)
        return proof.to_dict_view()

    @handle(VerifyPayment)
    def verify(self, command):
        repo = current_domain.repository_for(PaymentProof)
        proof = repo.by_reference(command.reference_number)
        if proof is None:
            raise ProofNotFound(command.reference_number)
        if proof.verified_at is not None:
            raise AlreadyVerified(proof.id)

        proof.verify(command.staff_id)
        order = fetch(Order, proof.order_id, "Order not found")
        order.change_payment_status(PaymentStatus.PAID)
        if order.status == OrderStatus.PENDING.value:
            order.mark_processing(changed_by=command.staff_id, notes="Payment verified")

        repo.add(proof)
        current_domain.repository_for(Order).add(order)
        current_domain.repository_for(PaymentVerificationLog).add(
            PaymentVerificationLog.attempt(
                command.reference_number, command.staff_id, VerificationResult.SUCCESS, payment_proof_id=proof.id
            )
        )
        record_audit(
            AuditAction.PAYMENT_VERIFIED,
            AuditEntityType.PAYMENT,
            entity_id=proof.id,
            user_id=command.staff_id,
            new_value={"order_id": str(order.id), "reference_number": proof.reference_number, "amount": proof.amount},
            ip_address=command.ip_address,
        )

        logger.info("Payment verified", payment_proof_id=str(proof.id), order_id=str(order.id))
        return {
            "payment_proof_id": str(proof.id),
            "order_id": str(order.id),
            "order_number": order.order_number,
            "amount": proof.amount,
        }

    @handle(RejectPaymentProof)
    def reject(self, command):
        proof = fetch(PaymentProof, command.payment_proof_id, "Payment proof not found")
        proof.reject(command.reason, command.rejected_by)

        order = fetch(Order, proof.order_id, "Order not found")
        order.change_payment_status(PaymentStatus.FAILED)

        current_domain.repository_for(PaymentProof).add(proof)
        current_domain.repository_for(Order).add(order)
        record_audit(
            AuditAction.PAYMENT_REJECTED,
            AuditEntityType.PAYMENT,
            entity_id=proof.id,
            user_id=command.rejected_by,
            new_value={"order_id": str(order.id), "reason": proof.rejection_reason},
            ip_address=command.ip_address,
        )

    @handle(LogVerificationAttempt)
    def log_attempt(self, command):
        log = PaymentVerificationLog.attempt(
            command.reference_number,
            command.staff_id,
            VerificationResult(command.result),
            payment_proof_id=command.payment_proof_id,
        )
        current_domain.repository_for(PaymentVerificationLog).add(log)
        return str(log.id)
