"""Payment proofs — customer-uploaded evidence of an e-wallet or bank payment.

Lifecycle: pending → extracted (staff read the reference and amount off the
image) → verified, or rejected at any point before verification. Every
verification attempt, successful or not, is kept in PaymentVerificationLog.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.fields import DateTime, Float, Identifier, String, Text

from storefront.domain import storefront
from storefront.shared.errors import Conflict, InvalidRequest


class ProofStatus(Enum):
    PENDING = "pending"
    EXTRACTED = "extracted"
    VERIFIED = "verified"
    REJECTED = "rejected"


class VerificationResult(Enum):
    SUCCESS = "success"
    NOT_FOUND = "not_found"
    DUPLICATE = "duplicate"


@storefront.aggregate
class PaymentProof:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    image_url = String(required=True, max_length=1000)
    reference_number = String(max_length=100)
    amount = Float(min_value=0.0)
    payment_method = String(max_length=50)
    status = String(choices=ProofStatus, default=ProofStatus.PENDING.value)
    uploaded_at = DateTime()
    extracted_at = DateTime()
    extracted_by = Identifier()
    verified_at = DateTime()
    verified_by = Identifier()
    rejection_reason = Text()
    rejected_by = Identifier()

    @classmethod
    def submit(cls, order_id, customer_id, image_url, reference_number=None):
        return cls(
            order_id=order_id,
            customer_id=customer_id,
            image_url=image_url,
            reference_number=reference_number,
            status=ProofStatus.PENDING.value,
            uploaded_at=datetime.now(UTC),
        )

    def extract(self, reference_number, amount, payment_method, extracted_by):
        if self.status in (ProofStatus.VERIFIED.value, ProofStatus.REJECTED.value):
            raise Conflict(f"Payment proof is already {self.status}")
        self.reference_number = reference_number.strip()
        self.amount = amount
        self.payment_method = payment_method.strip()
        self.extracted_by = extracted_by
        self.extracted_at = datetime.now(UTC)
        self.status = ProofStatus.EXTRACTED.value

    def verify(self, verified_by):
        if self.verified_at is not None or self.status == ProofStatus.VERIFIED.value:
            raise Conflict("This payment has already been verified")
        if self.status == ProofStatus.REJECTED.value:
            raise Conflict("This payment proof was rejected")
        self.status = ProofStatus.VERIFIED.value
        self.verified_by = verified_by
        self.verified_at = datetime.now(UTC)

    def reject(self, reason, rejected_by):
        reason = (reason or "").strip()
        if len(reason) < 10:
            raise InvalidRequest("Rejection reason must be at least 10 characters")
        if self.status == ProofStatus.VERIFIED.value:
            raise Conflict("A verified payment cannot be rejected")
        self.status = ProofStatus.REJECTED.value
        self.rejection_reason = reason
        self.rejected_by = rejected_by

    def to_dict_view(self) -> dict:
        return {
            "id": str(self.id),
            "order_id": str(self.order_id),
            "customer_id": str(self.customer_id),
            "image_url": self.image_url,
            "reference_number": self.reference_number,
            "amount": self.amount,
            "payment_method": self.payment_method,
            "status": self.status,
            "uploaded_at": self.uploaded_at.isoformat() if self.uploaded_at else None,
            "verified_at": self.verified_at.isoformat() if self.verified_at else None,
            "rejection_reason": self.rejection_reason,
        }


@storefront.repository(part_of=PaymentProof)
class PaymentProofRepository:
    def by_reference(self, reference_number):
        proofs = self._dao.query.filter(reference_number=reference_number.strip()).all().items
        return proofs[0] if proofs else None

    def pending(self) -> list:
        proofs = self._dao.query.order_by("uploaded_at").all().items
        return [p for p in proofs if p.status in (ProofStatus.PENDING.value, ProofStatus.EXTRACTED.value)]


@storefront.aggregate
class PaymentVerificationLog:
    payment_proof_id = Identifier()
    reference_number = String(required=True, max_length=100)
    staff_id = Identifier(required=True)
    result = String(required=True, choices=VerificationResult)
    scanned_at = DateTime()

    @classmethod
    def attempt(cls, reference_number, staff_id, result, payment_proof_id=None):
        return cls(
            payment_proof_id=payment_proof_id,
            reference_number=reference_number,
            staff_id=staff_id,
            result=result.value,
            scanned_at=datetime.now(UTC),
        )

    def to_dict_view(self) -> dict:
        return {
            "id": str(self.id),
            "payment_proof_id": str(self.payment_proof_id) if self.payment_proof_id else None,
            "reference_number": self.reference_number,
            "staff_id": str(self.staff_id),
            "result": self.result,
            "scanned_at": self.scanned_at.isoformat() if self.scanned_at else None,
        }
