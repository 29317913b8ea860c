"""Payment proof submission and staff verification."""

from protean.utils.globals import current_domain

from storefront.identity.context import RequestContext
from storefront.payments.proof import PaymentProof, PaymentVerificationLog, VerificationResult
from storefront.payments.verification import (
    AlreadyVerified,
    ExtractPaymentData,
    LogVerificationAttempt,
    ProofNotFound,
    RejectPaymentProof,
    SubmitPaymentProof,
    VerifyPayment,
)
from storefront.shared.repository import find_all
from storefront.shared.results import ok, with_error_handling


@with_error_handling
def submit_payment_proof(ctx: RequestContext, order_id, image_url, reference_number=None):
    actor = ctx.require_actor()
    proof_id = current_domain.process(
        SubmitPaymentProof(
            order_id=order_id,
            customer_id=actor.user_id,
            image_url=image_url,
            reference_number=reference_number,
        ),
        asynchronous=False,
    )
    return ok({"payment_proof_id": proof_id}, "Payment proof submitted")


@with_error_handling
def extract_payment_data(ctx: RequestContext, payment_proof_id, reference_number, amount, payment_method):
    actor = ctx.require_admin()
    proof = current_domain.process(
        ExtractPaymentData(
            payment_proof_id=payment_proof_id,
            reference_number=reference_number,
            amount=amount,
            payment_method=payment_method,
            extracted_by=actor.user_id,
        ),
        asynchronous=False,
    )
    return ok(proof, "Payment data saved")


@with_error_handling
def verify_payment(ctx: RequestContext, reference_number):
    """Verify by reference number; failed attempts are logged in their own unit of work."""
    actor = ctx.require_staff()
    reference_number = (reference_number or "").strip()
    try:
        result = current_domain.process(
            VerifyPayment(reference_number=reference_number, staff_id=actor.user_id, ip_address=ctx.ip_address),
            asynchronous=False,
        )
    except (ProofNotFound, AlreadyVerified) as exc:
        current_domain.process(
            LogVerificationAttempt(
                reference_number=reference_number,
                staff_id=actor.user_id,
                result=(
                    VerificationResult.NOT_FOUND.value
                    if isinstance(exc, ProofNotFound)
                    else VerificationResult.DUPLICATE.value
                ),
                payment_proof_id=getattr(exc, "proof_id", None),
            ),
            asynchronous=False,
        )
        raise
    return ok(result, "Payment verified successfully")


@with_error_handling
def reject_payment_proof(ctx: RequestContext, payment_proof_id, reason):
    actor = ctx.require_staff()
    current_domain.process(
        RejectPaymentProof(
            payment_proof_id=payment_proof_id,
            reason=reason,
            rejected_by=actor.user_id,
            ip_address=ctx.ip_address,
        ),
        asynchronous=False,
    )
    return ok(message="Payment proof rejected")


@with_error_handling
def check_duplicate_payment(ctx: RequestContext, reference_number):
    ctx.require_staff()
    proof = current_domain.repository_for(PaymentProof).by_reference(reference_number or "")
    return ok({"is_duplicate": proof is not None, "payment_proof_id": str(proof.id) if proof else None})


@with_error_handling
def get_pending_payment_proofs(ctx: RequestContext):
    ctx.require_staff()
    proofs = current_domain.repository_for(PaymentProof).pending()
    return ok([proof.to_dict_view() for proof in proofs])


@with_error_handling
def get_payment_verification_logs(ctx: RequestContext, reference_number=None):
    ctx.require_admin()
    filters = {"reference_number": reference_number.strip()} if reference_number else {}
    logs = sorted(find_all(PaymentVerificationLog, **filters), key=lambda log: log.scanned_at, reverse=True)
    return ok([log.to_dict_view() for log in logs])
