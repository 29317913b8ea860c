"""Password change with an emailed one-time code.

Requesting a change stores a PasswordChangeRequest holding only a keyed hash
of the code, its expiry and an attempt counter; the caller receives a signed
token that points at that row. The new password is submitted together with
the code, so it never travels inside a client-held token.
"""

import hashlib
import hmac
import secrets
from datetime import UTC, datetime, timedelta
from enum import Enum

from protean import handle
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from storefront.audit.audit_log import AuditAction, AuditEntityType, record_audit
from storefront.config import get_settings
from storefront.domain import logger, storefront
from storefront.identity.auth import get_auth_provider
from storefront.identity.otp import get_otp_sender
from storefront.identity.tokens import sign_reference, unsign_reference
from storefront.shared.errors import Conflict, InvalidRequest, NotFound, StorefrontError
from storefront.shared.repository import fetch


class RequestStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    SUPERSEDED = "superseded"
    LOCKED = "locked"


def generate_code(length: int = 6) -> str:
    return "".join(secrets.choice("0123456789") for _ in range(length))


def hash_code(code: str, secret_key: str | None = None) -> str:
    secret_key = secret_key or get_settings().secret_key
    return hmac.new(secret_key.encode("utf-8"), code.encode("utf-8"), hashlib.sha256).hexdigest()


@storefront.aggregate
class PasswordChangeRequest:
    user_id = Identifier(required=True)
    code_hash = String(required=True, max_length=128)
    status = String(choices=RequestStatus, default=RequestStatus.PENDING.value)
    attempts = Integer(default=0, min_value=0)
    max_attempts = Integer(default=5)
    created_at = DateTime()
    expires_at = DateTime(required=True)
    confirmed_at = DateTime()

    @classmethod
    def issue(cls, user_id, code, ttl_minutes, max_attempts):
        now = datetime.now(UTC)
        return cls(
            user_id=user_id,
            code_hash=hash_code(code),
            status=RequestStatus.PENDING.value,
            attempts=0,
            max_attempts=max_attempts,
            created_at=now,
            expires_at=now + timedelta(minutes=ttl_minutes),
        )

    def is_expired(self, now=None) -> bool:
        return (now or datetime.now(UTC)) >= self.expires_at

    def check_code(self, code) -> bool:
        """Count an attempt and report whether ``code`` matches.

        Exhausting the attempt budget locks the request.
        """
        if self.status == RequestStatus.CONFIRMED.value:
            raise Conflict("This verification code has already been used")
        if self.status != RequestStatus.PENDING.value:
            raise InvalidRequest("This verification request is no longer valid. Please request a new code.")
        if self.is_expired():
            raise InvalidRequest("Verification code has expired. Please request a new code.")

        self.attempts = (self.attempts or 0) + 1
        if hmac.compare_digest(self.code_hash, hash_code(code or "")):
            return True
        if self.attempts >= self.max_attempts:
            self.status = RequestStatus.LOCKED.value
        return False

    def confirm(self):
        self.status = RequestStatus.CONFIRMED.value
        self.confirmed_at = datetime.now(UTC)

    def supersede(self):
        self.status = RequestStatus.SUPERSEDED.value


@storefront.repository(part_of=PasswordChangeRequest)
class PasswordChangeRequestRepository:
    def pending_for(self, user_id) -> list:
        return self._dao.query.filter(user_id=str(user_id), status=RequestStatus.PENDING.value).all().items


class DeliveryFailed(StorefrontError):
    pass


@storefront.command(part_of="PasswordChangeRequest")
class RequestPasswordChange:
    user_id = Identifier(required=True)
    email = String(max_length=255)
    current_password = String(required=True, max_length=255)


@storefront.command(part_of="PasswordChangeRequest")
class ConfirmPasswordChange:
    user_id = Identifier(required=True)
    token = String(required=True, max_length=255)
    code = String(required=True, max_length=12)
    new_password = String(required=True, max_length=255)
    ip_address = String(max_length=64)


@storefront.command_handler(part_of=PasswordChangeRequest)
class PasswordChangeHandler:
    @handle(RequestPasswordChange)
    def request_change(self, command):
        settings = get_settings()
        if not get_auth_provider().verify_password(command.user_id, command.current_password):
            raise InvalidRequest("Current password is incorrect")

        repo = current_domain.repository_for(PasswordChangeRequest)
        for previous in repo.pending_for(command.user_id):
            previous.supersede()
            repo.add(previous)

        code = generate_code(settings.otp_length)
        request = PasswordChangeRequest.issue(
            command.user_id,
            code,
            ttl_minutes=settings.otp_ttl_minutes,
            max_attempts=settings.otp_max_attempts,
        )
        delivery = get_otp_sender().send(command.user_id, command.email, code, settings.otp_ttl_minutes)
        if not delivery.success:
            raise DeliveryFailed("Could not send the verification code. Please try again.")

        repo.add(request)
        logger.info("Password change requested", user_id=str(command.user_id), request_id=str(request.id))
        return {"token": sign_reference(str(request.id)), "expires_at": request.expires_at.isoformat()}

    @handle(ConfirmPasswordChange)
    def confirm_change(self, command):
        """Returns False on a wrong code so the attempt count still commits."""
        request_id = unsign_reference(command.token)
        try:
            request = fetch(PasswordChangeRequest, request_id)
        except NotFound as exc:
            raise InvalidRequest("Invalid or expired verification token") from exc
        if str(request.user_id) != str(command.user_id):
            raise InvalidRequest("Invalid or expired verification token")

        repo = current_domain.repository_for(PasswordChangeRequest)
        if not request.check_code(command.code):
            repo.add(request)
            logger.info("Password change code rejected", user_id=str(command.user_id), attempts=request.attempts)
            return False

        get_auth_provider().update_password(command.user_id, command.new_password)
        request.confirm()
        repo.add(request)
        record_audit(
            AuditAction.PASSWORD_CHANGE,
            AuditEntityType.USER,
            entity_id=command.user_id,
            user_id=command.user_id,
            ip_address=command.ip_address,
        )
        logger.info("Password changed", user_id=str(command.user_id))
        return True
