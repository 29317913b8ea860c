"""Signed, opaque references to server-side records.

A token is ``<record id>.<signature>``; it proves the id was issued by this
store and carries nothing else.
"""

import base64
import hashlib
import hmac

from storefront.config import get_settings
from storefront.shared.errors import InvalidRequest


def _signature(value: str, secret_key: str) -> str:
    digest = hmac.new(secret_key.encode("utf-8"), value.encode("utf-8"), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")


def sign_reference(record_id: str, secret_key: str | None = None) -> str:
    secret_key = secret_key or get_settings().secret_key
    return f"{record_id}.{_signature(str(record_id), secret_key)}"


def unsign_reference(token: str, secret_key: str | None = None) -> str:
    """Return the record id inside ``token``; tampered tokens are rejected."""
    secret_key = secret_key or get_settings().secret_key
    record_id, _, signature = (token or "").rpartition(".")
    if not record_id or not hmac.compare_digest(signature, _signature(record_id, secret_key)):
        raise InvalidRequest("Invalid or expired verification token")
    return record_id
