"""OTP sender factory: get_otp_sender() / set_otp_sender() / reset_otp_sender()."""

from storefront.identity.otp.fake_adapter import FakeOtpSender
from storefront.identity.otp.port import OtpSender

_current_sender: OtpSender | None = None


def get_otp_sender() -> OtpSender:
    """Return the current OTP sender. Defaults to FakeOtpSender."""
    global _current_sender
    if _current_sender is None:
        _current_sender = FakeOtpSender()
    return _current_sender


def set_otp_sender(sender: OtpSender) -> None:
    global _current_sender
    _current_sender = sender


def reset_otp_sender() -> None:
    global _current_sender
    _current_sender = None
