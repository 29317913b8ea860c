"""Fake OTP sender that keeps the last code per user instead of emailing it."""

from uuid import uuid4

from storefront.identity.otp.port import OtpDelivery, OtpSender


class FakeOtpSender(OtpSender):
    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.sent: list[dict] = []

    def configure(self, should_succeed: bool) -> None:
        self.should_succeed = should_succeed

    def send(self, user_id: str, email: str | None, code: str, expires_in_minutes: int) -> OtpDelivery:
        if not self.should_succeed:
            return OtpDelivery(success=False, error="Delivery failed")
        self.sent.append(
            {"user_id": str(user_id), "email": email, "code": code, "expires_in_minutes": expires_in_minutes}
        )
        return OtpDelivery(success=True, message_id=f"fake_otp_{uuid4().hex[:12]}")

    def last_code_for(self, user_id: str) -> str | None:
        codes = [s["code"] for s in self.sent if s["user_id"] == str(user_id)]
        return codes[-1] if codes else None
