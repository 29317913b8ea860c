"""OTP sender port — delivers one-time verification codes to a user."""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class OtpDelivery:
    """Result of a delivery attempt."""

    success: bool
    message_id: str | None = None
    error: str | None = None


class OtpSender(ABC):
    @abstractmethod
    def send(self, user_id: str, email: str | None, code: str, expires_in_minutes: int) -> OtpDelivery:
        ...
