"""In-memory auth provider for development and testing."""

import hashlib
import hmac

from storefront.identity.auth.port import AuthProvider


def _digest(password: str) -> str:
    return hashlib.sha256(password.encode("utf-8")).hexdigest()


class FakeAuthProvider(AuthProvider):
    """Keeps password digests in a dict and records every call."""

    def __init__(self) -> None:
        self._passwords: dict[str, str] = {}
        self.calls: list[dict] = []

    def register(self, user_id: str, password: str) -> None:
        self._passwords[str(user_id)] = _digest(password)

    def verify_password(self, user_id: str, password: str) -> bool:
        self.calls.append({"method": "verify_password", "user_id": str(user_id)})
        stored = self._passwords.get(str(user_id))
        return stored is not None and hmac.compare_digest(stored, _digest(password))

    def update_password(self, user_id: str, new_password: str) -> None:
        self.calls.append({"method": "update_password", "user_id": str(user_id)})
        self._passwords[str(user_id)] = _digest(new_password)
