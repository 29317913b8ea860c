"""Auth provider port (abstract interface).

Sign-in and credential storage belong to the external auth service. The
storefront only needs to check a user's current password and set a new one
when a password change is confirmed.
"""

from abc import ABC, abstractmethod


class AuthProvider(ABC):
    """Abstract auth provider interface."""

    @abstractmethod
    def verify_password(self, user_id: str, password: str) -> bool:
        """Return True when ``password`` is the user's current password."""
        ...

    @abstractmethod
    def update_password(self, user_id: str, new_password: str) -> None:
        """Replace the user's password."""
        ...
