"""Auth provider factory.

Provides get_auth_provider() / set_auth_provider() to swap implementations;
FakeAuthProvider is used until a real adapter is installed.
"""

from storefront.identity.auth.fake_adapter import FakeAuthProvider
from storefront.identity.auth.port import AuthProvider

_current_provider: AuthProvider | None = None


def get_auth_provider() -> AuthProvider:
    """Return the current auth provider. Defaults to FakeAuthProvider."""
    global _current_provider
    if _current_provider is None:
        _current_provider = FakeAuthProvider()
    return _current_provider


def set_auth_provider(provider: AuthProvider) -> None:
    """Override the active auth provider (useful for tests)."""
    global _current_provider
    _current_provider = provider


def reset_auth_provider() -> None:
    """Reset to default provider."""
    global _current_provider
    _current_provider = None
