"""Store settings loaded from the environment.

Protean configuration (providers, processing modes) lives in ``domain.toml``;
these are the business knobs the storefront reads at runtime.
"""

import os
from dataclasses import dataclass, replace
from decimal import Decimal

_DEV_SECRET_KEY = "storefront-dev-secret-key"


@dataclass(frozen=True)
class StoreSettings:
    environment: str = "development"
    tax_rate: Decimal = Decimal("0.12")
    currency: str = "PHP"
    order_number_prefix: str = "ORD"
    max_cart_quantity: int = 100
    otp_ttl_minutes: int = 10
    otp_max_attempts: int = 5
    otp_length: int = 6
    min_password_length: int = 6
    parked_order_ttl_hours: int = 24
    return_window_days: int = 30
    secret_key: str = _DEV_SECRET_KEY

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


def get_environment() -> str:
    return (os.getenv("STOREFRONT_ENV") or os.getenv("PROTEAN_ENV") or "development").lower()


def load_settings() -> StoreSettings:
    """Build settings from ``STOREFRONT_*`` environment variables."""
    environment = get_environment()
    secret_key = os.getenv("STOREFRONT_SECRET_KEY")
    if not secret_key:
        if environment == "production":
            raise RuntimeError("STOREFRONT_SECRET_KEY must be set in production")
        secret_key = _DEV_SECRET_KEY

    tax_rate = Decimal(os.getenv("STOREFRONT_TAX_RATE", "0.12"))
    if not Decimal("0") <= tax_rate < Decimal("1"):
        raise RuntimeError(f"STOREFRONT_TAX_RATE must be between 0 and 1, got {tax_rate}")

    return StoreSettings(
        environment=environment,
        tax_rate=tax_rate,
        currency=os.getenv("STOREFRONT_CURRENCY", "PHP"),
        order_number_prefix=os.getenv("STOREFRONT_ORDER_PREFIX", "ORD"),
        max_cart_quantity=int(os.getenv("STOREFRONT_MAX_CART_QUANTITY", "100")),
        otp_ttl_minutes=int(os.getenv("STOREFRONT_OTP_TTL_MINUTES", "10")),
        otp_max_attempts=int(os.getenv("STOREFRONT_OTP_MAX_ATTEMPTS", "5")),
        min_password_length=int(os.getenv("STOREFRONT_MIN_PASSWORD_LENGTH", "6")),
        parked_order_ttl_hours=int(os.getenv("STOREFRONT_PARKED_ORDER_TTL_HOURS", "24")),
        return_window_days=int(os.getenv("STOREFRONT_RETURN_WINDOW_DAYS", "30")),
        secret_key=secret_key,
    )


_current_settings: StoreSettings | None = None


def get_settings() -> StoreSettings:
    """Return the active settings, loading them from the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = load_settings()
    return _current_settings


def configure_settings(**overrides) -> StoreSettings:
    """Replace individual settings (useful for tests)."""
    global _current_settings
    _current_settings = replace(get_settings(), **overrides)
    return _current_settings


def reset_settings() -> None:
    """Drop overrides; the next ``get_settings()`` reloads from the environment."""
    global _current_settings
    _current_settings = None
