"""Runtime configuration for the checkout context, read from the environment.

Adapters are chosen by name (``PAYMENT_GATEWAY``, ``SUPPLIER_ADAPTER``,
``NOTIFICATION_SENDER``) so the fake variants can stand in for the real
services in development and tests.
"""

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

DEFAULT_SHIPPING_COUNTRIES = ("HR", "SI", "AT", "DE", "ES", "FR", "IT", "NL", "BE", "PT")


def _csv(value: str | None) -> tuple[str, ...]:
    return tuple(part.strip() for part in (value or "").split(",") if part.strip())


def _flag(value: str | None, default: bool = False) -> bool:
    if value is None or value == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    environment: str = "development"

    # Payment gateway
    payment_gateway: str = "fake"
    stripe_secret_key: str = ""
    stripe_webhook_secret: str = ""
    currency: str = "EUR"
    frontend_url: str = "http://localhost:5173"
    shipping_countries: tuple[str, ...] = DEFAULT_SHIPPING_COUNTRIES

    # Dropshipping supplier
    supplier_adapter: str = "fake"
    bigbuy_api_key: str = ""
    bigbuy_use_sandbox: bool = True
    carrier_priority: tuple[str, ...] = field(default_factory=tuple)
    fallback_carrier: str = "standard shipment"

    # Bounded wait for every gateway/supplier call, in seconds
    external_call_timeout: float = 15.0

    # Supplier claims older than this with no outcome are reported for reconciliation
    stale_claim_seconds: int = 900

    # Customer email
    notification_sender: str = "fake"
    email_host: str = ""
    email_port: int = 587
    email_user: str = ""
    email_password: str = ""
    email_from: str = ""

    catalog_file: str | None = None

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "Settings":
        env = os.environ if environ is None else environ
        return cls(
            environment=env.get("PROTEAN_ENV", "development"),
            payment_gateway=env.get("PAYMENT_GATEWAY", "fake").lower(),
            stripe_secret_key=env.get("STRIPE_SECRET_KEY", ""),
            stripe_webhook_secret=env.get("STRIPE_WEBHOOK_SECRET", ""),
            currency=env.get("CHECKOUT_CURRENCY", "EUR").upper(),
            frontend_url=env.get("FRONTEND_URL", "http://localhost:5173").rstrip("/"),
            shipping_countries=_csv(env.get("SHIPPING_COUNTRIES")) or DEFAULT_SHIPPING_COUNTRIES,
            supplier_adapter=env.get("SUPPLIER_ADAPTER", "fake").lower(),
            bigbuy_api_key=env.get("BIGBUY_API_KEY", ""),
            bigbuy_use_sandbox=_flag(env.get("BIGBUY_USE_SANDBOX"), default=True),
            carrier_priority=_csv(env.get("CARRIER_PRIORITY")),
            fallback_carrier=env.get("FALLBACK_CARRIER", "standard shipment"),
            external_call_timeout=float(env.get("EXTERNAL_CALL_TIMEOUT", "15")),
            stale_claim_seconds=int(env.get("STALE_CLAIM_SECONDS", "900")),
            notification_sender=env.get("NOTIFICATION_SENDER", "fake").lower(),
            email_host=env.get("EMAIL_HOST", ""),
            email_port=int(env.get("EMAIL_PORT", "587")),
            email_user=env.get("EMAIL_USER", ""),
            email_password=env.get("EMAIL_PASS", ""),
            email_from=env.get("EMAIL_FROM", "") or env.get("EMAIL_USER", ""),
            catalog_file=env.get("CATALOG_FILE") or None,
        )


_current_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the active settings, loading them from the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = Settings.from_env()
    return _current_settings


def set_settings(settings: Settings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    global _current_settings
    _current_settings = None
