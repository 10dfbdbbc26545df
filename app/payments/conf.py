"""
Payment settings access.

All Stripe and checkout settings are read from django.conf.settings (which
loads them from the environment through django-environ). Required values
that are blank raise ImproperlyConfigured at the point of use, so a
missing webhook secret fails the webhook request instead of the whole
process start.

Usage:
    from payments.conf import StripeSettings, get_setting

    secret = get_setting("STRIPE_WEBHOOK_SECRET")
    stripe_settings = StripeSettings.load()
    stripe_settings.webhook_tolerance_seconds  # 300
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

DEFAULT_WEBHOOK_TOLERANCE_SECONDS = 300
DEFAULT_API_TIMEOUT_SECONDS = 10
DEFAULT_CONFIRM_LOOKBACK_DAYS = 2
DEFAULT_PROCESSOR_NAME = "Stripe"


def get_setting(name: str, default: Any = None, required: bool = True) -> Any:
    """
    Read a payment setting.

    Args:
        name: Django setting name (e.g. "STRIPE_SECRET_KEY")
        default: Value used when the setting is absent
        required: Raise when the resulting value is None or blank

    Raises:
        ImproperlyConfigured: Required setting is missing or blank
    """
    value = getattr(settings, name, default)
    if required and (value is None or (isinstance(value, str) and not value.strip())):
        raise ImproperlyConfigured(f"{name} is not configured")
    return value


@dataclass(frozen=True)
class StripeSettings:
    """
    Snapshot of the non-secret Stripe and checkout settings.

    The API key and webhook secret are read with get_setting() by the
    Stripe adapter when it needs them, so checkout and renewals keep
    working while only the webhook secret is unset.
    """

    publishable_key: str = ""
    webhook_tolerance_seconds: int = DEFAULT_WEBHOOK_TOLERANCE_SECONDS
    api_timeout_seconds: int = DEFAULT_API_TIMEOUT_SECONDS
    confirm_lookback_days: int = DEFAULT_CONFIRM_LOOKBACK_DAYS
    success_url: str = ""
    cancel_url: str = ""
    processor_name: str = DEFAULT_PROCESSOR_NAME

    @classmethod
    def load(cls) -> StripeSettings:
        """Build the snapshot from Django settings."""
        return cls(
            publishable_key=get_setting("STRIPE_PUBLISHABLE_KEY", "", required=False),
            webhook_tolerance_seconds=int(
                get_setting(
                    "STRIPE_WEBHOOK_TOLERANCE_SECONDS",
                    DEFAULT_WEBHOOK_TOLERANCE_SECONDS,
                )
            ),
            api_timeout_seconds=int(
                get_setting("STRIPE_API_TIMEOUT_SECONDS", DEFAULT_API_TIMEOUT_SECONDS)
            ),
            confirm_lookback_days=int(
                get_setting("STRIPE_CONFIRM_LOOKBACK_DAYS", DEFAULT_CONFIRM_LOOKBACK_DAYS)
            ),
            success_url=get_setting("PAYMENT_SUCCESS_URL", "", required=False),
            cancel_url=get_setting("PAYMENT_CANCEL_URL", "", required=False),
            processor_name=get_setting(
                "PAYMENT_PROCESSOR_NAME", DEFAULT_PROCESSOR_NAME, required=False
            ),
        )

