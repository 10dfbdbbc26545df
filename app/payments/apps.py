"""
Payments app configuration.

This app provides the Stripe integration:
- Checkout session creation and confirmation
- Webhook verification, audit logging and dispatch
- Renewal and refund reconciliation
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
