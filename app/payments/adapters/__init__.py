"""
Payment adapters for external services.

This module provides the adapter for Stripe. All Stripe API calls should
go through it to ensure consistent error handling, timeouts and
observability.

Usage:
    from payments.adapters import StripeAdapter

    charge = StripeAdapter.retrieve_charge("ch_xxx")
    event = StripeAdapter.verify_webhook_signature(request.body, signature)
"""

from payments.adapters.stripe_adapter import (
    ChargeResult,
    CheckoutSessionPage,
    CheckoutSessionResult,
    CreateCheckoutSessionParams,
    CustomerResult,
    IdempotencyKeyGenerator,
    InvoiceResult,
    PaymentIntentResult,
    StripeAdapter,
    charge_from_payload,
    invoice_from_payload,
)

__all__ = [
    "ChargeResult",
    "CheckoutSessionPage",
    "CheckoutSessionResult",
    "CreateCheckoutSessionParams",
    "CustomerResult",
    "IdempotencyKeyGenerator",
    "InvoiceResult",
    "PaymentIntentResult",
    "StripeAdapter",
    "charge_from_payload",
    "invoice_from_payload",
]
