"""
State machine enums and helpers for payment models.

This module defines the state enums used by payment models with django-fsm
and the Stripe event classification used by webhook dispatch.
"""

from payments.state_machines.states import (
    PaymentMode,
    PaymentSessionState,
    StripeEventKind,
    WebhookEventStatus,
)

__all__ = [
    "PaymentMode",
    "PaymentSessionState",
    "StripeEventKind",
    "WebhookEventStatus",
]
