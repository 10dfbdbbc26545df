"""
Payment domain models.

This module contains all payment-related models:
- PaymentSession: One Stripe Checkout (or renewal) payment of an invoice
- PaymentOperatorLog: Audit trail of inbound Stripe webhooks
"""

from payments.models.operator_log import STRIPE_WEBHOOK_OPERATOR, PaymentOperatorLog
from payments.models.payment_session import PaymentSession

__all__ = [
    "STRIPE_WEBHOOK_OPERATOR",
    "PaymentOperatorLog",
    "PaymentSession",
]
