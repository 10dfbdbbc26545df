"""
Payment services for Stripe checkout and webhook reconciliation.

This module provides:
- StripeCheckoutService: Builds and confirms Stripe Checkout sessions
- PaymentSessionService: Lifecycle of payment sessions
- SubscriptionRenewalService: Applies renewals Stripe reports after the fact
- RefundReconciliationService: Revokes plans and issues corrections on refunds
- PaymentLogService: Audit log of inbound webhooks

Usage:
    from payments.services import PaymentSessionService

    # Start a checkout for an invoice
    session = PaymentSessionService.start_checkout(
        invoice,
        created_by=user,
        one_time_payment=False,
    )
    session.checkout_url  # redirect the customer here

    # Apply a renewal reported by invoice.payment_succeeded
    from payments.services import SubscriptionRenewalService

    result = SubscriptionRenewalService.renew_from_invoice(invoice, event_id="evt_123")

    # Reconcile a refund event
    from payments.services import RefundReconciliationService

    result = RefundReconciliationService.reconcile(event)
"""

from payments.services.checkout_service import (
    ActiveCheckoutSession,
    CheckoutPayment,
    CheckoutProduct,
    RecurringInterval,
    StripeCheckoutService,
)
from payments.services.payment_session_service import PaymentSessionService
from payments.services.refund_service import (
    REFUND_FAILED_ERROR_CODE,
    RefundContext,
    RefundReconciliationService,
    is_full_refund,
)
from payments.services.renewal_service import (
    RenewalResult,
    SubscriptionRenewalService,
)
from payments.services.audit_log_service import PaymentLogService

__all__ = [
    "REFUND_FAILED_ERROR_CODE",
    "ActiveCheckoutSession",
    "CheckoutPayment",
    "CheckoutProduct",
    "PaymentLogService",
    "PaymentSessionService",
    "RecurringInterval",
    "RefundContext",
    "RefundReconciliationService",
    "RenewalResult",
    "StripeCheckoutService",
    "SubscriptionRenewalService",
    "is_full_refund",
]
