"""
Payment-specific exceptions for checkout and webhook processing.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Payment session lookup failures
    ├── PaymentValidationError - Malformed identifiers or payloads
    ├── PaymentProcessingError - Payment processing failures
    │   ├── StripeError - Base for all Stripe API errors
    │   │   ├── StripeAuthenticationError - Bad API key (permanent)
    │   │   ├── StripeInvalidRequestError - Invalid request params (permanent)
    │   │   ├── StripeRateLimitError - Rate limited (transient)
    │   │   ├── StripeAPIUnavailableError - API unavailable (transient)
    │   │   └── StripeTimeoutError - Request timeout (transient)
    │   └── WebhookVerificationError - Signature or payload rejected
    └── RenewalReconciliationError - Renewal could not be correlated
        ├── CompanyNotFoundError - No company for subscription/customer
        └── SubscriptionPlanNotFoundError - Company has no active plan

    InvalidStateTransitionError - FSM transition not allowed (inherits ConflictError)

Usage:
    from payments.exceptions import CompanyNotFoundError, WebhookVerificationError

    raise CompanyNotFoundError(
        "No company for Stripe invoice in_123",
        details={"stripe_invoice_id": "in_123", "email": "billing@acme.test"},
    )

    try:
        event = StripeAdapter.verify_webhook_signature(payload, signature)
    except WebhookVerificationError as e:
        return HttpResponse(status=400)

Note:
    Stripe redelivers webhooks that do not receive a 2xx response, so
    raising RenewalReconciliationError out of a webhook is how a renewal
    is retried. There is no internal retry queue.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, ConflictError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    All payment-specific exceptions inherit from this class,
    which itself inherits from BaseApplicationError for
    consistent API error responses.

    Example:
        try:
            PaymentSessionService.start_checkout(invoice, user)
        except PaymentError as e:
            logger.error(f"Checkout failed: {e}")
            return Response(e.to_dict(), status=400)
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when a payment session cannot be found.

    Example:
        session = PaymentSession.objects.filter(id=guid).first()
        if not session:
            raise PaymentNotFoundError(
                f"PaymentSession {guid} not found",
                details={"payment_session_id": str(guid)}
            )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"


class PaymentValidationError(PaymentError):
    """
    Raised when payment input validation fails.

    Use for:
    - Malformed payment session GUID (client_reference_id)
    - Checkout request without products
    - Non-positive amounts
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class PaymentProcessingError(PaymentError):
    """
    Raised when payment processing fails.

    Use for:
    - Stripe API errors
    - Webhook verification failures
    """

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Stripe-Specific Exceptions
# =============================================================================


class StripeError(PaymentProcessingError):
    """
    Base exception for all Stripe-related errors.

    Carries stripe_code, Stripe's own error code, when Stripe sent one.

    Example:
        try:
            StripeAdapter.create_checkout_session(params)
        except StripeError as e:
            return Response(e.to_dict(), status=502)
    """

    default_error_code: str = "STRIPE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        stripe_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if stripe_code:
            details["stripe_code"] = stripe_code
        super().__init__(message, error_code=error_code, details=details)
        self.stripe_code = stripe_code


# -----------------------------------------------------------------------------
# Request Errors
# -----------------------------------------------------------------------------


class StripeAuthenticationError(StripeError):
    """
    Stripe rejected the API key.

    Usually means STRIPE_SECRET_KEY is missing, revoked or belongs to the
    wrong mode (test/live).
    """

    default_error_code: str = "STRIPE_AUTHENTICATION_FAILED"


class StripeInvalidRequestError(StripeError):
    """
    Invalid request parameters sent to Stripe.

    This is a permanent error - the request itself is malformed
    and will never succeed with the same parameters.

    Possible causes:
    - Unknown charge, payment intent or customer ID
    - Invalid amount or currency
    - Missing required parameters

    Note:
        During refund enrichment an unknown object is expected (deleted
        customers, charges without invoices) and is tolerated per call.
    """

    default_error_code: str = "INVALID_STRIPE_REQUEST"


# -----------------------------------------------------------------------------
# Availability Errors
# -----------------------------------------------------------------------------


class StripeRateLimitError(StripeError):
    """
    Rate limited by Stripe API.

    Stripe allows 100 requests/second in live mode, 25/second in test mode.
    This error indicates we've exceeded those limits.
    """

    default_error_code: str = "STRIPE_RATE_LIMITED"


class StripeAPIUnavailableError(StripeError):
    """
    Stripe API is temporarily unavailable.

    This covers:
    - Network connectivity issues
    - Stripe server errors (5xx)
    - DNS resolution failures
    """

    default_error_code: str = "STRIPE_UNAVAILABLE"


class StripeTimeoutError(StripeError):
    """
    Stripe API call timed out.

    The request was sent but no response was received within
    the configured timeout (STRIPE_API_TIMEOUT_SECONDS).

    IMPORTANT: The operation may have succeeded on Stripe's side.
    A checkout session created this way is simply abandoned; the
    customer retries with a new session.
    """

    default_error_code: str = "STRIPE_TIMEOUT"


# -----------------------------------------------------------------------------
# Webhook Errors
# -----------------------------------------------------------------------------


class WebhookVerificationError(PaymentProcessingError):
    """
    Raised when an inbound webhook cannot be authenticated.

    Use for:
    - Missing Stripe-Signature header
    - Signature mismatch (wrong STRIPE_WEBHOOK_SECRET)
    - Timestamp outside the tolerance window (replay protection)
    - Body that is not a JSON Stripe event

    The webhook endpoint answers 400 and records the rejected body.
    """

    default_error_code: str = "WEBHOOK_VERIFICATION_FAILED"


# =============================================================================
# Renewal Reconciliation Exceptions
# =============================================================================


class RenewalReconciliationError(PaymentError):
    """
    Base exception for renewals that cannot be applied to a company.

    Raised only from the mandatory renewal path (invoice.payment_succeeded)
    so Stripe redelivers the event once the data is fixed.
    """

    default_error_code: str = "RENEWAL_RECONCILIATION_FAILED"


class CompanyNotFoundError(RenewalReconciliationError):
    """
    No company could be resolved for a renewal.

    Resolution tries the Stripe subscription id first, then the billing
    email's user and that user's last used company.
    """

    default_error_code: str = "COMPANY_NOT_FOUND"


class SubscriptionPlanNotFoundError(RenewalReconciliationError):
    """The resolved company has no subscription plan to renew."""

    default_error_code: str = "SUBSCRIPTION_PLAN_NOT_FOUND"


# =============================================================================
# State Machine Exceptions
# =============================================================================


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a state machine transition is not allowed.

    This exception wraps django-fsm's TransitionNotAllowed to provide
    our standard error format with additional context.

    Example:
        from django_fsm import TransitionNotAllowed

        try:
            session.mark_paid()
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                f"Cannot mark session paid from '{session.state}' state",
                details={
                    "current_state": session.state,
                    "target_state": "paid",
                    "transition": "mark_paid",
                }
            )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Payment domain
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentValidationError",
    "PaymentProcessingError",
    # Stripe-specific
    "StripeError",
    "StripeAuthenticationError",
    "StripeInvalidRequestError",
    "StripeRateLimitError",
    "StripeAPIUnavailableError",
    "StripeTimeoutError",
    # Webhooks
    "WebhookVerificationError",
    # Renewal reconciliation
    "RenewalReconciliationError",
    "CompanyNotFoundError",
    "SubscriptionPlanNotFoundError",
    # State machines
    "InvalidStateTransitionError",
]
