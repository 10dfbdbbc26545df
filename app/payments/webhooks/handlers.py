"""
Webhook event handlers for Stripe events.

This module provides a handler registry keyed by StripeEventKind and one
handler per kind. Event types are classified first
(StripeEventKind.classify), so the refund family (charge.refunded,
charge.refund.updated, refund.*) shares one handler and unknown types land
on the explicit no-op handler.

Handler contract:
    - Return ServiceResult.success(summary) when the event was applied
    - Return ServiceResult.failure(...) when a best-effort handler could not
      correlate the event (recorded as skipped, HTTP 200)
    - Raise when a mandatory handler fails (recorded as failed, HTTP 500,
      Stripe redelivers)

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    @register_handler(StripeEventKind.REFUND)
    def handle_refund(event: dict) -> ServiceResult:
        ...

    kind, result = dispatch_webhook(event)
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from django.utils import timezone

from core.helpers import from_unix_timestamp
from core.services import ServiceResult

from payments.adapters import StripeAdapter, charge_from_payload, invoice_from_payload
from payments.exceptions import StripeError
from payments.services import (
    PaymentSessionService,
    RefundReconciliationService,
    SubscriptionRenewalService,
)
from payments.state_machines import StripeEventKind

if TYPE_CHECKING:
    from payments.protocols import PaymentGateway


logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], ServiceResult]

# The gateway handlers use for Stripe lookups; replaced in tests
gateway: PaymentGateway = StripeAdapter


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event kinds to handler functions
WEBHOOK_HANDLERS: dict[StripeEventKind, Handler] = {}


def register_handler(kind: StripeEventKind) -> Callable:
    """
    Decorator to register a webhook event handler.

    Usage:
        @register_handler(StripeEventKind.CHECKOUT_COMPLETED)
        def handle_checkout_completed(event: dict) -> ServiceResult:
            ...

    Args:
        kind: The event kind the handler processes

    Returns:
        Decorator function that registers the handler
    """

    def decorator(func: Handler) -> Handler:
        WEBHOOK_HANDLERS[kind] = func
        logger.debug(f"Registered webhook handler for {kind}")
        return func

    return decorator


def dispatch_webhook(event: dict[str, Any]) -> tuple[StripeEventKind, ServiceResult]:
    """
    Classify an event and dispatch it to its handler.

    Args:
        event: Verified Stripe event dict

    Returns:
        (kind, ServiceResult from the handler)

    Raises:
        Whatever a mandatory handler raises
    """
    kind = StripeEventKind.classify(event.get("type"))
    handler = WEBHOOK_HANDLERS.get(kind, handle_ignored)

    logger.info(
        f"Dispatching {event.get('type')} to {handler.__name__}",
        extra={"stripe_event_id": event.get("id"), "event_kind": str(kind)},
    )
    return kind, handler(event)


def _event_object(event: dict[str, Any]) -> dict[str, Any]:
    return (event.get("data") or {}).get("object") or {}


# =============================================================================
# Checkout Handlers
# =============================================================================


@register_handler(StripeEventKind.CHECKOUT_COMPLETED)
def handle_checkout_completed(event: dict[str, Any]) -> ServiceResult:
    """
    Handle checkout.session.completed.

    Closes the payment session referenced by client_reference_id. A
    missing or malformed reference raises PaymentValidationError, an
    unknown one PaymentNotFoundError; both fail the request so the event
    is redelivered and shows up as failed in the audit log.
    """
    session = _event_object(event)
    subscription = session.get("subscription")
    if isinstance(subscription, dict):
        subscription = subscription.get("id")

    completed_at = (
        from_unix_timestamp(session.get("created"))
        or from_unix_timestamp(event.get("created"))
        or timezone.now()
    )

    payment_session = PaymentSessionService.close_successful_payment(
        session.get("client_reference_id"),
        completed_at,
        payment_subscription_id=subscription,
        payment_event_id=event.get("id"),
    )
    return ServiceResult.success(
        f"Closed payment session {payment_session.id} (Stripe session {session.get('id')})"
    )


# =============================================================================
# Renewal Handlers
# =============================================================================


@register_handler(StripeEventKind.INVOICE_PAID)
def handle_invoice_paid(event: dict[str, Any]) -> ServiceResult:
    """
    Handle invoice.payment_succeeded.

    The first invoice of a subscription (billing_reason
    "subscription_create") is already covered by checkout.session.completed
    and is skipped. Every other paid invoice is a renewal that must be
    applied; correlation failures raise RenewalReconciliationError.
    """
    invoice = invoice_from_payload(_event_object(event))

    if invoice.billing_reason == "subscription_create":
        logger.info(
            "Skipping invoice.payment_succeeded for first subscription_create event",
            extra={"stripe_event_id": event.get("id"), "stripe_invoice_id": invoice.id},
        )
        return ServiceResult.success(
            f"Skipped first subscription invoice {invoice.id} (covered by checkout)"
        )

    result = SubscriptionRenewalService.renew_from_invoice(invoice, event_id=event.get("id"))
    return ServiceResult.success(
        f"{result.summary()}, payment_session={result.payment_session.id}"
    )


@register_handler(StripeEventKind.SUBSCRIPTION_UPDATED)
def handle_subscription_updated(event: dict[str, Any]) -> ServiceResult:
    """
    Handle customer.subscription.updated (best-effort renewal).

    The customer email is looked up through Stripe. A missing customer,
    user or plan is logged and reported as a skipped event.
    """
    subscription = _event_object(event)
    customer_id = subscription.get("customer")
    if isinstance(customer_id, dict):
        customer_id = customer_id.get("id")

    if not customer_id:
        logger.warning(
            "Subscription update without customer",
            extra={"stripe_event_id": event.get("id")},
        )
        return ServiceResult.failure(
            "Subscription has no customer", error_code="CUSTOMER_MISSING"
        )

    try:
        customer = gateway.retrieve_customer(customer_id)
    except StripeError as e:
        logger.warning(
            "Could not retrieve customer for subscription update",
            extra={"stripe_event_id": event.get("id"), "customer_id": customer_id},
            exc_info=True,
        )
        return ServiceResult.from_exception(e)

    result = SubscriptionRenewalService.renew_best_effort(
        customer.email,
        _subscription_period_start(subscription) or from_unix_timestamp(event.get("created")),
        subscription.get("id"),
    )
    return _renewal_summary(result)


@register_handler(StripeEventKind.CHARGE_SUCCEEDED)
def handle_charge_succeeded(event: dict[str, Any]) -> ServiceResult:
    """
    Handle charge.succeeded (best-effort renewal).

    The billing email comes from billing_details.email, falling back to
    receipt_email.
    """
    charge_payload = _event_object(event)
    charge = charge_from_payload(charge_payload)
    email = charge.billing_email or charge.receipt_email

    result = SubscriptionRenewalService.renew_best_effort(
        email,
        from_unix_timestamp(charge_payload.get("created"))
        or from_unix_timestamp(event.get("created")),
    )
    return _renewal_summary(result)


def _subscription_period_start(subscription: dict[str, Any]):
    """Read current_period_start from the subscription or its first item."""
    start = subscription.get("current_period_start")
    if start is None:
        items = (subscription.get("items") or {}).get("data") or []
        if items:
            start = items[0].get("current_period_start")
    return from_unix_timestamp(start)


def _renewal_summary(result: ServiceResult) -> ServiceResult:
    if not result.success:
        return result
    return ServiceResult.success(result.data.summary())


# =============================================================================
# Refund Handlers
# =============================================================================


@register_handler(StripeEventKind.REFUND)
def handle_refund(event: dict[str, Any]) -> ServiceResult:
    """
    Handle charge.refunded, charge.refund.updated and refund.* events.

    Never raises; see RefundReconciliationService.reconcile.
    """
    return RefundReconciliationService.reconcile(event, gateway=gateway)


# =============================================================================
# Default Handler
# =============================================================================


@register_handler(StripeEventKind.IGNORED)
def handle_ignored(event: dict[str, Any]) -> ServiceResult:
    """Acknowledge an event type without side effects."""
    logger.info(
        f"No handler for event type: {event.get('type')}",
        extra={"stripe_event_id": event.get("id")},
    )
    return ServiceResult.success(None)
