"""
Webhook endpoint views for Stripe.

This module provides the HTTP endpoint for receiving Stripe webhooks.
The view:
1. Verifies the webhook signature
2. Creates/reuses the PaymentOperatorLog audit entry (idempotent)
3. Dispatches the event to its handler synchronously
4. Completes the audit entry from the handler outcome

Stripe redelivery is the retry mechanism: a 500 response makes Stripe send
the same event again, and a redelivered event reuses its audit entry.

Usage:
    # In urls.py
    from payments.webhooks.views import stripe_webhook

    urlpatterns = [
        path("webhooks/stripe/", stripe_webhook, name="stripe_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.core.exceptions import ImproperlyConfigured
from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.adapters import StripeAdapter
from payments.exceptions import WebhookVerificationError
from payments.services import PaymentLogService
from payments.webhooks.handlers import dispatch_webhook


logger = logging.getLogger(__name__)


@csrf_exempt
@require_POST
def stripe_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive and process Stripe webhook events.

    Security:
    - Signature verification prevents spoofed webhooks
    - CSRF exemption required for external webhooks
    - Only POST requests accepted

    Idempotency:
    - PaymentOperatorLog.stripe_event_id is unique
    - Events already processed return 200 without reprocessing
    - Domain operations are idempotent for events that failed half way

    Returns:
        HttpResponse with status:
        - 200: Event processed, skipped, ignored or already processed
        - 400: Missing or invalid signature, or a body that is not an event
        - 500: A mandatory handler failed; Stripe will redeliver

    Example Stripe-Signature header:
        t=1614556800,v1=xxx,v0=yyy
    """
    payload = request.body
    signature = request.headers.get("Stripe-Signature", "")

    # Step 1: Verify signature
    try:
        event = StripeAdapter.verify_webhook_signature(payload, signature)
    except WebhookVerificationError as e:
        logger.warning(
            "Webhook signature verification failed",
            extra={"error": e.message, "reason": e.details.get("reason")},
        )
        PaymentLogService.record_rejected(payload, e.message)
        return HttpResponse("Invalid signature", status=400)
    except ImproperlyConfigured as e:
        logger.error("Webhook secret is not configured", exc_info=True)
        PaymentLogService.record_rejected(payload, str(e))
        return HttpResponse("Webhook not configured", status=400)

    stripe_event_id = event.get("id")
    event_type = event.get("type")

    logger.info(
        f"Received Stripe webhook: {event_type}",
        extra={
            "stripe_event_id": stripe_event_id,
            "event_type": event_type,
        },
    )

    # Step 2: Record the audit entry
    entry, already_processed = PaymentLogService.record_received(event, payload)
    if already_processed:
        return HttpResponse("Already processed", status=200)

    # Step 3: Dispatch
    try:
        kind, result = dispatch_webhook(event)
    except Exception as e:
        logger.exception(
            f"Webhook handler failed: {type(e).__name__}",
            extra={
                "stripe_event_id": stripe_event_id,
                "event_type": event_type,
                "log_entry_id": entry.pk,
            },
        )
        PaymentLogService.record_failure(entry, e)
        return HttpResponse("Processing failed", status=500)

    # Step 4: Complete the audit entry
    PaymentLogService.record_result(entry, kind, result)

    logger.info(
        f"Webhook handled: {event_type}",
        extra={
            "stripe_event_id": stripe_event_id,
            "log_entry_id": entry.pk,
            "status": entry.status,
        },
    )
    return HttpResponse("OK", status=200)
