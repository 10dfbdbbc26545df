"""
PaymentOperatorLog model, the audit trail of inbound Stripe webhooks.

Every webhook request that reaches the endpoint leaves one row: rejected
requests record the verification error, verified events record their type
and raw body before dispatch and their outcome after it. The unique
stripe_event_id makes Stripe redeliveries reuse the same row.

Usage:
    from payments.models import PaymentOperatorLog

    entry, created = PaymentOperatorLog.objects.get_or_create(
        stripe_event_id="evt_1234567890",
        defaults={"event": "invoice.payment_succeeded", "json_event": body},
    )
    if entry.is_processed:
        return HttpResponse(status=200)

    entry.mark_processed("Renewed plan Team for company ...")
    entry.save()
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel

from payments.state_machines import StripeEventKind, WebhookEventStatus

STRIPE_WEBHOOK_OPERATOR = "Stripe webhook"


class PaymentOperatorLog(BaseModel):
    """
    Audit entry for one inbound payment operator callback.

    Fields:
        operator: Source of the callback ("Stripe webhook")
        event: Stripe event type, or "Webhook error ! <message>" for rejects
        event_kind: Classification used for dispatch
        stripe_event_id: Stripe Event ID (evt_xxx), unique when present
        received_at: When the callback was (last) received
        json_event: Raw request body
        status: Processing status
        outcome: Human readable summary of what the handler did
        error_message: Error details if processing failed or was skipped
        processed_at: When processing finished
        delivery_count: Number of deliveries of this Stripe event

    Note:
        Uses an auto-increment primary key; entries are only ever looked
        up by stripe_event_id or browsed chronologically in the admin.
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    operator = models.CharField(
        max_length=50,
        default=STRIPE_WEBHOOK_OPERATOR,
        help_text="Source of the callback",
    )

    event = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Stripe event type or webhook error description",
    )

    event_kind = models.CharField(
        max_length=30,
        choices=StripeEventKind.choices,
        blank=True,
        default="",
        help_text="Classification used for dispatch",
    )

    stripe_event_id = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Stripe Event ID (evt_xxx) - unique constraint for redelivery",
    )

    received_at = models.DateTimeField(
        default=timezone.now,
        help_text="When the callback was last received",
    )

    # ==========================================================================
    # Payload
    # ==========================================================================

    json_event = models.TextField(
        blank=True,
        default="",
        help_text="Raw request body",
    )

    # ==========================================================================
    # Processing Status
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.RECEIVED,
        db_index=True,
        help_text="Current processing status",
    )

    outcome = models.TextField(
        blank=True,
        default="",
        help_text="Summary of what the handler did",
    )

    error_message = models.TextField(
        null=True,
        blank=True,
        help_text="Error message if processing failed or was skipped",
    )

    processed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When processing finished",
    )

    delivery_count = models.PositiveSmallIntegerField(
        default=1,
        help_text="Number of deliveries of this Stripe event",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-received_at"]
        verbose_name = "Payment Operator Log"
        verbose_name_plural = "Payment Operator Logs"
        indexes = [
            models.Index(fields=["status", "received_at"], name="operator_log_status_idx"),
        ]

    def __str__(self) -> str:
        return f"PaymentOperatorLog({self.stripe_event_id or self.pk}, {self.event})"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_processed(self) -> bool:
        """Check if the event has been successfully processed."""
        return self.status == WebhookEventStatus.PROCESSED

    # ==========================================================================
    # Helper Methods
    # ==========================================================================

    def _finish(self, status: str, outcome: str = "", error_message: str | None = None) -> None:
        self.status = status
        self.outcome = outcome or ""
        self.error_message = error_message
        self.processed_at = timezone.now()

    def mark_processed(self, outcome: str = "") -> None:
        """
        Mark event as successfully processed.

        Note: Does not save - caller must save after calling.
        """
        self._finish(WebhookEventStatus.PROCESSED, outcome)

    def mark_ignored(self) -> None:
        """
        Mark event as acknowledged without a handler.

        Note: Does not save - caller must save after calling.
        """
        self._finish(WebhookEventStatus.IGNORED, "No handler for event type")

    def mark_skipped(self, reason: str, outcome: str = "") -> None:
        """
        Mark event as skipped by a best-effort handler.

        Note: Does not save - caller must save after calling.
        """
        self._finish(WebhookEventStatus.SKIPPED, outcome, reason)

    def mark_failed(self, error_message: str, outcome: str = "") -> None:
        """
        Mark event as failed with error message.

        Args:
            error_message: Description of what went wrong
            outcome: Partial outcome gathered before the failure

        Note: Does not save - caller must save after calling.
        """
        self._finish(WebhookEventStatus.FAILED, outcome, error_message)
