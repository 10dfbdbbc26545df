"""
Audit logging of inbound Stripe webhooks.

Writes PaymentOperatorLog rows outside any domain transaction, so an entry
survives when the processing it describes is rolled back.

Usage:
    from payments.services import PaymentLogService

    entry = PaymentLogService.record_rejected(body, "Invalid webhook signature")

    entry, is_duplicate = PaymentLogService.record_received(event, body)
    ...
    PaymentLogService.record_result(entry, kind, result)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from django.utils import timezone

from core.services import BaseService

from payments.models import STRIPE_WEBHOOK_OPERATOR, PaymentOperatorLog
from payments.services.refund_service import REFUND_FAILED_ERROR_CODE
from payments.state_machines import StripeEventKind, WebhookEventStatus

if TYPE_CHECKING:
    from core.services import ServiceResult


WEBHOOK_ERROR_PREFIX = "Webhook error ! "

# Failed handler results recorded as FAILED instead of SKIPPED
FAILED_RESULT_CODES = frozenset({REFUND_FAILED_ERROR_CODE})

EVENT_FIELD_MAX_LENGTH = 255


def _as_text(body: bytes | str) -> str:
    if isinstance(body, bytes):
        return body.decode("utf-8", errors="replace")
    return body


class PaymentLogService(BaseService):
    """Creates and completes webhook audit entries."""

    @classmethod
    def record_rejected(cls, body: bytes | str, error_message: str) -> PaymentOperatorLog:
        """Record a webhook request that failed verification."""
        entry = PaymentOperatorLog.objects.create(
            operator=STRIPE_WEBHOOK_OPERATOR,
            event=f"{WEBHOOK_ERROR_PREFIX}{error_message}"[:EVENT_FIELD_MAX_LENGTH],
            json_event=_as_text(body),
            status=WebhookEventStatus.REJECTED,
            error_message=error_message,
            processed_at=timezone.now(),
        )
        cls.get_logger().warning(
            "Recorded rejected webhook",
            extra={"log_entry_id": entry.pk, "error": error_message},
        )
        return entry

    @classmethod
    def record_received(
        cls,
        event: dict[str, Any],
        body: bytes | str,
    ) -> tuple[PaymentOperatorLog, bool]:
        """
        Record a verified event before dispatch.

        A redelivered Stripe event reuses its existing entry and bumps the
        delivery count.

        Returns:
            (entry, already_processed)
        """
        event_type = event.get("type") or ""
        stripe_event_id = event.get("id") or None
        kind = StripeEventKind.classify(event_type)
        defaults = {
            "operator": STRIPE_WEBHOOK_OPERATOR,
            "event": event_type[:EVENT_FIELD_MAX_LENGTH],
            "event_kind": kind,
            "json_event": _as_text(body),
        }

        if stripe_event_id is None:
            return PaymentOperatorLog.objects.create(**defaults), False

        entry, created = PaymentOperatorLog.objects.get_or_create(
            stripe_event_id=stripe_event_id,
            defaults=defaults,
        )
        if created:
            return entry, False

        if entry.is_processed:
            cls.get_logger().info(
                "Webhook already processed",
                extra={"stripe_event_id": stripe_event_id, "log_entry_id": entry.pk},
            )
            return entry, True

        entry.delivery_count += 1
        entry.received_at = timezone.now()
        entry.json_event = defaults["json_event"]
        entry.save(update_fields=["delivery_count", "received_at", "json_event", "updated_at"])
        return entry, False

    @classmethod
    def record_result(
        cls,
        entry: PaymentOperatorLog,
        kind: StripeEventKind,
        result: ServiceResult,
    ) -> PaymentOperatorLog:
        """
        Complete an entry from a handler result.

        IGNORED kinds are marked ignored, successful results processed with
        their summary, refund failures failed and other failures skipped.
        """
        if kind == StripeEventKind.IGNORED:
            entry.mark_ignored()
        elif result.success:
            entry.mark_processed(result.data or "")
        elif result.error_code in FAILED_RESULT_CODES:
            entry.mark_failed(result.error or "")
        else:
            entry.mark_skipped(result.error or "")
        entry.save()
        return entry

    @classmethod
    def record_failure(cls, entry: PaymentOperatorLog, error: Exception) -> PaymentOperatorLog:
        """Complete an entry whose handler raised."""
        entry.mark_failed(f"{type(error).__name__}: {error}")
        entry.save()
        return entry
