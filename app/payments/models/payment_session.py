"""
PaymentSession model for Stripe Checkout payments.

A PaymentSession is created before the customer is redirected to Stripe
Checkout. Its primary key is sent as the Checkout client_reference_id, so
checkout.session.completed webhooks and confirmation polling can find it
again. Subscription renewals paid by Stripe without a Checkout session are
recorded as already paid sessions with is_renewal=True.

Usage:
    from payments.models import PaymentSession

    session = PaymentSession.objects.create(
        invoice=invoice,
        created_by=user,
        processor="Stripe",
    )

    # State transitions using django-fsm
    session.mark_paid(paid_at=completed_at)  # new -> paid
    session.save()
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import PaymentMode, PaymentSessionState


class PaymentSession(UUIDPrimaryKeyMixin, BaseModel):
    """
    One attempt to pay an invoice through the payment processor.

    State Flow:
        NEW -> PAID -> REFUNDED
        NEW -> CANCELLED
        NEW -> EXPIRED
        CANCELLED/EXPIRED -> PAID (late Checkout completion)

    Fields:
        invoice: Invoice data being paid
        created_by: User who started the checkout
        processor: Payment processor name (PAYMENT_PROCESSOR_NAME)
        mode: One-time payment or subscription checkout
        state: Current FSM state
        operator_transaction_id: Stripe Checkout Session ID (cs_xxx)
        checkout_url: Hosted Checkout URL the customer is redirected to
        payment_subscription_id: Stripe Subscription ID (sub_xxx)
        payment_event_id: Stripe Event ID that paid or created the session
        is_renewal: Created from a subscription renewal webhook
        *_at timestamps: Track state transition times
    """

    # ==========================================================================
    # Relationships
    # ==========================================================================

    invoice = models.ForeignKey(
        "invoices.InvoiceData",
        on_delete=models.PROTECT,
        related_name="payment_sessions",
        help_text="Invoice data being paid",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="payment_sessions",
        help_text="User who started the checkout",
    )

    # ==========================================================================
    # Processor & State
    # ==========================================================================

    processor = models.CharField(
        max_length=50,
        default="Stripe",
        help_text="Payment processor name",
    )

    mode = models.CharField(
        max_length=20,
        choices=PaymentMode.choices,
        default=PaymentMode.SUBSCRIPTION,
        help_text="Checkout mode (one-time payment or subscription)",
    )

    state = FSMField(
        default=PaymentSessionState.NEW,
        choices=PaymentSessionState.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the payment session (managed by FSM)",
    )

    is_renewal = models.BooleanField(
        default=False,
        help_text="Created from a subscription renewal webhook",
    )

    # ==========================================================================
    # Stripe Integration
    # ==========================================================================

    operator_transaction_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe Checkout Session ID (cs_xxx)",
    )

    checkout_url = models.TextField(
        blank=True,
        default="",
        help_text="Hosted Stripe Checkout URL",
    )

    payment_subscription_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe Subscription ID (sub_xxx)",
    )

    payment_event_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe Event ID (evt_xxx) that paid or created this session",
    )

    # ==========================================================================
    # State Timestamps
    # ==========================================================================

    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment completed",
    )

    refunded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the payment was fully refunded",
    )

    closed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the session was cancelled or expired",
    )

    # ==========================================================================
    # Meta & Methods
    # ==========================================================================

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Session"
        verbose_name_plural = "Payment Sessions"
        indexes = [
            models.Index(fields=["state", "paid_at"], name="payment_session_state_paid_idx"),
        ]

    def __str__(self) -> str:
        return f"PaymentSession({self.id}, {self.state})"

    @property
    def company(self):
        return self.invoice.company

    @property
    def is_paid(self) -> bool:
        return self.state in (PaymentSessionState.PAID, PaymentSessionState.REFUNDED)

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=state,
        source=[
            PaymentSessionState.NEW,
            PaymentSessionState.CANCELLED,
            PaymentSessionState.EXPIRED,
        ],
        target=PaymentSessionState.PAID,
    )
    def mark_paid(self, paid_at=None):
        """
        Mark the session as paid.

        Transition: NEW/CANCELLED/EXPIRED -> PAID

        A cancelled or expired session can still be completed on Stripe
        when the customer kept the Checkout page open.

        Called when Stripe reports the Checkout session completed, when
        confirmation polling finds it paid, or right after creating a
        renewal session.
        """
        self.paid_at = paid_at or timezone.now()

    @transition(
        field=state,
        source=PaymentSessionState.PAID,
        target=PaymentSessionState.REFUNDED,
    )
    def refund(self):
        """
        Mark a paid session as fully refunded.

        Transition: PAID -> REFUNDED
        """
        self.refunded_at = timezone.now()

    @transition(
        field=state,
        source=PaymentSessionState.NEW,
        target=PaymentSessionState.CANCELLED,
    )
    def cancel(self):
        """
        Cancel an unpaid session.

        Transition: NEW -> CANCELLED
        """
        self.closed_at = timezone.now()

    @transition(
        field=state,
        source=PaymentSessionState.NEW,
        target=PaymentSessionState.EXPIRED,
    )
    def expire(self):
        """
        Expire an abandoned session.

        Transition: NEW -> EXPIRED
        """
        self.closed_at = timezone.now()
