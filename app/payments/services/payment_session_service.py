"""
Payment session service.

Owns the lifecycle of PaymentSession rows: starting a Checkout for an
invoice, closing it when Stripe reports the payment, recording renewals
that Stripe charged on its own, and reversing the last paid session after
a full refund.

Usage:
    from payments.services import PaymentSessionService

    session = PaymentSessionService.start_checkout(invoice, user, one_time_payment=False)
    PaymentSessionService.close_successful_payment(
        session.id, completed_at, payment_subscription_id="sub_123", payment_event_id="evt_123"
    )
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from django.utils import timezone
from django_fsm import TransitionNotAllowed

from core.helpers import validate_uuid
from core.services import BaseService

from companies.services import SubscriptionPlanService
from invoices.models import InvoiceData
from invoices.services import InvoiceDataService
from payments.adapters import StripeAdapter
from payments.conf import StripeSettings
from payments.exceptions import (
    InvalidStateTransitionError,
    PaymentNotFoundError,
    PaymentValidationError,
    StripeError,
)
from payments.models import PaymentSession
from payments.services.checkout_service import (
    CheckoutPayment,
    CheckoutProduct,
    StripeCheckoutService,
)
from payments.state_machines import PaymentMode, PaymentSessionState

if TYPE_CHECKING:
    from datetime import datetime

    from authentication.models import User
    from companies.models import Company
    from payments.protocols import PaymentGateway


class PaymentSessionService(BaseService):
    """
    Creates, closes and reverses payment sessions.

    All methods are classmethods; no instance state is kept.
    """

    # =========================================================================
    # Checkout
    # =========================================================================

    @classmethod
    def start_checkout(
        cls,
        invoice: InvoiceData,
        created_by: User | None,
        one_time_payment: bool,
        success_url: str | None = None,
        fail_url: str | None = None,
        gateway: PaymentGateway = StripeAdapter,
    ) -> PaymentSession:
        """
        Create a payment session for an invoice and its Stripe Checkout session.

        The PaymentSession row is committed before Stripe is called so the
        checkout.session.completed webhook can always find it. If Stripe
        fails, the session is cancelled and the error re-raised.

        Raises:
            PaymentValidationError: Subscription checkout for an invoice without a plan
            StripeError: Stripe rejected or failed the request
        """
        logger = cls.get_logger()
        plan = invoice.subscription_plan

        if plan is None and not one_time_payment:
            raise PaymentValidationError(
                "Subscription checkout requires an invoice with a subscription plan",
                details={"invoice_id": str(invoice.id)},
            )

        session = PaymentSession.objects.create(
            invoice=invoice,
            created_by=created_by,
            processor=StripeSettings.load().processor_name,
            mode=PaymentMode.PAYMENT if one_time_payment else PaymentMode.SUBSCRIPTION,
        )

        product = CheckoutProduct(
            name=invoice.title,
            unit_price=invoice.amount,
            currency=invoice.currency,
        )
        if plan is not None:
            product.billing_period = plan.billing_period
            product.custom_interval = plan.custom_interval
            product.custom_interval_count = plan.custom_interval_count

        try:
            active = StripeCheckoutService.create_session(
                CheckoutPayment(
                    payment_session_id=session.id,
                    products=[product],
                    customer_email=created_by.email if created_by else None,
                    metadata={
                        "invoice_id": str(invoice.id),
                        "company_id": str(invoice.company_id),
                    },
                ),
                one_time_payment=one_time_payment,
                success_url=success_url,
                fail_url=fail_url,
                gateway=gateway,
            )
        except (StripeError, PaymentValidationError):
            session.cancel()
            session.save()
            logger.warning(
                "Checkout session creation failed, payment session cancelled",
                extra={"payment_session_id": str(session.id), "invoice_id": str(invoice.id)},
                exc_info=True,
            )
            raise

        session.operator_transaction_id = active.session_id
        session.checkout_url = active.url or ""
        session.save(update_fields=["operator_transaction_id", "checkout_url", "updated_at"])

        logger.info(
            "Started checkout",
            extra={
                "payment_session_id": str(session.id),
                "invoice_id": str(invoice.id),
                "stripe_session_id": active.session_id,
            },
        )
        return session

    @classmethod
    def confirm(
        cls,
        session: PaymentSession,
        gateway: PaymentGateway = StripeAdapter,
    ) -> bool:
        """
        Ask Stripe whether a session was paid, closing it if it was.

        Covers the case where the checkout.session.completed webhook has
        not arrived (yet) when the customer returns from Checkout. A new
        session whose Checkout expired unpaid is marked EXPIRED.
        """
        if session.is_paid:
            return True

        checkout = StripeCheckoutService.find_checkout_session(session.id, gateway=gateway)
        if checkout is None:
            return False

        if checkout.is_paid:
            cls.close_successful_payment(session.id, timezone.now())
            return True

        if checkout.is_expired:
            cls.expire_session(session.id)
        return False

    @classmethod
    def expire_session(cls, payment_session_id: uuid.UUID) -> PaymentSession:
        """Mark a new session EXPIRED; sessions in any other state are left alone."""
        with cls.atomic():
            session = PaymentSession.objects.select_for_update().get(pk=payment_session_id)
            if session.state != PaymentSessionState.NEW:
                return session
            session.expire()
            session.save()

        cls.get_logger().info(
            "Payment session expired at Stripe",
            extra={"payment_session_id": str(session.id)},
        )
        return session

    # =========================================================================
    # Webhook Operations
    # =========================================================================

    @classmethod
    def close_successful_payment(
        cls,
        payment_session_id: uuid.UUID | str | None,
        completed_at: datetime,
        payment_subscription_id: str | None = None,
        payment_event_id: str | None = None,
    ) -> PaymentSession:
        """
        Mark a payment session paid and activate the purchased plan.

        The plan of the session's invoice is applied to the invoice's
        company starting at completed_at, and the invoice records the end of
        the covered period. Closing an already paid session is a no-op.

        Args:
            payment_session_id: PaymentSession GUID (Checkout client_reference_id)
            completed_at: When the payment completed
            payment_subscription_id: Stripe Subscription ID, for subscription checkouts
            payment_event_id: Stripe Event ID reporting the completion

        Raises:
            PaymentValidationError: payment_session_id is not a GUID
            PaymentNotFoundError: No such payment session
            InvalidStateTransitionError: The session was refunded
        """
        logger = cls.get_logger()

        if not validate_uuid(payment_session_id):
            raise PaymentValidationError(
                f"Invalid payment session id: {payment_session_id!r}",
                details={"payment_session_id": payment_session_id},
            )

        with cls.atomic():
            session = (
                PaymentSession.objects.select_for_update(of=("self",))
                .select_related("invoice", "invoice__subscription_plan")
                .filter(pk=uuid.UUID(str(payment_session_id)))
                .first()
            )
            if session is None:
                raise PaymentNotFoundError(
                    f"PaymentSession {payment_session_id} not found",
                    details={"payment_session_id": str(payment_session_id)},
                )

            if session.state == PaymentSessionState.PAID:
                logger.info(
                    "Payment session already closed",
                    extra={"payment_session_id": str(session.id)},
                )
                return session

            try:
                session.mark_paid(paid_at=completed_at)
            except TransitionNotAllowed as e:
                raise InvalidStateTransitionError(
                    f"Cannot mark session paid from '{session.state}' state",
                    details={
                        "payment_session_id": str(session.id),
                        "current_state": session.state,
                        "target_state": PaymentSessionState.PAID,
                        "transition": "mark_paid",
                    },
                ) from e

            session.payment_subscription_id = payment_subscription_id or ""
            session.payment_event_id = payment_event_id or ""
            session.save()

            invoice = session.invoice
            if invoice.subscription_plan is not None:
                subscription = SubscriptionPlanService.apply(
                    invoice.subscription_plan,
                    invoice.company_id,
                    starting_from=completed_at,
                )
                invoice.service_period_end = subscription.active_to.date()
            invoice.payment_subscription_id = payment_subscription_id or ""
            invoice.save(
                update_fields=["service_period_end", "payment_subscription_id", "updated_at"]
            )

        logger.info(
            "Closed successful payment",
            extra={
                "payment_session_id": str(session.id),
                "invoice_id": str(invoice.id),
                "company_id": str(invoice.company_id),
                "payment_subscription_id": payment_subscription_id,
                "payment_event_id": payment_event_id,
            },
        )
        return session

    @classmethod
    def create_payment_session_from_subscription_renew(
        cls,
        invoice: InvoiceData,
        paid_at: datetime,
        payment_event_id: str,
        payment_subscription_id: str | None = None,
    ) -> PaymentSession:
        """
        Record a renewal Stripe charged without a Checkout session.

        The session is created already paid. One renewal invoice gets at
        most one renewal session, so redeliveries return the existing one.
        """
        logger = cls.get_logger()

        with cls.atomic():
            existing = (
                PaymentSession.objects.select_for_update()
                .filter(invoice=invoice, is_renewal=True)
                .first()
            )
            if existing is not None:
                logger.info(
                    "Renewal payment session already exists",
                    extra={
                        "payment_session_id": str(existing.id),
                        "invoice_id": str(invoice.id),
                        "payment_event_id": payment_event_id,
                    },
                )
                return existing

            session = PaymentSession(
                invoice=invoice,
                created_by=invoice.created_by,
                processor=StripeSettings.load().processor_name,
                mode=PaymentMode.SUBSCRIPTION,
                is_renewal=True,
                payment_subscription_id=payment_subscription_id
                or invoice.payment_subscription_id,
                payment_event_id=payment_event_id,
            )
            session.mark_paid(paid_at=paid_at)
            session.save()

        logger.info(
            "Created renewal payment session",
            extra={
                "payment_session_id": str(session.id),
                "invoice_id": str(invoice.id),
                "payment_event_id": payment_event_id,
            },
        )
        return session

    @classmethod
    def try_get_company_with_subscription_plan(
        cls,
        payment_subscription_id: str | None,
    ) -> Company | None:
        """
        Find the company paying a Stripe subscription.

        Looks at payment sessions first, then at invoices carrying the
        subscription id. Only companies with an assigned plan are returned.
        """
        if not payment_subscription_id:
            return None

        session = (
            PaymentSession.objects.select_related("invoice__company")
            .filter(payment_subscription_id=payment_subscription_id)
            .order_by("-created_at")
            .first()
        )
        if session is not None:
            company = session.invoice.company
        else:
            invoice = (
                InvoiceData.objects.select_related("company")
                .filter(payment_subscription_id=payment_subscription_id)
                .order_by("-created_at")
                .first()
            )
            company = invoice.company if invoice else None

        if company is None or company.current_subscription_plan is None:
            cls.get_logger().info(
                "No company with a plan for Stripe subscription",
                extra={"payment_subscription_id": payment_subscription_id},
            )
            return None
        return company

    @classmethod
    def refund_last_paid_session(cls, company_id: uuid.UUID) -> InvoiceData | None:
        """
        Reverse the company's most recent paid session after a full refund.

        The session moves to REFUNDED and a corrective invoice is issued for
        its invoice. A session that is already refunded is left alone.

        Returns:
            The corrective invoice, or None when there was nothing to reverse
        """
        logger = cls.get_logger()

        with cls.atomic():
            session = (
                PaymentSession.objects.select_for_update(of=("self",))
                .select_related("invoice")
                .filter(
                    invoice__company_id=company_id,
                    state__in=[PaymentSessionState.PAID, PaymentSessionState.REFUNDED],
                )
                .order_by("-paid_at", "-created_at")
                .first()
            )
            if session is None:
                logger.warning(
                    "No paid payment session to refund",
                    extra={"company_id": str(company_id)},
                )
                return None

            if session.state == PaymentSessionState.REFUNDED:
                logger.info(
                    "Last paid payment session already refunded",
                    extra={"company_id": str(company_id), "payment_session_id": str(session.id)},
                )
                return None

            session.refund()
            session.save()
            correction = InvoiceDataService.create_corrective_invoice(session.invoice)

        logger.info(
            "Refunded last paid payment session",
            extra={
                "company_id": str(company_id),
                "payment_session_id": str(session.id),
                "correction_id": str(correction.id),
            },
        )
        return correction
