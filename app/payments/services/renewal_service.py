"""
Subscription renewal reconciliation.

Stripe renews subscriptions on its own and only tells us afterwards,
through invoice.payment_succeeded (and, less reliably, through
customer.subscription.updated and charge.succeeded). This service maps such
an event to a company and extends the company's plan.

Company resolution:
    1. The Stripe subscription id, through payment sessions and invoices
    2. The billing email, through the user and that user's last used company

Two entry points share that logic:
    - renew_from_invoice: mandatory. Resolution failures raise so the
      webhook answers 500 and Stripe redelivers.
    - renew_best_effort: resolution failures are logged and returned as a
      failed ServiceResult.

Usage:
    from payments.services import SubscriptionRenewalService

    result = SubscriptionRenewalService.renew_from_invoice(invoice, event_id="evt_123")
    result = SubscriptionRenewalService.renew_best_effort("billing@acme.test", paid_at)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.utils import timezone

from core.services import BaseService, ServiceResult

from authentication.services import UserLookupService
from companies.services import SubscriptionPlanService
from invoices.services import InvoiceDataService
from payments.exceptions import (
    CompanyNotFoundError,
    RenewalReconciliationError,
    SubscriptionPlanNotFoundError,
)
from payments.services.payment_session_service import PaymentSessionService

if TYPE_CHECKING:
    from datetime import datetime

    from companies.models import Company, CompanySubscription, SubscriptionPlan
    from invoices.models import InvoiceData
    from payments.adapters import InvoiceResult
    from payments.models import PaymentSession


@dataclass
class RenewalResult:
    """
    Outcome of an applied renewal.

    Attributes:
        company: Renewed company
        plan: Renewed plan
        subscription: Company subscription after the extension
        invoice: Renewal invoice data
        payment_session: Paid renewal session (invoice renewals only)
    """

    company: Company
    plan: SubscriptionPlan
    subscription: CompanySubscription
    invoice: InvoiceData
    payment_session: PaymentSession | None = None

    def summary(self) -> str:
        return (
            f"Renewed plan {self.plan.plan_name} for company {self.company.id} "
            f"until {self.subscription.active_to.isoformat()}, invoice={self.invoice.id}"
        )


class SubscriptionRenewalService(BaseService):
    """Resolves renewed companies and extends their plans."""

    @classmethod
    def resolve_company(
        cls,
        email: str | None,
        payment_subscription_id: str | None = None,
    ) -> tuple[Company, SubscriptionPlan]:
        """
        Find the company and plan a Stripe renewal belongs to.

        Raises:
            CompanyNotFoundError: Neither the subscription id nor the email
                leads to a company
            SubscriptionPlanNotFoundError: The company has no plan assigned
        """
        logger = cls.get_logger()

        company = PaymentSessionService.try_get_company_with_subscription_plan(
            payment_subscription_id
        )
        if company is not None:
            return company, company.current_subscription_plan

        logger.info(
            "Resolving renewal company by billing email",
            extra={"email": email, "payment_subscription_id": payment_subscription_id},
        )

        user = UserLookupService.get_by_email(email)
        if user is None:
            raise CompanyNotFoundError(
                f"User not found for email: {email}",
                details={"email": email, "payment_subscription_id": payment_subscription_id},
            )

        company = user.last_used_company
        if company is None:
            raise CompanyNotFoundError(
                f"User {email} has no last used company",
                details={"email": email, "user_id": user.pk},
            )

        plan = company.current_subscription_plan
        if plan is None:
            raise SubscriptionPlanNotFoundError(
                f"No active subscription plan for company: {company.company_name}",
                details={"email": email, "company_id": str(company.id)},
            )
        return company, plan

    @classmethod
    def apply_renewal(
        cls,
        email: str | None,
        starting_from: datetime | None,
        payment_subscription_id: str | None = None,
    ) -> RenewalResult:
        """
        Extend the resolved company's plan and create the renewal invoice.

        The plan is applied from starting_from (the Stripe invoice creation
        time). The renewal invoice is keyed by the resulting period end, so
        every event describing the same renewal lands on one invoice.

        Raises:
            RenewalReconciliationError: Company or plan could not be resolved
        """
        logger = cls.get_logger()
        company, plan = cls.resolve_company(email, payment_subscription_id)

        logger.info(
            "Extending subscription",
            extra={
                "email": email,
                "company_id": str(company.id),
                "plan": plan.plan_name,
            },
        )

        with cls.atomic():
            subscription = SubscriptionPlanService.apply(
                plan, company.id, starting_from=starting_from or timezone.now()
            )
            invoice = InvoiceDataService.create_renewal_invoice(
                company,
                plan,
                service_period_end=subscription.active_to.date(),
                payment_subscription_id=payment_subscription_id,
            )

        logger.info(
            "Processed subscription renewal",
            extra={
                "company_id": str(company.id),
                "payment_subscription_id": payment_subscription_id,
                "invoice_id": str(invoice.id),
            },
        )
        return RenewalResult(
            company=company,
            plan=plan,
            subscription=subscription,
            invoice=invoice,
        )

    @classmethod
    def renew_from_invoice(cls, invoice: InvoiceResult, event_id: str) -> RenewalResult:
        """
        Apply a renewal reported by invoice.payment_succeeded.

        Besides extending the plan, records the renewal as a paid payment
        session.

        Raises:
            RenewalReconciliationError: Company or plan could not be resolved
        """
        try:
            result = cls.apply_renewal(
                invoice.customer_email,
                invoice.created,
                invoice.subscription_id,
            )
        except RenewalReconciliationError:
            cls.get_logger().error(
                "Renewal from invoice could not be reconciled",
                extra={
                    "stripe_invoice_id": invoice.id,
                    "email": invoice.customer_email,
                    "payment_subscription_id": invoice.subscription_id,
                },
                exc_info=True,
            )
            raise

        result.payment_session = PaymentSessionService.create_payment_session_from_subscription_renew(
            result.invoice,
            paid_at=invoice.created or timezone.now(),
            payment_event_id=event_id,
            payment_subscription_id=invoice.subscription_id,
        )
        return result

    @classmethod
    def renew_best_effort(
        cls,
        email: str | None,
        starting_from: datetime | None,
        payment_subscription_id: str | None = None,
    ) -> ServiceResult[RenewalResult]:
        """
        Apply a renewal, treating unresolvable companies as expected.

        Returns:
            ServiceResult with the RenewalResult, or a failure carrying the
            resolution error code
        """
        if not email and not payment_subscription_id:
            cls.get_logger().warning("Renewal event without billing email or subscription id")
            return ServiceResult.failure(
                "No billing email or subscription id on event",
                error_code="BILLING_EMAIL_MISSING",
            )

        try:
            return ServiceResult.success(
                cls.apply_renewal(email, starting_from, payment_subscription_id)
            )
        except RenewalReconciliationError as e:
            cls.get_logger().warning(
                "Skipping best-effort renewal",
                extra={
                    "email": email,
                    "payment_subscription_id": payment_subscription_id,
                    "error_code": e.error_code,
                    "error": e.message,
                },
            )
            return ServiceResult.from_exception(e)
