"""
Invoice data service.

Creates the invoice data rows that accompany purchases, Stripe renewals
and refund corrections. Renewal and corrective rows are deduplicated so
that the several Stripe events describing one renewal or one refund
produce a single row.

Usage:
    from invoices.services import InvoiceDataService

    invoice = InvoiceDataService.create_for_plan(company, plan, created_by=user)
    renewal = InvoiceDataService.create_renewal_invoice(company, plan, period_end)
    correction = InvoiceDataService.create_corrective_invoice(invoice)
"""

from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING

from core.exceptions import NotFoundError
from core.services import BaseService

from invoices.models import InvoiceData

if TYPE_CHECKING:
    from datetime import date
    from uuid import UUID

    from authentication.models import User
    from companies.models import Company, SubscriptionPlan


class InvoiceDataService(BaseService):
    """Creates and looks up InvoiceData rows."""

    @classmethod
    def create_for_plan(
        cls,
        company: Company,
        plan: SubscriptionPlan,
        created_by: User | None = None,
        invoice_requested: bool = False,
    ) -> InvoiceData:
        """Create the invoice data of a new plan purchase."""
        invoice = InvoiceData.objects.create(
            company=company,
            subscription_plan=plan,
            created_by=created_by,
            title=plan.plan_name,
            amount=plan.price,
            currency=plan.currency,
            invoice_requested=invoice_requested,
        )
        cls.get_logger().info(
            "Created invoice data",
            extra={"invoice_id": str(invoice.id), "company_id": str(company.id)},
        )
        return invoice

    @classmethod
    def get_last_invoice(
        cls,
        company_id: UUID,
        plan: SubscriptionPlan | None = None,
        paid_only: bool = False,
    ) -> InvoiceData | None:
        """
        Return the newest non-corrective invoice of a company.

        Args:
            company_id: Company whose invoices are searched
            plan: Restrict to invoices of this plan
            paid_only: Restrict to invoices with a paid payment session,
                skipping invoices of abandoned or failed checkouts
        """
        queryset = InvoiceData.objects.filter(company_id=company_id, is_corrective=False)
        if plan is not None:
            queryset = queryset.filter(subscription_plan=plan)
        if paid_only:
            queryset = queryset.filter(payment_sessions__paid_at__isnull=False).distinct()
        return queryset.order_by("-created_at").first()

    @classmethod
    def create_renewal_invoice(
        cls,
        company: Company,
        plan: SubscriptionPlan,
        service_period_end: date | None = None,
        payment_subscription_id: str | None = None,
    ) -> InvoiceData:
        """
        Create the renewal invoice based on the company's last invoice.

        Buyer details (created_by, invoice_requested) are copied from the
        last invoice; amount and currency come from the current plan. When
        an invoice for the same plan and service period end already
        exists, that invoice is returned instead.

        Args:
            company: Renewed company
            plan: Renewed plan
            service_period_end: Last day covered by the renewal
            payment_subscription_id: Stripe subscription id, if known

        Returns:
            The new or already existing InvoiceData
        """
        logger = cls.get_logger()

        with cls.atomic():
            if service_period_end is not None:
                existing = (
                    InvoiceData.objects.select_for_update()
                    .filter(
                        company=company,
                        subscription_plan=plan,
                        is_corrective=False,
                        service_period_end=service_period_end,
                    )
                    .first()
                )
                if existing is not None:
                    logger.info(
                        "Renewal invoice already exists for period",
                        extra={
                            "invoice_id": str(existing.id),
                            "company_id": str(company.id),
                            "service_period_end": service_period_end.isoformat(),
                        },
                    )
                    return existing

            last_invoice = cls.get_last_invoice(company.id, plan) or cls.get_last_invoice(
                company.id
            )

            invoice = InvoiceData.objects.create(
                company=company,
                subscription_plan=plan,
                created_by=last_invoice.created_by if last_invoice else None,
                title=plan.plan_name,
                amount=plan.price,
                currency=plan.currency,
                invoice_requested=last_invoice.invoice_requested if last_invoice else False,
                is_renewal=True,
                payment_subscription_id=payment_subscription_id
                or (last_invoice.payment_subscription_id if last_invoice else ""),
                service_period_end=service_period_end,
            )

        logger.info(
            "Created renewal invoice",
            extra={
                "invoice_id": str(invoice.id),
                "company_id": str(company.id),
                "based_on": str(last_invoice.id) if last_invoice else None,
            },
        )
        return invoice

    @classmethod
    def create_corrective_invoice(
        cls,
        invoice: InvoiceData,
        amount: Decimal | None = None,
    ) -> InvoiceData:
        """
        Create a corrective (negative) invoice for a refunded invoice.

        Args:
            invoice: The invoice being corrected
            amount: Refunded amount in major units (defaults to the full
                invoice amount)

        Returns:
            The correction; an existing correction of the same invoice and
            amount is returned instead of creating a duplicate
        """
        refunded = Decimal(amount if amount is not None else invoice.amount)
        correction_amount = -abs(refunded)

        with cls.atomic():
            existing = (
                InvoiceData.objects.select_for_update()
                .filter(corrected_invoice=invoice, amount=correction_amount)
                .first()
            )
            if existing is not None:
                cls.get_logger().info(
                    "Corrective invoice already exists",
                    extra={"invoice_id": str(invoice.id), "correction_id": str(existing.id)},
                )
                return existing

            correction = InvoiceData.objects.create(
                company=invoice.company,
                subscription_plan=invoice.subscription_plan,
                created_by=invoice.created_by,
                title=f"Correction: {invoice.title}",
                amount=correction_amount,
                currency=invoice.currency,
                invoice_requested=invoice.invoice_requested,
                is_corrective=True,
                corrected_invoice=invoice,
                payment_subscription_id=invoice.payment_subscription_id,
                service_period_end=invoice.service_period_end,
            )

        cls.get_logger().info(
            "Created corrective invoice",
            extra={
                "invoice_id": str(invoice.id),
                "correction_id": str(correction.id),
                "amount": str(correction_amount),
            },
        )
        return correction

    @classmethod
    def create_corrective_invoice_for_refund(
        cls,
        company_id: UUID,
        refunded_amount: Decimal,
        payment_subscription_id: str | None = None,
    ) -> InvoiceData:
        """
        Create a corrective invoice for a refund of a subscription payment.

        The corrected invoice is the newest invoice of the company carrying
        the Stripe subscription id, falling back to the company's newest
        paid invoice.

        Raises:
            NotFoundError: The company has no invoice to correct
        """
        invoice = None
        if payment_subscription_id:
            invoice = (
                InvoiceData.objects.filter(
                    company_id=company_id,
                    is_corrective=False,
                    payment_subscription_id=payment_subscription_id,
                )
                .order_by("-created_at")
                .first()
            )
        if invoice is None:
            invoice = cls.get_last_invoice(company_id, paid_only=True)
        if invoice is None:
            raise NotFoundError(
                f"No invoice to correct for company {company_id}",
                error_code="INVOICE_NOT_FOUND",
                details={
                    "company_id": str(company_id),
                    "payment_subscription_id": payment_subscription_id,
                },
            )
        return cls.create_corrective_invoice(invoice, refunded_amount)
