"""
Refund reconciliation for Stripe refund events.

Handles charge.refunded, charge.refund.updated and refund.* events. The
payload is either a Refund or a Charge object; both are enriched through
the payment gateway into one RefundContext:

    Refund/Charge -> Charge -> PaymentIntent -> Invoice (via InvoicePayments)
                                             -> Subscription id
                                             -> Customer

Each lookup is tolerated on its own: a failed lookup leaves its field empty
instead of aborting the reconciliation.

On a full refund of a resolved company the company's subscription is
revoked and a corrective invoice is issued, against the invoice carrying
the Stripe subscription id when known, otherwise against the company's last
paid payment session.

Usage:
    from payments.services import RefundReconciliationService

    result = RefundReconciliationService.reconcile(event)
    result.data  # "Refund FULL 49.00 usd for PI=pi_..., Charge=ch_..., ..."
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from core.helpers import from_minor_units
from core.services import BaseService, ServiceResult

from authentication.services import UserLookupService
from companies.services import SubscriptionPlanService
from invoices.services import InvoiceDataService
from payments.adapters import StripeAdapter, charge_from_payload
from payments.exceptions import StripeError
from payments.services.payment_session_service import PaymentSessionService

if TYPE_CHECKING:
    from companies.models import Company
    from invoices.models import InvoiceData
    from payments.adapters import (
        ChargeResult,
        CustomerResult,
        InvoiceResult,
        PaymentIntentResult,
    )
    from payments.protocols import PaymentGateway


REFUND_FAILED_ERROR_CODE = "REFUND_RECONCILIATION_FAILED"


def is_full_refund(charge: ChargeResult | None) -> bool:
    """
    Check whether a charge has been refunded completely.

    Full when amount_refunded >= max(amount_captured, amount). Without a
    charge the refund counts as partial.
    """
    if charge is None or charge.amount_refunded <= 0:
        return False
    return charge.amount_refunded >= max(charge.amount_captured, charge.amount)


@dataclass
class RefundContext:
    """
    Everything known about one refund after enrichment.

    Attributes:
        source: "refund" or "charge" (payload shape)
        refund_id: Refund ID (re_xxx) for refund payloads
        amount: Refunded amount in minor units
        currency: Currency code
        charge: Refunded charge
        payment_intent: PaymentIntent of the charge
        invoice: Stripe invoice paid by the PaymentIntent
        customer: Stripe customer
        company: Resolved company
    """

    source: str
    amount: int
    currency: str | None
    refund_id: str | None = None
    charge: ChargeResult | None = None
    payment_intent: PaymentIntentResult | None = None
    invoice: InvoiceResult | None = None
    customer: CustomerResult | None = None
    company: Company | None = None

    @property
    def subscription_id(self) -> str | None:
        return self.invoice.subscription_id if self.invoice else None

    @property
    def is_full(self) -> bool:
        return is_full_refund(self.charge)

    def summary(self) -> str:
        """
        One-line description of the refund for the audit log.

        The amount is rendered in major units of the refund currency
        (49.00 usd, 1000 jpy) so the audit entry reads like the invoice.
        Unknown identifiers are left empty; an unknown currency is shown
        as "unknown".
        """
        prefix = "Refund" if self.source == "refund" else "Charge refunded"
        return (
            f"{prefix} {'FULL' if self.is_full else 'PARTIAL'} "
            f"{from_minor_units(self.amount, self.currency)} {self.currency or 'unknown'} "
            f"for PI={self.payment_intent.id if self.payment_intent else ''}, "
            f"Charge={self.charge.id if self.charge else ''}, "
            f"Invoice={self.invoice.id if self.invoice else ''}, "
            f"Subscription={self.subscription_id or ''}, "
            f"Customer={self.customer.id if self.customer else ''}, "
            f"Company={self.company.id if self.company else 'unknown'}"
        )


class RefundReconciliationService(BaseService):
    """
    Applies Stripe refunds to companies and invoices.

    reconcile() never raises; every failure is logged and returned as a
    failed ServiceResult with REFUND_FAILED_ERROR_CODE.
    """

    @classmethod
    def reconcile(
        cls,
        event: dict[str, Any],
        gateway: PaymentGateway = StripeAdapter,
    ) -> ServiceResult[str]:
        """
        Reconcile one refund-family event.

        Returns:
            ServiceResult with the refund summary line
        """
        logger = cls.get_logger()
        event_id = event.get("id")
        obj = (event.get("data") or {}).get("object") or {}
        object_type = obj.get("object")

        try:
            if object_type == "refund":
                context = cls.build_context_from_refund(obj, gateway)
            elif object_type == "charge":
                context = cls.build_context_from_charge(obj, gateway)
            else:
                logger.warning(
                    "Refund event payload type not recognized",
                    extra={"stripe_event_id": event_id, "object_type": object_type},
                )
                return ServiceResult.failure(
                    f"Refund event payload type not recognized: {object_type}",
                    error_code="UNSUPPORTED_REFUND_PAYLOAD",
                )

            context.company = cls.resolve_company(context)
            correction = cls.apply(context)
        except Exception as e:
            logger.exception(
                "Error while handling refund",
                extra={"stripe_event_id": event_id, "object_type": object_type},
            )
            return ServiceResult.failure(str(e), error_code=REFUND_FAILED_ERROR_CODE)

        summary = context.summary()
        logger.info(
            "Handled refund",
            extra={
                "stripe_event_id": event_id,
                "refund_id": context.refund_id,
                "charge_id": context.charge.id if context.charge else None,
                "is_full": context.is_full,
                "company_id": str(context.company.id) if context.company else None,
                "correction_id": str(correction.id) if correction else None,
            },
        )
        return ServiceResult.success(summary)

    # =========================================================================
    # Enrichment
    # =========================================================================

    @classmethod
    def _lookup(cls, operation: str, func, *args):
        """Run one gateway lookup, returning None when Stripe fails."""
        try:
            return func(*args)
        except StripeError as e:
            cls.get_logger().warning(
                f"Refund enrichment lookup failed: {operation}",
                extra={"operation": operation, "lookup_args": args, "error": str(e)},
            )
            return None

    @classmethod
    def build_context_from_refund(
        cls,
        refund: dict[str, Any],
        gateway: PaymentGateway,
    ) -> RefundContext:
        """Enrich a Refund payload (refund.*, charge.refund.updated)."""
        context = RefundContext(
            source="refund",
            refund_id=refund.get("id"),
            amount=refund.get("amount") or 0,
            currency=refund.get("currency"),
        )

        charge_id = _expandable_id(refund.get("charge"))
        if charge_id:
            context.charge = cls._lookup("retrieve_charge", gateway.retrieve_charge, charge_id)

        payment_intent_id = _expandable_id(refund.get("payment_intent")) or (
            context.charge.payment_intent_id if context.charge else None
        )
        cls._enrich_from_payment_intent(context, payment_intent_id, gateway)
        return context

    @classmethod
    def build_context_from_charge(
        cls,
        charge: dict[str, Any],
        gateway: PaymentGateway,
    ) -> RefundContext:
        """Enrich a Charge payload (charge.refunded)."""
        charge_result = charge_from_payload(charge)
        context = RefundContext(
            source="charge",
            amount=charge_result.amount_refunded,
            currency=charge_result.currency,
            charge=charge_result,
        )
        cls._enrich_from_payment_intent(context, charge_result.payment_intent_id, gateway)
        return context

    @classmethod
    def _enrich_from_payment_intent(
        cls,
        context: RefundContext,
        payment_intent_id: str | None,
        gateway: PaymentGateway,
    ) -> None:
        if payment_intent_id:
            context.payment_intent = cls._lookup(
                "retrieve_payment_intent",
                gateway.retrieve_payment_intent,
                payment_intent_id,
            )
        if context.payment_intent is not None:
            context.invoice = cls._lookup(
                "find_invoice_by_payment_intent",
                gateway.find_invoice_by_payment_intent,
                context.payment_intent.id,
            )

        customer_id = (context.payment_intent.customer_id if context.payment_intent else None) or (
            context.charge.customer_id if context.charge else None
        )
        if customer_id:
            context.customer = cls._lookup(
                "retrieve_customer", gateway.retrieve_customer, customer_id
            )

    # =========================================================================
    # Correlation & Application
    # =========================================================================

    @classmethod
    def resolve_company(cls, context: RefundContext) -> Company | None:
        """Resolve the company by subscription id, then by customer email."""
        company = PaymentSessionService.try_get_company_with_subscription_plan(
            context.subscription_id
        )
        if company is None and context.customer is not None and context.customer.email:
            company = UserLookupService.get_last_used_company(context.customer.email)
        return company

    @classmethod
    def apply(cls, context: RefundContext) -> InvoiceData | None:
        """
        Revoke access and issue the correction for a full refund.

        Partial refunds and refunds of unknown companies change nothing.

        Returns:
            The corrective invoice, if one was issued
        """
        logger = cls.get_logger()

        if context.company is None:
            logger.warning(
                "Refund could not be correlated with a company",
                extra={
                    "refund_id": context.refund_id,
                    "charge_id": context.charge.id if context.charge else None,
                },
            )
            return None

        if not context.is_full:
            logger.info(
                "Partial refund, subscription left active",
                extra={"company_id": str(context.company.id), "amount": context.amount},
            )
            return None

        # Revocation and correction commit together
        with cls.atomic():
            SubscriptionPlanService.revoke(context.company.id)

            if context.subscription_id:
                return InvoiceDataService.create_corrective_invoice_for_refund(
                    context.company.id,
                    from_minor_units(context.amount, context.currency),
                    context.subscription_id,
                )
            return PaymentSessionService.refund_last_paid_session(context.company.id)


def _expandable_id(value: Any) -> str | None:
    if isinstance(value, dict):
        return value.get("id")
    return value or None
