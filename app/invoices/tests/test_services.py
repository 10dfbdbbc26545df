"""
Tests for InvoiceDataService.

Tests cover:
- Invoice creation for a plan purchase
- Renewal invoices copying buyer details and deduplicating per period
- Corrective invoices and their deduplication
- Refund corrections resolved by Stripe subscription id
"""

import uuid
from datetime import date
from decimal import Decimal

import pytest
from django.utils import timezone

from core.exceptions import NotFoundError

from companies.tests.factories import SubscriptionPlanFactory
from invoices.models import InvoiceData
from invoices.services import InvoiceDataService
from invoices.tests.factories import InvoiceDataFactory
from payments.state_machines import PaymentSessionState
from payments.tests.factories import PaymentSessionFactory


@pytest.mark.django_db
class TestCreateForPlan:
    def test_copies_plan_price_and_name(self, company, plan, buyer):
        invoice = InvoiceDataService.create_for_plan(
            company, plan, created_by=buyer, invoice_requested=True
        )

        assert invoice.amount == plan.price
        assert invoice.currency == plan.currency
        assert invoice.title == plan.plan_name
        assert invoice.created_by == buyer
        assert invoice.invoice_requested is True
        assert invoice.is_renewal is False
        assert invoice.is_corrective is False


@pytest.mark.django_db
class TestGetLastInvoice:
    def test_ignores_corrective_invoices(self, paid_invoice):
        InvoiceDataService.create_corrective_invoice(paid_invoice)

        last = InvoiceDataService.get_last_invoice(paid_invoice.company_id)

        assert last == paid_invoice

    def test_returns_none_without_invoices(self, company):
        assert InvoiceDataService.get_last_invoice(company.id) is None


@pytest.mark.django_db
class TestCreateRenewalInvoice:
    def test_copies_buyer_details_from_last_invoice(self, paid_invoice, company, plan, buyer):
        renewal = InvoiceDataService.create_renewal_invoice(
            company, plan, service_period_end=date(2025, 3, 1)
        )

        assert renewal.pk != paid_invoice.pk
        assert renewal.is_renewal is True
        assert renewal.created_by == buyer
        assert renewal.invoice_requested is True
        assert renewal.payment_subscription_id == "sub_test_123"
        assert renewal.amount == plan.price

    def test_explicit_subscription_id_wins(self, paid_invoice, company, plan):
        renewal = InvoiceDataService.create_renewal_invoice(
            company,
            plan,
            service_period_end=date(2025, 3, 1),
            payment_subscription_id="sub_other",
        )

        assert renewal.payment_subscription_id == "sub_other"

    def test_same_period_returns_existing_invoice(self, paid_invoice, company, plan):
        first = InvoiceDataService.create_renewal_invoice(
            company, plan, service_period_end=date(2025, 3, 1)
        )
        second = InvoiceDataService.create_renewal_invoice(
            company, plan, service_period_end=date(2025, 3, 1)
        )

        assert first.pk == second.pk
        assert InvoiceData.objects.filter(is_renewal=True).count() == 1

    def test_next_period_creates_new_invoice(self, paid_invoice, company, plan):
        InvoiceDataService.create_renewal_invoice(
            company, plan, service_period_end=date(2025, 3, 1)
        )
        InvoiceDataService.create_renewal_invoice(
            company, plan, service_period_end=date(2025, 4, 1)
        )

        assert InvoiceData.objects.filter(is_renewal=True).count() == 2

    def test_without_previous_invoice(self, company, plan):
        renewal = InvoiceDataService.create_renewal_invoice(company, plan)

        assert renewal.created_by is None
        assert renewal.invoice_requested is False
        assert renewal.payment_subscription_id == ""


@pytest.mark.django_db
class TestCreateCorrectiveInvoice:
    def test_full_correction_negates_amount(self, paid_invoice):
        correction = InvoiceDataService.create_corrective_invoice(paid_invoice)

        assert correction.is_corrective is True
        assert correction.corrected_invoice == paid_invoice
        assert correction.amount == -paid_invoice.amount
        assert correction.title.startswith("Correction: ")

    def test_partial_amount(self, paid_invoice):
        correction = InvoiceDataService.create_corrective_invoice(
            paid_invoice, Decimal("10.00")
        )

        assert correction.amount == Decimal("-10.00")

    def test_repeated_correction_is_deduplicated(self, paid_invoice):
        first = InvoiceDataService.create_corrective_invoice(paid_invoice)
        second = InvoiceDataService.create_corrective_invoice(paid_invoice)

        assert first.pk == second.pk
        assert paid_invoice.corrections.count() == 1


@pytest.mark.django_db
class TestCreateCorrectiveInvoiceForRefund:
    def test_resolves_invoice_by_subscription_id(self, paid_invoice, company):
        InvoiceDataFactory(company=company, payment_subscription_id="sub_newer_other")

        correction = InvoiceDataService.create_corrective_invoice_for_refund(
            company.id, Decimal("49.00"), "sub_test_123"
        )

        assert correction.corrected_invoice == paid_invoice

    def test_falls_back_to_last_paid_invoice(self, paid_invoice, company):
        newer = InvoiceDataFactory(
            company=company, subscription_plan=SubscriptionPlanFactory()
        )
        PaymentSessionFactory(
            invoice=newer, state=PaymentSessionState.PAID, paid_at=timezone.now()
        )

        correction = InvoiceDataService.create_corrective_invoice_for_refund(
            company.id, Decimal("49.00"), "sub_unknown"
        )

        assert correction.corrected_invoice == newer

    def test_fallback_skips_unpaid_checkout_invoices(self, paid_invoice, company):
        PaymentSessionFactory(
            invoice=paid_invoice, state=PaymentSessionState.PAID, paid_at=timezone.now()
        )
        abandoned = InvoiceDataFactory(company=company)
        PaymentSessionFactory(invoice=abandoned, state=PaymentSessionState.CANCELLED)

        correction = InvoiceDataService.create_corrective_invoice_for_refund(
            company.id, Decimal("49.00")
        )

        assert correction.corrected_invoice == paid_invoice

    def test_raises_when_only_unpaid_invoices_exist(self, company):
        InvoiceDataFactory(company=company)

        with pytest.raises(NotFoundError):
            InvoiceDataService.create_corrective_invoice_for_refund(
                company.id, Decimal("49.00")
            )

    def test_raises_when_company_has_no_invoice(self):
        with pytest.raises(NotFoundError) as exc_info:
            InvoiceDataService.create_corrective_invoice_for_refund(
                uuid.uuid4(), Decimal("49.00")
            )

        assert exc_info.value.error_code == "INVOICE_NOT_FOUND"
