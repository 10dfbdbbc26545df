"""
Tests for PaymentSessionService.

Tests cover:
- Starting a checkout (session row, Stripe call, cancellation on failure)
- Closing a successful payment and activating the plan
- Renewal payment sessions and their deduplication
- Company lookup by Stripe subscription id
- Reversing the last paid session after a full refund
"""

import uuid
from datetime import date, datetime, timezone as dt_timezone
from decimal import Decimal

import pytest

from companies.models import CompanySubscription
from companies.tests.factories import CompanySubscriptionFactory
from invoices.models import InvoiceData
from invoices.tests.factories import InvoiceDataFactory
from payments.exceptions import (
    InvalidStateTransitionError,
    PaymentNotFoundError,
    PaymentValidationError,
    StripeAPIUnavailableError,
)
from payments.models import PaymentSession
from payments.services import PaymentSessionService
from payments.state_machines import PaymentMode, PaymentSessionState
from payments.tests.factories import PaymentSessionFactory


COMPLETED_AT = datetime(2025, 3, 1, 10, 0, tzinfo=dt_timezone.utc)


# =============================================================================
# Checkout Tests
# =============================================================================


@pytest.mark.django_db
class TestStartCheckout:
    def test_creates_session_and_checkout(self, invoice, buyer, gateway):
        session = PaymentSessionService.start_checkout(
            invoice, buyer, one_time_payment=False, gateway=gateway
        )

        session = PaymentSession.objects.get(pk=session.pk)
        assert session.state == PaymentSessionState.NEW
        assert session.mode == PaymentMode.SUBSCRIPTION
        assert session.processor == "Stripe"
        assert session.operator_transaction_id == "cs_test_1"
        assert session.checkout_url == gateway.checkout_url

        [params] = gateway.created_sessions
        assert params.client_reference_id == str(session.id)
        assert params.customer_email == "billing@acme.test"
        assert params.metadata["invoice_id"] == str(invoice.id)
        assert params.line_items[0]["price_data"]["unit_amount"] == 4900
        assert params.line_items[0]["price_data"]["recurring"] == {
            "interval": "month",
            "interval_count": 1,
        }

    def test_does_not_need_webhook_secret(self, invoice, buyer, gateway, settings):
        settings.STRIPE_WEBHOOK_SECRET = ""

        session = PaymentSessionService.start_checkout(
            invoice, buyer, one_time_payment=True, gateway=gateway
        )

        assert session.operator_transaction_id == "cs_test_1"

    def test_one_time_payment(self, invoice, buyer, gateway):
        session = PaymentSessionService.start_checkout(
            invoice, buyer, one_time_payment=True, gateway=gateway
        )

        assert session.mode == PaymentMode.PAYMENT
        assert "recurring" not in gateway.created_sessions[0].line_items[0]["price_data"]

    def test_stripe_failure_cancels_session(self, invoice, buyer, gateway):
        gateway.create_error = StripeAPIUnavailableError("Stripe is down")

        with pytest.raises(StripeAPIUnavailableError):
            PaymentSessionService.start_checkout(
                invoice, buyer, one_time_payment=False, gateway=gateway
            )

        session = PaymentSession.objects.get(invoice=invoice)
        assert session.state == PaymentSessionState.CANCELLED
        assert session.closed_at is not None

    def test_subscription_requires_plan(self, company, buyer, gateway):
        invoice = InvoiceDataFactory(company=company, subscription_plan=None, title="Setup fee")

        with pytest.raises(PaymentValidationError):
            PaymentSessionService.start_checkout(
                invoice, buyer, one_time_payment=False, gateway=gateway
            )

        assert not PaymentSession.objects.filter(invoice=invoice).exists()
        assert gateway.created_sessions == []


@pytest.mark.django_db
class TestConfirm:
    def test_paid_session_short_circuits(self, paid_session, gateway):
        assert PaymentSessionService.confirm(paid_session, gateway=gateway) is True
        assert gateway.calls == []

    def test_closes_session_found_paid(self, new_session, gateway):
        from payments.adapters import CheckoutSessionPage, CheckoutSessionResult

        gateway.checkout_pages = [
            CheckoutSessionPage(
                sessions=[
                    CheckoutSessionResult(
                        id="cs_1",
                        client_reference_id=str(new_session.id),
                        payment_status="paid",
                    )
                ],
                has_more=False,
            )
        ]

        assert PaymentSessionService.confirm(new_session, gateway=gateway) is True
        assert PaymentSession.objects.get(pk=new_session.pk).state == PaymentSessionState.PAID

    def test_unpaid_session_stays_new(self, new_session, gateway):
        assert PaymentSessionService.confirm(new_session, gateway=gateway) is False
        assert PaymentSession.objects.get(pk=new_session.pk).state == PaymentSessionState.NEW

    def test_expired_checkout_expires_session(self, new_session, gateway):
        from payments.adapters import CheckoutSessionPage, CheckoutSessionResult

        gateway.checkout_pages = [
            CheckoutSessionPage(
                sessions=[
                    CheckoutSessionResult(
                        id="cs_1",
                        client_reference_id=str(new_session.id),
                        status="expired",
                        payment_status="unpaid",
                    )
                ],
                has_more=False,
            )
        ]

        assert PaymentSessionService.confirm(new_session, gateway=gateway) is False
        session = PaymentSession.objects.get(pk=new_session.pk)
        assert session.state == PaymentSessionState.EXPIRED
        assert session.closed_at is not None

    def test_expire_leaves_closed_sessions_alone(self, paid_session):
        session = PaymentSessionService.expire_session(paid_session.id)

        assert session.state == PaymentSessionState.PAID


# =============================================================================
# Close Successful Payment Tests
# =============================================================================


@pytest.mark.django_db
class TestCloseSuccessfulPayment:
    def test_marks_paid_and_applies_plan(self, new_session, company, plan):
        PaymentSessionService.close_successful_payment(
            str(new_session.id),
            COMPLETED_AT,
            payment_subscription_id="sub_new",
            payment_event_id="evt_1",
        )

        session = PaymentSession.objects.get(pk=new_session.pk)
        assert session.state == PaymentSessionState.PAID
        assert session.paid_at == COMPLETED_AT
        assert session.payment_subscription_id == "sub_new"
        assert session.payment_event_id == "evt_1"

        subscription = CompanySubscription.objects.get(company=company)
        assert subscription.subscription_plan == plan
        assert subscription.active_from == COMPLETED_AT
        assert subscription.active_to == datetime(2025, 4, 1, 10, 0, tzinfo=dt_timezone.utc)

        invoice = InvoiceData.objects.get(pk=new_session.invoice_id)
        assert invoice.payment_subscription_id == "sub_new"
        assert invoice.service_period_end == date(2025, 4, 1)

    def test_already_paid_is_noop(self, paid_session, company):
        result = PaymentSessionService.close_successful_payment(paid_session.id, COMPLETED_AT)

        assert result.state == PaymentSessionState.PAID
        assert not CompanySubscription.objects.filter(company=company).exists()

    def test_refunded_session_cannot_be_closed(self, paid_session):
        paid_session.refund()
        paid_session.save()

        with pytest.raises(InvalidStateTransitionError):
            PaymentSessionService.close_successful_payment(paid_session.id, COMPLETED_AT)

    @pytest.mark.parametrize("reference", [None, "", "not-a-guid"])
    def test_malformed_reference(self, db, reference):
        with pytest.raises(PaymentValidationError):
            PaymentSessionService.close_successful_payment(reference, COMPLETED_AT)

    def test_unknown_session(self, db):
        with pytest.raises(PaymentNotFoundError):
            PaymentSessionService.close_successful_payment(uuid.uuid4(), COMPLETED_AT)

    def test_one_time_invoice_without_plan(self, company, buyer):
        invoice = InvoiceDataFactory(company=company, subscription_plan=None, title="Setup fee")
        session = PaymentSessionFactory(invoice=invoice, mode=PaymentMode.PAYMENT)

        PaymentSessionService.close_successful_payment(session.id, COMPLETED_AT)

        assert PaymentSession.objects.get(pk=session.pk).state == PaymentSessionState.PAID
        assert not CompanySubscription.objects.filter(company=company).exists()


# =============================================================================
# Renewal Session Tests
# =============================================================================


@pytest.mark.django_db
class TestCreatePaymentSessionFromSubscriptionRenew:
    def test_creates_paid_renewal_session(self, invoice):
        session = PaymentSessionService.create_payment_session_from_subscription_renew(
            invoice,
            paid_at=COMPLETED_AT,
            payment_event_id="evt_renew",
            payment_subscription_id="sub_test_123",
        )

        assert session.state == PaymentSessionState.PAID
        assert session.is_renewal is True
        assert session.paid_at == COMPLETED_AT
        assert session.payment_event_id == "evt_renew"
        assert session.payment_subscription_id == "sub_test_123"
        assert session.created_by == invoice.created_by

    def test_redelivery_returns_existing_session(self, invoice):
        first = PaymentSessionService.create_payment_session_from_subscription_renew(
            invoice, paid_at=COMPLETED_AT, payment_event_id="evt_renew"
        )
        second = PaymentSessionService.create_payment_session_from_subscription_renew(
            invoice, paid_at=COMPLETED_AT, payment_event_id="evt_renew"
        )

        assert first.pk == second.pk
        assert PaymentSession.objects.filter(invoice=invoice, is_renewal=True).count() == 1


# =============================================================================
# Subscription Lookup Tests
# =============================================================================


@pytest.mark.django_db
class TestTryGetCompanyWithSubscriptionPlan:
    def test_finds_company_through_payment_session(self, paid_session, company, plan):
        CompanySubscriptionFactory(company=company, subscription_plan=plan)

        assert PaymentSessionService.try_get_company_with_subscription_plan("sub_test_123") == company

    def test_finds_company_through_invoice(self, company, plan):
        CompanySubscriptionFactory(company=company, subscription_plan=plan)
        InvoiceDataFactory(company=company, subscription_plan=plan, payment_subscription_id="sub_inv")

        assert PaymentSessionService.try_get_company_with_subscription_plan("sub_inv") == company

    def test_company_without_plan(self, paid_session):
        assert PaymentSessionService.try_get_company_with_subscription_plan("sub_test_123") is None

    @pytest.mark.parametrize("subscription_id", [None, "", "sub_unknown"])
    def test_unknown_subscription(self, db, subscription_id):
        assert PaymentSessionService.try_get_company_with_subscription_plan(subscription_id) is None


# =============================================================================
# Refund Tests
# =============================================================================


@pytest.mark.django_db
class TestRefundLastPaidSession:
    def test_refunds_session_and_creates_correction(self, paid_session, company):
        correction = PaymentSessionService.refund_last_paid_session(company.id)

        assert PaymentSession.objects.get(pk=paid_session.pk).state == PaymentSessionState.REFUNDED
        assert correction.is_corrective
        assert correction.corrected_invoice_id == paid_session.invoice_id
        assert correction.amount == Decimal("-49.00")

    def test_already_refunded(self, paid_session, company):
        PaymentSessionService.refund_last_paid_session(company.id)

        assert PaymentSessionService.refund_last_paid_session(company.id) is None
        assert InvoiceData.objects.filter(is_corrective=True).count() == 1

    def test_nothing_to_refund(self, new_session, company):
        assert PaymentSessionService.refund_last_paid_session(company.id) is None
        assert PaymentSession.objects.get(pk=new_session.pk).state == PaymentSessionState.NEW
