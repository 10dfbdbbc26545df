"""
Stripe Checkout session service.

Builds hosted Checkout sessions for internal payment sessions and confirms
afterwards whether a session was paid.

Line items carry the unit price in minor units together with the
quantity; Stripe multiplies the two. Subscription checkouts add a
recurring interval derived from the plan's billing period.

Usage:
    from payments.services import CheckoutPayment, CheckoutProduct, StripeCheckoutService

    active = StripeCheckoutService.create_session(
        CheckoutPayment(
            payment_session_id=session.id,
            products=[CheckoutProduct.from_plan(plan)],
            customer_email=user.email,
        ),
        one_time_payment=False,
    )
    redirect(active.url)

    paid = StripeCheckoutService.confirm_payment(session.id)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING
from urllib.parse import urlencode, urlsplit, urlunsplit

from django.utils import timezone

from core.helpers import to_minor_units
from core.services import BaseService

from companies.choices import BillingPeriod
from companies.services import BILLING_PERIOD_INTERVALS
from payments.adapters import CreateCheckoutSessionParams, IdempotencyKeyGenerator, StripeAdapter
from payments.conf import StripeSettings
from payments.exceptions import PaymentValidationError
from payments.state_machines import PaymentMode

if TYPE_CHECKING:
    from uuid import UUID

    from companies.models import SubscriptionPlan
    from payments.adapters import CheckoutSessionResult
    from payments.protocols import PaymentGateway


# Stripe caps list pages at 100 sessions
CONFIRM_PAGE_SIZE = 100


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class RecurringInterval:
    """Stripe price_data.recurring values."""

    interval: str
    interval_count: int

    def to_stripe(self) -> dict[str, object]:
        return {"interval": self.interval, "interval_count": self.interval_count}


@dataclass
class CheckoutProduct:
    """
    One product line of a checkout.

    Attributes:
        name: Product name shown on Checkout
        unit_price: Price of one unit in major currency units
        quantity: Number of units
        currency: ISO 4217 currency code
        billing_period: Renewal period for subscription checkouts
        custom_interval: Interval unit for CUSTOM billing periods
        custom_interval_count: Interval count for CUSTOM billing periods
    """

    name: str
    unit_price: Decimal
    quantity: int = 1
    currency: str = "usd"
    billing_period: str = BillingPeriod.MONTHLY
    custom_interval: str = ""
    custom_interval_count: int = 1

    @classmethod
    def from_plan(cls, plan: SubscriptionPlan, quantity: int = 1) -> CheckoutProduct:
        return cls(
            name=plan.plan_name,
            unit_price=plan.price,
            quantity=quantity,
            currency=plan.currency,
            billing_period=plan.billing_period,
            custom_interval=plan.custom_interval,
            custom_interval_count=plan.custom_interval_count,
        )


@dataclass
class CheckoutPayment:
    """
    A payment to collect through Checkout.

    Attributes:
        payment_session_id: Internal PaymentSession GUID (client_reference_id)
        products: Product lines
        customer_email: Prefilled Checkout email
        metadata: Extra metadata attached to the Checkout session
    """

    payment_session_id: UUID
    products: list[CheckoutProduct]
    customer_email: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class ActiveCheckoutSession:
    """A created Checkout session the customer can be redirected to."""

    url: str
    session_id: str


def _with_guid(base_url: str, guid: UUID) -> str:
    """Append ?guid=<id> to a redirect URL, keeping its existing query."""
    parts = urlsplit(base_url)
    query = urlencode({"guid": str(guid)})
    if parts.query:
        query = f"{parts.query}&{query}"
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


# =============================================================================
# Service
# =============================================================================


class StripeCheckoutService(BaseService):
    """
    Creates and confirms Stripe Checkout sessions.

    All methods are classmethods. The gateway argument defaults to
    StripeAdapter and is replaced by a fake in tests.
    """

    @classmethod
    def to_recurring_interval(cls, product: CheckoutProduct) -> RecurringInterval:
        """
        Map a product's billing period to a Stripe recurring interval.

        CUSTOM passes the product's own unit and count through; the
        standard periods map as in companies.services.BILLING_PERIOD_INTERVALS.

        Raises:
            PaymentValidationError: Unknown billing period, or a CUSTOM
                period without an interval unit
        """
        if product.billing_period == BillingPeriod.CUSTOM:
            if not product.custom_interval:
                raise PaymentValidationError(
                    f"Custom billing period of '{product.name}' has no interval",
                    details={"product": product.name},
                )
            return RecurringInterval(product.custom_interval, max(product.custom_interval_count, 1))

        if product.billing_period not in BILLING_PERIOD_INTERVALS:
            raise PaymentValidationError(
                f"Unsupported billing period '{product.billing_period}'",
                details={"product": product.name, "billing_period": product.billing_period},
            )
        interval, count = BILLING_PERIOD_INTERVALS[product.billing_period]
        return RecurringInterval(str(interval), count)

    @classmethod
    def build_line_items(
        cls,
        payment: CheckoutPayment,
        one_time_payment: bool,
    ) -> list[dict]:
        """Build Stripe line_items, one per product."""
        line_items = []
        for product in payment.products:
            if product.quantity < 1:
                raise PaymentValidationError(
                    f"Quantity of '{product.name}' must be positive",
                    details={"product": product.name, "quantity": product.quantity},
                )
            unit_amount = to_minor_units(product.unit_price, product.currency)
            if unit_amount <= 0:
                raise PaymentValidationError(
                    f"Price of '{product.name}' must be positive",
                    details={"product": product.name, "unit_price": str(product.unit_price)},
                )

            price_data = {
                "currency": product.currency.lower(),
                "product_data": {"name": product.name},
                "unit_amount": unit_amount,
            }
            if not one_time_payment:
                price_data["recurring"] = cls.to_recurring_interval(product).to_stripe()

            line_items.append({"price_data": price_data, "quantity": product.quantity})
        return line_items

    @classmethod
    def create_session(
        cls,
        payment: CheckoutPayment,
        one_time_payment: bool,
        success_url: str | None = None,
        fail_url: str | None = None,
        gateway: PaymentGateway = StripeAdapter,
    ) -> ActiveCheckoutSession:
        """
        Create a hosted Checkout session for a payment.

        Args:
            payment: Payment to collect
            one_time_payment: Payment mode when True, subscription mode otherwise
            success_url: Redirect after payment (default PAYMENT_SUCCESS_URL?guid=<id>)
            fail_url: Redirect after cancel (default PAYMENT_CANCEL_URL?guid=<id>)
            gateway: Payment gateway

        Returns:
            ActiveCheckoutSession with the Checkout URL and Stripe session ID

        Raises:
            PaymentValidationError: No products, bad quantity or price
            StripeError: Stripe rejected or failed the request
        """
        logger = cls.get_logger()

        if not payment.products:
            raise PaymentValidationError(
                "Checkout requires at least one product",
                details={"payment_session_id": str(payment.payment_session_id)},
            )

        stripe_settings = StripeSettings.load()
        mode = PaymentMode.PAYMENT if one_time_payment else PaymentMode.SUBSCRIPTION

        params = CreateCheckoutSessionParams(
            mode=str(mode),
            line_items=cls.build_line_items(payment, one_time_payment),
            success_url=success_url
            or _with_guid(stripe_settings.success_url, payment.payment_session_id),
            cancel_url=fail_url
            or _with_guid(stripe_settings.cancel_url, payment.payment_session_id),
            client_reference_id=str(payment.payment_session_id),
            customer_email=payment.customer_email,
            metadata={"payment_session_id": str(payment.payment_session_id), **payment.metadata},
            idempotency_key=IdempotencyKeyGenerator.generate(
                operation="create_checkout_session",
                entity_id=payment.payment_session_id,
            ),
        )

        result = gateway.create_checkout_session(params)

        logger.info(
            "Created checkout session",
            extra={
                "payment_session_id": str(payment.payment_session_id),
                "stripe_session_id": result.id,
                "mode": str(mode),
            },
        )
        return ActiveCheckoutSession(url=result.url, session_id=result.id)

    @classmethod
    def find_checkout_session(
        cls,
        correlation_id: UUID | str,
        gateway: PaymentGateway = StripeAdapter,
    ) -> CheckoutSessionResult | None:
        """
        Find the Checkout session of a payment session.

        Pages through Checkout sessions created within the last
        STRIPE_CONFIRM_LOOKBACK_DAYS until one carries the payment session
        GUID as client_reference_id.

        Returns:
            The matching Checkout session, or None when pagination ran out
        """
        logger = cls.get_logger()
        reference = str(correlation_id)
        created_after = timezone.now() - timedelta(
            days=StripeSettings.load().confirm_lookback_days
        )

        starting_after = None
        pages = 0
        while True:
            page = gateway.list_checkout_sessions(
                created_after=created_after,
                starting_after=starting_after,
                limit=CONFIRM_PAGE_SIZE,
            )
            pages += 1

            for session in page.sessions:
                if session.client_reference_id == reference:
                    logger.info(
                        "Found checkout session for payment session",
                        extra={
                            "payment_session_id": reference,
                            "stripe_session_id": session.id,
                            "status": session.status,
                            "payment_status": session.payment_status,
                        },
                    )
                    return session

            if not page.has_more or page.last_id is None:
                break
            starting_after = page.last_id

        logger.warning(
            "No checkout session found for payment session",
            extra={"payment_session_id": reference, "pages": pages},
        )
        return None

    @classmethod
    def confirm_payment(
        cls,
        correlation_id: UUID | str,
        gateway: PaymentGateway = StripeAdapter,
    ) -> bool:
        """
        Check whether the Checkout session of a payment session was paid.

        Returns:
            True if that session's payment_status is "paid"; False if it is
            unpaid or no session was found before pagination ran out
        """
        session = cls.find_checkout_session(correlation_id, gateway=gateway)
        return session is not None and session.is_paid
