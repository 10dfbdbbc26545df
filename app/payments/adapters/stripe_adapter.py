"""
Stripe API adapter for checkout and webhook reconciliation.

This module provides the StripeAdapter class which encapsulates all
Stripe API interactions. All Stripe calls should go through this
adapter to ensure consistent error handling, timeouts and observability.

Features:
- Configurable timeouts on all API calls
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Idempotency keys for checkout session creation
- Webhook signature verification with a bounded timestamp tolerance

Configuration (via settings, see payments.conf):
- STRIPE_SECRET_KEY: Stripe API secret key
- STRIPE_WEBHOOK_SECRET: Webhook signing secret
- STRIPE_WEBHOOK_TOLERANCE_SECONDS: Accepted webhook age (default: 300)
- STRIPE_API_TIMEOUT_SECONDS: API call timeout (default: 10)

Usage:
    from payments.adapters import CreateCheckoutSessionParams, StripeAdapter

    result = StripeAdapter.create_checkout_session(
        CreateCheckoutSessionParams(
            mode="subscription",
            line_items=[...],
            success_url="https://app.example.com/paid?guid=...",
            cancel_url="https://app.example.com/cancelled?guid=...",
            client_reference_id=str(payment_session.id),
            idempotency_key="create_checkout_session:<uuid>:1:ab12cd34",
        )
    )

    event = StripeAdapter.verify_webhook_signature(request.body, signature)
"""

from __future__ import annotations

import hashlib
import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import stripe
from django.conf import settings

from core.helpers import from_unix_timestamp

from payments.conf import DEFAULT_WEBHOOK_TOLERANCE_SECONDS, get_setting
from payments.exceptions import (
    StripeAPIUnavailableError,
    StripeAuthenticationError,
    StripeError,
    StripeInvalidRequestError,
    StripeRateLimitError,
    StripeTimeoutError,
    WebhookVerificationError,
)


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class CreateCheckoutSessionParams:
    """
    Parameters for creating a Stripe Checkout Session.

    Attributes:
        mode: "payment" or "subscription"
        line_items: Stripe line_items (price_data with unit_amount in minor units)
        success_url: Redirect after successful payment
        cancel_url: Redirect after cancelled payment
        client_reference_id: Internal payment session GUID
        idempotency_key: Unique key for idempotent creation
        customer_email: Prefills the Checkout email field
        metadata: Key-value pairs attached to the session
    """

    mode: str
    line_items: list[dict[str, Any]]
    success_url: str
    cancel_url: str
    client_reference_id: str
    idempotency_key: str
    customer_email: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate parameters after initialization."""
        if not self.line_items:
            raise ValueError("line_items must not be empty")
        if not self.client_reference_id:
            raise ValueError("client_reference_id is required")
        if not self.idempotency_key:
            raise ValueError("idempotency_key is required")


@dataclass
class CheckoutSessionResult:
    """
    Result from Stripe Checkout Session operations.

    Attributes:
        id: Checkout Session ID (cs_xxx)
        url: Hosted Checkout URL (None once the session is complete)
        client_reference_id: Internal payment session GUID
        status: open, complete or expired
        payment_status: paid, unpaid or no_payment_required
        subscription_id: Stripe Subscription ID for subscription mode
        customer_email: Email entered on Checkout
        created: Creation time
    """

    id: str
    url: str | None = None
    client_reference_id: str | None = None
    status: str | None = None
    payment_status: str | None = None
    subscription_id: str | None = None
    customer_email: str | None = None
    created: datetime | None = None

    @property
    def is_paid(self) -> bool:
        return self.payment_status == "paid"

    @property
    def is_expired(self) -> bool:
        return self.status == "expired"


@dataclass
class CheckoutSessionPage:
    """One page of a Checkout Session listing."""

    sessions: list[CheckoutSessionResult]
    has_more: bool

    @property
    def last_id(self) -> str | None:
        return self.sessions[-1].id if self.sessions else None


@dataclass
class ChargeResult:
    """
    Result from Stripe Charge retrieval.

    Attributes:
        id: Charge ID (ch_xxx)
        amount: Charged amount in minor units
        amount_captured: Captured amount in minor units
        amount_refunded: Refunded amount in minor units
        currency: Currency code
        payment_intent_id: Related PaymentIntent ID
        customer_id: Related Customer ID
        billing_email: billing_details.email
        receipt_email: receipt_email
    """

    id: str
    amount: int = 0
    amount_captured: int = 0
    amount_refunded: int = 0
    currency: str | None = None
    payment_intent_id: str | None = None
    customer_id: str | None = None
    billing_email: str | None = None
    receipt_email: str | None = None


@dataclass
class PaymentIntentResult:
    """
    Result from Stripe PaymentIntent retrieval.

    Attributes:
        id: PaymentIntent ID (pi_xxx)
        status: Current status
        amount: Amount in minor units
        currency: Currency code
        customer_id: Related Customer ID
    """

    id: str
    status: str | None = None
    amount: int = 0
    currency: str | None = None
    customer_id: str | None = None


@dataclass
class InvoiceResult:
    """
    Result from Stripe Invoice retrieval.

    Attributes:
        id: Invoice ID (in_xxx)
        subscription_id: Subscription the invoice belongs to
        customer_id: Related Customer ID
        customer_email: Billing email on the invoice
        billing_reason: subscription_create, subscription_cycle, ...
        created: Creation time
    """

    id: str
    subscription_id: str | None = None
    customer_id: str | None = None
    customer_email: str | None = None
    billing_reason: str | None = None
    created: datetime | None = None


@dataclass
class CustomerResult:
    """
    Result from Stripe Customer retrieval.

    Attributes:
        id: Customer ID (cus_xxx)
        email: Customer email (None for deleted customers)
        deleted: Whether the customer was deleted
    """

    id: str
    email: str | None = None
    deleted: bool = False


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for Stripe API calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    The hash component provides uniqueness across service restarts
    while the structured format aids debugging and correlation.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation='create_checkout_session',
            entity_id=payment_session.id,
        )
        # Result: "create_checkout_session:550e8400-e29b-41d4-a716-446655440000:1:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        """
        Generate a unique idempotency key.

        Args:
            operation: The Stripe operation (create_checkout_session, ...)
            entity_id: The domain entity ID (payment_session_id, ...)
            attempt: Attempt number for retries (default: 1)

        Returns:
            Formatted idempotency key string
        """
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"



def _read(obj: Any, *path: str) -> Any:
    """Follow an attribute path on a Stripe object, returning None when absent."""
    for name in path:
        if obj is None:
            return None
        if isinstance(obj, dict):
            obj = obj.get(name)
        else:
            obj = getattr(obj, name, None)
    return obj


def _object_id(value: Any) -> str | None:
    """Return the ID of an expandable field (plain ID or expanded object)."""
    if value is None or isinstance(value, str):
        return value
    return _read(value, "id")


# =============================================================================
# Stripe Adapter
# =============================================================================


class StripeAdapter:
    """
    Adapter for Stripe API operations.

    All methods are classmethods - no instance state is maintained.
    The class itself satisfies payments.protocols.PaymentGateway.

    Usage:
        result = StripeAdapter.create_checkout_session(params)
        page = StripeAdapter.list_checkout_sessions(created_after=since)
        charge = StripeAdapter.retrieve_charge("ch_xxx")
    """

    # =========================================================================
    # Configuration
    # =========================================================================

    @staticmethod
    def _configure_stripe() -> None:
        """Configure Stripe client with API key and timeout."""
        stripe.api_key = get_setting("STRIPE_SECRET_KEY")
        timeout = get_setting("STRIPE_API_TIMEOUT_SECONDS", 10)
        stripe.default_http_client = stripe.RequestsClient(timeout=timeout)

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this adapter."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    def _call(cls, operation: str, log_context: dict[str, Any], func, *args, **kwargs):
        """
        Run one Stripe SDK call with timing logs and error translation.

        Raises:
            StripeError subclasses for every failure
        """
        cls._configure_stripe()
        logger = cls.get_logger()
        log_context = {"operation": operation, **log_context}

        start_time = time.time()
        logger.info("Starting Stripe operation", extra=log_context)

        try:
            response = func(*args, **kwargs)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            cls._handle_stripe_error(e, log_context, duration_ms)
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            "Stripe operation completed",
            extra={**log_context, "duration_ms": duration_ms},
        )
        return response

    # =========================================================================
    # Checkout Sessions
    # =========================================================================

    @classmethod
    def create_checkout_session(
        cls,
        params: CreateCheckoutSessionParams,
    ) -> CheckoutSessionResult:
        """
        Create a Stripe Checkout Session.

        Args:
            params: Parameters for creating the session

        Returns:
            CheckoutSessionResult with the hosted Checkout URL

        Raises:
            StripeInvalidRequestError: Invalid parameters
            StripeAPIUnavailableError: Stripe service unavailable
            StripeTimeoutError: Request timed out
        """
        create_params: dict[str, Any] = {
            "mode": params.mode,
            "line_items": params.line_items,
            "success_url": params.success_url,
            "cancel_url": params.cancel_url,
            "client_reference_id": params.client_reference_id,
            "metadata": params.metadata,
        }
        if params.customer_email:
            create_params["customer_email"] = params.customer_email

        session = cls._call(
            "create_checkout_session",
            {
                "client_reference_id": params.client_reference_id,
                "mode": params.mode,
                "idempotency_key": params.idempotency_key,
            },
            stripe.checkout.Session.create,
            idempotency_key=params.idempotency_key,
            **create_params,
        )
        return cls._to_checkout_session(session)

    @classmethod
    def list_checkout_sessions(
        cls,
        created_after: datetime,
        starting_after: str | None = None,
        limit: int = 100,
    ) -> CheckoutSessionPage:
        """
        List Checkout Sessions created at or after a moment, newest first.

        Args:
            created_after: Lower bound of the session creation time
            starting_after: Cursor (last session ID of the previous page)
            limit: Page size (Stripe maximum is 100)

        Returns:
            CheckoutSessionPage with has_more for pagination
        """
        list_params: dict[str, Any] = {
            "created": {"gte": int(created_after.timestamp())},
            "limit": limit,
        }
        if starting_after:
            list_params["starting_after"] = starting_after

        page = cls._call(
            "list_checkout_sessions",
            {"created_after": created_after.isoformat(), "starting_after": starting_after},
            stripe.checkout.Session.list,
            **list_params,
        )
        return CheckoutSessionPage(
            sessions=[cls._to_checkout_session(s) for s in (_read(page, "data") or [])],
            has_more=bool(_read(page, "has_more")),
        )

    # =========================================================================
    # Reconciliation Lookups
    # =========================================================================

    @classmethod
    def retrieve_charge(cls, charge_id: str) -> ChargeResult:
        """Retrieve a Charge by ID."""
        charge = cls._call(
            "retrieve_charge",
            {"charge_id": charge_id},
            stripe.Charge.retrieve,
            charge_id,
        )
        return charge_from_payload(charge)

    @classmethod
    def retrieve_payment_intent(cls, payment_intent_id: str) -> PaymentIntentResult:
        """Retrieve a PaymentIntent by ID."""
        intent = cls._call(
            "retrieve_payment_intent",
            {"payment_intent_id": payment_intent_id},
            stripe.PaymentIntent.retrieve,
            payment_intent_id,
        )
        return PaymentIntentResult(
            id=_read(intent, "id"),
            status=_read(intent, "status"),
            amount=_read(intent, "amount") or 0,
            currency=_read(intent, "currency"),
            customer_id=_object_id(_read(intent, "customer")),
        )

    @classmethod
    def find_invoice_by_payment_intent(cls, payment_intent_id: str) -> InvoiceResult | None:
        """
        Find the Invoice paid by a PaymentIntent.

        Invoices link to PaymentIntents through InvoicePayment objects,
        filtered by payment[payment_intent].

        Returns:
            InvoiceResult, or None when the PaymentIntent paid no invoice
        """
        payments = cls._call(
            "list_invoice_payments",
            {"payment_intent_id": payment_intent_id},
            stripe.InvoicePayment.list,
            payment={"type": "payment_intent", "payment_intent": payment_intent_id},
            limit=1,
        )
        data = _read(payments, "data") or []
        if not data:
            return None

        invoice_id = _object_id(_read(data[0], "invoice"))
        if not invoice_id:
            return None

        invoice = cls._call(
            "retrieve_invoice",
            {"invoice_id": invoice_id},
            stripe.Invoice.retrieve,
            invoice_id,
        )
        return invoice_from_payload(invoice)

    @classmethod
    def retrieve_customer(cls, customer_id: str) -> CustomerResult:
        """Retrieve a Customer by ID (deleted customers have no email)."""
        customer = cls._call(
            "retrieve_customer",
            {"customer_id": customer_id},
            stripe.Customer.retrieve,
            customer_id,
        )
        return CustomerResult(
            id=_read(customer, "id"),
            email=_read(customer, "email"),
            deleted=bool(_read(customer, "deleted")),
        )

    # =========================================================================
    # Webhook Verification
    # =========================================================================

    @classmethod
    def verify_webhook_signature(
        cls,
        payload: bytes | str,
        signature: str | None,
        tolerance: int | None = None,
    ) -> dict[str, Any]:
        """
        Verify and parse a Stripe webhook event.

        Args:
            payload: Raw webhook payload
            signature: Stripe-Signature header value
            tolerance: Maximum event age in seconds (default:
                STRIPE_WEBHOOK_TOLERANCE_SECONDS)

        Returns:
            Parsed event data dict

        Raises:
            WebhookVerificationError: Missing or invalid signature, expired
                timestamp, or a body that is not a Stripe event
            ImproperlyConfigured: STRIPE_WEBHOOK_SECRET is not set
        """
        secret = get_setting("STRIPE_WEBHOOK_SECRET")
        if tolerance is None:
            tolerance = int(
                get_setting(
                    "STRIPE_WEBHOOK_TOLERANCE_SECONDS", DEFAULT_WEBHOOK_TOLERANCE_SECONDS
                )
            )

        if not signature:
            raise WebhookVerificationError(
                "Missing Stripe-Signature header",
                details={"reason": "missing_signature"},
            )

        if isinstance(payload, bytes):
            try:
                payload = payload.decode("utf-8")
            except UnicodeDecodeError as e:
                raise WebhookVerificationError(
                    "Webhook payload is not valid UTF-8",
                    details={"reason": "invalid_encoding"},
                ) from e

        try:
            stripe.WebhookSignature.verify_header(payload, signature, secret, tolerance)
        except stripe.SignatureVerificationError as e:
            raise WebhookVerificationError(
                f"Invalid webhook signature: {e.user_message or e}",
                details={"reason": "signature_verification_failed"},
            ) from e

        try:
            event = json.loads(payload)
        except ValueError as e:
            raise WebhookVerificationError(
                "Webhook payload is not valid JSON",
                details={"reason": "invalid_json"},
            ) from e

        if not isinstance(event, dict) or not event.get("type"):
            raise WebhookVerificationError(
                "Webhook payload is not a Stripe event",
                details={"reason": "not_an_event"},
            )
        return event

    # =========================================================================
    # Conversion
    # =========================================================================

    @staticmethod
    def _to_checkout_session(session: Any) -> CheckoutSessionResult:
        return CheckoutSessionResult(
            id=_read(session, "id"),
            url=_read(session, "url"),
            client_reference_id=_read(session, "client_reference_id"),
            status=_read(session, "status"),
            payment_status=_read(session, "payment_status"),
            subscription_id=_object_id(_read(session, "subscription")),
            customer_email=_read(session, "customer_email")
            or _read(session, "customer_details", "email"),
            created=from_unix_timestamp(_read(session, "created")),
        )

    # =========================================================================
    # Error Handling
    # =========================================================================

    @classmethod
    def _handle_stripe_error(
        cls,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate Stripe exceptions to domain exceptions.

        Args:
            error: The Stripe exception
            log_context: Logging context dict
            duration_ms: Operation duration for logging

        Raises:
            StripeInvalidRequestError: Invalid request parameters or unknown object
            StripeAuthenticationError: Invalid API key
            StripeRateLimitError: Rate limited
            StripeTimeoutError: Request timed out
            StripeAPIUnavailableError: API unavailable or unexpected error
        """
        logger = cls.get_logger()

        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, StripeError):
            raise error

        if isinstance(error, stripe.InvalidRequestError):
            logger.warning(
                "Invalid request to Stripe",
                extra={**log_context, "stripe_code": error.code},
            )
            raise StripeInvalidRequestError(
                str(error.user_message or error),
                stripe_code=error.code,
            ) from error

        elif isinstance(error, stripe.AuthenticationError):
            logger.critical(
                "Stripe authentication failed - check API key",
                extra=log_context,
            )
            raise StripeAuthenticationError(
                "Stripe authentication failed",
                stripe_code="authentication_error",
            ) from error

        elif isinstance(error, stripe.RateLimitError):
            logger.warning(
                "Rate limited by Stripe",
                extra=log_context,
            )
            raise StripeRateLimitError(
                "Stripe rate limit exceeded. Please retry.",
                stripe_code="rate_limit",
            ) from error

        elif isinstance(error, stripe.APIConnectionError):
            if "timed out" in str(error).lower() or "timeout" in str(error).lower():
                logger.error(
                    "Stripe request timed out",
                    extra=log_context,
                )
                raise StripeTimeoutError(
                    "Stripe request timed out. Please retry.",
                    stripe_code="timeout",
                ) from error

            logger.error(
                "Connection error to Stripe",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Could not connect to Stripe. Please retry.",
                stripe_code="api_connection_error",
            ) from error

        elif isinstance(error, stripe.APIError):
            logger.error(
                "Stripe API error",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                "Stripe service error. Please retry.",
                stripe_code="api_error",
            ) from error

        else:
            logger.error(
                f"Unexpected error from Stripe: {type(error).__name__}",
                extra=log_context,
                exc_info=True,
            )
            raise StripeAPIUnavailableError(
                f"Unexpected Stripe error: {error}",
                stripe_code="unknown_error",
            ) from error


# =============================================================================
# Payload Parsing
# =============================================================================


def charge_from_payload(charge: Any) -> ChargeResult:
    """
    Build a ChargeResult from a Stripe Charge object or webhook dict.

    Used both for API responses and for the data.object of charge.* events.
    """
    return ChargeResult(
        id=_read(charge, "id"),
        amount=_read(charge, "amount") or 0,
        amount_captured=_read(charge, "amount_captured") or 0,
        amount_refunded=_read(charge, "amount_refunded") or 0,
        currency=_read(charge, "currency"),
        payment_intent_id=_object_id(_read(charge, "payment_intent")),
        customer_id=_object_id(_read(charge, "customer")),
        billing_email=_read(charge, "billing_details", "email"),
        receipt_email=_read(charge, "receipt_email"),
    )


def invoice_from_payload(invoice: Any) -> InvoiceResult:
    """
    Build an InvoiceResult from a Stripe Invoice object or webhook dict.

    The subscription ID lives under parent.subscription_details on current
    API versions and directly on the invoice on older ones.
    """
    subscription_id = _object_id(
        _read(invoice, "parent", "subscription_details", "subscription")
    ) or _object_id(_read(invoice, "subscription"))

    return InvoiceResult(
        id=_read(invoice, "id"),
        subscription_id=subscription_id,
        customer_id=_object_id(_read(invoice, "customer")),
        customer_email=_read(invoice, "customer_email"),
        billing_reason=_read(invoice, "billing_reason"),
        created=from_unix_timestamp(_read(invoice, "created")),
    )
