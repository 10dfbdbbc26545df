"""
Payment gateway interface.

The reconciliation and checkout services only need a handful of Stripe
capabilities. They depend on this narrow protocol instead of the Stripe SDK,
so tests can pass a fake gateway and the SDK stays confined to
payments.adapters.

Usage:
    from payments.adapters import StripeAdapter
    from payments.protocols import PaymentGateway

    def reconcile(event: dict, gateway: PaymentGateway = StripeAdapter):
        charge = gateway.retrieve_charge(charge_id)
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from payments.adapters.stripe_adapter import (
        ChargeResult,
        CheckoutSessionPage,
        CheckoutSessionResult,
        CreateCheckoutSessionParams,
        CustomerResult,
        InvoiceResult,
        PaymentIntentResult,
    )


@runtime_checkable
class PaymentGateway(Protocol):
    """Stripe capabilities used by checkout and webhook reconciliation."""

    def create_checkout_session(
        self, params: CreateCheckoutSessionParams
    ) -> CheckoutSessionResult: ...

    def list_checkout_sessions(
        self,
        created_after: datetime,
        starting_after: str | None = None,
        limit: int = 100,
    ) -> CheckoutSessionPage: ...

    def retrieve_charge(self, charge_id: str) -> ChargeResult: ...

    def retrieve_payment_intent(self, payment_intent_id: str) -> PaymentIntentResult: ...

    def find_invoice_by_payment_intent(self, payment_intent_id: str) -> InvoiceResult | None: ...

    def retrieve_customer(self, customer_id: str) -> CustomerResult: ...

    def verify_webhook_signature(
        self,
        payload: bytes | str,
        signature: str | None,
        tolerance: int | None = None,
    ) -> dict[str, Any]: ...
