"""
DRF views for payments app.

This module provides API views for:
- Checkout session creation for a subscription plan
- Payment confirmation when the customer returns from Checkout

Related files:
    - services/payment_session_service.py: PaymentSessionService
    - serializers.py: Request/response serializers
    - urls.py: URL routing

Endpoints:
    POST /api/v1/payments/checkout/ - Create checkout session
    GET /api/v1/payments/sessions/{id}/confirm/ - Confirm a payment session
    POST /api/v1/payments/webhooks/stripe/ - Stripe webhook endpoint (webhooks/views.py)

Security:
    - All endpoints require authentication except webhook
    - Webhook verifies Stripe signature
"""

from __future__ import annotations

import logging

from django.db.models import Q
from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from authentication.services import UserLookupService
from invoices.services import InvoiceDataService
from payments.exceptions import PaymentValidationError, StripeError
from payments.models import PaymentSession
from payments.serializers import (
    CheckoutRequestSerializer,
    CheckoutResponseSerializer,
    PaymentSessionConfirmSerializer,
)
from payments.services import PaymentSessionService

logger = logging.getLogger(__name__)


class CheckoutView(APIView):
    """
    Create a Stripe Checkout session for a subscription plan.

    POST /api/v1/payments/checkout/

    Request body:
        {
            "plan_id": "<uuid>",
            "one_time_payment": false,
            "invoice_requested": true,
            "success_url": "https://example.com/paid",
            "fail_url": "https://example.com/cancelled"
        }

    Returns:
        {
            "payment_session_id": "<uuid>",
            "checkout_url": "https://checkout.stripe.com/...",
            "operator_session_id": "cs_..."
        }
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="create_checkout_session",
        summary="Create checkout session",
        description=(
            "Creates invoice data for the plan, a payment session for the "
            "user's last used company and a Stripe Checkout session."
        ),
        request=CheckoutRequestSerializer,
        responses={
            201: OpenApiResponse(
                response=CheckoutResponseSerializer,
                description="Checkout session created",
            ),
            400: OpenApiResponse(description="No company, unknown plan or invalid request"),
            502: OpenApiResponse(description="Stripe request failed"),
        },
        tags=["Payments"],
    )
    def post(self, request):
        """Create checkout session."""
        serializer = CheckoutRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        plan = serializer.context["plan"]

        company = UserLookupService.get_last_used_company(request.user.email)
        if company is None:
            return Response(
                {"error": "No company selected for this user", "error_code": "COMPANY_REQUIRED"},
                status=status.HTTP_400_BAD_REQUEST,
            )

        invoice = InvoiceDataService.create_for_plan(
            company,
            plan,
            created_by=request.user,
            invoice_requested=data["invoice_requested"],
        )

        try:
            session = PaymentSessionService.start_checkout(
                invoice,
                created_by=request.user,
                one_time_payment=data["one_time_payment"],
                success_url=data.get("success_url"),
                fail_url=data.get("fail_url"),
            )
        except PaymentValidationError as e:
            return Response(e.to_dict(), status=status.HTTP_400_BAD_REQUEST)
        except StripeError as e:
            logger.error(
                "Checkout creation failed at Stripe",
                extra={"user_id": request.user.pk, "invoice_id": str(invoice.id)},
            )
            return Response(e.to_dict(), status=status.HTTP_502_BAD_GATEWAY)

        return Response(
            CheckoutResponseSerializer(session).data,
            status=status.HTTP_201_CREATED,
        )


class PaymentSessionConfirmView(APIView):
    """
    Confirm whether a payment session was paid.

    GET /api/v1/payments/sessions/{id}/confirm/

    Asks Stripe when the checkout.session.completed webhook has not closed
    the session yet; a paid session is closed on the spot.

    Returns:
        {"payment_session_id": "<uuid>", "paid": true}
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="confirm_payment_session",
        summary="Confirm payment session",
        responses={
            200: OpenApiResponse(
                response=PaymentSessionConfirmSerializer,
                description="Payment status",
            ),
            404: OpenApiResponse(description="Payment session not found"),
            502: OpenApiResponse(description="Stripe request failed"),
        },
        tags=["Payments"],
    )
    def get(self, request, session_id):
        """Confirm payment session."""
        user = request.user
        session = (
            PaymentSession.objects.select_related("invoice")
            .filter(pk=session_id)
            .filter(
                Q(created_by=user) | Q(invoice__company_id=user.last_used_company_id)
            )
            .first()
        )
        if session is None:
            return Response(
                {"error": "Payment session not found"},
                status=status.HTTP_404_NOT_FOUND,
            )

        try:
            paid = PaymentSessionService.confirm(session)
        except StripeError as e:
            return Response(e.to_dict(), status=status.HTTP_502_BAD_GATEWAY)

        return Response(
            PaymentSessionConfirmSerializer(
                {"payment_session_id": session.id, "paid": paid}
            ).data
        )
