"""
InvoiceData model.

One row per billable event of a company: the initial plan purchase, every
renewal, and corrective entries for refunds. Corrective rows carry a
negative amount and point at the invoice they correct.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin


class InvoiceData(UUIDPrimaryKeyMixin, BaseModel):
    """
    Invoice data for a company.

    Fields:
        company: Billed company
        subscription_plan: Plan being paid for (None for ad-hoc payments)
        created_by: User who initiated the original purchase
        title: Line title printed on the invoice
        amount: Gross amount in major units (negative for corrections)
        currency: ISO 4217 currency code
        invoice_requested: Whether the customer asked for a formal invoice
        is_renewal: Created from a Stripe subscription renewal
        is_corrective: Correction issued after a refund
        corrected_invoice: Invoice this correction refers to
        payment_subscription_id: Stripe subscription id (sub_xxx) if known
        service_period_end: Last day covered by this invoice
    """

    company = models.ForeignKey(
        "companies.Company",
        on_delete=models.PROTECT,
        related_name="invoices",
        help_text="Billed company",
    )

    subscription_plan = models.ForeignKey(
        "companies.SubscriptionPlan",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="invoices",
        help_text="Plan being paid for",
    )

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="invoices",
        help_text="User who initiated the purchase",
    )

    title = models.CharField(
        max_length=255,
        help_text="Line title printed on the invoice",
    )

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Gross amount in major currency units",
    )

    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code",
    )

    invoice_requested = models.BooleanField(
        default=False,
        help_text="Whether the customer asked for a formal invoice",
    )

    is_renewal = models.BooleanField(
        default=False,
        help_text="Created from a subscription renewal",
    )

    is_corrective = models.BooleanField(
        default=False,
        db_index=True,
        help_text="Correction issued after a refund",
    )

    corrected_invoice = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="corrections",
        help_text="Invoice this correction refers to",
    )

    payment_subscription_id = models.CharField(
        max_length=255,
        blank=True,
        default="",
        db_index=True,
        help_text="Stripe Subscription ID (sub_xxx)",
    )

    service_period_end = models.DateField(
        null=True,
        blank=True,
        help_text="Last day covered by this invoice",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Invoice Data"
        verbose_name_plural = "Invoice Data"
        indexes = [
            models.Index(
                fields=["company", "is_corrective", "created_at"],
                name="invoice_company_corrective_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"InvoiceData({self.title}, {self.amount} {self.currency})"
