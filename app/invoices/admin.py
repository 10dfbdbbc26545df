"""
Django admin configuration for invoice data.
"""

from django.contrib import admin

from invoices.models import InvoiceData


@admin.register(InvoiceData)
class InvoiceDataAdmin(admin.ModelAdmin):
    """
    Admin configuration for InvoiceData.

    Corrective rows are listed next to the invoices they correct so
    support can reconcile refunds by hand.
    """

    list_display = [
        "id",
        "company",
        "title",
        "amount",
        "currency",
        "is_renewal",
        "is_corrective",
        "created_at",
    ]
    list_filter = ["is_renewal", "is_corrective", "invoice_requested", "currency"]
    search_fields = ["id", "company__company_name", "payment_subscription_id"]
    readonly_fields = ["id", "created_at", "updated_at"]
    raw_id_fields = ["company", "subscription_plan", "created_by", "corrected_invoice"]
    ordering = ["-created_at"]
