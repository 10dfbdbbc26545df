"""
Django admin configuration for company models.
"""

from django.contrib import admin

from companies.models import Company, CompanySubscription, SubscriptionPlan


class CompanySubscriptionInline(admin.StackedInline):
    """Inline showing the company's platform subscription."""

    model = CompanySubscription
    extra = 0
    readonly_fields = ["created_at", "updated_at"]


@admin.register(Company)
class CompanyAdmin(admin.ModelAdmin):
    """Admin configuration for Company."""

    list_display = ["company_name", "is_active", "created_at"]
    list_filter = ["is_active"]
    search_fields = ["id", "company_name"]
    readonly_fields = ["id", "created_at", "updated_at"]
    inlines = [CompanySubscriptionInline]


@admin.register(SubscriptionPlan)
class SubscriptionPlanAdmin(admin.ModelAdmin):
    """Admin configuration for SubscriptionPlan."""

    list_display = ["plan_name", "price", "currency", "billing_period", "is_active"]
    list_filter = ["billing_period", "is_active", "currency"]
    search_fields = ["id", "plan_name"]
    readonly_fields = ["id", "created_at", "updated_at"]


@admin.register(CompanySubscription)
class CompanySubscriptionAdmin(admin.ModelAdmin):
    """
    Admin configuration for CompanySubscription.

    Used by support to check active windows after renewals and refunds.
    """

    list_display = [
        "company",
        "subscription_plan",
        "active_from",
        "active_to",
        "revoked_at",
    ]
    list_filter = ["subscription_plan"]
    search_fields = ["company__company_name", "company__id"]
    readonly_fields = ["id", "created_at", "updated_at"]
    ordering = ["-active_to"]
