"""
Invoices app: invoice data issued to companies.

Invoice data is created when a company buys a plan, when Stripe renews a
subscription, and as a corrective (negative) entry when a payment is
fully refunded.

Usage:
    from invoices.services import InvoiceDataService

    invoice = InvoiceDataService.create_renewal_invoice(company, plan, period_end)
    InvoiceDataService.create_corrective_invoice_for_refund(
        company.id, Decimal("49.00"), "sub_123"
    )
"""
