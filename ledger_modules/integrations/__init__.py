"""Best-effort ledger postings triggered by invoicing and payroll."""

from ledger_modules.integrations.invoice_bridge import (
    INVOICE_KIND,
    PAYMENT_KIND,
    PAYROLL_KIND,
    InvoiceLedgerBridge,
)

__all__ = [
    "INVOICE_KIND",
    "PAYMENT_KIND",
    "PAYROLL_KIND",
    "InvoiceLedgerBridge",
]
