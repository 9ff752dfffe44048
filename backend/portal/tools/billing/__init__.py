from .display import format_cents
from .fees import FeeBreakdown, compute_fee, round_half_up_cents
from .ledger import (
    MarkPaidResult,
    PayableInvoice,
    ensure_balance_invoice,
    evaluate_can_pay,
    list_payable,
    list_project_invoices,
    lock_invoice,
    mark_paid,
)

__all__ = [
    "FeeBreakdown",
    "MarkPaidResult",
    "PayableInvoice",
    "compute_fee",
    "ensure_balance_invoice",
    "evaluate_can_pay",
    "format_cents",
    "list_payable",
    "list_project_invoices",
    "lock_invoice",
    "mark_paid",
    "round_half_up_cents",
]
