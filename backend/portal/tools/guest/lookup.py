from __future__ import annotations

import logging
from typing import Any

from django.utils import timezone

from ...models import Invoice
from ..billing.display import format_cents
from ..billing.fees import compute_fee
from ..billing.ledger import PayableInvoice, evaluate_can_pay

logger = logging.getLogger(__name__)


def _mask_email(email: str) -> str:
    local, _, domain = email.partition("@")
    return f"{local[:2]}***@{domain}" if domain else "***"


def serialize_payable_invoice(payable: PayableInvoice) -> dict[str, Any]:
    invoice = payable.invoice
    project = invoice.project
    fee = compute_fee(invoice.amount_cents)
    return {
        "id": str(invoice.public_id),
        "project_id": str(project.public_id),
        "invoice_type": invoice.invoice_type,
        "invoice_type_display": invoice.invoice_type_display,
        "service_type": project.service_type,
        "service_name": project.service_label,
        "amount_cents": invoice.amount_cents,
        "amount_display": format_cents(invoice.amount_cents, invoice.currency),
        "currency": invoice.currency,
        "status": invoice.effective_status,
        "status_display": invoice.status_display,
        "due_date": invoice.due_date.isoformat(),
        "paid_at": invoice.paid_at.isoformat() if invoice.paid_at else None,
        "can_pay": payable.can_pay,
        "fee_cents": fee.fee_cents,
        "total_with_fee_cents": fee.total_cents,
        "fee_disclosure": fee.disclosure,
    }


def lookup_by_email(email: str) -> dict[str, Any]:
    """Outstanding invoices for a contact email. Unknown emails get the same empty shape."""
    normalized = (email or "").strip().lower()
    result: dict[str, Any] = {"customer_name": None, "invoices": []}
    if not normalized:
        return result

    today = timezone.localdate()
    invoices = (
        Invoice.objects.select_related("project", "project__quote")
        .filter(
            project__quote__contact_email=normalized,
            status__in=Invoice.OPEN_STATUSES,
        )
        .order_by("due_date", "created_at")
    )
    payables = [evaluate_can_pay(invoice) for invoice in invoices]

    if payables:
        latest_quote = max((item.invoice.project.quote for item in payables), key=lambda quote: quote.created_at)
        result["customer_name"] = latest_quote.contact_name
        result["invoices"] = [serialize_payable_invoice(item) for item in payables]

    overdue = sum(1 for item in payables if item.invoice.due_date < today)
    logger.info(
        "Guest lookup for %s returned %s invoice(s), %s overdue",
        _mask_email(normalized),
        len(payables),
        overdue,
    )
    return result
