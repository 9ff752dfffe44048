from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound

from ...models import Invoice, PaymentAttempt, Project
from ..errors import InvalidTransition, InvoiceNotPayable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PayableInvoice:
    invoice: Invoice
    can_pay: bool
    blocked_reason: str = ""


@dataclass(frozen=True)
class MarkPaidResult:
    invoice: Invoice
    changed: bool
    balance_invoice: Invoice | None = None


def _invoice_lookup(invoice_id: Any) -> dict[str, Any]:
    if isinstance(invoice_id, Invoice):
        return {"pk": invoice_id.pk}
    if isinstance(invoice_id, int):
        return {"pk": invoice_id}
    try:
        return {"public_id": UUID(str(invoice_id))}
    except ValueError as exc:
        raise NotFound("Invoice not found.") from exc


def _attempt_pk(payment_attempt_id: Any) -> int:
    if isinstance(payment_attempt_id, PaymentAttempt):
        return payment_attempt_id.pk
    return int(payment_attempt_id)


def lock_invoice(invoice_id: Any) -> Invoice:
    """Lock the invoice row and its project row. Must be called inside an atomic block."""
    try:
        invoice = Invoice.objects.select_for_update().get(**_invoice_lookup(invoice_id))
    except Invoice.DoesNotExist as exc:
        raise NotFound("Invoice not found.") from exc
    invoice.project = Project.objects.select_for_update().select_related("quote").get(pk=invoice.project_id)
    return invoice


def evaluate_can_pay(invoice: Invoice) -> PayableInvoice:
    project = invoice.project
    if invoice.effective_status not in Invoice.OPEN_STATUSES:
        return PayableInvoice(invoice=invoice, can_pay=False, blocked_reason="already_paid")
    if project.status == Project.Status.CANCELLED:
        return PayableInvoice(invoice=invoice, can_pay=False, blocked_reason="project_cancelled")
    if (
        invoice.invoice_type == Invoice.InvoiceType.BALANCE
        and project.deposit_required
        and not project.deposit_paid
    ):
        return PayableInvoice(invoice=invoice, can_pay=False, blocked_reason="deposit_unpaid")
    return PayableInvoice(invoice=invoice, can_pay=True)


def list_payable(invoice_id: Any) -> PayableInvoice:
    try:
        invoice = Invoice.objects.select_related("project", "project__quote").get(**_invoice_lookup(invoice_id))
    except Invoice.DoesNotExist as exc:
        raise NotFound("Invoice not found.") from exc
    return evaluate_can_pay(invoice)


def list_project_invoices(project: Project) -> list[PayableInvoice]:
    invoices = project.invoices.select_related("project", "project__quote").order_by("created_at", "id")
    return [evaluate_can_pay(invoice) for invoice in invoices]


def balance_due_date(project: Project) -> date:
    if project.scheduled_date:
        return project.scheduled_date
    return timezone.localdate() + timedelta(days=settings.PORTAL_BALANCE_DUE_DAYS)


def ensure_balance_invoice(project: Project) -> Invoice | None:
    """Create the balance invoice once. Returns None when nothing remains to bill."""
    existing = project.invoices.filter(invoice_type=Invoice.InvoiceType.BALANCE).first()
    if existing is not None:
        return existing
    if project.balance_amount_cents <= 0:
        return None

    invoice = Invoice.objects.create(
        project=project,
        invoice_type=Invoice.InvoiceType.BALANCE,
        amount_cents=project.balance_amount_cents,
        currency=settings.STRIPE_CURRENCY.upper(),
        due_date=balance_due_date(project),
    )
    logger.info(
        "Balance invoice %s created for project %s (%s cents)",
        invoice.public_id,
        project.public_id,
        invoice.amount_cents,
    )
    return invoice


def mark_paid(invoice_id: Any, payment_attempt_id: Any, paid_at: datetime | None = None) -> MarkPaidResult:
    """The only path that moves an invoice to paid.

    Replaying the same attempt on an already-paid invoice is a no-op success.
    """
    attempt_pk = _attempt_pk(payment_attempt_id)
    paid_at = paid_at or timezone.now()

    with transaction.atomic():
        invoice = lock_invoice(invoice_id)
        project = invoice.project

        if invoice.status == Invoice.Status.PAID:
            if invoice.paid_by_attempt_id == attempt_pk:
                return MarkPaidResult(invoice=invoice, changed=False)
            raise InvoiceNotPayable("Invoice is already paid.")

        if (
            invoice.invoice_type == Invoice.InvoiceType.BALANCE
            and project.deposit_required
            and not project.deposit_paid
        ):
            raise InvalidTransition("Balance cannot be paid before the deposit.")

        invoice.status = Invoice.Status.PAID
        invoice.paid_at = paid_at
        invoice.paid_by_attempt_id = attempt_pk
        invoice.save(update_fields=["status", "paid_at", "paid_by_attempt", "updated_at"])

        balance_invoice = None
        if invoice.invoice_type == Invoice.InvoiceType.DEPOSIT:
            project.deposit_paid = True
            balance_invoice = ensure_balance_invoice(project)
            if balance_invoice is None:
                project.balance_paid = True
        else:
            project.balance_paid = True
        project.save(update_fields=["deposit_paid", "balance_paid", "updated_at"])

    logger.info(
        "Invoice %s (%s) marked paid by attempt %s",
        invoice.public_id,
        invoice.invoice_type,
        attempt_pk,
    )
    return MarkPaidResult(invoice=invoice, changed=True, balance_invoice=balance_invoice)
