from __future__ import annotations

import hashlib
import logging
from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.db import transaction
from rest_framework.exceptions import NotFound

from ...models import Invoice, PaymentAttempt
from ..billing.fees import FeeBreakdown, compute_fee, fee_disclosure
from ..billing.ledger import evaluate_can_pay, lock_invoice
from ..errors import InvoiceNotPayable
from .stripe_client import create_checkout_session

logger = logging.getLogger(__name__)

NOT_PAYABLE_MESSAGES = {
    "already_paid": "This invoice has already been paid.",
    "project_cancelled": "This project was cancelled. Please contact us about this invoice.",
    "deposit_unpaid": "The deposit must be paid before the balance.",
}


@dataclass(frozen=True)
class PayerContext:
    kind: str
    customer_id: str = ""
    email: str = ""

    @classmethod
    def for_customer(cls, customer_id: str, email: str = "") -> PayerContext:
        return cls(
            kind=PaymentAttempt.PayerKind.CUSTOMER,
            customer_id=(customer_id or "").strip(),
            email=(email or "").strip().lower(),
        )

    @classmethod
    def for_guest(cls, email: str) -> PayerContext:
        return cls(kind=PaymentAttempt.PayerKind.GUEST, email=(email or "").strip().lower())

    @property
    def reference(self) -> str:
        if self.kind == PaymentAttempt.PayerKind.CUSTOMER:
            return self.customer_id
        return self.email


@dataclass(frozen=True)
class SessionResult:
    session_id: str
    redirect_url: str
    total_charged_cents: int
    fee: FeeBreakdown
    attempt: PaymentAttempt
    reused: bool = False


def derive_idempotency_key(invoice: Invoice, payer: PayerContext, nonce: str = "", generation: int = 0) -> str:
    parts = [str(invoice.public_id), str(payer.kind), payer.reference, (nonce or "").strip()]
    if generation:
        parts.append(str(generation))
    return hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()


def payer_may_pay(invoice: Invoice, payer: PayerContext) -> bool:
    quote = invoice.project.quote
    if payer.kind == PaymentAttempt.PayerKind.CUSTOMER:
        if payer.customer_id and quote.customer_id and payer.customer_id == quote.customer_id:
            return True
        return bool(payer.email and payer.email == quote.contact_email)
    return bool(payer.email and payer.email == quote.contact_email)


def _resolve_attempt_key(invoice: Invoice, payer: PayerContext, nonce: str) -> tuple[str, PaymentAttempt | None]:
    """Return the key for this request and the live attempt already holding it, if any.

    Keys held by finished or abandoned attempts are skipped by bumping a generation counter.
    """
    generation = 0
    while True:
        key = derive_idempotency_key(invoice, payer, nonce, generation)
        existing = PaymentAttempt.objects.filter(idempotency_key=key).first()
        if existing is None:
            return key, None
        if existing.status == PaymentAttempt.Status.CREATED and not existing.is_abandoned:
            return key, existing
        generation += 1


def _return_urls(payer: PayerContext) -> tuple[str, str]:
    base = settings.PORTAL_SITE_URL.rstrip("/")
    if payer.kind == PaymentAttempt.PayerKind.CUSTOMER:
        return (
            f"{base}/portal/invoices/success?session_id={{CHECKOUT_SESSION_ID}}",
            f"{base}/portal/invoices",
        )
    return f"{base}/pay/success?session_id={{CHECKOUT_SESSION_ID}}", f"{base}/pay"


def create_session(invoice_id: Any, payer: PayerContext, attempt_nonce: str = "") -> SessionResult:
    """Open a gateway checkout session for an invoice.

    Never marks anything paid; the webhook reconciler settles the invoice.
    """
    with transaction.atomic():
        invoice = lock_invoice(invoice_id)
        if not payer_may_pay(invoice, payer):
            raise NotFound("Invoice not found.")

        payable = evaluate_can_pay(invoice)
        if not payable.can_pay:
            raise InvoiceNotPayable(NOT_PAYABLE_MESSAGES.get(payable.blocked_reason))

        key, existing = _resolve_attempt_key(invoice, payer, attempt_nonce)
        if existing is not None:
            logger.info("Reusing live payment attempt %s for invoice %s", existing.public_id, invoice.public_id)
            return SessionResult(
                session_id=existing.gateway_session_id,
                redirect_url=existing.checkout_url,
                total_charged_cents=existing.total_charged_cents,
                fee=FeeBreakdown(
                    amount_cents=existing.amount_cents,
                    fee_cents=existing.fee_cents,
                    total_cents=existing.total_charged_cents,
                    disclosure=fee_disclosure(existing.fee_cents),
                ),
                attempt=existing,
                reused=True,
            )

        fee = compute_fee(invoice.amount_cents)

        project = invoice.project
        success_url, cancel_url = _return_urls(payer)
        metadata = {
            "invoice_id": str(invoice.public_id),
            "project_id": str(project.public_id),
            "invoice_type": invoice.invoice_type,
            "payer_kind": str(payer.kind),
        }
        session = create_checkout_session(
            idempotency_key=key,
            description=f"{project.service_label} - {invoice.invoice_type_display}",
            amount_cents=invoice.amount_cents,
            fee_cents=fee.fee_cents,
            currency=invoice.currency,
            success_url=success_url,
            cancel_url=cancel_url,
            customer_email=payer.email or project.quote.contact_email,
            client_reference_id=str(invoice.public_id),
            metadata=metadata,
        )

        attempt = PaymentAttempt.objects.create(
            invoice=invoice,
            gateway_session_id=session.id,
            checkout_url=session.url,
            amount_cents=fee.amount_cents,
            fee_cents=fee.fee_cents,
            total_charged_cents=fee.total_cents,
            currency=invoice.currency,
            idempotency_key=key,
            payer_kind=payer.kind,
            payer_reference=payer.reference,
        )

    logger.info(
        "Payment attempt %s opened for invoice %s (%s cents incl. %s fee, payer %s)",
        attempt.public_id,
        invoice.public_id,
        attempt.total_charged_cents,
        attempt.fee_cents,
        payer.kind,
    )
    return SessionResult(
        session_id=session.id,
        redirect_url=session.url,
        total_charged_cents=fee.total_cents,
        fee=fee,
        attempt=attempt,
    )
