from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from django.db import transaction
from django.utils import timezone

from ..models import Invoice, PaymentAttempt
from ..tools.billing.ledger import lock_invoice, mark_paid
from ..tools.email import send_payment_failed_emails, send_payment_receipt_email
from ..tools.errors import UnknownAttempt
from .helpers import session_amount_total, session_failure_reason

logger = logging.getLogger(__name__)

CHECKOUT_COMPLETED = "checkout.session.completed"
CHECKOUT_ASYNC_SUCCEEDED = "checkout.session.async_payment_succeeded"
CHECKOUT_ASYNC_FAILED = "checkout.session.async_payment_failed"
CHECKOUT_EXPIRED = "checkout.session.expired"

OUTCOME_SUCCEEDED = "succeeded"
OUTCOME_FAILED = "failed"
OUTCOME_EXPIRED = "expired"
OUTCOME_PENDING = "pending"


@dataclass(frozen=True)
class ReconcileResult:
    outcome: str
    attempt: PaymentAttempt
    changed: bool = True


def outcome_for_event(event_type: str, session: dict[str, Any]) -> str | None:
    if event_type == CHECKOUT_COMPLETED:
        return OUTCOME_SUCCEEDED if session.get("payment_status") == "paid" else OUTCOME_PENDING
    if event_type == CHECKOUT_ASYNC_SUCCEEDED:
        return OUTCOME_SUCCEEDED
    if event_type == CHECKOUT_ASYNC_FAILED:
        return OUTCOME_FAILED
    if event_type == CHECKOUT_EXPIRED:
        return OUTCOME_EXPIRED
    return None


def _lock_attempt(session: dict[str, Any]) -> PaymentAttempt:
    session_id = str(session.get("id") or "").strip()
    if not session_id:
        raise UnknownAttempt("Checkout session id is missing.")
    try:
        return PaymentAttempt.objects.select_for_update().get(gateway_session_id=session_id)
    except PaymentAttempt.DoesNotExist as exc:
        raise UnknownAttempt(f"No payment attempt for session {session_id}.") from exc


def _apply_success(attempt: PaymentAttempt, session: dict[str, Any]) -> ReconcileResult:
    invoice = lock_invoice(attempt.invoice_id)
    now = timezone.now()

    if invoice.status == Invoice.Status.PAID and invoice.paid_by_attempt_id != attempt.pk:
        attempt.status = PaymentAttempt.Status.FAILED
        attempt.failure_reason = "invoice_already_settled"
        attempt.raw_payload = session
        attempt.save(update_fields=["status", "failure_reason", "raw_payload", "updated_at"])
        logger.error(
            "Payment attempt %s succeeded at the gateway but invoice %s was already settled by attempt %s; "
            "manual refund review required",
            attempt.public_id,
            invoice.public_id,
            invoice.paid_by_attempt_id,
        )
        return ReconcileResult(outcome="conflict", attempt=attempt)

    amount_total = session_amount_total(session)
    if amount_total is not None and amount_total != attempt.total_charged_cents:
        logger.warning(
            "Gateway amount %s differs from attempt %s total %s",
            amount_total,
            attempt.public_id,
            attempt.total_charged_cents,
        )

    attempt.status = PaymentAttempt.Status.SUCCEEDED
    attempt.succeeded_at = now
    attempt.failure_reason = ""
    attempt.raw_payload = session
    attempt.save(update_fields=["status", "succeeded_at", "failure_reason", "raw_payload", "updated_at"])
    mark_paid(invoice.pk, attempt, paid_at=now)

    transaction.on_commit(lambda: send_payment_receipt_email(attempt))
    return ReconcileResult(outcome=OUTCOME_SUCCEEDED, attempt=attempt)


def _apply_failure(attempt: PaymentAttempt, outcome: str, event_type: str, session: dict[str, Any]) -> ReconcileResult:
    if attempt.status != PaymentAttempt.Status.CREATED:
        return ReconcileResult(outcome=outcome, attempt=attempt, changed=False)

    attempt.status = PaymentAttempt.Status.FAILED if outcome == OUTCOME_FAILED else PaymentAttempt.Status.EXPIRED
    attempt.failure_reason = session_failure_reason(event_type, session)
    attempt.raw_payload = session
    attempt.save(update_fields=["status", "failure_reason", "raw_payload", "updated_at"])
    logger.info("Payment attempt %s marked %s (%s)", attempt.public_id, attempt.status, attempt.failure_reason)

    if outcome == OUTCOME_FAILED:
        transaction.on_commit(lambda: send_payment_failed_emails(attempt))
    return ReconcileResult(outcome=outcome, attempt=attempt)


def reconcile_checkout_session(event_type: str, session: dict[str, Any]) -> ReconcileResult:
    """Apply one checkout session event to local state exactly once."""
    outcome = outcome_for_event(event_type, session)

    with transaction.atomic():
        attempt = _lock_attempt(session)

        if attempt.status == PaymentAttempt.Status.SUCCEEDED:
            logger.info("Duplicate %s for already settled attempt %s", event_type, attempt.public_id)
            return ReconcileResult(outcome="duplicate", attempt=attempt, changed=False)

        if outcome == OUTCOME_SUCCEEDED:
            return _apply_success(attempt, session)

        if outcome in (OUTCOME_FAILED, OUTCOME_EXPIRED):
            return _apply_failure(attempt, outcome, event_type, session)

        attempt.raw_payload = session
        attempt.save(update_fields=["raw_payload", "updated_at"])
        logger.info("Checkout session for attempt %s completed but payment is still pending", attempt.public_id)
        return ReconcileResult(outcome=OUTCOME_PENDING, attempt=attempt, changed=False)


EVENT_HANDLERS: dict[str, Callable[[str, dict[str, Any]], ReconcileResult]] = {
    CHECKOUT_COMPLETED: reconcile_checkout_session,
    CHECKOUT_ASYNC_SUCCEEDED: reconcile_checkout_session,
    CHECKOUT_ASYNC_FAILED: reconcile_checkout_session,
    CHECKOUT_EXPIRED: reconcile_checkout_session,
}
