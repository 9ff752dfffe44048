from __future__ import annotations

import json
import logging
from html import escape
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from django.conf import settings

from ...models import AcceptanceToken, Invoice, PaymentAttempt, Project, Quote
from ..billing.display import format_cents

logger = logging.getLogger(__name__)

RESEND_EMAILS_ENDPOINT = "https://api.resend.com/emails"
EMAIL_WRAPPER = '<div style="font-family: Arial, sans-serif; line-height: 1.5; color: #1f2937;">{body}</div>'


def _normalize_text(value: object) -> str:
    return str(value or "").strip()


def _normalize_url(value: object) -> str:
    return _normalize_text(value).rstrip("/")


def _normalize_email_candidates(values: list[str]) -> list[str]:
    deduped: list[str] = []
    seen: set[str] = set()
    for raw in values:
        candidate = _normalize_text(raw).lower()
        if not candidate or candidate in seen:
            continue
        seen.add(candidate)
        deduped.append(candidate)
    return deduped


def resend_is_configured() -> bool:
    api_key = _normalize_text(getattr(settings, "RESEND_API_KEY", ""))
    sender = _normalize_text(getattr(settings, "RESEND_FROM_EMAIL", ""))
    return bool(api_key and sender)


def site_url(path: str = "") -> str:
    base = _normalize_url(getattr(settings, "PORTAL_SITE_URL", ""))
    return f"{base}{path}" if base else ""


def acceptance_url(token: AcceptanceToken | str) -> str:
    value = token.token if isinstance(token, AcceptanceToken) else _normalize_text(token)
    return site_url(f"/portal/quotes/accept?token={value}")


def _send_resend_email(
    *,
    recipients: list[str],
    subject: str,
    html_body: str,
    text_body: str,
    tags: dict[str, str] | None = None,
    idempotency_key: str | None = None,
) -> bool:
    if not recipients:
        logger.debug("Skipping Resend email with no recipients.")
        return False

    if not resend_is_configured():
        logger.debug("Skipping Resend email because API key or sender is missing.")
        return False

    payload: dict[str, object] = {
        "from": _normalize_text(getattr(settings, "RESEND_FROM_EMAIL", "")),
        "to": recipients,
        "subject": subject,
        "html": html_body,
        "text": text_body,
    }

    reply_to = _normalize_text(getattr(settings, "RESEND_REPLY_TO_EMAIL", ""))
    if reply_to:
        payload["reply_to"] = [reply_to]

    if tags:
        payload["tags"] = [
            {"name": _normalize_text(name), "value": _normalize_text(value)}
            for name, value in tags.items()
            if _normalize_text(name) and _normalize_text(value)
        ]

    request_headers = {
        "Authorization": f"Bearer {_normalize_text(getattr(settings, 'RESEND_API_KEY', ''))}",
        "Content-Type": "application/json",
    }
    if idempotency_key:
        request_headers["Idempotency-Key"] = idempotency_key

    request = Request(
        RESEND_EMAILS_ENDPOINT,
        data=json.dumps(payload).encode("utf-8"),
        headers=request_headers,
        method="POST",
    )

    try:
        with urlopen(request, timeout=int(getattr(settings, "RESEND_TIMEOUT_SECONDS", 10))) as response:
            status = int(getattr(response, "status", 200))
            body = response.read().decode("utf-8", errors="ignore")
    except HTTPError as exc:
        error_body = exc.read().decode("utf-8", errors="ignore")
        logger.warning("Resend request failed with status %s: %s", exc.code, error_body)
        return False
    except URLError as exc:
        logger.warning("Resend request failed: %s", exc.reason)
        return False
    except Exception:
        logger.exception("Unexpected error while sending email through Resend.")
        return False

    if status < 200 or status >= 300:
        logger.warning("Resend returned unexpected status %s: %s", status, body)
        return False

    logger.info("Resend accepted email request: %s", body)
    return True


def send_quote_offer_email(quote: Quote, token: AcceptanceToken) -> bool:
    recipients = _normalize_email_candidates([quote.contact_email])
    amount = format_cents(quote.quoted_amount_cents)
    link = acceptance_url(token)
    valid_until = quote.valid_until.date().isoformat() if quote.valid_until else ""

    text_sections = [
        f"Hi {quote.contact_name},",
        "",
        f"Your quote for {quote.service_label} is ready: {amount}.",
    ]
    if quote.timeline:
        text_sections.append(f"Estimated timeline: {quote.timeline}")
    if quote.quote_notes:
        text_sections.extend(["", quote.quote_notes])
    if valid_until:
        text_sections.extend(["", f"This quote is valid until {valid_until}."])
    if link:
        text_sections.extend(["", f"Review and accept: {link}"])

    html_body = EMAIL_WRAPPER.format(
        body=(
            f"<h2 style='margin: 0 0 12px;'>Your quote is ready</h2>"
            f"<p>Hi {escape(quote.contact_name)},</p>"
            f"<p><strong>{escape(quote.service_label)}</strong>: {escape(amount)}</p>"
            + (f"<p><strong>Timeline:</strong> {escape(quote.timeline)}</p>" if quote.timeline else "")
            + (f"<p>{escape(quote.quote_notes)}</p>" if quote.quote_notes else "")
            + (f"<p>Valid until {escape(valid_until)}.</p>" if valid_until else "")
            + (f"<p><a href='{escape(link)}'>Review and accept your quote</a></p>" if link else "")
        )
    )

    return _send_resend_email(
        recipients=recipients,
        subject=f"Your {quote.service_label} quote: {amount}",
        html_body=html_body,
        text_body="\n".join(text_sections).strip(),
        tags={"event": "quote_offer", "source": "portal"},
        idempotency_key=f"quote-offer-{token.pk}",
    )


def send_deposit_invoice_email(project: Project, invoice: Invoice) -> bool:
    recipients = _normalize_email_candidates([project.quote.contact_email])
    amount = format_cents(invoice.amount_cents, invoice.currency)
    pay_link = site_url("/pay")

    text_sections = [
        f"Hi {project.quote.contact_name},",
        "",
        f"Thanks for accepting your {project.service_label} quote.",
        f"{invoice.invoice_type_display}: {amount}, due {invoice.due_date.isoformat()}.",
    ]
    if pay_link:
        text_sections.extend(["", f"Pay online: {pay_link}"])

    html_body = EMAIL_WRAPPER.format(
        body=(
            "<h2 style='margin: 0 0 12px;'>Your project is booked</h2>"
            f"<p>Thanks for accepting your {escape(project.service_label)} quote.</p>"
            f"<p><strong>{escape(invoice.invoice_type_display)}:</strong> {escape(amount)}"
            f"<br /><strong>Due:</strong> {escape(invoice.due_date.isoformat())}</p>"
            + (f"<p><a href='{escape(pay_link)}'>Pay online</a></p>" if pay_link else "")
        )
    )

    return _send_resend_email(
        recipients=recipients,
        subject=f"Invoice for your {project.service_label} project",
        html_body=html_body,
        text_body="\n".join(text_sections).strip(),
        tags={"event": "invoice_issued", "source": "portal"},
        idempotency_key=f"invoice-issued-{invoice.public_id}",
    )


def send_payment_receipt_email(attempt: PaymentAttempt) -> bool:
    invoice = attempt.invoice
    project = invoice.project
    recipients = _normalize_email_candidates([project.quote.contact_email])
    total = format_cents(attempt.total_charged_cents, attempt.currency)

    text_body = "\n".join(
        [
            f"Hi {project.quote.contact_name},",
            "",
            f"We received your payment of {total} for {invoice.invoice_type_display.lower()}"
            f" on your {project.service_label} project.",
            f"Invoice amount: {format_cents(attempt.amount_cents, attempt.currency)}",
            f"Processing fee: {format_cents(attempt.fee_cents, attempt.currency)}",
            f"Reference: {attempt.public_id}",
        ]
    )
    html_body = EMAIL_WRAPPER.format(
        body=(
            "<h2 style='margin: 0 0 12px;'>Payment received</h2>"
            f"<p>We received your payment of <strong>{escape(total)}</strong>.</p>"
            f"<p>Invoice amount: {escape(format_cents(attempt.amount_cents, attempt.currency))}"
            f"<br />Processing fee: {escape(format_cents(attempt.fee_cents, attempt.currency))}"
            f"<br />Reference: {escape(str(attempt.public_id))}</p>"
        )
    )

    return _send_resend_email(
        recipients=recipients,
        subject=f"Payment received: {total}",
        html_body=html_body,
        text_body=text_body,
        tags={"event": "payment_receipt", "source": "portal"},
        idempotency_key=f"payment-receipt-{attempt.public_id}",
    )


def send_payment_failed_emails(attempt: PaymentAttempt) -> bool:
    """Tell the payer their payment failed and alert the business owner."""
    invoice = attempt.invoice
    project = invoice.project
    amount = format_cents(attempt.total_charged_cents, attempt.currency)
    reason = attempt.failure_reason or attempt.status

    customer_sent = _send_resend_email(
        recipients=_normalize_email_candidates([project.quote.contact_email]),
        subject="Your payment could not be completed",
        html_body=EMAIL_WRAPPER.format(
            body=(
                "<h2 style='margin: 0 0 12px;'>Payment not completed</h2>"
                f"<p>Your payment of {escape(amount)} did not go through. "
                "Your invoice is still open and you can try again at any time.</p>"
            )
        ),
        text_body=(
            f"Your payment of {amount} did not go through. "
            "Your invoice is still open and you can try again at any time."
        ),
        tags={"event": "payment_failed", "source": "portal"},
        idempotency_key=f"payment-failed-{attempt.public_id}",
    )

    owner_recipients = _normalize_email_candidates([getattr(settings, "NOTIFICATION_EMAIL", "")])
    _send_resend_email(
        recipients=owner_recipients,
        subject=f"Payment failed for invoice {invoice.public_id}",
        html_body=EMAIL_WRAPPER.format(
            body=(
                f"<p>Payment attempt {escape(str(attempt.public_id))} for "
                f"{escape(project.quote.contact_email)} ({escape(amount)}) ended as "
                f"<strong>{escape(reason)}</strong>.</p>"
            )
        ),
        text_body=(
            f"Payment attempt {attempt.public_id} for {project.quote.contact_email} "
            f"({amount}) ended as {reason}."
        ),
        tags={"event": "payment_failed_owner_alert", "source": "portal"},
        idempotency_key=f"payment-failed-owner-{attempt.public_id}",
    )
    return customer_sent


def send_project_scheduled_email(project: Project) -> bool:
    if not project.scheduled_date:
        return False

    quote = project.quote
    scheduled = project.scheduled_date
    when = f"{scheduled:%A, %B} {scheduled.day}"
    recipients = _normalize_email_candidates([quote.contact_email])
    deposit = project.invoices.filter(
        invoice_type=Invoice.InvoiceType.DEPOSIT,
        status=Invoice.Status.PENDING,
    ).first()
    pay_link = site_url("/pay")

    text_sections = [
        f"Hi {quote.contact_name},",
        "",
        f"Your {project.service_label} project is scheduled for {when}.",
    ]
    html_sections = [
        "<h2 style='margin: 0 0 12px;'>Project scheduled</h2>",
        f"<p>Your <strong>{escape(project.service_label)}</strong> project is scheduled for "
        f"<strong>{escape(when)}</strong>.</p>",
    ]
    if project.description:
        text_sections.append(f"Details: {project.description}")
        html_sections.append(f"<p><strong>Details:</strong> {escape(project.description)}</p>")
    if deposit is not None:
        amount = format_cents(deposit.amount_cents, deposit.currency)
        text_sections.extend(["", f"Deposit required: {amount}, due {deposit.due_date.isoformat()}."])
        html_sections.append(
            f"<p><strong>Deposit required:</strong> {escape(amount)}"
            f"<br /><strong>Due:</strong> {escape(deposit.due_date.isoformat())}</p>"
        )
        if pay_link:
            text_sections.append(f"Pay online: {pay_link}")
            html_sections.append(f"<p><a href='{escape(pay_link)}'>Pay deposit</a></p>")

    return _send_resend_email(
        recipients=recipients,
        subject=f"Your {project.service_label} project is scheduled",
        html_body=EMAIL_WRAPPER.format(body="".join(html_sections)),
        text_body="\n".join(text_sections).strip(),
        tags={"event": "project_scheduled", "source": "portal"},
        idempotency_key=f"project-scheduled-{project.public_id}-{scheduled.isoformat()}",
    )
