from .resend import (
    acceptance_url,
    resend_is_configured,
    send_deposit_invoice_email,
    send_payment_failed_emails,
    send_payment_receipt_email,
    send_project_scheduled_email,
    send_quote_offer_email,
)

__all__ = [
    "acceptance_url",
    "resend_is_configured",
    "send_deposit_invoice_email",
    "send_payment_failed_emails",
    "send_payment_receipt_email",
    "send_project_scheduled_email",
    "send_quote_offer_email",
]
