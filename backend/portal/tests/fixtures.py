from __future__ import annotations

import hashlib
import hmac
import time

from portal.models import Invoice, PaymentAttempt
from portal.tools.billing import compute_fee
from portal.tools.quotes import QuoteContact, consume_token, create_quote, price_quote

CONTACT_EMAIL = "jordan@example.com"


def make_quote(email: str = CONTACT_EMAIL, service_type: str = "lawn-care", customer_id: str = ""):
    return create_quote(
        QuoteContact(name="Jordan Rivera", email=email, phone="555-0100", address="12 Elm Street"),
        service_type=service_type,
        description="Weekly mowing and edging",
        customer_id=customer_id,
    )


def make_priced_quote(amount_cents: int = 30_000, **kwargs):
    quote = make_quote(**kwargs)
    return price_quote(quote.public_id, amount_cents)


def make_project(amount_cents: int = 30_000, **kwargs):
    priced = make_priced_quote(amount_cents, **kwargs)
    return consume_token(priced.token.token)


def make_attempt(invoice: Invoice, session_id: str = "cs_test_1", payer_kind: str = "guest") -> PaymentAttempt:
    fee = compute_fee(invoice.amount_cents)
    return PaymentAttempt.objects.create(
        invoice=invoice,
        gateway_session_id=session_id,
        amount_cents=fee.amount_cents,
        fee_cents=fee.fee_cents,
        total_charged_cents=fee.total_cents,
        idempotency_key=f"key-{session_id}",
        payer_kind=payer_kind,
        payer_reference=invoice.project.quote.contact_email,
    )


def sign_webhook(payload: str, secret: str = "whsec_test_portal", timestamp: int | None = None) -> str:
    """Build a Stripe-Signature header the way Stripe signs webhook payloads."""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signature = hmac.new(
        secret.encode("utf-8"),
        f"{timestamp}.{payload}".encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()
    return f"t={timestamp},v1={signature}"
