from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from ...models import AcceptanceToken, Invoice, Project, Quote
from ..errors import TokenAlreadyConsumed, TokenExpired, TokenNotFound
from ..projects.factory import DepositPolicy, compute_deposit_cents, materialize, resolve_deposit_policy
from .store import decline_locked_quote, expire_if_stale

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


@dataclass(frozen=True)
class QuoteDetails:
    quote_id: str
    contact_name: str
    service_type: str
    service_name: str
    description: str
    amount_cents: int
    deposit_amount_cents: int
    deposit_required: bool
    quote_notes: str
    timeline: str
    terms: str
    valid_until: datetime | None
    expires_at: datetime


@dataclass(frozen=True)
class AcceptanceResult:
    quote: Quote
    project: Project
    invoices: list[Invoice]

    @property
    def deposit_invoice(self) -> Invoice:
        return next(invoice for invoice in self.invoices if invoice.invoice_type == Invoice.InvoiceType.DEPOSIT)


def _mask(token: str) -> str:
    return f"{token[:6]}..." if token else ""


def issue_token(quote: Quote) -> AcceptanceToken:
    """Mint a fresh token for a quoted quote, revoking any earlier unconsumed ones."""
    now = timezone.now()
    revoked = AcceptanceToken.objects.filter(
        quote=quote,
        consumed_at__isnull=True,
        revoked_at__isnull=True,
    ).update(revoked_at=now)
    if revoked:
        logger.info("Revoked %s earlier acceptance token(s) for quote %s", revoked, quote.public_id)

    expires_at = now + timedelta(days=settings.PORTAL_ACCEPTANCE_TOKEN_TTL_DAYS)
    if quote.valid_until and quote.valid_until < expires_at:
        expires_at = quote.valid_until

    token = AcceptanceToken(token=secrets.token_hex(TOKEN_BYTES), quote=quote, expires_at=expires_at)
    token.save()
    return token


def _lookup(token: str, for_update: bool = False) -> AcceptanceToken:
    value = (token or "").strip()
    if not value:
        raise TokenNotFound()

    queryset = AcceptanceToken.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    try:
        return queryset.get(token=value)
    except AcceptanceToken.DoesNotExist as exc:
        raise TokenNotFound() from exc


def _ensure_usable(record: AcceptanceToken, quote: Quote) -> None:
    if record.revoked_at is not None:
        raise TokenNotFound()
    if record.is_consumed or quote.status == Quote.Status.ACCEPTED:
        raise TokenAlreadyConsumed()
    if quote.status == Quote.Status.DECLINED:
        raise TokenNotFound()
    if record.is_expired or quote.effective_status == Quote.Status.EXPIRED:
        raise TokenExpired()
    if quote.status != Quote.Status.QUOTED:
        raise TokenNotFound()


def validate_token(token: str) -> QuoteDetails:
    """Read-only preview of the quote behind an acceptance token."""
    record = _lookup(token)
    quote = record.quote
    _ensure_usable(record, quote)

    policy = resolve_deposit_policy(quote.service_type)
    return QuoteDetails(
        quote_id=str(quote.public_id),
        contact_name=quote.contact_name,
        service_type=quote.service_type,
        service_name=quote.service_label,
        description=quote.description,
        amount_cents=quote.quoted_amount_cents,
        deposit_amount_cents=compute_deposit_cents(quote.quoted_amount_cents, policy),
        deposit_required=policy.required,
        quote_notes=quote.quote_notes,
        timeline=quote.timeline,
        terms=quote.terms,
        valid_until=quote.valid_until,
        expires_at=record.expires_at,
    )


def _claim(token: str) -> tuple[AcceptanceToken, Quote]:
    """Lock and validate the token, then compare-and-set its consumed flag."""
    record = _lookup(token, for_update=True)
    quote = expire_if_stale(Quote.objects.select_for_update().get(pk=record.quote_id))
    _ensure_usable(record, quote)

    consumed_at = timezone.now()
    claimed = AcceptanceToken.objects.filter(
        pk=record.pk,
        consumed_at__isnull=True,
        revoked_at__isnull=True,
    ).update(consumed_at=consumed_at)
    if claimed != 1:
        raise TokenAlreadyConsumed()

    record.consumed_at = consumed_at
    return record, quote


def consume_token(token: str, deposit_policy: DepositPolicy | None = None) -> AcceptanceResult:
    with transaction.atomic():
        record, quote = _claim(token)

        quote.status = Quote.Status.ACCEPTED
        quote.accepted_at = record.consumed_at
        quote.save(update_fields=["status", "accepted_at", "updated_at"])

        project = materialize(quote, deposit_policy or resolve_deposit_policy(quote.service_type))
        invoices = list(project.invoices.order_by("created_at", "id"))

    logger.info("Quote %s accepted with token %s", quote.public_id, _mask(record.token))
    return AcceptanceResult(quote=quote, project=project, invoices=invoices)


def decline_with_token(token: str) -> Quote:
    with transaction.atomic():
        record, quote = _claim(token)
        quote = decline_locked_quote(quote)

    logger.info("Quote %s declined by customer with token %s", quote.public_id, _mask(record.token))
    return quote
