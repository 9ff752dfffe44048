from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from ...models import AcceptanceToken, Quote, ServiceType
from ..errors import InvalidTransition

logger = logging.getLogger(__name__)

PRICEABLE_STATUSES = (Quote.Status.PENDING, Quote.Status.QUOTED)


@dataclass(frozen=True)
class QuoteContact:
    name: str
    email: str
    phone: str = ""
    address: str = ""


@dataclass(frozen=True)
class PricedQuote:
    quote: Quote
    token: AcceptanceToken


def _quote_queryset(for_update: bool = False):
    queryset = Quote.objects.all()
    if for_update:
        queryset = queryset.select_for_update()
    return queryset


def _load_quote(quote_id: Any, for_update: bool = False) -> Quote:
    queryset = _quote_queryset(for_update=for_update)
    try:
        if isinstance(quote_id, Quote):
            return queryset.get(pk=quote_id.pk)
        if isinstance(quote_id, int):
            return queryset.get(pk=quote_id)
        return queryset.get(public_id=UUID(str(quote_id)))
    except (Quote.DoesNotExist, ValueError) as exc:
        raise NotFound("Quote not found.") from exc


def expire_if_stale(quote: Quote) -> Quote:
    """Persist the lazy quoted -> expired transition once validity has passed."""
    if quote.status == Quote.Status.QUOTED and quote.is_past_validity:
        quote.status = Quote.Status.EXPIRED
        quote.quoted_amount_cents = None
        quote.save(update_fields=["status", "quoted_amount_cents", "updated_at"])
        logger.info("Quote %s expired (valid until %s)", quote.public_id, quote.valid_until)
    return quote


def create_quote(
    contact: QuoteContact,
    service_type: str,
    description: str = "",
    customer_id: str = "",
) -> Quote:
    if service_type not in ServiceType.values:
        raise ValidationError({"service_type": ["Unknown service type."]})

    quote = Quote(
        customer_id=customer_id or "",
        contact_name=contact.name,
        contact_email=contact.email,
        contact_phone=contact.phone,
        contact_address=contact.address,
        service_type=service_type,
        description=description,
        status=Quote.Status.PENDING,
    )
    quote.save()
    logger.info("Quote %s requested for %s", quote.public_id, service_type)
    return quote


def get_quote(quote_id: Any) -> Quote:
    with transaction.atomic():
        quote = _load_quote(quote_id, for_update=True)
        return expire_if_stale(quote)


def _resolve_valid_until(valid_until: datetime | None, now: datetime) -> datetime:
    if valid_until is None:
        return now + timedelta(days=settings.PORTAL_QUOTE_VALIDITY_DAYS)
    if timezone.is_naive(valid_until):
        valid_until = timezone.make_aware(valid_until)
    if valid_until <= now:
        raise ValidationError({"valid_until": ["Quote validity must be in the future."]})
    return valid_until


def _validate_amount(amount_cents: int) -> None:
    minimum = settings.PORTAL_QUOTE_MIN_AMOUNT_CENTS
    maximum = settings.PORTAL_QUOTE_MAX_AMOUNT_CENTS
    if amount_cents < minimum or amount_cents > maximum:
        raise ValidationError(
            {
                "amount_cents": [
                    f"Quote amount must be between {minimum} and {maximum} cents."
                ]
            }
        )


def price_quote(
    quote_id: Any,
    amount_cents: int,
    valid_until: datetime | None = None,
    notes: str = "",
    timeline: str = "",
    terms: str = "",
) -> PricedQuote:
    from .tokens import issue_token

    _validate_amount(amount_cents)
    now = timezone.now()
    resolved_valid_until = _resolve_valid_until(valid_until, now)

    with transaction.atomic():
        quote = expire_if_stale(_load_quote(quote_id, for_update=True))
        if quote.status not in PRICEABLE_STATUSES:
            raise InvalidTransition(f"Cannot price a quote that is {quote.status}.")

        quote.status = Quote.Status.QUOTED
        quote.quoted_amount_cents = amount_cents
        quote.valid_until = resolved_valid_until
        quote.quoted_at = now
        quote.quote_notes = (notes or "").strip()
        quote.timeline = (timeline or "").strip()
        quote.terms = (terms or "").strip()
        quote.save()
        token = issue_token(quote)

    logger.info(
        "Quote %s priced at %s cents, valid until %s",
        quote.public_id,
        amount_cents,
        resolved_valid_until.isoformat(),
    )
    return PricedQuote(quote=quote, token=token)


def decline_locked_quote(quote: Quote) -> Quote:
    """Decline a quote whose row is already locked by the caller."""
    if quote.status != Quote.Status.QUOTED:
        raise InvalidTransition(f"Cannot decline a quote that is {quote.status}.")

    quote.status = Quote.Status.DECLINED
    quote.quoted_amount_cents = None
    quote.declined_at = timezone.now()
    quote.save(update_fields=["status", "quoted_amount_cents", "declined_at", "updated_at"])
    logger.info("Quote %s declined", quote.public_id)
    return quote


def decline_quote(quote_id: Any) -> Quote:
    with transaction.atomic():
        quote = expire_if_stale(_load_quote(quote_id, for_update=True))
        return decline_locked_quote(quote)


def status_condition(status: str) -> Q:
    """Filter on the status callers see, treating lapsed quoted rows as expired."""
    now = timezone.now()
    if status == Quote.Status.QUOTED:
        return Q(status=Quote.Status.QUOTED) & (Q(valid_until__isnull=True) | Q(valid_until__gte=now))
    if status == Quote.Status.EXPIRED:
        return Q(status=Quote.Status.EXPIRED) | Q(status=Quote.Status.QUOTED, valid_until__lt=now)
    return Q(status=status)


def list_quotes(status: str = "", service_type: str = "") -> QuerySet[Quote]:
    queryset = Quote.objects.all()
    if status:
        queryset = queryset.filter(status_condition(status))
    if service_type:
        queryset = queryset.filter(service_type=service_type)
    return queryset.order_by("-created_at", "-id")


def summarize_statuses(service_type: str = "") -> dict[str, int]:
    return {
        value: list_quotes(status=value, service_type=service_type).count()
        for value in Quote.Status.values
    }
