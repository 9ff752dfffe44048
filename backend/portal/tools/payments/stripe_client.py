from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any

import stripe
from django.conf import settings

from ..errors import GatewayUnavailable

logger = logging.getLogger(__name__)

RETRYABLE_ERRORS = (stripe.APIConnectionError, stripe.RateLimitError, stripe.APIError)


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


def stripe_enabled() -> bool:
    return bool(getattr(settings, "STRIPE_SECRET_KEY", ""))


def _configure_stripe() -> None:
    if not stripe_enabled():
        logger.error("Stripe checkout requested but STRIPE_SECRET_KEY is not configured.")
        raise GatewayUnavailable()
    stripe.api_key = settings.STRIPE_SECRET_KEY
    # create_checkout_session owns the retry loop.
    stripe.max_network_retries = 0


def _line_item(name: str, amount_cents: int, currency: str) -> dict[str, Any]:
    return {
        "price_data": {
            "currency": currency.lower(),
            "unit_amount": amount_cents,
            "product_data": {"name": name},
        },
        "quantity": 1,
    }


def create_checkout_session(
    *,
    idempotency_key: str,
    description: str,
    amount_cents: int,
    fee_cents: int,
    currency: str,
    success_url: str,
    cancel_url: str,
    customer_email: str = "",
    client_reference_id: str = "",
    metadata: dict[str, str] | None = None,
) -> CheckoutSession:
    _configure_stripe()

    line_items = [_line_item(description, amount_cents, currency)]
    if fee_cents:
        line_items.append(_line_item("Card processing fee", fee_cents, currency))

    params: dict[str, Any] = {
        "mode": "payment",
        "line_items": line_items,
        "success_url": success_url,
        "cancel_url": cancel_url,
        "metadata": metadata or {},
        "payment_intent_data": {"metadata": metadata or {}},
    }
    if customer_email:
        params["customer_email"] = customer_email
    if client_reference_id:
        params["client_reference_id"] = client_reference_id

    max_retries = max(int(settings.STRIPE_MAX_RETRIES), 0)
    base_delay = float(settings.STRIPE_RETRY_BASE_DELAY_SECONDS)

    for attempt in range(max_retries + 1):
        try:
            session = stripe.checkout.Session.create(idempotency_key=idempotency_key, **params)
        except RETRYABLE_ERRORS as exc:
            if attempt >= max_retries:
                logger.error(
                    "Stripe checkout session failed after %s attempt(s): %s",
                    attempt + 1,
                    exc.__class__.__name__,
                )
                raise GatewayUnavailable() from exc
            delay = base_delay * (2**attempt)
            logger.warning(
                "Transient Stripe error (%s), retrying in %.2fs",
                exc.__class__.__name__,
                delay,
            )
            time.sleep(delay)
        except stripe.StripeError as exc:
            logger.exception("Stripe rejected checkout session creation.")
            raise GatewayUnavailable() from exc
        else:
            return CheckoutSession(id=str(session["id"]), url=str(session["url"] or ""))

    raise GatewayUnavailable()
