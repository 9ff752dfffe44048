from __future__ import annotations

import json
from typing import Any

import stripe
from django.conf import settings

from ..tools.errors import SignatureInvalid


def verify_stripe_event(payload: bytes, signature: str) -> dict[str, Any]:
    """Verify the Stripe-Signature header and return the parsed event payload."""
    signing_secret = getattr(settings, "STRIPE_WEBHOOK_SECRET", "")
    if not signing_secret:
        raise SignatureInvalid("STRIPE_WEBHOOK_SECRET is not configured.")
    if not signature:
        raise SignatureInvalid("Missing Stripe-Signature header.")

    try:
        stripe.Webhook.construct_event(
            payload,
            signature,
            signing_secret,
            tolerance=int(getattr(settings, "STRIPE_WEBHOOK_TOLERANCE_SECONDS", 300)),
        )
    except stripe.SignatureVerificationError as exc:
        raise SignatureInvalid(f"Webhook signature verification failed: {exc}") from exc
    except ValueError as exc:
        raise SignatureInvalid("Webhook payload is not valid JSON.") from exc

    event = json.loads(payload)
    if not isinstance(event, dict):
        raise SignatureInvalid("Webhook payload must be a JSON object.")
    return event
