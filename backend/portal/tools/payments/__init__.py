from .gateway import PayerContext, SessionResult, create_session, derive_idempotency_key, payer_may_pay
from .stripe_client import CheckoutSession, create_checkout_session, stripe_enabled

__all__ = [
    "CheckoutSession",
    "PayerContext",
    "SessionResult",
    "create_checkout_session",
    "create_session",
    "derive_idempotency_key",
    "payer_may_pay",
    "stripe_enabled",
]
