from .handlers import EVENT_HANDLERS, ReconcileResult, outcome_for_event, reconcile_checkout_session
from .receiver import StripeWebhookView
from .verification import verify_stripe_event

__all__ = [
    "EVENT_HANDLERS",
    "ReconcileResult",
    "StripeWebhookView",
    "outcome_for_event",
    "reconcile_checkout_session",
    "verify_stripe_event",
]
