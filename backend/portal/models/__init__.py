from .payments import PaymentAttempt, WebhookEvent
from .projects import Invoice, Project
from .quotes import AcceptanceToken, Quote, ServiceType

__all__ = [
    "Quote",
    "ServiceType",
    "AcceptanceToken",
    "Project",
    "Invoice",
    "PaymentAttempt",
    "WebhookEvent",
]
