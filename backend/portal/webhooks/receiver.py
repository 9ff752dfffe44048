from __future__ import annotations

import logging

from django.http import HttpRequest, JsonResponse
from django.utils import timezone as django_timezone
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from ..models import WebhookEvent
from ..tools.errors import SignatureInvalid, UnknownAttempt
from .handlers import EVENT_HANDLERS
from .helpers import event_identity, event_object
from .verification import verify_stripe_event

logger = logging.getLogger(__name__)


def _finish(webhook_event: WebhookEvent | None, status: str, error_message: str = "") -> None:
    if webhook_event is None:
        return
    webhook_event.status = status
    webhook_event.processed_at = django_timezone.now()
    webhook_event.error_message = error_message
    webhook_event.save(update_fields=["status", "processed_at", "error_message"])


@method_decorator(csrf_exempt, name="dispatch")
class StripeWebhookView(View):
    """Receive Stripe checkout events and reconcile payment attempts."""

    def post(self, request: HttpRequest) -> JsonResponse:
        try:
            event = verify_stripe_event(request.body, request.headers.get("Stripe-Signature", ""))
        except SignatureInvalid as exc:
            logger.warning("Stripe webhook rejected: %s", exc.detail)
            return JsonResponse({"status": "ignored", "reason": exc.default_code})

        event_id, event_type = event_identity(event)
        session = event_object(event)

        webhook_event = None
        if event_id:
            webhook_event, created = WebhookEvent.objects.get_or_create(
                provider=WebhookEvent.Provider.STRIPE,
                event_id=event_id,
                defaults={
                    "event_type": event_type or "unknown",
                    "payload": event,
                    "status": WebhookEvent.Status.RECEIVED,
                },
            )
            if not created and webhook_event.status in {
                WebhookEvent.Status.PROCESSED,
                WebhookEvent.Status.IGNORED,
            }:
                return JsonResponse({"status": "ok", "deduplicated": True})

        handler = EVENT_HANDLERS.get(event_type)
        if handler is None:
            logger.debug("Unhandled Stripe webhook event type: %s", event_type)
            _finish(webhook_event, WebhookEvent.Status.IGNORED)
            return JsonResponse({"status": "ok"})

        try:
            result = handler(event_type, session)
        except UnknownAttempt as exc:
            logger.warning("Stripe webhook %s ignored: %s", event_id or event_type, exc.detail)
            _finish(webhook_event, WebhookEvent.Status.IGNORED, str(exc.detail))
            return JsonResponse({"status": "ignored", "reason": exc.default_code})
        except Exception as exc:
            logger.exception("Error processing Stripe webhook event: %s", event_type)
            _finish(webhook_event, WebhookEvent.Status.FAILED, str(exc))
            return JsonResponse({"error": "Internal handler error"}, status=500)

        _finish(webhook_event, WebhookEvent.Status.PROCESSED)
        return JsonResponse({"status": "ok", "outcome": result.outcome})
