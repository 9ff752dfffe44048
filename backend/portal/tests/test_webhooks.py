import json
import time
from unittest.mock import patch

from django.core.exceptions import ValidationError
from django.test import TestCase

from portal.models import Invoice, PaymentAttempt, Project, WebhookEvent
from portal.tools.billing import mark_paid

from .fixtures import make_attempt, make_project
from .fixtures import sign_webhook as sign

WEBHOOK_URL = "/api/payments/webhook/"


def checkout_event(event_type: str, session_id: str, event_id: str = "evt_1", **session_fields) -> str:
    session = {"id": session_id, "object": "checkout.session", **session_fields}
    return json.dumps({"id": event_id, "type": event_type, "data": {"object": session}})


class StripeWebhookTests(TestCase):
    def setUp(self):
        self.result = make_project(30_000)
        self.deposit = self.result.deposit_invoice
        self.attempt = make_attempt(self.deposit, session_id="cs_test_deposit")

    def deliver(self, payload: str, signature: str | None = None):
        return self.client.post(
            WEBHOOK_URL,
            data=payload,
            content_type="application/json",
            HTTP_STRIPE_SIGNATURE=sign(payload) if signature is None else signature,
        )

    def completed(self, event_id: str = "evt_1", session_id: str = "cs_test_deposit", **fields) -> str:
        fields.setdefault("payment_status", "paid")
        fields.setdefault("amount_total", 15_465)
        return checkout_event("checkout.session.completed", session_id, event_id=event_id, **fields)

    def test_completed_session_settles_deposit(self):
        response = self.deliver(self.completed())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok", "outcome": "succeeded"})

        self.attempt.refresh_from_db()
        self.deposit.refresh_from_db()
        project = Project.objects.get(pk=self.result.project.pk)
        self.assertEqual(self.attempt.status, PaymentAttempt.Status.SUCCEEDED)
        self.assertIsNotNone(self.attempt.succeeded_at)
        self.assertEqual(self.deposit.status, Invoice.Status.PAID)
        self.assertEqual(self.deposit.paid_by_attempt_id, self.attempt.pk)
        self.assertTrue(project.deposit_paid)
        self.assertTrue(project.invoices.filter(invoice_type=Invoice.InvoiceType.BALANCE).exists())
        self.assertEqual(WebhookEvent.objects.get(event_id="evt_1").status, WebhookEvent.Status.PROCESSED)

    def test_redelivered_event_is_deduplicated(self):
        payload = self.completed()
        self.deliver(payload)
        paid_at = Invoice.objects.get(pk=self.deposit.pk).paid_at

        response = self.deliver(payload)

        self.assertEqual(response.json(), {"status": "ok", "deduplicated": True})
        self.assertEqual(Invoice.objects.get(pk=self.deposit.pk).paid_at, paid_at)
        self.assertEqual(Invoice.objects.filter(project=self.result.project).count(), 2)

    def test_second_success_event_for_same_session_is_noop(self):
        self.deliver(self.completed(event_id="evt_1"))
        response = self.deliver(
            checkout_event("checkout.session.async_payment_succeeded", "cs_test_deposit", event_id="evt_2")
        )

        self.assertEqual(response.json()["outcome"], "duplicate")
        self.assertEqual(PaymentAttempt.objects.filter(status=PaymentAttempt.Status.SUCCEEDED).count(), 1)

    def test_invalid_signature_is_acknowledged_without_changes(self):
        payload = self.completed()
        response = self.deliver(payload, signature=sign(payload, secret="whsec_wrong"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ignored", "reason": "signature_invalid"})
        self.deposit.refresh_from_db()
        self.assertEqual(self.deposit.status, Invoice.Status.PENDING)
        self.assertFalse(WebhookEvent.objects.exists())

    def test_stale_signature_is_rejected(self):
        payload = self.completed()
        response = self.deliver(payload, signature=sign(payload, timestamp=int(time.time()) - 3600))

        self.assertEqual(response.json()["status"], "ignored")
        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, PaymentAttempt.Status.CREATED)

    def test_missing_signature_header(self):
        response = self.client.post(WEBHOOK_URL, data=self.completed(), content_type="application/json")
        self.assertEqual(response.json()["reason"], "signature_invalid")

    def test_unknown_session_is_acknowledged(self):
        response = self.deliver(self.completed(session_id="cs_test_unknown"))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ignored", "reason": "unknown_attempt"})
        self.deposit.refresh_from_db()
        self.assertEqual(self.deposit.status, Invoice.Status.PENDING)
        self.assertEqual(WebhookEvent.objects.get(event_id="evt_1").status, WebhookEvent.Status.IGNORED)

    def test_expired_session_keeps_invoice_payable(self):
        response = self.deliver(checkout_event("checkout.session.expired", "cs_test_deposit"))

        self.assertEqual(response.json()["outcome"], "expired")
        self.attempt.refresh_from_db()
        self.deposit.refresh_from_db()
        self.assertEqual(self.attempt.status, PaymentAttempt.Status.EXPIRED)
        self.assertEqual(self.attempt.failure_reason, "session_expired")
        self.assertEqual(self.deposit.status, Invoice.Status.PENDING)

    def test_async_failure_records_reason(self):
        payload = checkout_event(
            "checkout.session.async_payment_failed",
            "cs_test_deposit",
            last_payment_error={"code": "card_declined"},
        )
        response = self.deliver(payload)

        self.assertEqual(response.json()["outcome"], "failed")
        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, PaymentAttempt.Status.FAILED)
        self.assertEqual(self.attempt.failure_reason, "card_declined")

    def test_failure_after_success_does_not_regress(self):
        self.deliver(self.completed(event_id="evt_1"))
        response = self.deliver(checkout_event("checkout.session.expired", "cs_test_deposit", event_id="evt_2"))

        self.assertEqual(response.json()["outcome"], "duplicate")
        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, PaymentAttempt.Status.SUCCEEDED)

    def test_unpaid_completion_stays_pending(self):
        response = self.deliver(self.completed(payment_status="unpaid"))

        self.assertEqual(response.json()["outcome"], "pending")
        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, PaymentAttempt.Status.CREATED)

    def test_unhandled_event_type_is_ignored(self):
        payload = json.dumps({"id": "evt_other", "type": "customer.created", "data": {"object": {}}})
        response = self.deliver(payload)

        self.assertEqual(response.json(), {"status": "ok"})
        self.assertEqual(WebhookEvent.objects.get(event_id="evt_other").status, WebhookEvent.Status.IGNORED)

    def test_event_log_trims_identifiers(self):
        event = WebhookEvent.objects.create(event_id=" evt_padded\n", event_type=" checkout.session.completed ")

        event.refresh_from_db()
        self.assertEqual(event.event_id, "evt_padded")
        self.assertEqual(event.event_type, "checkout.session.completed")
        with self.assertRaises(ValidationError):
            WebhookEvent.objects.create(event_id="   ", event_type="checkout.session.completed")

    @patch("portal.webhooks.handlers.mark_paid", side_effect=RuntimeError("database hiccup"))
    def test_handler_error_returns_500_and_rolls_back(self, _mark_paid):
        response = self.deliver(self.completed())

        self.assertEqual(response.status_code, 500)
        self.attempt.refresh_from_db()
        self.assertEqual(self.attempt.status, PaymentAttempt.Status.CREATED)
        event = WebhookEvent.objects.get(event_id="evt_1")
        self.assertEqual(event.status, WebhookEvent.Status.FAILED)
        self.assertIn("database hiccup", event.error_message)

    def test_failed_event_is_processed_on_redelivery(self):
        with patch("portal.webhooks.handlers.mark_paid", side_effect=RuntimeError("database hiccup")):
            self.deliver(self.completed())

        response = self.deliver(self.completed())

        self.assertEqual(response.json()["outcome"], "succeeded")
        self.deposit.refresh_from_db()
        self.assertEqual(self.deposit.status, Invoice.Status.PAID)

    def test_success_for_settled_invoice_is_flagged(self):
        mark_paid(self.deposit.pk, self.attempt)
        late = make_attempt(self.deposit, session_id="cs_test_late")

        with self.assertLogs("portal.webhooks.handlers", level="ERROR") as logs:
            response = self.deliver(self.completed(session_id="cs_test_late"))

        self.assertEqual(response.json()["outcome"], "conflict")
        late.refresh_from_db()
        self.assertEqual(late.status, PaymentAttempt.Status.FAILED)
        self.assertEqual(late.failure_reason, "invoice_already_settled")
        self.assertIn("manual refund review", logs.output[0])
        self.deposit.refresh_from_db()
        self.assertEqual(self.deposit.paid_by_attempt_id, self.attempt.pk)

    @patch("portal.webhooks.handlers.send_payment_receipt_email")
    def test_receipt_sent_after_commit(self, send_receipt):
        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            self.deliver(self.completed())

        self.assertEqual(len(callbacks), 1)
        send_receipt.assert_called_once()
        self.assertEqual(send_receipt.call_args.args[0].pk, self.attempt.pk)

    @patch("portal.webhooks.handlers.send_payment_failed_emails")
    def test_failure_notification_sent_after_commit(self, send_failed):
        with self.captureOnCommitCallbacks(execute=True):
            self.deliver(checkout_event("checkout.session.async_payment_failed", "cs_test_deposit"))

        send_failed.assert_called_once()
