import json
from datetime import date
from unittest.mock import MagicMock, patch

from django.test import TestCase, override_settings

from portal.models import Project
from portal.tools.billing import mark_paid
from portal.tools.email import (
    acceptance_url,
    send_deposit_invoice_email,
    send_payment_failed_emails,
    send_project_scheduled_email,
    send_quote_offer_email,
)

from .fixtures import CONTACT_EMAIL, make_attempt, make_priced_quote, make_project


def resend_response(status: int = 200) -> MagicMock:
    response = MagicMock()
    response.status = status
    response.read.return_value = b'{"id": "email_123"}'
    return response


@override_settings(
    RESEND_API_KEY="re_test_key",
    RESEND_FROM_EMAIL="Greenscape <hello@greenscape.example>",
    NOTIFICATION_EMAIL="owner@greenscape.example",
)
class ResendNotificationTests(TestCase):
    @patch("portal.tools.email.resend.urlopen")
    def test_quote_offer_contains_acceptance_link(self, urlopen):
        urlopen.return_value.__enter__.return_value = resend_response()
        priced = make_priced_quote(30_000)

        self.assertTrue(send_quote_offer_email(priced.quote, priced.token))

        request = urlopen.call_args.args[0]
        payload = json.loads(request.data)
        self.assertEqual(payload["to"], [CONTACT_EMAIL])
        self.assertEqual(payload["subject"], "Your Lawn Care & Maintenance quote: $300.00")
        self.assertIn(acceptance_url(priced.token), payload["text"])
        self.assertEqual(request.get_header("Authorization"), "Bearer re_test_key")
        self.assertEqual(request.get_header("Idempotency-key"), f"quote-offer-{priced.token.pk}")

    @patch("portal.tools.email.resend.urlopen")
    def test_deposit_invoice_email(self, urlopen):
        urlopen.return_value.__enter__.return_value = resend_response()
        result = make_project(30_000)

        self.assertTrue(send_deposit_invoice_email(result.project, result.deposit_invoice))

        payload = json.loads(urlopen.call_args.args[0].data)
        self.assertIn("Deposit (50%): $150.00", payload["text"])
        self.assertIn("https://portal.example.test/pay", payload["text"])

    @patch("portal.tools.email.resend.urlopen")
    def test_project_scheduled_email_lists_date_and_open_deposit(self, urlopen):
        urlopen.return_value.__enter__.return_value = resend_response()
        project = make_project(30_000).project
        project.scheduled_date = date(2030, 6, 15)
        project.save()

        self.assertTrue(send_project_scheduled_email(project))

        request = urlopen.call_args.args[0]
        payload = json.loads(request.data)
        self.assertEqual(payload["to"], [CONTACT_EMAIL])
        self.assertEqual(payload["subject"], "Your Lawn Care & Maintenance project is scheduled")
        self.assertIn("scheduled for Saturday, June 15", payload["text"])
        self.assertIn("Deposit required: $150.00", payload["text"])
        self.assertEqual(
            request.get_header("Idempotency-key"),
            f"project-scheduled-{project.public_id}-2030-06-15",
        )

    @patch("portal.tools.email.resend.urlopen")
    def test_project_scheduled_email_omits_paid_deposit(self, urlopen):
        urlopen.return_value.__enter__.return_value = resend_response()
        result = make_project(30_000)
        mark_paid(result.deposit_invoice.pk, make_attempt(result.deposit_invoice))
        project = Project.objects.get(pk=result.project.pk)
        project.scheduled_date = date(2030, 6, 15)
        project.save()

        self.assertTrue(send_project_scheduled_email(project))

        payload = json.loads(urlopen.call_args.args[0].data)
        self.assertNotIn("Deposit required", payload["text"])

    @patch("portal.tools.email.resend.urlopen")
    def test_failed_payment_alerts_customer_and_owner(self, urlopen):
        urlopen.return_value.__enter__.return_value = resend_response()
        result = make_project(30_000)
        attempt = make_attempt(result.deposit_invoice)
        attempt.failure_reason = "card_declined"

        self.assertTrue(send_payment_failed_emails(attempt))

        recipients = [json.loads(call.args[0].data)["to"] for call in urlopen.call_args_list]
        self.assertEqual(recipients, [[CONTACT_EMAIL], ["owner@greenscape.example"]])

    @patch("portal.tools.email.resend.urlopen")
    def test_rejected_status_returns_false(self, urlopen):
        urlopen.return_value.__enter__.return_value = resend_response(status=500)
        priced = make_priced_quote()

        self.assertFalse(send_quote_offer_email(priced.quote, priced.token))

    @override_settings(RESEND_API_KEY="")
    @patch("portal.tools.email.resend.urlopen")
    def test_skipped_when_not_configured(self, urlopen):
        priced = make_priced_quote()

        self.assertFalse(send_quote_offer_email(priced.quote, priced.token))
        urlopen.assert_not_called()

    def test_acceptance_url_uses_site_url(self):
        self.assertEqual(acceptance_url("abc123"), "https://portal.example.test/portal/quotes/accept?token=abc123")
