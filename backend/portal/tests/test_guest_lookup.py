from datetime import timedelta

from django.test import TestCase
from django.utils import timezone
from rest_framework.test import APIClient

from portal.models import Invoice
from portal.tools.billing import mark_paid
from portal.tools.guest import lookup_by_email

from .fixtures import CONTACT_EMAIL, make_attempt, make_project


class LookupByEmailTests(TestCase):
    def test_unknown_email_returns_empty_shape(self):
        self.assertEqual(lookup_by_email("nobody@example.com"), {"customer_name": None, "invoices": []})
        self.assertEqual(lookup_by_email(""), {"customer_name": None, "invoices": []})

    def test_lists_open_invoices_with_fee_preview(self):
        result = make_project(30_000)

        found = lookup_by_email("  JORDAN@example.com ")

        self.assertEqual(found["customer_name"], "Jordan Rivera")
        self.assertEqual(len(found["invoices"]), 1)
        invoice = found["invoices"][0]
        self.assertEqual(invoice["id"], str(result.deposit_invoice.public_id))
        self.assertEqual(invoice["project_id"], str(result.project.public_id))
        self.assertEqual(invoice["invoice_type_display"], "Deposit (50%)")
        self.assertEqual(invoice["status_display"], "Pending Payment")
        self.assertEqual(invoice["service_name"], "Lawn Care & Maintenance")
        self.assertEqual(invoice["amount_display"], "$150.00")
        self.assertEqual(invoice["fee_cents"], 465)
        self.assertEqual(invoice["total_with_fee_cents"], 15_465)
        self.assertTrue(invoice["can_pay"])

    def test_paid_invoices_are_excluded(self):
        result = make_project(30_000)
        mark_paid(result.deposit_invoice.pk, make_attempt(result.deposit_invoice))

        found = lookup_by_email(CONTACT_EMAIL)

        self.assertEqual([item["invoice_type"] for item in found["invoices"]], [Invoice.InvoiceType.BALANCE])
        self.assertTrue(found["invoices"][0]["can_pay"])

    def test_overdue_invoices_are_included(self):
        result = make_project()
        Invoice.objects.filter(pk=result.deposit_invoice.pk).update(due_date=timezone.localdate() - timedelta(days=2))

        found = lookup_by_email(CONTACT_EMAIL)

        self.assertEqual(found["invoices"][0]["status"], Invoice.Status.OVERDUE)
        self.assertEqual(found["invoices"][0]["status_display"], "Overdue")
        self.assertTrue(found["invoices"][0]["can_pay"])

    def test_other_contacts_are_not_returned(self):
        make_project(email="someone@else.com")
        self.assertEqual(lookup_by_email(CONTACT_EMAIL)["invoices"], [])


class GuestLookupApiTests(TestCase):
    def setUp(self):
        self.client = APIClient()

    def test_lookup_endpoint(self):
        make_project()
        response = self.client.get("/api/invoices/", {"email": CONTACT_EMAIL})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()["invoices"]), 1)

    def test_unknown_email_is_200(self):
        response = self.client.get("/api/invoices/", {"email": "nobody@example.com"})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"customer_name": None, "invoices": []})

    def test_requires_exactly_one_filter(self):
        self.assertEqual(self.client.get("/api/invoices/").status_code, 400)
        response = self.client.get(
            "/api/invoices/",
            {"email": CONTACT_EMAIL, "project_id": "00000000-0000-0000-0000-000000000000"},
        )
        self.assertEqual(response.status_code, 400)

    def test_rejects_malformed_email(self):
        self.assertEqual(self.client.get("/api/invoices/", {"email": "not-an-email"}).status_code, 400)
