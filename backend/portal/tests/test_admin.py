from django.contrib import admin
from django.contrib.auth.models import AnonymousUser
from django.test import RequestFactory, SimpleTestCase

from portal.models import Invoice, PaymentAttempt, Project


class LedgerFieldsAdminTests(SimpleTestCase):
    def setUp(self):
        self.request = RequestFactory().get("/admin/")
        self.request.user = AnonymousUser()

    def form_fields(self, model):
        return set(admin.site._registry[model].get_form(self.request).base_fields)

    def test_project_money_and_paid_flags_are_not_editable(self):
        fields = self.form_fields(Project)

        for name in ("total_amount_cents", "deposit_amount_cents", "deposit_paid", "balance_paid"):
            self.assertNotIn(name, fields)
        self.assertIn("scheduled_date", fields)

    def test_invoice_settlement_fields_are_not_editable(self):
        fields = self.form_fields(Invoice)

        for name in ("invoice_type", "amount_cents", "status", "paid_at", "paid_by_attempt"):
            self.assertNotIn(name, fields)
        self.assertIn("due_date", fields)

    def test_payment_attempt_amounts_and_status_are_not_editable(self):
        fields = self.form_fields(PaymentAttempt)

        for name in ("status", "amount_cents", "fee_cents", "total_charged_cents", "gateway_session_id"):
            self.assertNotIn(name, fields)

    def test_ledger_rows_cannot_be_added_by_hand(self):
        for model in (Project, Invoice, PaymentAttempt):
            self.assertFalse(admin.site._registry[model].has_add_permission(self.request))
