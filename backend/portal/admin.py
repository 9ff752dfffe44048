from django.contrib import admin

from .models import AcceptanceToken, Invoice, PaymentAttempt, Project, Quote, WebhookEvent


class AcceptanceTokenInline(admin.TabularInline):
    model = AcceptanceToken
    extra = 0
    fields = ("created_at", "expires_at", "consumed_at", "revoked_at")
    readonly_fields = fields
    can_delete = False


@admin.register(Quote)
class QuoteAdmin(admin.ModelAdmin):
    list_display = ("public_id", "contact_name", "contact_email", "service_type", "status", "quoted_amount_cents", "valid_until")
    search_fields = ("public_id", "contact_name", "contact_email", "customer_id")
    list_filter = ("status", "service_type")
    inlines = [AcceptanceTokenInline]


@admin.register(AcceptanceToken)
class AcceptanceTokenAdmin(admin.ModelAdmin):
    list_display = ("quote", "created_at", "expires_at", "consumed_at", "revoked_at")
    search_fields = ("quote__public_id", "quote__contact_email")
    exclude = ("token",)


class InvoiceInline(admin.TabularInline):
    model = Invoice
    extra = 0
    fields = ("invoice_type", "amount_cents", "status", "due_date", "paid_at")
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("public_id", "quote", "service_type", "status", "scheduled_date", "deposit_paid", "balance_paid")
    search_fields = ("public_id", "quote__contact_email", "quote__contact_name")
    list_filter = ("status", "service_type", "deposit_paid", "balance_paid")
    readonly_fields = ("total_amount_cents", "deposit_amount_cents", "deposit_paid", "balance_paid")
    inlines = [InvoiceInline]

    def has_add_permission(self, request):
        return False


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ("public_id", "project", "invoice_type", "amount_cents", "status", "due_date", "paid_at")
    search_fields = ("public_id", "project__quote__contact_email")
    list_filter = ("invoice_type", "status")
    readonly_fields = ("invoice_type", "amount_cents", "status", "paid_at", "paid_by_attempt")

    def has_add_permission(self, request):
        return False


@admin.register(PaymentAttempt)
class PaymentAttemptAdmin(admin.ModelAdmin):
    list_display = ("gateway_session_id", "invoice", "payer_kind", "total_charged_cents", "status", "created_at")
    search_fields = ("gateway_session_id", "payer_reference", "invoice__public_id")
    list_filter = ("status", "payer_kind")
    readonly_fields = (
        "invoice",
        "gateway_session_id",
        "amount_cents",
        "fee_cents",
        "total_charged_cents",
        "status",
        "idempotency_key",
        "succeeded_at",
        "raw_payload",
    )

    def has_add_permission(self, request):
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    list_display = ("provider", "event_id", "event_type", "status", "received_at", "processed_at")
    search_fields = ("event_id", "event_type", "error_message")
    list_filter = ("provider", "status")
