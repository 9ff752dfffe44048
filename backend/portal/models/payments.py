from __future__ import annotations

from datetime import timedelta
from uuid import uuid4

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone


class PaymentAttempt(models.Model):
    class Status(models.TextChoices):
        CREATED = "created", "Created"
        SUCCEEDED = "succeeded", "Succeeded"
        FAILED = "failed", "Failed"
        EXPIRED = "expired", "Expired"

    class PayerKind(models.TextChoices):
        CUSTOMER = "customer", "Customer"
        GUEST = "guest", "Guest"

    public_id = models.UUIDField(default=uuid4, editable=False, unique=True, db_index=True)
    invoice = models.ForeignKey("Invoice", on_delete=models.CASCADE, related_name="payment_attempts")
    gateway_session_id = models.CharField(max_length=255, unique=True)
    amount_cents = models.PositiveIntegerField()
    fee_cents = models.PositiveIntegerField(default=0)
    total_charged_cents = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.CREATED)
    idempotency_key = models.CharField(max_length=64, unique=True)
    payer_kind = models.CharField(max_length=16, choices=PayerKind.choices)
    payer_reference = models.CharField(max_length=255, blank=True)
    checkout_url = models.URLField(max_length=1024, blank=True)
    failure_reason = models.CharField(max_length=255, blank=True)
    succeeded_at = models.DateTimeField(blank=True, null=True)
    raw_payload = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=("invoice", "status"), name="attempt_invoice_status_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=("invoice",),
                condition=Q(status="succeeded"),
                name="attempt_one_success_per_invoice",
            ),
            models.CheckConstraint(
                condition=Q(total_charged_cents=F("amount_cents") + F("fee_cents")),
                name="attempt_total_is_amount_plus_fee",
            ),
        ]

    @property
    def is_abandoned(self) -> bool:
        if self.status != self.Status.CREATED or not self.created_at:
            return False
        timeout = timedelta(minutes=settings.PORTAL_PAYMENT_ATTEMPT_TIMEOUT_MINUTES)
        return timezone.now() - self.created_at > timeout

    def normalize_fields(self) -> None:
        self.gateway_session_id = (self.gateway_session_id or "").strip()
        self.payer_reference = (self.payer_reference or "").strip()
        self.failure_reason = (self.failure_reason or "").strip()
        self.currency = (self.currency or "USD").strip().upper()

    def clean(self) -> None:
        if not self.gateway_session_id:
            raise ValidationError({"gateway_session_id": "Gateway session id is required."})
        if self.total_charged_cents != self.amount_cents + self.fee_cents:
            raise ValidationError({"total_charged_cents": "Total must equal amount plus fee."})

    def save(self, *args, **kwargs):
        self.normalize_fields()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.gateway_session_id} ({self.status})"


class WebhookEvent(models.Model):
    class Provider(models.TextChoices):
        STRIPE = "stripe", "Stripe"
        OTHER = "other", "Other"

    class Status(models.TextChoices):
        RECEIVED = "received", "Received"
        PROCESSED = "processed", "Processed"
        FAILED = "failed", "Failed"
        IGNORED = "ignored", "Ignored"

    provider = models.CharField(max_length=24, choices=Provider.choices, default=Provider.STRIPE)
    event_id = models.CharField(max_length=191)
    event_type = models.CharField(max_length=191)
    payload = models.JSONField(default=dict, blank=True)
    status = models.CharField(max_length=24, choices=Status.choices, default=Status.RECEIVED)
    error_message = models.TextField(blank=True)
    received_at = models.DateTimeField(auto_now_add=True)
    processed_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ("-received_at",)
        constraints = [
            models.UniqueConstraint(fields=("provider", "event_id"), name="webhook_provider_event_unique"),
        ]
        indexes = [
            models.Index(fields=("status", "received_at"), name="webhook_status_received_idx"),
        ]

    def normalize_fields(self) -> None:
        self.event_id = (self.event_id or "").strip()
        self.event_type = (self.event_type or "").strip()
        self.error_message = (self.error_message or "").strip()

    def clean(self) -> None:
        if not self.event_id:
            raise ValidationError({"event_id": "Event id is required."})
        if not self.event_type:
            raise ValidationError({"event_type": "Event type is required."})

    def save(self, *args, **kwargs):
        self.normalize_fields()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.provider}:{self.event_id}"
