from __future__ import annotations

from uuid import uuid4

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils import timezone


class ServiceType(models.TextChoices):
    LAWN_CARE = "lawn-care", "Lawn Care & Maintenance"
    FLOWER_BEDS = "flower-beds", "Flower Bed Installation"
    SEASONAL_CLEANUP = "seasonal-cleanup", "Seasonal Cleanup"
    PRESSURE_WASHING = "pressure-washing", "Pressure Washing"
    OTHER = "other", "Other Services"


class Quote(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        QUOTED = "quoted", "Quoted"
        ACCEPTED = "accepted", "Accepted"
        DECLINED = "declined", "Declined"
        EXPIRED = "expired", "Expired"

    AMOUNT_STATUSES = (Status.QUOTED, Status.ACCEPTED)

    public_id = models.UUIDField(default=uuid4, editable=False, unique=True, db_index=True)
    customer_id = models.CharField(max_length=64, blank=True, db_index=True)
    contact_name = models.CharField(max_length=160)
    contact_email = models.EmailField()
    contact_phone = models.CharField(max_length=40, blank=True)
    contact_address = models.CharField(max_length=255, blank=True)
    service_type = models.CharField(max_length=32, choices=ServiceType.choices)
    description = models.TextField(blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    quoted_amount_cents = models.PositiveIntegerField(blank=True, null=True)
    quote_notes = models.TextField(blank=True)
    timeline = models.CharField(max_length=255, blank=True)
    terms = models.TextField(blank=True)
    valid_until = models.DateTimeField(blank=True, null=True)
    quoted_at = models.DateTimeField(blank=True, null=True)
    accepted_at = models.DateTimeField(blank=True, null=True)
    declined_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=("status", "created_at"), name="quote_status_created_idx"),
            models.Index(fields=("contact_email",), name="quote_contact_email_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(status__in=("quoted", "accepted"), quoted_amount_cents__isnull=False)
                    | (~Q(status__in=("quoted", "accepted")) & Q(quoted_amount_cents__isnull=True))
                ),
                name="quote_amount_matches_status",
            ),
        ]

    @property
    def is_past_validity(self) -> bool:
        return bool(self.valid_until and timezone.now() > self.valid_until)

    @property
    def effective_status(self) -> str:
        if self.status == self.Status.QUOTED and self.is_past_validity:
            return self.Status.EXPIRED
        return self.status

    @property
    def service_label(self) -> str:
        return self.get_service_type_display()

    def normalize_fields(self) -> None:
        self.contact_name = (self.contact_name or "").strip()
        self.contact_email = (self.contact_email or "").strip().lower()
        self.contact_phone = (self.contact_phone or "").strip()
        self.contact_address = (self.contact_address or "").strip()
        self.description = (self.description or "").strip()
        self.customer_id = (self.customer_id or "").strip()

    def clean(self) -> None:
        if not self.contact_email:
            raise ValidationError({"contact_email": "Contact email is required."})

        has_amount = self.quoted_amount_cents is not None
        if self.status in self.AMOUNT_STATUSES and not has_amount:
            raise ValidationError({"quoted_amount_cents": "Quoted and accepted quotes require an amount."})
        if self.status not in self.AMOUNT_STATUSES and has_amount:
            raise ValidationError(
                {"quoted_amount_cents": "Only quoted or accepted quotes may carry an amount."}
            )
        if self.status == self.Status.QUOTED and not self.valid_until:
            raise ValidationError({"valid_until": "Quoted quotes require a validity deadline."})

    def save(self, *args, **kwargs):
        # Runs before full_clean so field validators see the stored form.
        self.normalize_fields()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.public_id} ({self.status})"


class AcceptanceToken(models.Model):
    token = models.CharField(max_length=128, unique=True, db_index=True)
    quote = models.ForeignKey("Quote", on_delete=models.CASCADE, related_name="acceptance_tokens")
    consumed_at = models.DateTimeField(blank=True, null=True)
    revoked_at = models.DateTimeField(blank=True, null=True)
    expires_at = models.DateTimeField()
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=("quote", "consumed_at"), name="token_quote_consumed_idx"),
        ]

    @property
    def is_consumed(self) -> bool:
        return self.consumed_at is not None

    @property
    def is_expired(self) -> bool:
        return timezone.now() > self.expires_at

    def __str__(self) -> str:
        return f"{self.quote_id}:{self.token[:8]}..."
