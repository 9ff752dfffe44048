from __future__ import annotations

from uuid import uuid4

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from .quotes import ServiceType


class Project(models.Model):
    class Status(models.TextChoices):
        SCHEDULED = "scheduled", "Scheduled"
        IN_PROGRESS = "in_progress", "In progress"
        COMPLETED = "completed", "Completed"
        CANCELLED = "cancelled", "Cancelled"

    public_id = models.UUIDField(default=uuid4, editable=False, unique=True, db_index=True)
    quote = models.OneToOneField("Quote", on_delete=models.PROTECT, related_name="project")
    service_type = models.CharField(max_length=32, choices=ServiceType.choices)
    description = models.TextField(blank=True)
    total_amount_cents = models.PositiveIntegerField()
    deposit_amount_cents = models.PositiveIntegerField()
    deposit_required = models.BooleanField(default=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.SCHEDULED)
    scheduled_date = models.DateField(blank=True, null=True)
    deposit_paid = models.BooleanField(default=False)
    balance_paid = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("-created_at",)
        indexes = [
            models.Index(fields=("status", "scheduled_date"), name="project_status_sched_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(deposit_amount_cents__lte=F("total_amount_cents")),
                name="project_deposit_within_total",
            ),
            models.CheckConstraint(
                condition=Q(balance_paid=False) | Q(deposit_paid=True) | Q(deposit_required=False),
                name="project_balance_after_deposit",
            ),
        ]

    @property
    def balance_amount_cents(self) -> int:
        return self.total_amount_cents - self.deposit_amount_cents

    @property
    def contact_email(self) -> str:
        return self.quote.contact_email

    @property
    def service_label(self) -> str:
        return self.get_service_type_display()

    def normalize_fields(self) -> None:
        self.description = (self.description or "").strip()

    def clean(self) -> None:
        if self.deposit_amount_cents > self.total_amount_cents:
            raise ValidationError({"deposit_amount_cents": "Deposit cannot exceed the project total."})
        if self.balance_paid and not (self.deposit_paid or not self.deposit_required):
            raise ValidationError({"balance_paid": "Balance cannot be paid before the required deposit."})

    def save(self, *args, **kwargs):
        self.normalize_fields()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"Project({self.public_id}, {self.status})"


class Invoice(models.Model):
    class InvoiceType(models.TextChoices):
        DEPOSIT = "deposit", "Deposit"
        BALANCE = "balance", "Balance Due"

    class Status(models.TextChoices):
        PENDING = "pending", "Pending Payment"
        PAID = "paid", "Paid"
        OVERDUE = "overdue", "Overdue"

    OPEN_STATUSES = (Status.PENDING, Status.OVERDUE)

    public_id = models.UUIDField(default=uuid4, editable=False, unique=True, db_index=True)
    project = models.ForeignKey("Project", on_delete=models.CASCADE, related_name="invoices")
    invoice_type = models.CharField(max_length=16, choices=InvoiceType.choices)
    amount_cents = models.PositiveIntegerField()
    currency = models.CharField(max_length=3, default="USD")
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.PENDING)
    due_date = models.DateField()
    paid_at = models.DateTimeField(blank=True, null=True)
    paid_by_attempt = models.OneToOneField(
        "PaymentAttempt",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="settled_invoice",
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ("created_at", "id")
        indexes = [
            models.Index(fields=("status", "due_date"), name="invoice_status_due_idx"),
        ]
        constraints = [
            models.UniqueConstraint(fields=("project", "invoice_type"), name="invoice_one_per_type"),
            models.CheckConstraint(
                condition=Q(status="paid", paid_at__isnull=False) | (~Q(status="paid") & Q(paid_at__isnull=True)),
                name="invoice_paid_at_matches_status",
            ),
        ]

    @property
    def effective_status(self) -> str:
        if self.status == self.Status.PENDING and self.due_date and self.due_date < timezone.localdate():
            return self.Status.OVERDUE
        return self.status

    @property
    def status_display(self) -> str:
        return self.Status(self.effective_status).label

    @property
    def invoice_type_display(self) -> str:
        if self.invoice_type == self.InvoiceType.DEPOSIT and self.project_id:
            total = self.project.total_amount_cents
            if total:
                percent = round(self.project.deposit_amount_cents * 100 / total)
                return f"Deposit ({percent}%)"
        return self.get_invoice_type_display()

    def normalize_fields(self) -> None:
        self.currency = (self.currency or "USD").strip().upper()

    def clean(self) -> None:
        if len(self.currency) != 3:
            raise ValidationError({"currency": "Currency must be a 3-letter code."})

        if self.pk:
            original = Invoice.objects.filter(pk=self.pk).values_list("amount_cents", flat=True).first()
            if original is not None and original != self.amount_cents:
                raise ValidationError(
                    {"amount_cents": "Invoice amounts are immutable. Issue a new invoice instead."}
                )

    def save(self, *args, **kwargs):
        self.normalize_fields()
        self.full_clean()
        return super().save(*args, **kwargs)

    def __str__(self) -> str:
        return f"{self.invoice_type}:{self.public_id} ({self.status})"
