from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any
from uuid import UUID

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import NotFound

from ...models import Invoice, Project, Quote
from ..billing.fees import round_half_up_cents
from ..billing.ledger import ensure_balance_invoice
from ..email import send_project_scheduled_email
from ..errors import InvalidTransition

logger = logging.getLogger(__name__)

ALLOWED_STATUS_MOVES: dict[str, tuple[str, ...]] = {
    Project.Status.SCHEDULED: (Project.Status.IN_PROGRESS, Project.Status.CANCELLED),
    Project.Status.IN_PROGRESS: (Project.Status.COMPLETED, Project.Status.CANCELLED),
    Project.Status.COMPLETED: (),
    Project.Status.CANCELLED: (),
}


@dataclass(frozen=True)
class DepositPolicy:
    fraction: Decimal
    required: bool = True


def resolve_deposit_policy(service_type: str) -> DepositPolicy:
    fraction = Decimal(str(settings.PORTAL_DEPOSIT_FRACTION))
    if fraction <= 0 or fraction > 1:
        raise ImproperlyConfigured("PORTAL_DEPOSIT_FRACTION must be greater than 0 and at most 1.")

    optional_services = {value.strip() for value in settings.PORTAL_DEPOSIT_OPTIONAL_SERVICES if value.strip()}
    return DepositPolicy(fraction=fraction, required=service_type not in optional_services)


def compute_deposit_cents(total_cents: int, policy: DepositPolicy) -> int:
    return round_half_up_cents(Decimal(int(total_cents)) * policy.fraction)


def deposit_due_date() -> date:
    return timezone.localdate() + timedelta(days=settings.PORTAL_DEPOSIT_DUE_DAYS)


def materialize(quote: Quote, deposit_policy: DepositPolicy) -> Project:
    """Create the project and its opening invoices for an accepted quote.

    Runs inside the caller's token-consumption transaction.
    """
    if quote.status != Quote.Status.ACCEPTED or quote.quoted_amount_cents is None:
        raise InvalidTransition("Only accepted quotes can become projects.")

    total_cents = quote.quoted_amount_cents
    project = Project.objects.create(
        quote=quote,
        service_type=quote.service_type,
        description=quote.description,
        total_amount_cents=total_cents,
        deposit_amount_cents=compute_deposit_cents(total_cents, deposit_policy),
        deposit_required=deposit_policy.required,
        status=Project.Status.SCHEDULED,
    )
    Invoice.objects.create(
        project=project,
        invoice_type=Invoice.InvoiceType.DEPOSIT,
        amount_cents=project.deposit_amount_cents,
        currency=settings.STRIPE_CURRENCY.upper(),
        due_date=deposit_due_date(),
    )
    if not deposit_policy.required:
        ensure_balance_invoice(project)

    logger.info(
        "Project %s created from quote %s (total %s, deposit %s, deposit required %s)",
        project.public_id,
        quote.public_id,
        project.total_amount_cents,
        project.deposit_amount_cents,
        project.deposit_required,
    )
    return project


def _load_project(project_id: Any) -> Project:
    queryset = Project.objects.select_for_update()
    try:
        if isinstance(project_id, int):
            return queryset.get(pk=project_id)
        return queryset.get(public_id=UUID(str(project_id)))
    except (Project.DoesNotExist, ValueError) as exc:
        raise NotFound("Project not found.") from exc


def update_schedule(
    project_id: Any,
    scheduled_date: date | None = None,
    status: str | None = None,
    clear_schedule: bool = False,
) -> Project:
    with transaction.atomic():
        project = _load_project(project_id)
        changed_fields: list[str] = []
        notify = False

        if status and status != project.status:
            if status not in ALLOWED_STATUS_MOVES.get(project.status, ()):
                raise InvalidTransition(f"Cannot move a {project.status} project to {status}.")
            project.status = status
            changed_fields.append("status")

        if clear_schedule:
            project.scheduled_date = None
            changed_fields.append("scheduled_date")
        elif scheduled_date is not None:
            if project.status in (Project.Status.COMPLETED, Project.Status.CANCELLED):
                raise InvalidTransition(f"Cannot reschedule a {project.status} project.")
            notify = scheduled_date != project.scheduled_date
            project.scheduled_date = scheduled_date
            changed_fields.append("scheduled_date")

        if changed_fields:
            project.save(update_fields=[*changed_fields, "updated_at"])
            if "scheduled_date" in changed_fields and project.scheduled_date:
                _align_open_balance_due_date(project)
        if notify:
            transaction.on_commit(lambda: send_project_scheduled_email(project))

    logger.info(
        "Project %s updated (status=%s, scheduled_date=%s)",
        project.public_id,
        project.status,
        project.scheduled_date,
    )
    return project


def _align_open_balance_due_date(project: Project) -> None:
    balance = project.invoices.filter(
        invoice_type=Invoice.InvoiceType.BALANCE,
        status=Invoice.Status.PENDING,
    ).first()
    if balance is not None and balance.due_date != project.scheduled_date:
        balance.due_date = project.scheduled_date
        balance.save(update_fields=["due_date", "updated_at"])
