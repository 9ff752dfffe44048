from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

from .display import format_cents


@dataclass(frozen=True)
class FeeBreakdown:
    amount_cents: int
    fee_cents: int
    total_cents: int
    disclosure: str


def round_half_up_cents(value: Decimal) -> int:
    return int(value.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _fee_rate() -> Decimal:
    return Decimal(str(settings.PORTAL_PROCESSING_FEE_RATE))


def _fixed_fee_cents() -> int:
    return int(settings.PORTAL_PROCESSING_FEE_FIXED_CENTS)


def fee_disclosure(fee_cents: int) -> str:
    rate_percent = f"{(_fee_rate() * 100).normalize():f}"
    fixed = format_cents(_fixed_fee_cents())
    return (
        f"A card processing fee of {rate_percent}% + {fixed} "
        f"({format_cents(fee_cents)}) is added to this payment."
    )


def compute_fee(amount_cents: int) -> FeeBreakdown:
    """Fee passed through to the payer, identical for customers and guests."""
    amount_cents = int(amount_cents)
    if amount_cents < 0:
        raise ValueError("Amount cannot be negative.")

    fee_cents = round_half_up_cents(Decimal(amount_cents) * _fee_rate()) + _fixed_fee_cents()
    return FeeBreakdown(
        amount_cents=amount_cents,
        fee_cents=fee_cents,
        total_cents=amount_cents + fee_cents,
        disclosure=fee_disclosure(fee_cents),
    )
