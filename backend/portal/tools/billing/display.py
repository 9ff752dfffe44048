from __future__ import annotations

from decimal import Decimal


def format_cents(cents: int | None, currency: str = "USD") -> str:
    amount = Decimal(int(cents or 0)) / 100
    normalized_currency = (currency or "USD").strip().upper()
    if normalized_currency == "USD":
        return f"${amount:,.2f}"
    return f"{normalized_currency} {amount:,.2f}"
