from __future__ import annotations

from typing import Any


def event_object(event: dict[str, Any]) -> dict[str, Any]:
    data = event.get("data")
    if not isinstance(data, dict):
        return {}
    obj = data.get("object")
    return obj if isinstance(obj, dict) else {}


def event_identity(event: dict[str, Any]) -> tuple[str, str]:
    return str(event.get("id") or "").strip(), str(event.get("type") or "").strip()


def session_amount_total(session: dict[str, Any]) -> int | None:
    value = session.get("amount_total")
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def session_failure_reason(event_type: str, session: dict[str, Any]) -> str:
    if event_type.endswith(".expired"):
        return "session_expired"
    last_error = session.get("last_payment_error")
    if isinstance(last_error, dict) and last_error.get("code"):
        return str(last_error["code"])[:255]
    return "async_payment_failed"
