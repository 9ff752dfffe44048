from .lookup import lookup_by_email, serialize_payable_invoice

__all__ = [
    "lookup_by_email",
    "serialize_payable_invoice",
]
