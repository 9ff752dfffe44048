from .store import (
    PricedQuote,
    QuoteContact,
    create_quote,
    decline_quote,
    expire_if_stale,
    get_quote,
    list_quotes,
    price_quote,
    status_condition,
    summarize_statuses,
)
from .tokens import (
    AcceptanceResult,
    QuoteDetails,
    consume_token,
    decline_with_token,
    issue_token,
    validate_token,
)

__all__ = [
    "AcceptanceResult",
    "PricedQuote",
    "QuoteContact",
    "QuoteDetails",
    "consume_token",
    "create_quote",
    "decline_quote",
    "decline_with_token",
    "expire_if_stale",
    "get_quote",
    "issue_token",
    "list_quotes",
    "price_quote",
    "status_condition",
    "summarize_statuses",
    "validate_token",
]
