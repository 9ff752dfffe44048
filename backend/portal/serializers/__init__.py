from .billing import (
    InvoiceQuerySerializer,
    PaymentSessionRequestSerializer,
    ProjectListQuerySerializer,
    ProjectSerializer,
    ProjectUpdateSerializer,
    StaffProjectSerializer,
)
from .quotes import (
    AcceptanceTokenSerializer,
    CustomerQuoteSerializer,
    QuoteDetailsSerializer,
    QuoteListQuerySerializer,
    QuotePriceSerializer,
    QuoteReceiptSerializer,
    QuoteRequestSerializer,
    QuoteSerializer,
)

__all__ = [
    "AcceptanceTokenSerializer",
    "CustomerQuoteSerializer",
    "InvoiceQuerySerializer",
    "PaymentSessionRequestSerializer",
    "ProjectListQuerySerializer",
    "ProjectSerializer",
    "ProjectUpdateSerializer",
    "QuoteDetailsSerializer",
    "QuoteListQuerySerializer",
    "QuotePriceSerializer",
    "QuoteReceiptSerializer",
    "QuoteRequestSerializer",
    "QuoteSerializer",
    "StaffProjectSerializer",
]
