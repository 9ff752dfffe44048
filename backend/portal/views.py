from .views_modules.account import AccountInvoiceListView, AccountProjectListView, AccountQuoteListView
from .views_modules.billing import InvoiceListView, ProjectUpdateView
from .views_modules.common import HealthView
from .views_modules.payments import PaymentSessionView
from .views_modules.quotes import (
    QuoteAcceptView,
    QuoteDeclineView,
    QuoteDetailView,
    QuotePriceView,
    QuoteRequestView,
    QuoteTokenDeclineView,
)
from .views_modules.staff import StaffProjectListView, StaffQuoteListView

__all__ = [
    "AccountInvoiceListView",
    "AccountProjectListView",
    "AccountQuoteListView",
    "HealthView",
    "InvoiceListView",
    "PaymentSessionView",
    "ProjectUpdateView",
    "QuoteAcceptView",
    "QuoteDeclineView",
    "QuoteDetailView",
    "QuotePriceView",
    "QuoteRequestView",
    "QuoteTokenDeclineView",
    "StaffProjectListView",
    "StaffQuoteListView",
]
