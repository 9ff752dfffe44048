from django.urls import path

from .views import (
    AccountInvoiceListView,
    AccountProjectListView,
    AccountQuoteListView,
    HealthView,
    InvoiceListView,
    PaymentSessionView,
    ProjectUpdateView,
    QuoteAcceptView,
    QuoteDeclineView,
    QuoteDetailView,
    QuotePriceView,
    QuoteRequestView,
    QuoteTokenDeclineView,
    StaffProjectListView,
    StaffQuoteListView,
)
from .webhooks import StripeWebhookView

urlpatterns = [
    path("health/", HealthView.as_view(), name="health"),
    path("quotes/", QuoteRequestView.as_view(), name="quote-request"),
    path("quotes/accept/", QuoteAcceptView.as_view(), name="quote-accept"),
    path("quotes/decline/", QuoteTokenDeclineView.as_view(), name="quote-token-decline"),
    path("quotes/<uuid:public_id>/", QuoteDetailView.as_view(), name="quote-detail"),
    path("quotes/<uuid:public_id>/price/", QuotePriceView.as_view(), name="quote-price"),
    path("quotes/<uuid:public_id>/decline/", QuoteDeclineView.as_view(), name="quote-decline"),
    path("projects/<uuid:public_id>/", ProjectUpdateView.as_view(), name="project-update"),
    path("invoices/", InvoiceListView.as_view(), name="invoice-list"),
    path("account/quotes/", AccountQuoteListView.as_view(), name="account-quotes"),
    path("account/projects/", AccountProjectListView.as_view(), name="account-projects"),
    path("account/invoices/", AccountInvoiceListView.as_view(), name="account-invoices"),
    path("staff/quotes/", StaffQuoteListView.as_view(), name="staff-quotes"),
    path("staff/projects/", StaffProjectListView.as_view(), name="staff-projects"),
    path("payments/invoice/<uuid:public_id>/", PaymentSessionView.as_view(), name="payment-session"),
    path("payments/webhook/", StripeWebhookView.as_view(), name="stripe-webhook"),
]
