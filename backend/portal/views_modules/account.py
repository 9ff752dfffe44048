from __future__ import annotations

from rest_framework import generics
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from ..models import Invoice, Project, Quote
from ..serializers import CustomerQuoteSerializer, ProjectSerializer
from ..tools.billing import evaluate_can_pay
from ..tools.guest import serialize_payable_invoice
from .helpers import get_required_principal, owned_quotes_filter


class AccountQuoteListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = CustomerQuoteSerializer

    def get_queryset(self):
        principal = get_required_principal(self.request)
        return (
            Quote.objects.filter(owned_quotes_filter(principal))
            .select_related("project")
            .order_by("-created_at", "-id")
        )


class AccountProjectListView(generics.ListAPIView):
    permission_classes = [IsAuthenticated]
    serializer_class = ProjectSerializer

    def get_queryset(self):
        principal = get_required_principal(self.request)
        return (
            Project.objects.filter(owned_quotes_filter(principal, prefix="quote__"))
            .select_related("quote")
            .order_by("-created_at", "-id")
        )


class AccountInvoiceListView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        principal = get_required_principal(request)
        invoices = (
            Invoice.objects.filter(owned_quotes_filter(principal, prefix="project__quote__"))
            .select_related("project", "project__quote")
            .order_by("due_date", "created_at", "id")
        )
        payables = [evaluate_can_pay(invoice) for invoice in invoices]

        total_open = sum(item.invoice.amount_cents for item in payables if item.invoice.status != Invoice.Status.PAID)
        total_paid = sum(item.invoice.amount_cents for item in payables if item.invoice.status == Invoice.Status.PAID)
        return Response(
            {
                "invoices": [serialize_payable_invoice(item) for item in payables],
                "summary": {"total_open_cents": total_open, "total_paid_cents": total_paid},
            }
        )
