from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from ..serializers import (
    AcceptanceTokenSerializer,
    ProjectSerializer,
    QuoteDetailsSerializer,
    QuotePriceSerializer,
    QuoteReceiptSerializer,
    QuoteRequestSerializer,
    QuoteSerializer,
)
from ..tools.auth import IsPortalStaff
from ..tools.billing import evaluate_can_pay
from ..tools.email import acceptance_url, send_deposit_invoice_email, send_quote_offer_email
from ..tools.errors import PortalError
from ..tools.guest import serialize_payable_invoice
from ..tools.quotes import (
    QuoteContact,
    consume_token,
    create_quote,
    decline_quote,
    decline_with_token,
    get_quote,
    price_quote,
    validate_token,
)
from .helpers import get_request_principal, portal_error_response


class QuoteRequestView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "quote_request"

    def post(self, request):
        serializer = QuoteRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        principal = get_request_principal(request)
        quote = create_quote(
            QuoteContact(
                name=data["contact_name"],
                email=data["contact_email"],
                phone=data["contact_phone"],
                address=data["contact_address"],
            ),
            service_type=data["service_type"],
            description=data["description"],
            customer_id=principal.clerk_user_id if principal else "",
        )
        return Response(QuoteReceiptSerializer(quote).data, status=status.HTTP_201_CREATED)


class QuoteDetailView(APIView):
    permission_classes = [IsPortalStaff]

    def get(self, request, public_id):
        return Response(QuoteSerializer(get_quote(public_id)).data)


class QuotePriceView(APIView):
    permission_classes = [IsPortalStaff]

    def post(self, request, public_id):
        serializer = QuotePriceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            priced = price_quote(
                public_id,
                data["amount_cents"],
                valid_until=data["valid_until"],
                notes=data["quote_notes"],
                timeline=data["timeline"],
                terms=data["terms"],
            )
        except PortalError as exc:
            return portal_error_response(exc)

        email_sent = send_quote_offer_email(priced.quote, priced.token)
        return Response(
            {
                "quote": QuoteSerializer(priced.quote).data,
                "acceptance_url": acceptance_url(priced.token),
                "token_expires_at": priced.token.expires_at.isoformat(),
                "email_sent": email_sent,
            }
        )


class QuoteDeclineView(APIView):
    permission_classes = [IsPortalStaff]

    def post(self, request, public_id):
        try:
            quote = decline_quote(public_id)
        except PortalError as exc:
            return portal_error_response(exc)
        return Response(QuoteSerializer(quote).data)


class QuoteAcceptView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_scope = "quote_accept"

    def get(self, request):
        serializer = AcceptanceTokenSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        try:
            details = validate_token(serializer.validated_data["token"])
        except PortalError as exc:
            return portal_error_response(exc)
        return Response(QuoteDetailsSerializer(details).data)

    def post(self, request):
        serializer = AcceptanceTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            result = consume_token(serializer.validated_data["token"])
        except PortalError as exc:
            return portal_error_response(exc)

        send_deposit_invoice_email(result.project, result.deposit_invoice)
        return Response(
            {
                "quote_id": str(result.quote.public_id),
                "project": ProjectSerializer(result.project).data,
                "invoices": [serialize_payable_invoice(evaluate_can_pay(invoice)) for invoice in result.invoices],
            },
            status=status.HTTP_201_CREATED,
        )


class QuoteTokenDeclineView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]
    throttle_scope = "quote_accept"

    def post(self, request):
        serializer = AcceptanceTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        try:
            quote = decline_with_token(serializer.validated_data["token"])
        except PortalError as exc:
            return portal_error_response(exc)
        return Response({"quote_id": str(quote.public_id), "status": quote.status})
