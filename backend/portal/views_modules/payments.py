from __future__ import annotations

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from ..serializers import PaymentSessionRequestSerializer
from ..tools.errors import PortalError
from ..tools.payments import create_session
from .helpers import payer_for_request, portal_error_response


class PaymentSessionView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "payment_session"

    def post(self, request, public_id):
        serializer = PaymentSessionRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        payer = payer_for_request(request, data["email"])
        try:
            result = create_session(public_id, payer, attempt_nonce=data["attempt_nonce"])
        except PortalError as exc:
            return portal_error_response(exc)

        return Response(
            {
                "session_id": result.session_id,
                "redirect_url": result.redirect_url,
                "amount_cents": result.fee.amount_cents,
                "fee_cents": result.fee.fee_cents,
                "total_charged_cents": result.total_charged_cents,
                "fee_disclosure": result.fee.disclosure,
                "reused": result.reused,
            },
            status=status.HTTP_200_OK if result.reused else status.HTTP_201_CREATED,
        )
