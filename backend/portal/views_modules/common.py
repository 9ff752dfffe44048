from __future__ import annotations

from datetime import datetime, timezone

from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from ..tools.email import resend_is_configured
from ..tools.payments import stripe_enabled


class HealthView(APIView):
    authentication_classes = []
    permission_classes = [AllowAny]

    def get(self, request):
        return Response(
            {
                "status": "ok",
                "timestamp": datetime.now(tz=timezone.utc).isoformat(),
                "payments_configured": stripe_enabled(),
                "email_configured": resend_is_configured(),
            }
        )
