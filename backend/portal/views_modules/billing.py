from __future__ import annotations

from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from ..serializers import InvoiceQuerySerializer, ProjectSerializer, ProjectUpdateSerializer
from ..tools.auth import IsPortalStaff
from ..tools.billing import list_project_invoices
from ..tools.errors import PortalError
from ..tools.guest import lookup_by_email, serialize_payable_invoice
from ..tools.projects import update_schedule
from .helpers import get_visible_project, portal_error_response


class ProjectUpdateView(APIView):
    permission_classes = [IsPortalStaff]

    def patch(self, request, public_id):
        serializer = ProjectUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            project = update_schedule(
                public_id,
                scheduled_date=data.get("scheduled_date"),
                status=data.get("status"),
                clear_schedule="scheduled_date" in data and data["scheduled_date"] is None,
            )
        except PortalError as exc:
            return portal_error_response(exc)
        return Response(ProjectSerializer(project).data)


class InvoiceListView(APIView):
    permission_classes = [AllowAny]
    throttle_scope = "guest_lookup"

    def get(self, request):
        serializer = InvoiceQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if data.get("email"):
            return Response(lookup_by_email(data["email"]))

        project = get_visible_project(request, data["project_id"])
        return Response(
            {
                "project": ProjectSerializer(project).data,
                "invoices": [serialize_payable_invoice(item) for item in list_project_invoices(project)],
            }
        )
