from __future__ import annotations

from rest_framework import generics

from ..models import Project
from ..pagination import PortalPagination
from ..serializers import (
    ProjectListQuerySerializer,
    QuoteListQuerySerializer,
    QuoteSerializer,
    StaffProjectSerializer,
)
from ..tools.auth import IsPortalStaff
from ..tools.quotes import list_quotes, summarize_statuses


class StaffQuoteListView(generics.ListAPIView):
    """Quote inbox for staff, newest first.

    `status` filters on the status customers see, so lapsed offers list as expired.
    The response carries per-status counts for the same service filter.
    """

    permission_classes = [IsPortalStaff]
    serializer_class = QuoteSerializer
    pagination_class = PortalPagination

    def list(self, request, *args, **kwargs):
        query = QuoteListQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        service_type = query.validated_data.get("service_type", "")

        queryset = list_quotes(status=query.validated_data.get("status", ""), service_type=service_type)
        page = self.paginate_queryset(queryset)
        response = self.get_paginated_response(self.get_serializer(page, many=True).data)
        response.data["summary"] = summarize_statuses(service_type=service_type)
        return response


class StaffProjectListView(generics.ListAPIView):
    permission_classes = [IsPortalStaff]
    serializer_class = StaffProjectSerializer
    pagination_class = PortalPagination

    def get_queryset(self):
        query = ProjectListQuerySerializer(data=self.request.query_params)
        query.is_valid(raise_exception=True)

        queryset = Project.objects.select_related("quote")
        if query.validated_data.get("status"):
            queryset = queryset.filter(status=query.validated_data["status"])
        return queryset.order_by("-created_at", "-id")
