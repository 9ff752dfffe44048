from __future__ import annotations

from rest_framework.pagination import PageNumberPagination
from rest_framework.response import Response


class PortalPagination(PageNumberPagination):
    page_size = 20
    page_size_query_param = "limit"
    max_page_size = 100

    def get_paginated_response(self, data):
        paginator = self.page.paginator
        return Response(
            {
                "results": data,
                "pagination": {
                    "current_page": self.page.number,
                    "total_pages": paginator.num_pages if paginator.count else 0,
                    "total": paginator.count,
                    "has_more": self.page.has_next(),
                },
            }
        )
