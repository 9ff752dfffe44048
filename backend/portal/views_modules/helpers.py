from __future__ import annotations

from django.db.models import Q
from rest_framework.exceptions import NotAuthenticated, NotFound, ValidationError
from rest_framework.response import Response

from ..models import Project
from ..tools.auth import ClerkPrincipal
from ..tools.errors import PortalError, error_payload
from ..tools.payments import PayerContext


def get_request_principal(request) -> ClerkPrincipal | None:
    user = getattr(request, "user", None)
    return user if isinstance(user, ClerkPrincipal) else None


def portal_error_response(exc: PortalError) -> Response:
    return Response(error_payload(exc), status=exc.status_code)


def payer_for_request(request, guest_email: str = "") -> PayerContext:
    principal = get_request_principal(request)
    if principal is not None:
        return PayerContext.for_customer(principal.clerk_user_id, principal.email or guest_email)
    if not guest_email:
        raise ValidationError({"email": ["Email is required to pay without signing in."]})
    return PayerContext.for_guest(guest_email)


def principal_owns_project(principal: ClerkPrincipal, project: Project) -> bool:
    quote = project.quote
    if quote.customer_id and quote.customer_id == principal.clerk_user_id:
        return True
    return bool(principal.email and principal.email == quote.contact_email)


def get_required_principal(request) -> ClerkPrincipal:
    principal = get_request_principal(request)
    if principal is None:
        raise NotAuthenticated()
    return principal


def get_visible_project(request, project_id) -> Project:
    principal = get_required_principal(request)
    project = Project.objects.select_related("quote").filter(public_id=project_id).first()
    if project is None:
        raise NotFound("Project not found.")
    if not (principal.is_portal_staff or principal_owns_project(principal, project)):
        raise NotFound("Project not found.")
    return project


def owned_quotes_filter(principal: ClerkPrincipal, prefix: str = "") -> Q:
    """Match rows whose quote belongs to the signed-in customer by user id or email."""
    condition = Q(**{f"{prefix}customer_id": principal.clerk_user_id})
    if principal.email:
        condition |= Q(**{f"{prefix}contact_email": principal.email})
    return condition
