from __future__ import annotations

from rest_framework.exceptions import APIException


class PortalError(APIException):
    status_code = 400
    default_code = "portal_error"
    default_detail = "The request could not be completed."

    @property
    def error_code(self) -> str:
        return self.default_code


class InvalidTransition(PortalError):
    status_code = 409
    default_code = "invalid_transition"
    default_detail = "This action is not allowed in the current state."


class TokenNotFound(PortalError):
    status_code = 404
    default_code = "token_not_found"
    default_detail = "This link is invalid. Please contact us for a new quote link."


class TokenExpired(PortalError):
    status_code = 410
    default_code = "token_expired"
    default_detail = "This quote has expired. Please request a new quote."


class TokenAlreadyConsumed(PortalError):
    status_code = 409
    default_code = "token_already_consumed"
    default_detail = "This quote has already been accepted or declined."


class InvoiceNotPayable(PortalError):
    status_code = 409
    default_code = "invoice_not_payable"
    default_detail = "This invoice cannot be paid right now. It may already be paid."


class GatewayUnavailable(PortalError):
    status_code = 503
    default_code = "gateway_unavailable"
    default_detail = "Payments are temporarily unavailable, please retry in a moment."


class SignatureInvalid(PortalError):
    status_code = 400
    default_code = "signature_invalid"
    default_detail = "Webhook signature verification failed."


class UnknownAttempt(PortalError):
    status_code = 404
    default_code = "unknown_attempt"
    default_detail = "No payment attempt matches this session."


def error_payload(exc: PortalError) -> dict[str, str]:
    return {"detail": str(exc.detail), "error_code": exc.error_code}
