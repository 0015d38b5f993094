"""Map domain and framework errors to the API error body.

Every error response has the shape
``{"error": {"code": ..., "message": ..., "details": {...}}}``.
"""

from rest_framework import exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler

from registrations.domain.errors import DomainError, ErrorCode

STATUS_BY_CODE = {
    ErrorCode.EVENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.REGISTRATION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.TICKET_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_ID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.INVALID_SELECTION: status.HTTP_400_BAD_REQUEST,
    ErrorCode.EMPTY_REASON: status.HTTP_400_BAD_REQUEST,
    ErrorCode.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorCode.NOT_ELIGIBLE: status.HTTP_403_FORBIDDEN,
    ErrorCode.EVENT_NOT_OPEN: status.HTTP_409_CONFLICT,
    ErrorCode.REGISTRATION_CLOSED: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_REGISTERED: status.HTTP_409_CONFLICT,
    ErrorCode.CAPACITY_REACHED: status.HTTP_409_CONFLICT,
    ErrorCode.INSUFFICIENT_STOCK: status.HTTP_409_CONFLICT,
    ErrorCode.PURCHASE_LIMIT_EXCEEDED: status.HTTP_409_CONFLICT,
    ErrorCode.INVALID_STATE: status.HTTP_409_CONFLICT,
    ErrorCode.TICKET_INVALID: status.HTTP_409_CONFLICT,
    ErrorCode.ALREADY_SCANNED: status.HTTP_409_CONFLICT,
}


def error_body(code: str, message: str, details: dict | None = None) -> dict:
    return {"error": {"code": code, "message": message, "details": details or {}}}


def domain_exception_handler(exc, context):
    """DRF exception handler aware of DomainError."""
    if isinstance(exc, DomainError):
        return Response(
            error_body(exc.code.value, exc.message, exc.details),
            status=STATUS_BY_CODE.get(exc.code, status.HTTP_400_BAD_REQUEST),
        )

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, exceptions.ValidationError):
        response.data = error_body(
            "VALIDATION_ERROR", "Invalid request payload", {"fields": exc.detail}
        )
    else:
        code = exc.get_codes() if isinstance(exc, exceptions.APIException) else "error"
        detail = getattr(exc, "detail", str(exc))
        response.data = error_body(str(code).upper(), str(detail))
    return response
