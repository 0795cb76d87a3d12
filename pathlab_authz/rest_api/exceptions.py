"""Translation of authorization decisions into HTTP responses.

Status codes by denial kind:

- ``unauthenticated``: 401
- ``not_found``: 404
- ``authorization_check_failed``: 500
- every other denial: 403

Every denial is rendered as ``{"success": false, "message": ..., "error": ...}``.
"""

from django.conf import settings
from rest_framework import status
from rest_framework.exceptions import APIException, AuthenticationFailed, NotAuthenticated, PermissionDenied
from rest_framework.response import Response
from rest_framework.views import exception_handler

from pathlab_authz.api.data import AuthorizationDecision, DenialKind

DENIAL_STATUS_CODES = {
    DenialKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    DenialKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    DenialKind.AUTHORIZATION_CHECK_FAILED: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

# (message, error); a None error is filled from the decision detail.
DENIAL_MESSAGES = {
    DenialKind.UNAUTHENTICATED: ("Authentication required", "User not authenticated"),
    DenialKind.INVALID_ROLE: ("Invalid user role", None),
    DenialKind.INSUFFICIENT_ROLE: ("Insufficient permissions", None),
    DenialKind.INSUFFICIENT_PERMISSION: ("Insufficient permissions", None),
    DenialKind.TENANT_MISMATCH: (
        "Access denied to requested lab",
        "You can only access data from your own laboratory",
    ),
    DenialKind.NOT_OWNER: ("Access denied", "You can only access your own resources"),
    DenialKind.NOT_FOUND: ("Resource not found", None),
    DenialKind.FEATURE_DISABLED: ("Feature not enabled", None),
    DenialKind.AUTHORIZATION_CHECK_FAILED: ("Authorization check failed", "Internal server error"),
}


def get_denial_status(reason: DenialKind) -> int:
    """Get the HTTP status code for a denial kind."""
    return DENIAL_STATUS_CODES.get(reason, status.HTTP_403_FORBIDDEN)


def describe_denial(decision: AuthorizationDecision) -> tuple[str, str]:
    """Get the user-facing message and error for a denied decision.

    The detail of a failed check is only exposed when ``DEBUG`` is on.

    Returns:
        tuple[str, str]: The message and the error.
    """
    message, error = DENIAL_MESSAGES[decision.denied_reason]
    if decision.denied_reason is DenialKind.AUTHORIZATION_CHECK_FAILED:
        if settings.DEBUG and decision.detail:
            error = decision.detail
    elif error is None:
        error = decision.detail or message
    return message, error


class AuthorizationDenied(APIException):
    """Raised by the permission classes to end a request with a denial.

    Attributes:
        decision: The denied decision.
        message: The user-facing summary of the denial.
        error: The user-facing explanation of the denial.
    """

    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Insufficient permissions"
    default_code = "authorization_denied"

    def __init__(self, decision: AuthorizationDecision):
        if decision.allow:
            raise ValueError("Cannot raise AuthorizationDenied for an allowed decision.")

        self.decision = decision
        self.status_code = get_denial_status(decision.denied_reason)
        self.message, self.error = describe_denial(decision)
        super().__init__(detail=self.message, code=decision.kind)


def denial_response_data(message: str, error: str) -> dict:
    return {"success": False, "message": message, "error": error}


def get_authenticate_header(context) -> str | None:
    """Get the challenge of the view's first authenticator, as DRF sends with its own 401s."""
    view = context.get("view")
    request = context.get("request")
    if view is None or request is None:
        return None
    return view.get_authenticate_header(request)


def authz_exception_handler(exc, context):
    """DRF exception handler rendering authorization failures in the denial format.

    Set as ``REST_FRAMEWORK["EXCEPTION_HANDLER"]``. Authentication and permission
    errors raised by DRF itself (e.g. by ``IsAuthenticated``) are rendered the same
    way; everything else is left to the default handler.
    """
    if isinstance(exc, AuthorizationDenied):
        response = Response(denial_response_data(exc.message, exc.error), status=exc.status_code)
        if exc.decision.denied_reason is DenialKind.UNAUTHENTICATED:
            auth_header = get_authenticate_header(context)
            if auth_header:
                response["WWW-Authenticate"] = auth_header
        return response

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, (NotAuthenticated, AuthenticationFailed)):
        response.data = denial_response_data("Authentication required", str(exc.detail))
    elif isinstance(exc, PermissionDenied):
        response.data = denial_response_data("Insufficient permissions", str(exc.detail))

    return response
