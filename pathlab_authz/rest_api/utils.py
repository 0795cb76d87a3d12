"""Utility functions for the lab authorization REST API."""

from django.conf import settings

from pathlab_authz.api.data import AuthorizationDecision, PrincipalData

DEFAULT_TENANT_URL_KWARG = "lab_id"


def get_principal(request) -> PrincipalData | None:
    """
    Build the principal for a request from its authenticated user.

    Args:
        request: The Django REST framework request object.

    Returns:
        PrincipalData | None: The principal, or None if the request is not authenticated.
    """
    return PrincipalData.from_user(getattr(request, "user", None))


def get_tenant_url_kwarg(view) -> str:
    """
    Get the name of the URL keyword argument naming the target lab.

    Views override the ``PATHLAB_AUTHZ_TENANT_URL_KWARG`` setting with a
    ``tenant_url_kwarg`` attribute.
    """
    return getattr(view, "tenant_url_kwarg", None) or getattr(
        settings, "PATHLAB_AUTHZ_TENANT_URL_KWARG", DEFAULT_TENANT_URL_KWARG
    )


def get_route_tenant_id(view) -> str | None:
    """
    Read the target lab id from the view's URL keyword arguments, verbatim.

    Returns:
        str | None: The lab id, or None if the route does not name a lab.
    """
    tenant_id = getattr(view, "kwargs", {}).get(get_tenant_url_kwarg(view))
    return None if tenant_id is None else str(tenant_id)


def annotate_request(request, principal: PrincipalData, decision: AuthorizationDecision) -> None:
    """
    Make an allowed decision available to the view handling the request.

    Sets ``authz_decision``, ``authz_principal``, ``user_role``, ``user_permissions``
    (sorted list) and ``role_level`` on the request.
    """
    request.authz_decision = decision
    request.authz_principal = principal
    request.user_role = principal.role
    request.user_permissions = sorted(decision.resolved_permissions)
    request.role_level = decision.resolved_level
