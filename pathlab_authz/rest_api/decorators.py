"""Decorators for the lab authorization REST API."""

from functools import wraps

from edx_rest_framework_extensions.auth.jwt.authentication import JwtAuthentication
from edx_rest_framework_extensions.auth.session.authentication import SessionAuthenticationAllowInactiveUser
from rest_framework.permissions import IsAuthenticated


def view_auth_classes(is_authenticated=True):
    """
    Function and class decorator that abstracts the authentication and permission checks for api views.

    Args:
        is_authenticated: Whether the view requires authentication.

    Returns:
        The decorated view or class.

    Examples:
        >>> @view_auth_classes(is_authenticated=False)
        ... class MyView(APIView):
        ...     def get(self, request):
        ...         return Response("Hello, world!")
    """

    def _decorator(func_or_class):
        """
        Requires either JWT or Session-based authentication.

        Args:
            func_or_class: The view or class to decorate.

        Returns:
            The decorated view or class.
        """
        func_or_class.authentication_classes = [
            JwtAuthentication,
            SessionAuthenticationAllowInactiveUser,
        ]
        if is_authenticated:
            func_or_class.permission_classes = [IsAuthenticated] + getattr(func_or_class, "permission_classes", [])
        return func_or_class

    return _decorator


def _attach(func, **attributes):
    @wraps(func)
    def wrapper(*args, **kwargs):
        return func(*args, **kwargs)

    for name, value in attributes.items():
        setattr(wrapper, name, value)
    return wrapper


def authz_roles(roles=(), permissions=()):
    """Decorator to attach allowed roles and required permissions to view methods.

    Read by ``RoleBasedPermission`` and ``TenantResourcePermission``. An empty
    ``roles`` list lets any valid role through the role check.

    Args:
        roles: Roles allowed to call the method (e.g., ["lab_admin", "technician"]).
        permissions: Permissions the caller's role must all hold (e.g., ["manage_tests"]).

    Raises:
        TypeError: If ``roles`` or ``permissions`` is a single string instead of a list.

    Examples:
        >>> class TestCatalogView(APIView):
        ...     permission_classes = [RoleBasedPermission]
        ...
        ...     @authz_roles(["lab_admin", "technician"], ["manage_tests"])
        ...     def put(self, request, lab_id):
        ...         pass
    """
    for name, values in (("roles", roles), ("permissions", permissions)):
        if isinstance(values, str):
            raise TypeError(f"authz_roles expects a list of {name}, got the string {values!r}")

    def decorator(func):
        return _attach(func, allowed_roles=list(roles), required_permissions=list(permissions))

    return decorator


def authz_action(resource_type: str, action: str):
    """Decorator to attach an action matrix entry to a view method.

    Read by ``ResourceActionPermission``.

    Args:
        resource_type: The resource type (e.g., "tests").
        action: The action (e.g., "update_pricing").

    Examples:
        >>> class TestPricingView(APIView):
        ...     permission_classes = [ResourceActionPermission]
        ...
        ...     @authz_action("tests", "update_pricing")
        ...     def put(self, request, lab_id, pk):
        ...         pass
    """

    def decorator(func):
        return _attach(func, resource_action=(resource_type, action))

    return decorator
