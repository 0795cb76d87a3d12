"""Permissions for the lab authorization REST API.

Each class turns a request into an ``AuthorizationDecision`` with the public API.
An allowed decision is attached to the request (see ``annotate_request``); a denied
one is raised as ``AuthorizationDenied`` so the exception handler can render it with
the right status code.
"""

from django.core.exceptions import ImproperlyConfigured
from rest_framework.permissions import BasePermission

from pathlab_authz import api
from pathlab_authz.constants import actions
from pathlab_authz.rest_api.exceptions import AuthorizationDenied
from pathlab_authz.rest_api.utils import annotate_request, get_principal, get_route_tenant_id

METHOD_ACTIONS = {
    "get": actions.READ,
    "head": actions.READ,
    "options": actions.READ,
    "post": actions.CREATE,
    "put": actions.UPDATE,
    "patch": actions.UPDATE,
    "delete": actions.DELETE,
}


class MethodDeclarationMixin:
    """Mixin that reads declarations attached to view methods by the authz decorators.

    A declaration on the handler of the request method wins over an attribute of the
    same name on the view class.
    """

    def get_handler(self, request, view):
        return getattr(view, request.method.lower(), None)

    def get_declaration(self, request, view, name: str, default=None):
        """Get a declaration for the current request method.

        Args:
            request: The Django REST framework request object.
            view: The view being accessed.
            name: The declaration name (e.g., 'allowed_roles').
            default: Value returned when neither the handler nor the view declares it.

        Returns:
            The declared value, or ``default``.
        """
        handler = self.get_handler(request, view)
        if handler is not None and hasattr(handler, name):
            return getattr(handler, name)
        return getattr(view, name, default)


class BaseDecisionPermission(MethodDeclarationMixin, BasePermission):
    """Base permission class for all decision-based permissions.

    Subclasses implement :meth:`decide`. Denials are raised, never returned as False,
    so the response carries the denial kind.
    """

    def decide(self, request, view, principal) -> api.AuthorizationDecision:
        """Take the authorization decision for the request."""
        raise NotImplementedError

    def has_permission(self, request, view) -> bool:
        """Decide, then raise on denial or annotate the request on success.

        Raises:
            AuthorizationDenied: If the decision is a denial.
        """
        principal = get_principal(request)
        decision = self.decide(request, view, principal)
        if not decision.allow:
            raise AuthorizationDenied(decision)

        annotate_request(request, principal, decision)
        return True


class RoleBasedPermission(BaseDecisionPermission):
    """Role, permission and tenant check for views whose route names the lab.

    Roles and permissions come from ``@authz_roles`` on the handler or from
    ``allowed_roles`` / ``required_permissions`` on the view. The target lab is read
    from the route.

    Examples:
        >>> class LabTestsView(APIView):
        ...     permission_classes = [RoleBasedPermission]
        ...
        ...     @authz_roles(["lab_admin"], ["manage_tests"])
        ...     def post(self, request, lab_id):
        ...         pass
    """

    def decide(self, request, view, principal):
        return api.authorize(
            principal,
            allowed_roles=self.get_declaration(request, view, "allowed_roles", ()),
            required_permissions=self.get_declaration(request, view, "required_permissions", ()),
            target_tenant_id=get_route_tenant_id(view),
        )


class TenantResourcePermission(BaseDecisionPermission):
    """Role, permission and tenant check for routes that only name the resource.

    The view must provide ``tenant_resolver``, a callable returning the lab id owning
    a resource id (see ``ModelTenantResolver``). The resource id is read from the URL
    keyword argument named by ``resource_url_kwarg`` (default ``pk``).

    Examples:
        >>> class SampleDetailView(APIView):
        ...     permission_classes = [TenantResourcePermission]
        ...     tenant_resolver = ModelTenantResolver(Sample)
        ...
        ...     @authz_roles(["lab_admin", "technician"], ["view_samples"])
        ...     def get(self, request, pk):
        ...         pass
    """

    def get_tenant_resolver(self, view):
        resolver = getattr(view, "tenant_resolver", None)
        if resolver is None:
            raise ImproperlyConfigured(f"{view.__class__.__name__} must define 'tenant_resolver'.")
        return resolver

    def decide(self, request, view, principal):
        resource_url_kwarg = getattr(view, "resource_url_kwarg", None) or "pk"
        return api.authorize_tenant_resource(
            principal,
            view.kwargs.get(resource_url_kwarg),
            self.get_tenant_resolver(view),
            allowed_roles=self.get_declaration(request, view, "allowed_roles", ()),
            required_permissions=self.get_declaration(request, view, "required_permissions", ()),
        )


class OwnerOrElevatedPermission(BaseDecisionPermission):
    """Self-access check: the caller must own the record or hold an elevated role.

    The owner id is read from the URL keyword argument named by ``owner_url_kwarg``
    (default ``user_id``), then from the request body under the same key.
    ``elevated_roles`` on the view overrides ``PATHLAB_AUTHZ_ELEVATED_ROLES``.
    """

    def get_owner_id(self, request, view):
        owner_url_kwarg = getattr(view, "owner_url_kwarg", None) or "user_id"
        owner_id = view.kwargs.get(owner_url_kwarg)
        if owner_id is None and hasattr(request.data, "get"):
            owner_id = request.data.get(owner_url_kwarg)
        return owner_id

    def decide(self, request, view, principal):
        # The body is only parsed once the caller is known to hold a valid role.
        owner_id = None
        if principal is not None and principal.lab_role is not None:
            owner_id = self.get_owner_id(request, view)

        return api.authorize_owner_or_elevated(
            principal,
            owner_id,
            elevated_roles=getattr(view, "elevated_roles", None),
        )


class ResourceActionPermission(BaseDecisionPermission):
    """Action matrix check for resource-scoped routes.

    The (resource type, action) pair comes from ``@authz_action`` on the handler.
    Without one, the view's ``resource_type`` is used with the action implied by the
    request method (GET is ``read``, POST is ``create``, PUT and PATCH are ``update``,
    DELETE is ``delete``).
    """

    def get_resource_action(self, request, view) -> tuple[str, str]:
        """Get the (resource type, action) pair the request is checked against.

        Raises:
            ImproperlyConfigured: If the view declares no resource type.
        """
        handler = self.get_handler(request, view)
        if handler is not None and hasattr(handler, "resource_action"):
            return handler.resource_action

        resource_type = getattr(view, "resource_type", None)
        if not resource_type:
            raise ImproperlyConfigured(
                f"{view.__class__.__name__} must define 'resource_type' or use @authz_action."
            )
        return resource_type, METHOD_ACTIONS.get(request.method.lower(), request.method.lower())

    def decide(self, request, view, principal):
        resource_type, action = self.get_resource_action(request, view)
        return api.authorize_action(principal, resource_type, action, target_tenant_id=get_route_tenant_id(view))


class LabFeaturePermission(BaseDecisionPermission):
    """Subscription check: the caller's lab must have ``required_feature`` enabled.

    The view provides ``required_feature`` and ``feature_resolver``, a callable
    returning a lab's feature flags (see ``ModelFeatureResolver``).
    """

    def decide(self, request, view, principal):
        feature = self.get_declaration(request, view, "required_feature")
        resolver = getattr(view, "feature_resolver", None)
        if not feature or resolver is None:
            raise ImproperlyConfigured(
                f"{view.__class__.__name__} must define 'required_feature' and 'feature_resolver'."
            )
        return api.authorize_feature(principal, feature, resolver)
