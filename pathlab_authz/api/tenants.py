"""Public API for tenant (lab) scoping.

These helpers cover the two places where tenant isolation meets the data store:
finding which lab owns a resource when the route does not say, and restricting
querysets to the caller's lab.
"""

from django.core.exceptions import ValidationError
from django.db.models import Model, QuerySet

from pathlab_authz.api.data import PrincipalData

__all__ = [
    "DEFAULT_TENANT_FIELD",
    "ModelTenantResolver",
    "ModelFeatureResolver",
    "get_lab_filter",
    "scope_queryset",
]

DEFAULT_TENANT_FIELD = "lab_id"


def _as_queryset(model_or_queryset: type[Model] | QuerySet) -> QuerySet:
    if isinstance(model_or_queryset, QuerySet):
        return model_or_queryset
    return model_or_queryset._default_manager.all()  # pylint: disable=protected-access


class ModelTenantResolver:
    """Resolve the lab owning a resource through the Django ORM.

    Instances are callables suitable as ``resolve_tenant`` for
    ``authorize_tenant_resource`` and ``TenantResourcePermission``.

    Examples:
        >>> resolve = ModelTenantResolver(CatalogTest)
        >>> resolve(42)
        '7'
    """

    def __init__(self, model_or_queryset, tenant_field: str = DEFAULT_TENANT_FIELD, lookup_field: str = "pk"):
        """Initialize the resolver.

        Args:
            model_or_queryset: The model class or queryset holding the resources.
            tenant_field: Field holding the owning lab id.
            lookup_field: Field the resource id is matched against.
        """
        self.queryset = _as_queryset(model_or_queryset)
        self.tenant_field = tenant_field
        self.lookup_field = lookup_field

    def __call__(self, resource_id) -> str | None:
        """Get the lab id owning ``resource_id``.

        Returns:
            str | None: The lab id, or None for ids that cannot match any row.

        Raises:
            ObjectDoesNotExist: If no resource has the id.
        """
        try:
            tenant_id = self.queryset.values_list(self.tenant_field, flat=True).get(
                **{self.lookup_field: resource_id}
            )
        except (ValueError, ValidationError):
            # Malformed ids (e.g. text for an integer key) cannot name a resource.
            return None
        return None if tenant_id is None else str(tenant_id)


class ModelFeatureResolver:
    """Fetch a lab's feature flags through the Django ORM.

    Instances are callables suitable as ``get_lab_features`` for
    ``authorize_feature`` and ``LabFeaturePermission``.
    """

    def __init__(self, model_or_queryset, features_field: str = "features"):
        """Initialize the resolver.

        Args:
            model_or_queryset: The lab model class or queryset.
            features_field: Field holding the feature flag mapping.
        """
        self.queryset = _as_queryset(model_or_queryset)
        self.features_field = features_field

    def __call__(self, lab_id) -> dict | None:
        """Get the feature flags of ``lab_id``.

        Raises:
            ObjectDoesNotExist: If no lab has the id.
        """
        try:
            features = self.queryset.values_list(self.features_field, flat=True).get(pk=lab_id)
        except (ValueError, ValidationError):
            return None
        return features or {}


def get_lab_filter(principal: PrincipalData, field: str = DEFAULT_TENANT_FIELD) -> dict:
    """Get the queryset filter restricting data to the principal's lab.

    Super admins see every lab, so their filter is empty.

    Args:
        principal: The authorized caller.
        field: The lab field of the model being filtered.

    Returns:
        dict: Keyword arguments for ``QuerySet.filter``.

    Raises:
        ValueError: If there is no principal. Callers must authorize first.

    Examples:
        >>> get_lab_filter(PrincipalData(user_id="U1", role="staff", tenant_id="T1"))
        {'lab_id': 'T1'}
        >>> get_lab_filter(PrincipalData(user_id="U0", role="super_admin"))
        {}
    """
    if principal is None:
        raise ValueError("A principal is required to build a lab filter.")

    if principal.is_super_admin:
        return {}

    return {field: principal.tenant_id}


def scope_queryset(queryset: QuerySet, principal: PrincipalData, field: str = DEFAULT_TENANT_FIELD) -> QuerySet:
    """Restrict a queryset to the principal's lab.

    Principals without a lab (other than super admins) get an empty queryset.
    """
    lab_filter = get_lab_filter(principal, field)
    if lab_filter and principal.tenant_id is None:
        return queryset.none()
    return queryset.filter(**lab_filter)
